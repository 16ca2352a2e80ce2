"""Tests for EvalAdapter calling-convention handling."""

import asyncio
import threading

import pytest

from evalbridge.host import EvalAdapter, EvalErrorInfo, HostConvention, detect_convention, error_info_of


class TestDetectConvention:
    def test_coroutine_function_is_awaitable(self):
        async def host(code):
            return code

        assert detect_convention(host) is HostConvention.AWAITABLE

    def test_second_positional_is_callback(self):
        def host(code, callback):
            callback(code, None)

        assert detect_convention(host) is HostConvention.CALLBACK

    def test_optional_second_parameter_is_not_a_callback(self):
        def host(code, timeout=30):
            return code

        assert detect_convention(host) is HostConvention.AWAITABLE

    def test_bound_method_ignores_self(self):
        class Host:
            def evaluate(self, code, done):
                done(code, None)

        assert detect_convention(Host().evaluate) is HostConvention.CALLBACK

    def test_explicit_convention_wins(self):
        def host(code, callback=None):
            callback(code, None)

        adapter = EvalAdapter(host, convention="callback")
        assert adapter.convention is HostConvention.CALLBACK


class TestAwaitableHosts:
    @pytest.mark.asyncio
    async def test_bare_value_becomes_tuple(self):
        async def host(code):
            return {"echo": code}

        assert await EvalAdapter(host).evaluate("x") == ({"echo": "x"}, None)

    @pytest.mark.asyncio
    async def test_tuple_result_is_normalized(self):
        async def host(code):
            return None, {"isException": True, "value": "SyntaxError: bad"}

        value, error = await EvalAdapter(host).evaluate("(")
        assert value is None
        assert error == EvalErrorInfo(description="SyntaxError: bad", is_exception=True)

    @pytest.mark.asyncio
    async def test_tuple_with_cleared_exception_info_is_success(self):
        async def host(code):
            return "ok", {"isException": False}

        assert await EvalAdapter(host).evaluate("x") == ("ok", None)

    @pytest.mark.asyncio
    async def test_list_result_is_a_value(self):
        async def host(code):
            return [1, None]

        assert await EvalAdapter(host).evaluate("x") == ([1, None], None)

    @pytest.mark.asyncio
    async def test_sync_host_returning_value(self):
        def host(code):
            return 42

        assert await EvalAdapter(host).evaluate("6 * 7") == (42, None)

    @pytest.mark.asyncio
    async def test_sync_exception_becomes_error_info(self):
        def host(code):
            raise ConnectionError("target detached")

        value, error = await EvalAdapter(host).evaluate("1")
        assert value is None
        assert error.code == "E_HOST"
        assert "target detached" in error.description

    @pytest.mark.asyncio
    async def test_awaitable_failure_becomes_error_info(self):
        async def host(code):
            raise RuntimeError("boom")

        value, error = await EvalAdapter(host).evaluate("1")
        assert value is None
        assert "RuntimeError: boom" == error.description


class TestCallbackHosts:
    @pytest.mark.asyncio
    async def test_synchronous_callback(self):
        def host(code, callback):
            callback(code.upper(), None)

        assert await EvalAdapter(host).evaluate("abc") == ("ABC", None)

    @pytest.mark.asyncio
    async def test_callback_from_another_thread(self):
        def host(code, callback):
            threading.Timer(0.01, callback, args=(code, None)).start()

        assert await EvalAdapter(host).evaluate("later") == ("later", None)

    @pytest.mark.asyncio
    async def test_callback_error_info_mapping(self):
        def host(code, callback):
            callback(None, {"isError": True, "code": "E_PROTOCOLERROR", "description": "Inspected target navigated"})

        value, error = await EvalAdapter(host).evaluate("1")
        assert value is None
        assert error.code == "E_PROTOCOLERROR"
        assert error.description == "Inspected target navigated"
        assert error.is_exception is False

    @pytest.mark.asyncio
    async def test_exception_info_with_no_flags_set_is_success(self):
        def host(code, callback):
            callback(7, {"isException": False, "isError": False, "value": ""})

        assert await EvalAdapter(host).evaluate("7") == (7, None)

    @pytest.mark.asyncio
    async def test_callback_wins_over_later_awaitable(self):
        resolved_later = asyncio.Event()

        def host(code, callback):
            callback("from-callback", None)

            async def late():
                await asyncio.sleep(0.01)
                resolved_later.set()
                return "from-awaitable"

            return late()

        adapter = EvalAdapter(host)
        assert await adapter.evaluate("x") == ("from-callback", None)
        await asyncio.wait_for(resolved_later.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_awaitable_used_when_callback_never_fires(self):
        def host(code, callback):
            async def result():
                return "from-awaitable"

            return result()

        assert await EvalAdapter(host).evaluate("x") == ("from-awaitable", None)

    @pytest.mark.asyncio
    async def test_sync_exception_becomes_error_info(self):
        def host(code, callback):
            raise ValueError("no inspected window")

        value, error = await EvalAdapter(host).evaluate("1")
        assert value is None
        assert "no inspected window" in error.description


def test_error_info_of_payload_shapes():
    assert error_info_of(None) is None
    assert error_info_of({"isException": False, "isError": False}) is None
    assert error_info_of({"isError": True, "code": "E_X"}).code == "E_X"
    assert error_info_of({"description": "no flags at all"}).description == "no flags at all"


def test_error_info_from_exception_and_string():
    assert EvalErrorInfo.from_host(KeyError("k")).code == "E_HOST"
    assert EvalErrorInfo.from_host("plain").description == "plain"
    info = EvalErrorInfo(description="same")
    assert EvalErrorInfo.from_host(info) is info
