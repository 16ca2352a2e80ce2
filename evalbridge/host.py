"""Host evaluation adapter.

A host is whatever can run a code string inside the target context. Hosts
come in two shapes that cannot both be told apart from the return value alone:

- awaitable: ``host(code)`` returns a value, a ``(value, error_info)`` tuple,
  or an awaitable of either
- callback: ``host(code, callback)`` eventually calls
  ``callback(value, error_info)``, possibly from another thread

:class:`EvalAdapter` picks the convention once and always hands back
``(value, EvalErrorInfo | None)``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

HostPrimitive = Callable[..., Any]


class HostConvention(str, Enum):
    CALLBACK = "callback"
    AWAITABLE = "awaitable"


@dataclass(frozen=True)
class EvalErrorInfo:
    """Structured evaluation failure reported by (or about) the host."""

    description: str
    code: str | None = None
    is_exception: bool = False

    @classmethod
    def from_host(cls, raw: Any) -> EvalErrorInfo:
        if isinstance(raw, EvalErrorInfo):
            return raw
        if isinstance(raw, BaseException):
            return cls(description=f"{type(raw).__name__}: {raw}", code="E_HOST")
        if isinstance(raw, Mapping):
            # devtools-style exceptionInfo: {isException, value} or {isError, code, description}
            is_exception = bool(raw.get("isException"))
            description = raw.get("value") or raw.get("description") or raw.get("code") or "Evaluation failed"
            return cls(description=str(description), code=raw.get("code"), is_exception=is_exception)
        return cls(description=str(raw))


EvalOutcome = tuple[Any, EvalErrorInfo | None]


def error_info_of(raw: Any) -> EvalErrorInfo | None:
    """Host error payload to :class:`EvalErrorInfo`, or ``None`` when it reports no error."""
    if raw is None:
        return None
    if isinstance(raw, Mapping) and ("isException" in raw or "isError" in raw):
        # devtools always sends exceptionInfo; both flags false means the eval succeeded
        if not raw.get("isException") and not raw.get("isError"):
            return None
    return EvalErrorInfo.from_host(raw)


def detect_convention(host: HostPrimitive) -> HostConvention:
    """Guess the host's calling convention from its signature.

    Coroutine functions are awaitable hosts. A second required positional
    parameter is taken to be the completion callback. Anything else is
    treated as awaitable (plain return values are accepted too).
    """
    if inspect.iscoroutinefunction(host) or inspect.iscoroutinefunction(getattr(host, "__call__", None)):
        return HostConvention.AWAITABLE
    try:
        signature = inspect.signature(host)
    except (TypeError, ValueError):
        return HostConvention.AWAITABLE
    positional = [
        param
        for param in signature.parameters.values()
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    if len(positional) >= 2 and positional[1].default is inspect.Parameter.empty:
        return HostConvention.CALLBACK
    return HostConvention.AWAITABLE


def _normalize(result: Any) -> EvalOutcome:
    # Only a real tuple is the (value, error_info) form; lists are ordinary values.
    if isinstance(result, tuple) and len(result) == 2:
        value, raw_error = result
        return value, error_info_of(raw_error)
    return result, None


def _outcome_of(task: asyncio.Future) -> EvalOutcome:
    if task.cancelled():
        return None, EvalErrorInfo(description="Evaluation cancelled", code="E_HOST")
    exc = task.exception()
    if exc is not None:
        return None, EvalErrorInfo.from_host(exc)
    return _normalize(task.result())


class EvalAdapter:
    """One ``evaluate(code)`` contract over either host convention.

    Never raises for host failures and never retries; a failure comes back as
    the second element of the tuple.
    """

    def __init__(self, host: HostPrimitive, convention: HostConvention | str | None = None):
        self._host = host
        self.convention = HostConvention(convention) if convention else detect_convention(host)

    async def evaluate(self, code: str) -> EvalOutcome:
        if self.convention is HostConvention.CALLBACK:
            return await self._evaluate_with_callback(code)
        return await self._evaluate_awaitable(code)

    async def _evaluate_awaitable(self, code: str) -> EvalOutcome:
        try:
            result = self._host(code)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.debug("host raised during evaluation: %s", exc)
            return None, EvalErrorInfo.from_host(exc)
        return _normalize(result)

    async def _evaluate_with_callback(self, code: str) -> EvalOutcome:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[EvalOutcome] = loop.create_future()

        def _settle(outcome: EvalOutcome) -> None:
            if not future.done():
                future.set_result(outcome)

        def _callback(value: Any = None, error_info: Any = None) -> None:
            if loop.is_closed():
                return
            outcome = (value, error_info_of(error_info))
            loop.call_soon_threadsafe(_settle, outcome)

        try:
            returned = self._host(code, _callback)
        except Exception as exc:
            logger.debug("host raised during evaluation: %s", exc)
            return None, EvalErrorInfo.from_host(exc)

        if inspect.isawaitable(returned):
            # @@@callback-race - some hosts fire the callback and also return an awaitable;
            # whichever settles first wins, the other is dropped.
            task = asyncio.ensure_future(returned)
            task.add_done_callback(lambda done: _settle(_outcome_of(done)))
        return await future
