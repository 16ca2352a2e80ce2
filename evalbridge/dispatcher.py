"""Operation dispatcher - async calls on top of a synchronous evaluate primitive.

The target context cannot call back into the controlling side, so each
operation is correlated by id through a scratch global in the target:

    submit wrapper  ->  _evalbridge_op_<id> = {'status': 'pending'}
                        worker thread runs the operation
                        _evalbridge_op_<id> = {'status': 'done', 'result': ...}
    poll            ->  read _evalbridge_op_<id> until it is terminal
    cleanup         ->  drop _evalbridge_op_<id>

Operations never share a lock; isolation rests on id uniqueness alone.
"""

from __future__ import annotations

import asyncio
import logging
import random
import textwrap
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from evalbridge.config import PollingConfig
from evalbridge.errors import EvaluationError, OperationError, OperationTimeoutError
from evalbridge.host import EvalAdapter, EvalErrorInfo

logger = logging.getLogger(__name__)

SLOT_PREFIX = "_evalbridge_op_"
TERMINAL_STATUSES = {"done", "error"}

_system_random = random.SystemRandom()


def new_operation_id(
    rng: random.Random | None = None,
    clock: Callable[[], float] = time.time,
) -> str:
    """Millisecond timestamp plus 64 random bits, both hex.

    The random part keeps ids distinct for operations started in the same
    millisecond.
    """
    source = rng or _system_random
    return f"{int(clock() * 1000):x}_{source.getrandbits(64):016x}"


def slot_name(operation_id: str) -> str:
    return f"{SLOT_PREFIX}{operation_id}"


@dataclass(frozen=True)
class Operation:
    """Target-side work for one dispatch.

    ``prelude`` holds statements run first on the worker thread; ``expression``
    is evaluated afterwards and becomes the record's result. Both may use
    ``globals()`` to reach the target's global namespace.
    """

    expression: str
    prelude: str = ""
    name: str = "operation"


@dataclass(frozen=True)
class OperationRecord:
    operation_id: str
    status: str
    result: Any = None
    error: str | None = None

    @classmethod
    def from_value(cls, operation_id: str, value: Any) -> OperationRecord | None:
        if not isinstance(value, dict) or "status" not in value:
            return None
        return cls(
            operation_id=operation_id,
            status=value["status"],
            result=value.get("result"),
            error=value.get("error"),
        )

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def render_submission(operation_id: str, operation: Operation) -> str:
    """Wrap ``operation`` so the pending record exists before any work starts."""
    slot = slot_name(operation_id)
    runner = f"_evalbridge_run_{operation_id}"
    body = textwrap.dedent(operation.prelude).strip()
    body_lines = [body] if body else []
    body_lines.append(f"_result = {operation.expression}")
    body_block = textwrap.indent("\n".join(body_lines), " " * 8)
    return "\n".join(
        [
            f"{slot} = {{'status': 'pending'}}",
            f"def {runner}():",
            f"    global {slot}",
            "    try:",
            body_block,
            "    except Exception as _exc:",
            f"        _record = {{'status': 'error', 'error': str(_exc) or type(_exc).__name__}}",
            "    else:",
            f"        _record = {{'status': 'done', 'result': _result}}",
            # @@@late-finish - a cleared slot means the caller gave up; do not bring it back.
            f"    if {slot!r} in globals():",
            f"        {slot} = _record",
            f"__import__('threading').Thread(target={runner}, name={runner!r}, daemon=True).start()",
            f"del {runner}",
            slot,
        ]
    )


def render_read(operation_id: str) -> str:
    return f"globals().get({slot_name(operation_id)!r})"


def render_clear(operation_id: str) -> str:
    return f"globals().pop({slot_name(operation_id)!r}, None) and None"


class OperationDispatcher:
    """Submits operations through an :class:`EvalAdapter` and polls for their records."""

    def __init__(
        self,
        adapter: EvalAdapter,
        polling: PollingConfig | None = None,
        id_factory: Callable[[], str] = new_operation_id,
    ):
        self.adapter = adapter
        self.polling = polling or PollingConfig()
        self._id_factory = id_factory

    async def run(self, operation: Operation) -> Any:
        operation_id = self._id_factory()
        logger.debug("submitting %s as %s", operation.name, operation_id)

        value, error = await self.adapter.evaluate(render_submission(operation_id, operation))
        if error is not None:
            # Transport failure on submit is terminal; the slot may still exist.
            await self._clear(operation_id)
            raise EvaluationError(f"{operation.name} failed to submit: {error.description}", error)

        record = OperationRecord.from_value(operation_id, value)
        if record is None or not record.terminal:
            record = await self._poll(operation_id, operation.name)
        await self._clear(operation_id)
        return self._settle(record, operation.name)

    async def _poll(self, operation_id: str, name: str) -> OperationRecord:
        polling = self.polling
        read_code = render_read(operation_id)
        transient_failures = 0
        for attempt in range(1, polling.max_attempts + 1):
            await asyncio.sleep(polling.interval)
            value, error = await self.adapter.evaluate(read_code)
            record = None if error is not None else OperationRecord.from_value(operation_id, value)

            if record is None:
                if self._tolerates(attempt, transient_failures):
                    transient_failures += 1
                    delay = polling.transient_backoff * (2 ** (transient_failures - 1))
                    logger.warning(
                        "transient read failure for %s (poll %d, retry %d): %s",
                        operation_id,
                        attempt,
                        transient_failures,
                        error.description if error else "no record",
                    )
                    await asyncio.sleep(delay)
                    continue
                await self._clear(operation_id)
                raise self._read_failure(name, operation_id, error)

            if record.terminal:
                logger.debug("%s finished with %s after %d polls", operation_id, record.status, attempt)
                return record

        await self._clear(operation_id)
        raise OperationTimeoutError(operation_id, polling.max_attempts)

    def _tolerates(self, attempt: int, transient_failures: int) -> bool:
        polling = self.polling
        return (
            polling.unstable
            and attempt <= polling.transient_window
            and transient_failures < polling.transient_retries
        )

    @staticmethod
    def _read_failure(name: str, operation_id: str, error: EvalErrorInfo | None) -> EvaluationError:
        if error is not None:
            return EvaluationError(f"{name} could not be polled: {error.description}", error)
        return EvaluationError(f"{name} lost its operation record ({operation_id})")

    @staticmethod
    def _settle(record: OperationRecord, name: str) -> Any:
        if record.status == "error":
            raise OperationError(record.error or f"{name} failed", record.operation_id)
        return record.result

    async def _clear(self, operation_id: str) -> None:
        # @@@best-effort-cleanup - never let slot deletion mask or delay the caller's outcome.
        try:
            _, error = await self.adapter.evaluate(render_clear(operation_id))
        except Exception as exc:
            logger.warning("failed to clear slot for %s: %s", operation_id, exc)
            return
        if error is not None:
            logger.warning("failed to clear slot for %s: %s", operation_id, error.description)
