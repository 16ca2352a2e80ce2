"""LocalTarget - an in-process target context.

Runs code the way a REPL cell does: statements execute in a private global
namespace and the value of a trailing expression is returned. Values cross
back as JSON-compatible data only, like a real remote host.
"""

from __future__ import annotations

import ast
import asyncio
import json
import threading
from dataclasses import dataclass, field
from typing import Any

from evalbridge.host import HostConvention, HostPrimitive

CELL_FILENAME = "<evalbridge-cell>"


def _exception_info(exc: BaseException) -> dict[str, Any]:
    return {"isException": True, "value": f"{type(exc).__name__}: {exc}"}


@dataclass
class LocalTarget:
    name: str = "local"
    namespace: dict[str, Any] = field(default_factory=lambda: {"__name__": "__evalbridge_target__"})
    _eval_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def run_cell(self, code: str) -> Any:
        """Execute ``code`` and return its trailing expression, JSON round-tripped."""
        tree = ast.parse(code, filename=CELL_FILENAME, mode="exec")
        trailing: ast.Expression | None = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            trailing = ast.Expression(body=tree.body.pop().value)
        # @@@single-threaded-eval - the primitive itself is synchronous and serialized;
        # only threads started by the evaluated code run concurrently.
        with self._eval_lock:
            exec(compile(tree, CELL_FILENAME, "exec"), self.namespace)
            value = eval(compile(trailing, CELL_FILENAME, "eval"), self.namespace) if trailing else None
            payload = json.dumps(value)
        return json.loads(payload)

    def evaluate(self, code: str, callback) -> None:
        """Callback convention: ``callback(value, error_info)`` before returning."""
        try:
            value = self.run_cell(code)
        except Exception as exc:
            callback(None, _exception_info(exc))
            return
        callback(value, None)

    async def evaluate_async(self, code: str) -> tuple[Any, dict[str, Any] | None]:
        """Awaitable convention: resolves to ``(value, error_info)``.

        The cell runs on a worker thread so a slow cell never stalls the event loop.
        """
        try:
            return await asyncio.to_thread(self.run_cell, code), None
        except Exception as exc:
            return None, _exception_info(exc)

    def host(self, convention: HostConvention | str = HostConvention.AWAITABLE) -> HostPrimitive:
        if HostConvention(convention) is HostConvention.CALLBACK:
            return self.evaluate
        return self.evaluate_async

    def get(self, name: str, default: Any = None) -> Any:
        """Peek at a target global from the controlling process (local only)."""
        return self.namespace.get(name, default)

    def staged_keys(self) -> list[str]:
        return sorted(list(self.namespace.get("_evalbridge_staging", {})))

    def operation_slots(self) -> list[str]:
        return sorted(key for key in list(self.namespace) if key.startswith("_evalbridge_op_"))

