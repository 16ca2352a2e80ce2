"""Exception types raised by evalbridge."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from evalbridge.host import EvalErrorInfo


class BridgeError(Exception):
    """Base exception for evalbridge."""


class EvaluationError(BridgeError):
    """The host failed to evaluate generated code.

    Covers host exceptions, syntax/runtime errors reported by the target for
    the generated code itself, and transient read failures that outlived
    their retry budget.
    """

    def __init__(self, message: str, info: EvalErrorInfo | None = None):
        super().__init__(message)
        self.info = info


class OperationError(BridgeError):
    """The target-side operation completed with an error status."""

    def __init__(self, message: str, operation_id: str | None = None):
        super().__init__(message)
        self.operation_id = operation_id


class OperationTimeoutError(BridgeError):
    """Polling budget exhausted while the operation was still pending.

    The target-side work may still finish; its outcome is unknown.
    """

    def __init__(self, operation_id: str, attempts: int):
        super().__init__(f"Operation {operation_id} did not complete after {attempts} polls")
        self.operation_id = operation_id
        self.attempts = attempts
