"""Cooperative cancellation for in-flight model streams."""

from enum import Enum

from src.domain.entities.violations import Violation


class CancelReason(str, Enum):
    """USER is terminal; CORRECTION restarts the stream with a correction."""

    USER = "user"
    CORRECTION = "correction"


class CancellationSignal:
    """Flag shared between the orchestrator and the model call.

    The cause travels with the signal. A user cancel always wins over a
    pending correction; a correction never overrides a user cancel.
    """

    def __init__(self) -> None:
        self._reason: CancelReason | None = None
        self.correction: str | None = None
        self.violation: Violation | None = None

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> CancelReason | None:
        return self._reason

    @property
    def cancelled_by_user(self) -> bool:
        return self._reason is CancelReason.USER

    def cancel(
        self,
        reason: CancelReason = CancelReason.USER,
        correction: str | None = None,
        violation: Violation | None = None,
    ) -> None:
        if self._reason is CancelReason.USER:
            return
        self._reason = reason
        if reason is CancelReason.CORRECTION:
            self.correction = correction
            self.violation = violation

    def __repr__(self) -> str:
        return f"CancellationSignal(reason={self._reason.value if self._reason else None})"
