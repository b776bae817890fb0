"""Stream orchestration application layer."""

from src.application.stream.cancellation import CancellationSignal, CancelReason
from src.application.stream.dto import OrchestratorSettings, TurnOutcome, TurnRequest, TurnStatus
from src.application.stream.orchestrator import StreamOrchestrator
from src.application.stream.session_registry import SessionRegistry, StreamAlreadyActiveError

__all__ = [
    "CancelReason",
    "CancellationSignal",
    "OrchestratorSettings",
    "SessionRegistry",
    "StreamAlreadyActiveError",
    "StreamOrchestrator",
    "TurnOutcome",
    "TurnRequest",
    "TurnStatus",
]
