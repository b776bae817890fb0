"""Turn control loop as a pure state machine.

``transition(state, event, policy)`` returns the next state plus the
effects the orchestrator must perform. No I/O happens here, so every
path (correction, continuation, auto-fix, cancel, failure) can be driven
with synthetic events.
"""

from dataclasses import dataclass, replace
from enum import Enum

from src.domain.entities.violations import Violation


class Phase(str, Enum):
    STREAMING = "streaming"
    ABORTING_FOR_CORRECTION = "aborting_for_correction"
    CONTINUING_UNCLOSED_WRITE = "continuing_unclosed_write"
    AUTO_FIXING = "auto_fixing"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.DONE, Phase.CANCELLED, Phase.FAILED)


@dataclass(frozen=True)
class LoopPolicy:
    """Retry bounds and which recovery paths apply to this turn."""

    max_correction_attempts: int = 2
    max_continuation_attempts: int = 2
    max_autofix_attempts: int = 2
    continuation_enabled: bool = True
    auto_fix_enabled: bool = False


@dataclass(frozen=True)
class LoopState:
    phase: Phase = Phase.STREAMING
    correction_attempts: int = 0
    continuation_attempts: int = 0
    autofix_attempts: int = 0

    def corrections_exhausted(self, policy: LoopPolicy) -> bool:
        return self.correction_attempts >= policy.max_correction_attempts


# Events


@dataclass(frozen=True)
class PassFinished:
    """A primary stream pass ended, either cleanly or aborted for correction."""

    correction: str | None = None
    violation: Violation | None = None
    has_unclosed_write: bool = False
    has_dependencies: bool = False


@dataclass(frozen=True)
class ContinuationFinished:
    has_unclosed_write: bool = False
    has_dependencies: bool = False


@dataclass(frozen=True)
class ProblemsReported:
    count: int


@dataclass(frozen=True)
class AutoFixFinished:
    pass


@dataclass(frozen=True)
class UserCancelled:
    pass


@dataclass(frozen=True)
class ModelFailed:
    message: str


LoopEvent = PassFinished | ContinuationFinished | ProblemsReported | AutoFixFinished | UserCancelled | ModelFailed


# Effects


@dataclass(frozen=True)
class RestartWithCorrection:
    correction: str
    violation: Violation | None = None


@dataclass(frozen=True)
class RequestContinuation:
    attempt: int


@dataclass(frozen=True)
class CheckProblems:
    pass


@dataclass(frozen=True)
class AppendProblemReport:
    pass


@dataclass(frozen=True)
class RequestAutoFix:
    attempt: int


@dataclass(frozen=True)
class Finish:
    pass


@dataclass(frozen=True)
class SavePartial:
    pass


@dataclass(frozen=True)
class ReportError:
    message: str


Effect = (
    RestartWithCorrection
    | RequestContinuation
    | CheckProblems
    | AppendProblemReport
    | RequestAutoFix
    | Finish
    | SavePartial
    | ReportError
)


class InvalidTransition(ValueError):
    """Event not valid in the current phase."""

    def __init__(self, state: LoopState, event: LoopEvent) -> None:
        super().__init__(f"{type(event).__name__} is not valid in phase {state.phase.value}")
        self.state = state
        self.event = event


def _after_continuation(state: LoopState, has_dependencies: bool, policy: LoopPolicy):
    # New packages are not installed yet, so their imports would show up as problems.
    if policy.auto_fix_enabled and not has_dependencies:
        return replace(state, phase=Phase.AUTO_FIXING), (CheckProblems(),)
    return replace(state, phase=Phase.DONE), (Finish(),)


def _after_stream(state: LoopState, event: PassFinished, policy: LoopPolicy):
    if (
        policy.continuation_enabled
        and event.has_unclosed_write
        and state.continuation_attempts < policy.max_continuation_attempts
    ):
        attempt = state.continuation_attempts + 1
        return (
            replace(state, phase=Phase.CONTINUING_UNCLOSED_WRITE, continuation_attempts=attempt),
            (RequestContinuation(attempt=attempt),),
        )
    return _after_continuation(state, event.has_dependencies, policy)


def transition(
    state: LoopState,
    event: LoopEvent,
    policy: LoopPolicy,
) -> tuple[LoopState, tuple[Effect, ...]]:
    """Next state and effects. Terminal phases ignore every event."""
    if state.phase.is_terminal:
        return state, ()

    match event:
        case UserCancelled():
            return replace(state, phase=Phase.CANCELLED), (SavePartial(),)
        case ModelFailed(message=message):
            return replace(state, phase=Phase.FAILED), (ReportError(message=message),)

    match state.phase, event:
        case (Phase.STREAMING | Phase.ABORTING_FOR_CORRECTION), PassFinished(correction=str() as correction):
            if state.corrections_exhausted(policy):
                return _after_stream(replace(state, phase=Phase.STREAMING), event, policy)
            return (
                replace(
                    state,
                    phase=Phase.ABORTING_FOR_CORRECTION,
                    correction_attempts=state.correction_attempts + 1,
                ),
                (RestartWithCorrection(correction=correction, violation=event.violation),),
            )
        case (Phase.STREAMING | Phase.ABORTING_FOR_CORRECTION), PassFinished():
            return _after_stream(replace(state, phase=Phase.STREAMING), event, policy)
        case Phase.CONTINUING_UNCLOSED_WRITE, ContinuationFinished():
            if event.has_unclosed_write and state.continuation_attempts < policy.max_continuation_attempts:
                attempt = state.continuation_attempts + 1
                return replace(state, continuation_attempts=attempt), (RequestContinuation(attempt=attempt),)
            return _after_continuation(state, event.has_dependencies, policy)
        case Phase.AUTO_FIXING, ProblemsReported(count=0):
            return replace(state, phase=Phase.DONE), (Finish(),)
        case Phase.AUTO_FIXING, ProblemsReported():
            if state.autofix_attempts < policy.max_autofix_attempts:
                attempt = state.autofix_attempts + 1
                return (
                    replace(state, autofix_attempts=attempt),
                    (AppendProblemReport(), RequestAutoFix(attempt=attempt)),
                )
            # Attempts exhausted: leave the remaining problems inline.
            return replace(state, phase=Phase.DONE), (AppendProblemReport(), Finish())
        case Phase.AUTO_FIXING, AutoFixFinished():
            return state, (CheckProblems(),)

    raise InvalidTransition(state, event)
