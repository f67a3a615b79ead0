"""Completion orchestration state machine — states, events, and transitions.

The orchestrator walks its candidate list through these phases:

    IDLE -> ATTEMPTING(i) -> [TOOL_ROUND] -> SUCCESS
                                          -> NEXT_CANDIDATE -> ATTEMPTING(i+1)
                                                            -> ALL_FAILED

``transition`` is a pure function; the orchestrator owns the side effects.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .model_candidate import ModelCandidate
from .structured_reply import StructuredReply


class OrchestratorPhase(str, Enum):
    """Lifecycle phases of one response-generation request."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    TOOL_ROUND = "tool_round"
    NEXT_CANDIDATE = "next_candidate"
    SUCCESS = "success"
    ALL_FAILED = "all_failed"


@dataclass(frozen=True)
class AttemptRecord:
    """Diagnostic record of one failed candidate attempt."""

    candidate: ModelCandidate
    error: dict[str, Any] | None = None


# ── Events ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Start:
    """Begin the candidate loop."""


@dataclass(frozen=True)
class ToolCallsRequested:
    """The completion asked for one or more tool calls."""

    count: int


@dataclass(frozen=True)
class ReplyReady:
    """A usable structured reply was produced by the current candidate."""

    reply: StructuredReply


@dataclass(frozen=True)
class AttemptFailed:
    """The current candidate raised, timed out, or yielded nothing usable."""

    error: dict[str, Any]


@dataclass(frozen=True)
class Advance:
    """Move past a failed candidate."""


Event = Start | ToolCallsRequested | ReplyReady | AttemptFailed | Advance


@dataclass(frozen=True)
class OrchestratorState:
    """Immutable snapshot of the orchestration progress."""

    candidates: tuple[ModelCandidate, ...] = ()
    phase: OrchestratorPhase = OrchestratorPhase.IDLE
    index: int = 0
    attempts: tuple[AttemptRecord, ...] = field(default_factory=tuple)
    reply: StructuredReply | None = None
    active_model: str | None = None

    @property
    def current(self) -> ModelCandidate | None:
        if 0 <= self.index < len(self.candidates):
            return self.candidates[self.index]
        return None

    @property
    def is_terminal(self) -> bool:
        return self.phase in (OrchestratorPhase.SUCCESS, OrchestratorPhase.ALL_FAILED)


class InvalidTransitionError(RuntimeError):
    """Raised when an event is not valid for the current phase."""

    def __init__(self, phase: OrchestratorPhase, event: object):
        super().__init__(f"Event {type(event).__name__} is not valid in phase '{phase.value}'")


def transition(state: OrchestratorState, event: Event) -> OrchestratorState:
    """Return the state that follows ``event``; never mutates ``state``."""
    phase = state.phase

    if isinstance(event, Start) and phase == OrchestratorPhase.IDLE:
        if not state.candidates:
            return replace(state, phase=OrchestratorPhase.ALL_FAILED)
        return replace(state, phase=OrchestratorPhase.ATTEMPTING, index=0)

    if isinstance(event, ToolCallsRequested) and phase == OrchestratorPhase.ATTEMPTING:
        return replace(state, phase=OrchestratorPhase.TOOL_ROUND)

    if isinstance(event, ReplyReady) and phase in (
        OrchestratorPhase.ATTEMPTING,
        OrchestratorPhase.TOOL_ROUND,
    ):
        return replace(
            state,
            phase=OrchestratorPhase.SUCCESS,
            reply=event.reply,
            active_model=state.current.model_id if state.current else None,
        )

    if isinstance(event, AttemptFailed) and phase in (
        OrchestratorPhase.ATTEMPTING,
        OrchestratorPhase.TOOL_ROUND,
    ):
        record = AttemptRecord(candidate=state.current, error=event.error)  # type: ignore[arg-type]
        return replace(
            state,
            phase=OrchestratorPhase.NEXT_CANDIDATE,
            attempts=state.attempts + (record,),
        )

    if isinstance(event, Advance) and phase == OrchestratorPhase.NEXT_CANDIDATE:
        next_index = state.index + 1
        if next_index >= len(state.candidates):
            return replace(state, phase=OrchestratorPhase.ALL_FAILED)
        return replace(state, phase=OrchestratorPhase.ATTEMPTING, index=next_index)

    raise InvalidTransitionError(phase, event)
