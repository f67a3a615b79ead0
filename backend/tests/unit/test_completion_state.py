"""Unit tests for the orchestration state machine."""

import pytest

from chat_backend.domain.entities import ModelCandidate, OrchestratorPhase, OrchestratorState, StructuredReply, transition
from chat_backend.domain.entities.completion_state import (
    Advance,
    AttemptFailed,
    InvalidTransitionError,
    ReplyReady,
    Start,
    ToolCallsRequested,
)


def _candidates(*models: str) -> tuple[ModelCandidate, ...]:
    return tuple(ModelCandidate(endpoint="https://api.test/v1", model_id=m, credential="k") for m in models)


def test_start_without_candidates_fails_immediately():
    state = transition(OrchestratorState(), Start())
    assert state.phase == OrchestratorPhase.ALL_FAILED
    assert state.attempts == ()


def test_start_attempts_first_candidate():
    state = transition(OrchestratorState(candidates=_candidates("a", "b")), Start())
    assert state.phase == OrchestratorPhase.ATTEMPTING
    assert state.current.model_id == "a"


def test_failure_then_advance_moves_to_next_candidate():
    state = transition(OrchestratorState(candidates=_candidates("a", "b")), Start())
    state = transition(state, AttemptFailed(error={"name": "X"}))
    assert state.phase == OrchestratorPhase.NEXT_CANDIDATE
    assert state.attempts[0].candidate.model_id == "a"

    state = transition(state, Advance())
    assert state.phase == OrchestratorPhase.ATTEMPTING
    assert state.current.model_id == "b"


def test_advance_past_last_candidate_is_all_failed():
    state = transition(OrchestratorState(candidates=_candidates("a")), Start())
    state = transition(state, AttemptFailed(error={"name": "X"}))
    state = transition(state, Advance())
    assert state.phase == OrchestratorPhase.ALL_FAILED
    assert state.is_terminal
    assert len(state.attempts) == 1


def test_reply_after_tool_round_succeeds_with_active_model():
    reply = StructuredReply(message="hi", suggestions=["a", "b", "c"])
    state = transition(OrchestratorState(candidates=_candidates("a")), Start())
    state = transition(state, ToolCallsRequested(count=2))
    assert state.phase == OrchestratorPhase.TOOL_ROUND

    state = transition(state, ReplyReady(reply=reply))
    assert state.phase == OrchestratorPhase.SUCCESS
    assert state.reply is reply
    assert state.active_model == "a"


def test_transition_does_not_mutate_input_state():
    initial = OrchestratorState(candidates=_candidates("a"))
    transition(initial, Start())
    assert initial.phase == OrchestratorPhase.IDLE


def test_invalid_event_raises():
    with pytest.raises(InvalidTransitionError):
        transition(OrchestratorState(), Advance())

    done = transition(OrchestratorState(), Start())
    with pytest.raises(InvalidTransitionError):
        transition(done, Start())
