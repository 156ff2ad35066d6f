import os, sys
import pytest
from pydantic import ValidationError

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))
from matchscore.scoring import log
from matchscore.scoring.policy import PICKLEBALL_STANDARD, TENNIS_FAST4, TENNIS_STANDARD


def _history(initial, sides):
    events = []
    state = initial
    for side in sides:
        state, event = log.score_point(state, side)
        events.append(event)
    return state, events


def test_create_initial_state_uses_the_sport_engine():
    tennis_state = log.create_initial_state("m1", TENNIS_STANDARD)
    assert tennis_state.game.kind == "advantage"
    pickleball_state = log.create_initial_state("m2", PICKLEBALL_STANDARD, 2)
    assert pickleball_state.game.kind == "rally"
    assert pickleball_state.serving_side == 2


def test_score_point_records_a_snapshot_event():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    state, event = log.score_point(initial, 2, recorded_by="umpire", notes="ace")
    assert event.kind is log.EventKind.POINT_SCORED
    assert event.match_id == "m1"
    assert event.scoring_side == 2
    assert event.snapshot == state
    assert event.recorded_by == "umpire"
    assert event.notes == "ace"
    assert event.recorded_at.tzinfo is not None
    assert state.game.points == ("0", "15")


def test_score_point_rejects_invalid_side():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    with pytest.raises(ValueError):
        log.score_point(initial, 3)


def test_current_state_is_the_last_snapshot():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    assert log.current_state([], initial) == initial
    state, events = _history(initial, [1, 1, 2])
    assert log.current_state(events, initial) == state


def test_undo_restores_the_previous_snapshot():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    _, events = _history(initial, [1, 2, 1, 1])
    restored = log.undo_last_point(events, initial)
    assert restored == events[-2].snapshot


def test_undo_of_a_single_event_restores_initial_state():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    _, events = _history(initial, [1])
    assert log.undo_last_point(events, initial) == initial


def test_undo_of_empty_history_is_a_no_op():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    assert log.undo_last_point([], initial) == initial


def test_score_then_undo_returns_the_prior_state():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    before, events = _history(initial, [1, 2, 2])
    after, event = log.score_point(before, 1)
    assert after != before
    assert log.undo_last_point(events + [event], initial) == before


def test_start_event_carries_the_initial_snapshot():
    state = log.create_initial_state("m1", TENNIS_STANDARD, 2)
    event = log.start_event(state, recorded_by="desk")
    assert event.kind is log.EventKind.MATCH_STARTED
    assert event.scoring_side is None
    assert event.snapshot.serving_side == 2


def test_correction_event_overrides_the_state():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    state, _ = _history(initial, [1, 1])
    fixed, _ = _history(initial, [1, 2])
    event = log.correction_event(state, fixed, notes="  wrong side  ", scoring_side=2)
    assert event.kind is log.EventKind.CORRECTION
    assert event.snapshot == fixed
    assert event.notes == "wrong side"
    assert event.scoring_side == 2


@pytest.mark.parametrize("notes", ["", "   "])
def test_correction_requires_notes(notes):
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    with pytest.raises(ValueError):
        log.correction_event(initial, initial, notes=notes)


def test_correction_cannot_change_match_or_policy():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    other_match = log.create_initial_state("m2", TENNIS_STANDARD)
    other_policy = log.create_initial_state("m1", TENNIS_FAST4)
    with pytest.raises(ValueError):
        log.correction_event(initial, other_match, notes="fix")
    with pytest.raises(ValueError):
        log.correction_event(initial, other_policy, notes="fix")


def test_events_are_immutable():
    initial = log.create_initial_state("m1", TENNIS_STANDARD)
    _, event = log.score_point(initial, 1)
    with pytest.raises(ValidationError):
        event.notes = "changed"
