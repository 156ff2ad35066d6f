import os, sys
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))
from matchscore.scoring import tennis
from matchscore.scoring.policy import TENNIS_FAST4, TENNIS_STANDARD, ScoringPolicy
from matchscore.scoring.state import MatchState, RallyGame, ScoringInvariantError


def _new(policy=TENNIS_STANDARD, serving_side=1):
    return tennis.init_state("m1", policy, serving_side)


def _points(state, *sides):
    for side in sides:
        state = tennis.apply(state, side)
    return state


def _game(state, side):
    return _points(state, side, side, side, side)


def _games(state, *sides):
    for side in sides:
        state = _game(state, side)
    return state


def _deuce(state):
    return _points(state, 1, 2, 1, 2, 1, 2)


def _six_all(state):
    return _games(state, *([1, 2] * 6))


def test_four_points_win_a_game_and_reset_labels():
    state = _points(_new(), 1, 1, 1)
    assert state.game.points == ("40", "0")
    state = tennis.apply(state, 1)
    assert state.current_set.games == (1, 0)
    assert state.game.points == ("0", "0")
    assert state.serving_side == 2


def test_advantage_is_lost_back_to_deuce():
    state = _deuce(_new())
    assert state.game.points == ("40", "40")
    state = tennis.apply(state, 1)
    assert state.game.points == ("AD", "40")
    state = tennis.apply(state, 2)
    assert state.game.points == ("40", "40")
    assert state.current_set.games == (0, 0)


def test_two_points_from_deuce_win_with_advantage():
    state = _points(_deuce(_new()), 2, 2)
    assert state.current_set.games == (0, 1)
    assert state.game.points == ("0", "0")


def test_sudden_death_at_deuce_without_advantage():
    state = _deuce(_new(TENNIS_FAST4))
    state = tennis.apply(state, 2)
    assert state.current_set.games == (0, 1)


def test_six_four_wins_the_set():
    state = _games(_new(), 1, 2, 1, 2, 1, 2, 1, 2, 1)
    assert state.current_set.games == (5, 4)
    state = _game(state, 1)
    assert state.sets[0].games == (6, 4)
    assert state.sets[0].winner == 1
    assert state.current_set_index == 1
    assert state.current_set.set_number == 2
    assert state.current_set.games == (0, 0)


def test_six_five_does_not_win_but_seven_five_does():
    state = _games(_new(), *([1, 2] * 5))
    state = _game(state, 1)
    assert state.current_set.games == (6, 5)
    assert state.current_set.winner is None
    assert state.current_set_index == 0
    state = _game(state, 1)
    assert state.sets[0].games == (7, 5)
    assert state.sets[0].winner == 1


def test_tiebreak_starts_at_six_all():
    state = _six_all(_new())
    current = state.current_set
    assert current.games == (6, 6)
    assert current.is_tiebreak is True
    assert current.tiebreak == (0, 0)
    assert tennis.format_game_score(state) == "0-0"


def test_tiebreak_needs_a_two_point_margin():
    state = _six_all(_new())
    state = _points(state, *([1, 2] * 6))
    assert state.current_set.tiebreak == (6, 6)
    state = tennis.apply(state, 1)
    assert state.current_set.tiebreak == (7, 6)
    assert state.current_set.winner is None
    state = tennis.apply(state, 1)
    assert state.sets[0].winner == 1
    assert state.sets[0].games == (7, 6)
    assert tennis.format_score(state) == "7-6(6)"


def test_tiebreak_serve_changes_after_first_point_then_every_two():
    state = _six_all(_new())
    assert state.serving_side == 1
    servers = []
    for _ in range(5):
        state = tennis.apply(state, 1)
        servers.append(state.serving_side)
    assert servers == [2, 2, 1, 1, 2]


def test_completed_tiebreak_rotates_the_server():
    state = _six_all(_new())
    server_before = state.serving_side
    state = _points(state, *([1] * 6))
    server_at_six = state.serving_side
    state = tennis.apply(state, 1)
    assert state.sets[0].winner == 1
    assert state.serving_side != server_at_six
    assert server_before == 1


def test_set_ending_game_rotates_the_server():
    state = _games(_new(), 1, 1, 1, 1, 1)
    assert state.serving_side == 2
    state = _game(state, 1)
    assert state.sets[0].winner == 1
    assert state.serving_side == 1


def test_two_sets_to_zero_completes_best_of_three():
    state = _games(_new(), *([1] * 12))
    assert state.is_complete is True
    assert state.match_winner == 1
    assert len(state.sets) == 2
    assert tennis.is_match_complete(state)
    assert tennis.apply(state, 2) == state
    assert tennis.apply(state, 1) == state


def test_deciding_set_uses_the_final_set_tiebreak():
    state = _games(_new(), *([1] * 6), *([2] * 6))
    assert state.current_set.set_number == 3
    state = _six_all(state)
    assert state.current_set.is_tiebreak
    state = _points(state, *([1] * 7))
    assert state.current_set.tiebreak == (7, 0)
    assert state.is_complete is False
    state = _points(state, 1, 1, 1)
    assert state.is_complete is True
    assert state.match_winner == 1
    assert state.sets[2].tiebreak == (10, 0)


def test_regular_tiebreak_target_is_configurable():
    policy = TENNIS_STANDARD.model_copy(update={"tiebreak_points": 10})
    state = _six_all(_new(policy))
    state = _points(state, *([1] * 9))
    assert state.current_set.winner is None
    state = tennis.apply(state, 1)
    assert state.sets[0].winner == 1


def test_no_tiebreak_when_disabled():
    policy = ScoringPolicy(sport="tennis", tiebreak_at=0)
    state = _six_all(_new(policy))
    assert state.current_set.is_tiebreak is False
    state = _games(state, 2, 2)
    assert state.sets[0].games == (6, 8)
    assert state.sets[0].winner == 2


def test_fast4_set_goes_to_four_games():
    state = _games(_new(TENNIS_FAST4), 1, 1, 1, 1)
    assert state.sets[0].games == (4, 0)
    assert state.sets[0].winner == 1


def test_format_score_lists_sets_with_tiebreak_loser_points():
    state = _games(_new(), 1, 2, 1, 2, 1, 2, 1, 2, 1, 1)
    state = _six_all(state)
    state = _points(state, *([1, 2] * 5), 1, 1)
    assert state.is_complete
    assert tennis.format_score(state) == "6-4, 7-6(5)"


def test_format_game_score_shows_point_labels():
    state = _points(_new(), 1, 2, 2)
    assert tennis.format_game_score(state) == "15-30"


def test_summary_projects_current_set():
    state = _points(_games(_new(), 1, 2, 1), 1, 1)
    summary = tennis.summary(state)
    assert summary["sets"] == {"1": 0, "2": 0}
    assert summary["currentSet"] == 1
    assert summary["games"] == {"1": 2, "2": 1}
    assert summary["points"] == {"1": "30", "2": "0"}
    assert summary["tiebreak"] is False
    assert summary["servingSide"] == 2
    assert summary["score"] == "2-1"
    assert summary["gameScore"] == "30-0"
    assert summary["isComplete"] is False
    assert summary["winner"] is None


def test_initial_server_is_respected():
    state = _new(serving_side=2)
    assert state.serving_side == 2
    assert _game(state, 1).serving_side == 1


@pytest.mark.parametrize("side", [0, 3, "1", True, None])
def test_rejects_invalid_side(side):
    with pytest.raises(ValueError):
        tennis.apply(_new(), side)


def test_rally_game_breaks_tennis_invariant():
    state = _new().model_copy(update={"game": RallyGame()})
    with pytest.raises(ScoringInvariantError):
        tennis.apply(state, 1)


def test_tiebreak_without_tally_breaks_invariant():
    state = _six_all(_new())
    broken = state.current_set.model_copy(update={"tiebreak": None})
    state = state.model_copy(update={"sets": (broken,)})
    with pytest.raises(ScoringInvariantError):
        tennis.apply(state, 1)


def test_engine_states_pass_match_state_validation():
    state = _new()
    seen = [state]
    for side in [1] * 24 + [2] * 24 + ([1] * 4 + [2] * 4) * 6 + [1] * 10:
        state = tennis.apply(state, side)
        seen.append(state)
    assert state.is_complete
    assert any(s.current_set.is_tiebreak for s in seen)
    for s in seen:
        assert MatchState.model_validate(s.model_dump(mode="json")) == s


@pytest.mark.parametrize(
    "changes, message",
    [
        ({"current_set_index": 1}, "current_set_index"),
        ({"is_complete": True}, "match_winner"),
        ({"match_winner": 1}, "match_winner"),
        ({"sets": []}, "at least one set"),
    ],
)
def test_match_state_rejects_inconsistent_fields(changes, message):
    data = {**_new().model_dump(mode="json"), **changes}
    with pytest.raises(ValueError, match=message):
        MatchState.model_validate(data)
