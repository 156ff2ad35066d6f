import os, sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
from matchscore.scoring import pickleball
from matchscore.scoring.policy import PICKLEBALL_SIDEOUT, PICKLEBALL_STANDARD
from matchscore.scoring.state import AdvantageGame, ScoringInvariantError


def _new(policy=PICKLEBALL_STANDARD, serving_side=1):
    return pickleball.init_state("m1", policy, serving_side)


def _score_points(side, count, state):
    for _ in range(count):
        state = pickleball.apply(state, side)
    return state


def test_rally_scoring_lets_either_side_score_and_serve():
    state = pickleball.apply(_new(), 2)
    assert state.game.points == (0, 1)
    assert state.serving_side == 2
    state = pickleball.apply(state, 1)
    assert state.game.points == (1, 1)
    assert state.serving_side == 1
    assert pickleball.format_game_score(state) == "1-1"


def test_game_win():
    state = _score_points(1, 11, _new())
    assert state.sets[0].winner == 1
    assert state.sets[0].games == (1, 0)
    assert state.current_set.set_number == 2
    assert state.game.points == (0, 0)
    # The side that lost the game serves first in the next one.
    assert state.serving_side == 2


def test_win_by_two():
    state = _new()
    for _ in range(10):
        state = _score_points(1, 1, state)
        state = _score_points(2, 1, state)
    assert state.game.points == (10, 10)
    state = pickleball.apply(state, 1)
    assert state.game.points == (11, 10)
    assert state.sets[0].winner is None
    state = pickleball.apply(state, 1)
    assert state.sets[0].winner == 1


def test_any_lead_wins_without_win_by_two():
    policy = PICKLEBALL_STANDARD.model_copy(update={"win_by_two": False})
    state = _new(policy)
    for _ in range(10):
        state = _score_points(1, 1, state)
        state = _score_points(2, 1, state)
    state = pickleball.apply(state, 2)
    assert state.sets[0].winner == 2


def test_points_per_game_is_configurable():
    policy = PICKLEBALL_STANDARD.model_copy(update={"points_per_game": 15})
    state = _score_points(1, 14, _new(policy))
    assert state.sets[0].winner is None
    state = pickleball.apply(state, 1)
    assert state.sets[0].winner == 1


def test_match_stops_after_best_of_three():
    state = _score_points(1, 11, _new())
    state = _score_points(1, 11, state)
    assert state.is_complete is True
    assert state.match_winner == 1
    # Final tallies stay on the scoreboard.
    assert state.game.points == (11, 0)
    assert pickleball.format_score(state) == "Games: 2-0"
    assert pickleball.apply(state, 2) == state
    assert pickleball.is_match_complete(state)


def test_side_out_receiving_rally_only_moves_the_serve():
    state = pickleball.apply(_new(PICKLEBALL_SIDEOUT), 1)
    assert state.game.points == (1, 0)
    assert state.serving_side == 1

    state = pickleball.apply(state, 2)
    assert state.game.points == (1, 0)
    assert state.serving_side == 1
    assert state.game.server_number == 2
    assert pickleball.format_game_score(state) == "1-0-2"

    state = pickleball.apply(state, 2)
    assert state.game.points == (1, 0)
    assert state.serving_side == 2
    assert state.game.server_number == 1
    assert pickleball.format_game_score(state) == "0-1-1"

    state = pickleball.apply(state, 2)
    assert state.game.points == (1, 1)
    assert state.serving_side == 2


def test_side_out_game_is_won_by_the_serving_side():
    state = _score_points(1, 11, _new(PICKLEBALL_SIDEOUT))
    assert state.sets[0].winner == 1
    assert state.serving_side == 2
    assert state.game.server_number == 1


def test_summary_includes_server_number():
    state = pickleball.apply(_new(PICKLEBALL_SIDEOUT), 2)
    summary = pickleball.summary(state)
    assert summary["serverNumber"] == 2
    assert summary["points"] == {"1": 0, "2": 0}
    assert summary["servingSide"] == 1
    assert summary["score"] == "Games: 0-0"
    assert summary["gameScore"] == "0-0-2"
    assert summary["isComplete"] is False


def test_advantage_game_breaks_pickleball_invariant():
    state = _new().model_copy(update={"game": AdvantageGame()})
    with pytest.raises(ScoringInvariantError):
        pickleball.apply(state, 1)


@pytest.mark.parametrize("side", [0, 3, False])
def test_rejects_invalid_side(side):
    with pytest.raises(ValueError):
        pickleball.apply(_new(), side)
