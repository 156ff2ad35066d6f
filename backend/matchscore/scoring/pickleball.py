"""Pickleball scoring engine.

Games are played to a target number of points (default 11), optionally with a
win-by-2 requirement. Each game is recorded as a set. With rally scoring every
rally awards a point and the winner of the rally serves next. With side-out
scoring only the serving side can score; a lost rally passes serve to the
second server on the same side, then to the opponent.
"""
from typing import Dict

from .policy import ScoringPolicy
from .state import (
    MatchState,
    RallyGame,
    ScoringInvariantError,
    SetState,
    Side,
    bump,
    for_side,
    other_side,
    replace_set,
    sets_won,
    validate_side,
)

DEFAULT_POINTS_PER_GAME = 11


def init_state(match_id: str, policy: ScoringPolicy, serving_side: Side = 1) -> MatchState:
    """Initialise scoreboard state for pickleball."""
    return MatchState(
        match_id=match_id,
        policy=policy,
        sets=(SetState(set_number=1),),
        current_set_index=0,
        game=RallyGame(),
        serving_side=validate_side(serving_side),
    )


def _game(state: MatchState) -> RallyGame:
    if not isinstance(state.game, RallyGame):
        raise ScoringInvariantError(
            f"pickleball engine cannot score a '{state.game.kind}' game"
        )
    return state.game


def _side_out(state: MatchState, game: RallyGame) -> MatchState:
    if game.server_number == 1:
        return state.model_copy(
            update={"game": game.model_copy(update={"server_number": 2})}
        )
    return state.model_copy(
        update={
            "game": game.model_copy(update={"server_number": 1}),
            "serving_side": other_side(state.serving_side),
        }
    )


def _game_won(policy: ScoringPolicy, ps: int, po: int) -> bool:
    if ps < (policy.points_per_game or DEFAULT_POINTS_PER_GAME):
        return False
    if policy.win_by_two:
        return ps - po >= 2
    return ps > po


def apply(state: MatchState, side: Side) -> MatchState:
    """Return the state after ``side`` wins a rally.

    A completed match is returned unchanged.
    """
    side = validate_side(side)
    if state.is_complete:
        return state

    game = _game(state)
    policy = state.policy

    if not policy.rally_scoring and side != state.serving_side:
        return _side_out(state, game)

    points = bump(game.points, side)
    ps = for_side(points, side)
    po = for_side(points, other_side(side))

    if not _game_won(policy, ps, po):
        return state.model_copy(
            update={
                "game": game.model_copy(update={"points": points}),
                "serving_side": side if policy.rally_scoring else state.serving_side,
            }
        )

    current = state.current_set
    finished = current.model_copy(
        update={"games": bump(current.games, side), "winner": side}
    )
    sets = replace_set(state, finished)

    if sets_won(sets, side) == policy.sets_to_win:
        return state.model_copy(
            update={
                "sets": sets,
                "game": game.model_copy(update={"points": points}),
                "match_winner": side,
                "is_complete": True,
            }
        )

    # The side that lost the game serves first in the next one.
    return state.model_copy(
        update={
            "sets": sets + (SetState(set_number=len(sets) + 1),),
            "current_set_index": state.current_set_index + 1,
            "game": RallyGame(),
            "serving_side": other_side(side),
        }
    )


def is_match_complete(state: MatchState) -> bool:
    return state.is_complete


def format_score(state: MatchState) -> str:
    return f"Games: {sets_won(state.sets, 1)}-{sets_won(state.sets, 2)}"


def format_game_score(state: MatchState) -> str:
    game = _game(state)
    if state.policy.rally_scoring:
        return f"{game.points[0]}-{game.points[1]}"
    serving = for_side(game.points, state.serving_side)
    receiving = for_side(game.points, other_side(state.serving_side))
    return f"{serving}-{receiving}-{game.server_number}"


def summary(state: MatchState) -> Dict:
    game = _game(state)
    current = state.current_set
    return {
        "sets": {"1": sets_won(state.sets, 1), "2": sets_won(state.sets, 2)},
        "currentSet": current.set_number,
        "games": {"1": current.games[0], "2": current.games[1]},
        "points": {"1": game.points[0], "2": game.points[1]},
        "serverNumber": game.server_number,
        "servingSide": state.serving_side,
        "score": format_score(state),
        "gameScore": format_game_score(state),
        "isComplete": state.is_complete,
        "winner": state.match_winner,
    }
