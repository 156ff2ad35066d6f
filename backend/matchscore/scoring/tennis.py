"""Tennis scoring engine.
Tracks points -> games -> sets with deuce/advantage and optional tiebreaks."""

from typing import Dict, Optional, Tuple

from .policy import ScoringPolicy
from .state import (
    POINT_SEQUENCE,
    AdvantageGame,
    MatchState,
    PointLabel,
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


def init_state(match_id: str, policy: ScoringPolicy, serving_side: Side = 1) -> MatchState:
    """Initialise the scoreboard state."""
    return MatchState(
        match_id=match_id,
        policy=policy,
        sets=(SetState(set_number=1),),
        current_set_index=0,
        game=AdvantageGame(),
        serving_side=validate_side(serving_side),
    )


def _game(state: MatchState) -> AdvantageGame:
    if not isinstance(state.game, AdvantageGame):
        raise ScoringInvariantError(
            f"tennis engine cannot score a '{state.game.kind}' game"
        )
    return state.game


def _with_label(points: Tuple[PointLabel, PointLabel], side: Side, label: PointLabel):
    return (label, points[1]) if side == 1 else (points[0], label)


def _next_label(label: PointLabel) -> PointLabel:
    if label not in POINT_SEQUENCE or label == POINT_SEQUENCE[-1]:
        return label
    return POINT_SEQUENCE[POINT_SEQUENCE.index(label) + 1]


def _score_game_point(
    game: AdvantageGame, side: Side, advantage_scoring: bool
) -> Tuple[AdvantageGame, Optional[Side]]:
    """Return the updated game and the side that won it, if any."""
    mine = for_side(game.points, side)
    theirs = for_side(game.points, other_side(side))

    if mine == "40" and theirs == "40":
        if advantage_scoring:
            return AdvantageGame(points=_with_label(game.points, side, "AD")), None
        # Sudden death at deuce.
        return AdvantageGame(), side
    if mine == "AD":
        return AdvantageGame(), side
    if theirs == "AD":
        return AdvantageGame(points=("40", "40")), None
    if mine == "40":
        return AdvantageGame(), side
    return AdvantageGame(points=_with_label(game.points, side, _next_label(mine))), None


def _tiebreak_starts(current: SetState, policy: ScoringPolicy) -> bool:
    return (
        bool(policy.tiebreak_at)
        and not current.is_tiebreak
        and current.games[0] == policy.tiebreak_at
        and current.games[1] == policy.tiebreak_at
    )


def _set_winner(current: SetState, policy: ScoringPolicy) -> Optional[Side]:
    if current.is_tiebreak:
        return None
    target = policy.games_per_set
    for side in (1, 2):
        gs = for_side(current.games, side)
        go = for_side(current.games, other_side(side))
        if gs >= target and gs - go >= 2:
            return side
        if gs == target + 1 and go == target - 1:
            return side
    return None


def _tiebreak_target(current: SetState, policy: ScoringPolicy) -> int:
    if policy.final_set_tiebreak and current.set_number == policy.deciding_set_number:
        return policy.final_set_tiebreak_points
    return policy.tiebreak_points


def _finish_set(
    state: MatchState, finished: SetState, winner: Side, next_server: Side
) -> MatchState:
    sets = replace_set(state, finished)
    if sets_won(sets, winner) == state.policy.sets_to_win:
        return state.model_copy(
            update={
                "sets": sets,
                "game": AdvantageGame(),
                "serving_side": next_server,
                "match_winner": winner,
                "is_complete": True,
            }
        )
    return state.model_copy(
        update={
            "sets": sets + (SetState(set_number=len(sets) + 1),),
            "current_set_index": state.current_set_index + 1,
            "game": AdvantageGame(),
            "serving_side": next_server,
        }
    )


def _apply_tiebreak_point(state: MatchState, current: SetState, side: Side) -> MatchState:
    if current.tiebreak is None:
        raise ScoringInvariantError(
            f"set {current.set_number} is in a tiebreak without a tiebreak score"
        )
    tally = bump(current.tiebreak, side)
    ps = for_side(tally, side)
    po = for_side(tally, other_side(side))

    if ps >= _tiebreak_target(current, state.policy) and ps - po >= 2:
        finished = current.model_copy(
            update={"tiebreak": tally, "games": bump(current.games, side), "winner": side}
        )
        return _finish_set(state, finished, side, other_side(state.serving_side))

    # The opening server serves one point, then serve changes every two points.
    server = state.serving_side
    if sum(tally) % 2 == 1:
        server = other_side(server)
    return state.model_copy(
        update={
            "sets": replace_set(state, current.model_copy(update={"tiebreak": tally})),
            "serving_side": server,
        }
    )


def apply(state: MatchState, side: Side) -> MatchState:
    """Return the state after ``side`` wins a point.

    A completed match is returned unchanged.
    """
    side = validate_side(side)
    if state.is_complete:
        return state

    current = state.current_set
    if current.is_tiebreak:
        return _apply_tiebreak_point(state, current, side)

    game, game_winner = _score_game_point(
        _game(state), side, state.policy.advantage_scoring
    )
    if game_winner is None:
        return state.model_copy(update={"game": game})

    updated = current.model_copy(update={"games": bump(current.games, game_winner)})
    next_server = other_side(state.serving_side)

    if _tiebreak_starts(updated, state.policy):
        updated = updated.model_copy(update={"is_tiebreak": True, "tiebreak": (0, 0)})
        return state.model_copy(
            update={
                "sets": replace_set(state, updated),
                "game": AdvantageGame(),
                "serving_side": next_server,
            }
        )

    winner = _set_winner(updated, state.policy)
    if winner is not None:
        finished = updated.model_copy(update={"winner": winner})
        return _finish_set(state, finished, winner, next_server)

    return state.model_copy(
        update={
            "sets": replace_set(state, updated),
            "game": game,
            "serving_side": next_server,
        }
    )


def is_match_complete(state: MatchState) -> bool:
    return state.is_complete


def format_score(state: MatchState) -> str:
    """Per-set score such as ``"6-4, 7-6(5)"``.

    The tiebreak loser's points follow a set decided in a tiebreak.
    """
    parts = []
    for s in state.sets:
        if s.games == (0, 0) and s.winner is None:
            continue
        text = f"{s.games[0]}-{s.games[1]}"
        if s.is_tiebreak and s.tiebreak is not None and s.winner is not None:
            text += f"({for_side(s.tiebreak, other_side(s.winner))})"
        parts.append(text)
    return ", ".join(parts)


def format_game_score(state: MatchState) -> str:
    current = state.current_set
    if current.is_tiebreak and current.tiebreak is not None:
        return f"{current.tiebreak[0]}-{current.tiebreak[1]}"
    game = _game(state)
    return f"{game.points[0]}-{game.points[1]}"


def summary(state: MatchState) -> Dict:
    current = state.current_set
    if current.is_tiebreak and current.tiebreak is not None:
        points = {"1": current.tiebreak[0], "2": current.tiebreak[1]}
    else:
        game = _game(state)
        points = {"1": game.points[0], "2": game.points[1]}
    return {
        "sets": {"1": sets_won(state.sets, 1), "2": sets_won(state.sets, 2)},
        "currentSet": current.set_number,
        "games": {"1": current.games[0], "2": current.games[1]},
        "points": points,
        "tiebreak": current.is_tiebreak,
        "servingSide": state.serving_side,
        "score": format_score(state),
        "gameScore": format_game_score(state),
        "isComplete": state.is_complete,
        "winner": state.match_winner,
    }
