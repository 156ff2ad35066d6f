"""Immutable match state values shared by the scoring engines."""

from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .policy import ScoringPolicy

Side = Literal[1, 2]
PointLabel = Literal["0", "15", "30", "40", "AD"]

POINT_SEQUENCE: Tuple[PointLabel, ...] = ("0", "15", "30", "40")


class ScoringInvariantError(RuntimeError):
    """Raised when a state value breaks an engine invariant.

    This signals a bug in how the state was built, never a user error.
    """


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SetState(_Frozen):
    set_number: int = Field(..., ge=1)
    games: Tuple[int, int] = (0, 0)
    is_tiebreak: bool = False
    tiebreak: Optional[Tuple[int, int]] = None
    winner: Optional[Side] = None


class AdvantageGame(_Frozen):
    """Point labels for a game scored 0/15/30/40/AD."""

    kind: Literal["advantage"] = "advantage"
    points: Tuple[PointLabel, PointLabel] = ("0", "0")


class RallyGame(_Frozen):
    """Numeric tallies for rally or side-out games.

    ``server_number`` is the serving slot (1 or 2) on the serving side.
    """

    kind: Literal["rally"] = "rally"
    points: Tuple[int, int] = (0, 0)
    server_number: Literal[1, 2] = 1


GameState = Annotated[Union[AdvantageGame, RallyGame], Field(discriminator="kind")]


class MatchState(_Frozen):
    match_id: str
    policy: ScoringPolicy
    sets: Tuple[SetState, ...]
    current_set_index: int = Field(0, ge=0)
    game: GameState
    serving_side: Side = 1
    match_winner: Optional[Side] = None
    is_complete: bool = False

    @model_validator(mode="after")
    def _check_invariants(self) -> "MatchState":
        if not self.sets:
            raise ValueError("a match has at least one set")
        if self.current_set_index != len(self.sets) - 1:
            raise ValueError(
                f"current_set_index {self.current_set_index} must point at the "
                f"last of {len(self.sets)} set(s)"
            )
        if self.is_complete != (self.match_winner is not None):
            raise ValueError("match_winner is set exactly when the match is complete")
        for s in self.sets[:-1]:
            if s.winner is None:
                raise ValueError(f"set {s.set_number} precedes the current set but has no winner")
        current = self.sets[-1]
        if self.is_complete:
            if current.winner != self.match_winner:
                raise ValueError("the final set must be won by the match winner")
        elif current.winner is not None:
            raise ValueError("the current set already has a winner but the match is not complete")
        for s in self.sets:
            if s.is_tiebreak and s.tiebreak is None:
                raise ValueError(f"set {s.set_number} is in a tiebreak without a tiebreak tally")
        return self

    @property
    def current_set(self) -> SetState:
        return self.sets[self.current_set_index]


def validate_side(side: object) -> Side:
    """Return ``side`` if it is 1 or 2, otherwise raise ``ValueError``."""

    if isinstance(side, bool) or side not in (1, 2):
        raise ValueError(f"side must be 1 or 2, got {side!r}")
    return side  # type: ignore[return-value]


def other_side(side: Side) -> Side:
    return 2 if side == 1 else 1


def bump(pair: Tuple[int, int], side: Side, by: int = 1) -> Tuple[int, int]:
    """Return ``pair`` with the entry for ``side`` increased by ``by``."""

    if side == 1:
        return (pair[0] + by, pair[1])
    return (pair[0], pair[1] + by)


def for_side(pair: Tuple, side: Side):
    return pair[side - 1]


def sets_won(sets: Tuple[SetState, ...], side: Side) -> int:
    return sum(1 for s in sets if s.winner == side)


def replace_set(state: MatchState, new_set: SetState) -> Tuple[SetState, ...]:
    """Return the set history with the active set swapped for ``new_set``."""

    sets = list(state.sets)
    sets[state.current_set_index] = new_set
    return tuple(sets)
