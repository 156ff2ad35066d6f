"""Scoring policies: the rule thresholds and toggles for one sport variant."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScoringPolicy(BaseModel):
    """Immutable rule configuration for a match.

    A policy is fixed for the lifetime of a match; every state snapshot
    carries a copy of it so the log can be interpreted on its own.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    sport: str = Field(..., min_length=1)
    sets_to_win: int = Field(2, ge=1)
    games_per_set: int = Field(6, ge=1)
    tiebreak_at: int = Field(6, ge=0)
    tiebreak_points: int = Field(7, ge=1)
    final_set_tiebreak: bool = False
    final_set_tiebreak_points: int = Field(10, ge=1)
    advantage_scoring: bool = True
    win_by_two: bool = True
    points_per_game: Optional[int] = Field(None, ge=1)
    rally_scoring: bool = False

    @model_validator(mode="after")
    def _check_tiebreak_threshold(self):
        if self.tiebreak_at > self.games_per_set:
            raise ValueError("tiebreak_at cannot exceed games_per_set")
        return self

    @property
    def deciding_set_number(self) -> int:
        return self.sets_to_win * 2 - 1


TENNIS_STANDARD = ScoringPolicy(
    sport="tennis",
    sets_to_win=2,
    games_per_set=6,
    tiebreak_at=6,
    final_set_tiebreak=True,
    final_set_tiebreak_points=10,
    advantage_scoring=True,
    win_by_two=True,
    rally_scoring=False,
)

# No-ad scoring with short sets and a tiebreak at 3-3.
TENNIS_FAST4 = ScoringPolicy(
    sport="tennis",
    sets_to_win=2,
    games_per_set=4,
    tiebreak_at=3,
    final_set_tiebreak=True,
    final_set_tiebreak_points=7,
    advantage_scoring=False,
    win_by_two=False,
    rally_scoring=False,
)

PICKLEBALL_STANDARD = ScoringPolicy(
    sport="pickleball",
    sets_to_win=2,
    games_per_set=1,
    tiebreak_at=0,
    final_set_tiebreak=False,
    advantage_scoring=False,
    points_per_game=11,
    win_by_two=True,
    rally_scoring=True,
)

PICKLEBALL_SIDEOUT = ScoringPolicy(
    sport="pickleball",
    sets_to_win=2,
    games_per_set=1,
    tiebreak_at=0,
    final_set_tiebreak=False,
    advantage_scoring=False,
    points_per_game=11,
    win_by_two=True,
    rally_scoring=False,
)

PRESETS: Dict[str, ScoringPolicy] = {
    "tennis_standard": TENNIS_STANDARD,
    "tennis_fast4": TENNIS_FAST4,
    "pickleball_standard": PICKLEBALL_STANDARD,
    "pickleball_sideout": PICKLEBALL_SIDEOUT,
}

DEFAULT_PRESET_FOR_SPORT: Dict[str, str] = {
    "tennis": "tennis_standard",
    "padel": "tennis_standard",
    "badminton": "tennis_standard",
    "pickleball": "pickleball_standard",
}


def default_policy(sport: str) -> ScoringPolicy:
    """Return the standard policy for ``sport``.

    Sports without a dedicated preset borrow one from a related sport with the
    ``sport`` field rewritten.
    """

    preset = DEFAULT_PRESET_FOR_SPORT.get(sport)
    if preset is None:
        raise ValueError(f"no default scoring policy for sport '{sport}'")
    base = PRESETS[preset]
    if base.sport == sport:
        return base
    return base.model_copy(update={"sport": sport})


def policy_from_config(sport: str, config: Optional[Dict[str, Any]] = None) -> ScoringPolicy:
    """Build a policy for ``sport`` from a stored ruleset ``config`` mapping.

    Missing keys fall back to the sport's default policy, so a ruleset only has
    to list the thresholds it changes.
    """

    config = dict(config or {})
    config.pop("sport", None)
    try:
        base = default_policy(sport).model_dump()
    except ValueError:
        if not config:
            raise
        base = {"sport": sport}
    base.update(config)
    return ScoringPolicy.model_validate(base)
