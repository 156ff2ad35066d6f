"""Score events and the snapshot log they form.

Every event carries the complete match state after it was applied, so the
current state of a match is the snapshot of its last event and undo simply
drops the tail. Nothing here touches storage; see ``services.event_log``.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from . import get_engine
from .policy import ScoringPolicy
from .state import MatchState, Side, validate_side


class EventKind(str, Enum):
    POINT_SCORED = "point_scored"
    UNDO = "undo"
    CORRECTION = "correction"
    MATCH_STARTED = "match_started"


class ScoreEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    match_id: str
    kind: EventKind
    scoring_side: Optional[Side] = None
    snapshot: MatchState
    recorded_by: Optional[str] = None
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    notes: Optional[str] = None


def create_initial_state(
    match_id: str, policy: ScoringPolicy, serving_side: Side = 1
) -> MatchState:
    return get_engine(policy.sport).init_state(match_id, policy, serving_side)


def current_state(events: Sequence[ScoreEvent], initial: MatchState) -> MatchState:
    """Snapshot of the most recent event, or ``initial`` for an empty log."""
    if not events:
        return initial
    return events[-1].snapshot


def score_point(
    state: MatchState,
    side: Side,
    *,
    recorded_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> Tuple[MatchState, ScoreEvent]:
    """Apply a point for ``side`` and build the event that records it."""
    side = validate_side(side)
    new_state = get_engine(state.policy.sport).apply(state, side)
    event = ScoreEvent(
        match_id=state.match_id,
        kind=EventKind.POINT_SCORED,
        scoring_side=side,
        snapshot=new_state,
        recorded_by=recorded_by,
        notes=notes,
    )
    return new_state, event


def undo_last_point(events: Sequence[ScoreEvent], initial: MatchState) -> MatchState:
    """State once the tail event is removed.

    Undoing an empty log leaves the match at ``initial``.
    """
    if not events:
        return initial
    return current_state(events[:-1], initial)


def start_event(state: MatchState, *, recorded_by: Optional[str] = None) -> ScoreEvent:
    return ScoreEvent(
        match_id=state.match_id,
        kind=EventKind.MATCH_STARTED,
        scoring_side=None,
        snapshot=state,
        recorded_by=recorded_by,
    )


def correction_event(
    state: MatchState,
    snapshot: MatchState,
    *,
    notes: str,
    recorded_by: Optional[str] = None,
    scoring_side: Optional[Side] = None,
) -> ScoreEvent:
    """Build an event that overrides ``state`` with ``snapshot``.

    The snapshot is taken as-is; it must belong to the same match and keep its
    policy.
    """
    if not notes or not notes.strip():
        raise ValueError("a correction requires a note explaining it")
    if snapshot.match_id != state.match_id:
        raise ValueError("correction snapshot belongs to a different match")
    if snapshot.policy != state.policy:
        raise ValueError("a correction cannot change the scoring policy")
    if snapshot.game.kind != state.game.kind:
        raise ValueError(
            f"correction snapshot has a '{snapshot.game.kind}' game, expected '{state.game.kind}'"
        )
    if scoring_side is not None:
        scoring_side = validate_side(scoring_side)
    return ScoreEvent(
        match_id=state.match_id,
        kind=EventKind.CORRECTION,
        scoring_side=scoring_side,
        snapshot=snapshot,
        recorded_by=recorded_by,
        notes=notes.strip(),
    )
