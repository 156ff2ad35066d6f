"""Storage for the per-match score log.

The log is the only shared mutable state of a match. Every write is
conditioned on the tail the caller last saw: the event is inserted at the next
sequence number and the match projection is updated with
``WHERE version = <version read>`` in the same transaction, so two scorers
racing on one match cannot both succeed. The loser gets ``EventLogConflict``
and must reload before retrying; nothing here retries on its own.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Mapping, NamedTuple, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import match_state_cache
from ..exceptions import EventLogConflict, MatchNotFound, MatchPolicyMissing
from ..models import Match, MatchAuditLog, ScoreEvent as ScoreEventRow
from ..scoring import ScoringPolicy, get_engine, log
from ..scoring.state import MatchState, Side, validate_side
from ..time_utils import coerce_utc, utcnow

logger = logging.getLogger(__name__)

# Marks an expected tail the caller did not supply. ``None`` is a real value
# meaning "I expect the log to be empty".
UNSET: Any = object()


class LoadedMatch(NamedTuple):
    match: Match
    version: int
    policy: ScoringPolicy
    initial: MatchState
    # At most the last two rows, oldest first.
    recent: list[ScoreEventRow]
    state: MatchState

    @property
    def tail(self) -> Optional[ScoreEventRow]:
        return self.recent[-1] if self.recent else None

    @property
    def event_count(self) -> int:
        # Sequences are gapless from 1.
        return self.tail.sequence if self.tail is not None else 0


def to_domain(row: ScoreEventRow) -> log.ScoreEvent:
    return log.ScoreEvent(
        id=row.id,
        match_id=row.match_id,
        kind=row.type,
        scoring_side=row.scoring_side,
        snapshot=MatchState.model_validate(row.snapshot),
        recorded_by=row.recorded_by,
        recorded_at=coerce_utc(row.created_at),
        notes=row.notes,
    )


async def get_match(session: AsyncSession, match_id: str) -> Match:
    m = (
        await session.execute(
            select(Match)
            .where(Match.id == match_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if m is None:
        raise MatchNotFound(match_id)
    return m


def match_policy(m: Match) -> ScoringPolicy:
    if not m.policy:
        raise MatchPolicyMissing(m.id)
    return ScoringPolicy.model_validate(m.policy)


async def load_match(session: AsyncSession, match_id: str) -> LoadedMatch:
    """Read a match and derive its current state from the log tail."""

    m = await get_match(session, match_id)
    policy = match_policy(m)
    recent = list(
        (
            await session.execute(
                select(ScoreEventRow)
                .where(ScoreEventRow.match_id == match_id)
                .order_by(ScoreEventRow.sequence.desc())
                .limit(2)
            )
        ).scalars().all()
    )
    recent.reverse()
    initial = log.create_initial_state(match_id, policy)
    if recent:
        state = MatchState.model_validate(recent[-1].snapshot)
    else:
        state = initial
    return LoadedMatch(
        match=m,
        version=m.version or 0,
        policy=policy,
        initial=initial,
        recent=recent,
        state=state,
    )


async def list_events(session: AsyncSession, match_id: str) -> list[log.ScoreEvent]:
    await get_match(session, match_id)
    rows = (
        await session.execute(
            select(ScoreEventRow)
            .where(ScoreEventRow.match_id == match_id)
            .order_by(ScoreEventRow.sequence)
        )
    ).scalars().all()
    return [to_domain(r) for r in rows]


async def load_match_state(
    session: AsyncSession, match_id: str
) -> tuple[MatchState, list[log.ScoreEvent]]:
    """Current state of a match together with its full ordered log."""

    loaded = await load_match(session, match_id)
    events = await list_events(session, match_id)
    return log.current_state(events, loaded.initial), events


async def list_audit(session: AsyncSession, match_id: str) -> list[MatchAuditLog]:
    await get_match(session, match_id)
    return list(
        (
            await session.execute(
                select(MatchAuditLog)
                .where(MatchAuditLog.match_id == match_id)
                .order_by(MatchAuditLog.created_at)
            )
        ).scalars().all()
    )


def _check_expected_tail(loaded: LoadedMatch, expected_tail_id: Any) -> None:
    if expected_tail_id is UNSET:
        return
    actual = loaded.tail.id if loaded.tail is not None else None
    if actual != expected_tail_id:
        raise EventLogConflict(
            loaded.match.id,
            detail=(
                f"expected last event {expected_tail_id!r} for match "
                f"'{loaded.match.id}', found {actual!r}"
            ),
        )


def _status_for(state: MatchState, has_events: bool) -> str:
    if state.is_complete:
        return "completed"
    return "in_progress" if has_events else "scheduled"


def _audit(
    match_id: str,
    action: str,
    actor: Optional[str],
    metadata: Mapping[str, Any],
    now: datetime,
) -> MatchAuditLog:
    return MatchAuditLog(
        id=uuid.uuid4().hex,
        match_id=match_id,
        actor=actor,
        action=action,
        metadata_=dict(metadata),
        created_at=now,
    )


async def _commit_projection(
    session: AsyncSession,
    loaded: LoadedMatch,
    state: MatchState,
    *,
    has_events: bool,
    now: datetime,
) -> None:
    """Update the match projection and commit alongside any pending log writes.

    The update only applies if the match version is still the one read by
    ``load_match``; otherwise the whole transaction is rolled back.
    """

    m = loaded.match
    status = _status_for(state, has_events)
    values: dict[str, Any] = {
        "details": get_engine(state.policy.sport).summary(state),
        "status": status,
        "version": Match.version + 1,
    }
    if status == "scheduled":
        values["started_at"] = None
    elif m.started_at is None:
        values["started_at"] = now
    if status == "completed":
        if m.completed_at is None:
            values["completed_at"] = now
    elif m.completed_at is not None:
        values["completed_at"] = None

    stmt = (
        update(Match)
        .where(Match.id == m.id, Match.version == loaded.version)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    try:
        result = await session.execute(stmt)
        if result.rowcount != 1:
            raise EventLogConflict(m.id)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("Concurrent append rejected for match %s", m.id)
        raise EventLogConflict(m.id) from exc
    except EventLogConflict:
        await session.rollback()
        logger.warning(
            "Match %s changed since version %s was read; write rejected",
            m.id,
            loaded.version,
        )
        raise
    await match_state_cache.invalidate_match(m.id)


async def _append(
    session: AsyncSession,
    loaded: LoadedMatch,
    event: log.ScoreEvent,
    *,
    audit_action: Optional[str] = None,
    audit_metadata: Optional[Mapping[str, Any]] = None,
) -> None:
    tail = loaded.tail
    sequence = tail.sequence + 1 if tail is not None else 1
    now = event.recorded_at
    session.add(
        ScoreEventRow(
            id=event.id,
            match_id=event.match_id,
            sequence=sequence,
            type=event.kind.value,
            scoring_side=event.scoring_side,
            snapshot=event.snapshot.model_dump(mode="json"),
            recorded_by=event.recorded_by,
            notes=event.notes,
            created_at=now,
        )
    )
    if audit_action:
        session.add(
            _audit(event.match_id, audit_action, event.recorded_by, audit_metadata or {}, now)
        )
    await _commit_projection(session, loaded, event.snapshot, has_events=True, now=now)
    logger.debug(
        "Appended %s event %s to match %s at sequence %s",
        event.kind.value,
        event.id,
        event.match_id,
        sequence,
    )


async def start_match(
    session: AsyncSession,
    match_id: str,
    serving_side: Side = 1,
    *,
    recorded_by: Optional[str] = None,
) -> tuple[MatchState, log.ScoreEvent]:
    """Record who serves first. Only allowed while the log is empty."""

    serving_side = validate_side(serving_side)
    loaded = await load_match(session, match_id)
    if loaded.tail is not None:
        raise EventLogConflict(
            match_id, detail=f"match '{match_id}' already has score events"
        )
    state = log.create_initial_state(match_id, loaded.policy, serving_side)
    event = log.start_event(state, recorded_by=recorded_by)
    await _append(session, loaded, event)
    logger.info("Started match %s with side %s serving", match_id, serving_side)
    return state, event


async def score_point(
    session: AsyncSession,
    match_id: str,
    side: Side,
    *,
    expected_tail_id: Any = UNSET,
    recorded_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> tuple[MatchState, Optional[log.ScoreEvent]]:
    """Score a point and append it to the log.

    Scoring a completed match returns its state unchanged and writes nothing,
    so a retried final point is harmless.
    """

    side = validate_side(side)
    loaded = await load_match(session, match_id)
    if loaded.state.is_complete:
        logger.info("Match %s is complete; ignoring point for side %s", match_id, side)
        return loaded.state, None
    _check_expected_tail(loaded, expected_tail_id)

    new_state, event = log.score_point(
        loaded.state, side, recorded_by=recorded_by, notes=notes
    )
    await _append(session, loaded, event)
    if new_state.is_complete:
        logger.info("Match %s won by side %s", match_id, new_state.match_winner)
    return new_state, event


async def record_correction(
    session: AsyncSession,
    match_id: str,
    snapshot: MatchState | Mapping[str, Any],
    notes: str,
    *,
    scoring_side: Optional[Side] = None,
    expected_tail_id: Any = UNSET,
    recorded_by: Optional[str] = None,
) -> tuple[MatchState, log.ScoreEvent]:
    """Override the current state with ``snapshot`` without using the engine."""

    loaded = await load_match(session, match_id)
    _check_expected_tail(loaded, expected_tail_id)
    if not isinstance(snapshot, MatchState):
        snapshot = MatchState.model_validate(snapshot)
    event = log.correction_event(
        loaded.state,
        snapshot,
        notes=notes,
        recorded_by=recorded_by,
        scoring_side=scoring_side,
    )
    await _append(
        session,
        loaded,
        event,
        audit_action=log.EventKind.CORRECTION.value,
        audit_metadata={
            "eventId": event.id,
            "notes": event.notes,
            "previous": loaded.state.model_dump(mode="json"),
        },
    )
    logger.info("Recorded correction %s for match %s", event.id, match_id)
    return snapshot, event


async def undo_last_point(
    session: AsyncSession,
    match_id: str,
    *,
    expected_event_id: Any = UNSET,
    recorded_by: Optional[str] = None,
) -> tuple[MatchState, Optional[str]]:
    """Remove the tail event and return the restored state and removed id.

    An empty log is left alone and its initial state returned.
    """

    loaded = await load_match(session, match_id)
    tail = loaded.tail
    if tail is None:
        if expected_event_id not in (UNSET, None):
            _check_expected_tail(loaded, expected_event_id)
        return loaded.initial, None
    _check_expected_tail(loaded, expected_event_id)

    restored = log.undo_last_point([to_domain(r) for r in loaded.recent], loaded.initial)
    now = utcnow()

    result = await session.execute(
        delete(ScoreEventRow)
        .where(ScoreEventRow.id == tail.id, ScoreEventRow.match_id == match_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        raise EventLogConflict(match_id)
    session.add(
        _audit(
            match_id,
            log.EventKind.UNDO.value,
            recorded_by,
            {
                "eventId": tail.id,
                "sequence": tail.sequence,
                "type": tail.type,
                "scoringSide": tail.scoring_side,
                "snapshot": tail.snapshot,
            },
            now,
        )
    )
    # Events remain unless the tail was the first one.
    await _commit_projection(
        session, loaded, restored, has_events=tail.sequence > 1, now=now
    )
    logger.info("Undid event %s (%s) for match %s", tail.id, tail.type, match_id)
    return restored, tail.id
