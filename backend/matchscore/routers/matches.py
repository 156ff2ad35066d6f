# backend/matchscore/routers/matches.py
import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import match_state_cache
from ..config import SCORE_RATE_LIMIT
from ..db import get_session
from ..exceptions import MatchAlreadyExists, http_problem
from ..models import Match, RuleSet
from ..rate_limit import limiter
from ..schemas import (
    AuditEntryOut,
    CorrectionIn,
    MatchCreate,
    MatchEventsOut,
    MatchIdOut,
    MatchOut,
    PointIn,
    ScoreEventOut,
    ScoreResultOut,
    StartIn,
    UndoIn,
    UndoResultOut,
)
from ..scoring import MatchState, get_engine, log
from ..services import event_log
from ..services.validation import ValidationError, resolve_policy
from ..time_utils import coerce_utc
from .sports import ensure_sport

logger = logging.getLogger(__name__)

# Resource-only prefix; versioning is added in main.py
router = APIRouter(prefix="/matches", tags=["matches"])


def _expected(body, field: str) -> Any:
    """Return the caller's expected tail, or ``UNSET`` if the field was omitted."""
    if field in body.model_fields_set:
        return getattr(body, field)
    return event_log.UNSET


def _event_out(e: log.ScoreEvent) -> ScoreEventOut:
    return ScoreEventOut(
        id=e.id,
        type=e.kind.value,
        side=e.scoring_side,
        snapshot=e.snapshot.model_dump(mode="json"),
        recordedBy=e.recorded_by,
        notes=e.notes,
        createdAt=coerce_utc(e.recorded_at),
    )


def _scores(state: MatchState) -> tuple[str, str]:
    engine = get_engine(state.policy.sport)
    return engine.format_score(state), engine.format_game_score(state)


def _score_result(state: MatchState, event: log.ScoreEvent | None) -> ScoreResultOut:
    score, game_score = _scores(state)
    return ScoreResultOut(
        state=state.model_dump(mode="json"),
        score=score,
        gameScore=game_score,
        event=_event_out(event) if event is not None else None,
    )


# POST /api/v0/matches
async def create_match(body: MatchCreate, session: AsyncSession) -> MatchIdOut:
    mid = body.id or uuid.uuid4().hex
    if await session.get(Match, mid) is not None:
        raise MatchAlreadyExists(mid)

    config = body.config
    if body.rulesetId:
        ruleset = await session.get(RuleSet, body.rulesetId)
        if ruleset is None:
            raise http_problem(
                status_code=404,
                detail="ruleset not found",
                code="ruleset_not_found",
            )
        if ruleset.sport_id != body.sport:
            raise http_problem(
                status_code=400,
                detail=f"ruleset '{ruleset.id}' is for {ruleset.sport_id}, not {body.sport}",
                code="match_ruleset_sport_mismatch",
            )
        config = {**(ruleset.config or {}), **(body.config or {})}

    try:
        policy = resolve_policy(body.sport, preset=body.preset, config=config)
    except ValidationError as exc:
        raise http_problem(
            status_code=422,
            detail=exc.detail,
            code="match_invalid_policy",
        )

    await ensure_sport(session, body.sport)
    initial = log.create_initial_state(mid, policy)
    session.add(
        Match(
            id=mid,
            sport_id=body.sport,
            ruleset_id=body.rulesetId,
            policy=policy.model_dump(mode="json"),
            status="scheduled",
            details=get_engine(policy.sport).summary(initial),
            version=0,
        )
    )
    await session.commit()
    logger.info("Created %s match %s", body.sport, mid)
    return MatchIdOut(id=mid)


@router.post("", response_model=MatchIdOut)
async def create_match_route(
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
) -> MatchIdOut:
    return await create_match(body, session)


# GET /api/v0/matches/{mid}
@router.get("/{mid}", response_model=MatchOut)
async def get_match(mid: str, session: AsyncSession = Depends(get_session)) -> MatchOut:
    m = await event_log.get_match(session, mid)
    cache_key = (mid, m.version)
    cached = await match_state_cache.get(cache_key)
    if cached is not None:
        return MatchOut.model_validate(cached)

    loaded = await event_log.load_match(session, mid)
    m = loaded.match
    score, game_score = _scores(loaded.state)
    out = MatchOut(
        id=m.id,
        sport=m.sport_id,
        rulesetId=m.ruleset_id,
        status=m.status,
        policy=loaded.policy.model_dump(mode="json"),
        state=loaded.state.model_dump(mode="json"),
        score=score,
        gameScore=game_score,
        summary=m.details,
        lastEventId=loaded.tail.id if loaded.tail is not None else None,
        eventCount=loaded.event_count,
        version=loaded.version,
        startedAt=coerce_utc(m.started_at),
        completedAt=coerce_utc(m.completed_at),
    )
    await match_state_cache.set((mid, loaded.version), out.model_dump())
    return out


# GET /api/v0/matches/{mid}/events
@router.get("/{mid}/events", response_model=MatchEventsOut)
async def list_match_events(
    mid: str, session: AsyncSession = Depends(get_session)
) -> MatchEventsOut:
    events = await event_log.list_events(session, mid)
    return MatchEventsOut(matchId=mid, events=[_event_out(e) for e in events])


# GET /api/v0/matches/{mid}/audit
@router.get("/{mid}/audit", response_model=list[AuditEntryOut])
async def list_match_audit(
    mid: str, session: AsyncSession = Depends(get_session)
) -> list[AuditEntryOut]:
    rows = await event_log.list_audit(session, mid)
    return [
        AuditEntryOut(
            id=r.id,
            action=r.action,
            actor=r.actor,
            metadata=r.metadata_ or {},
            createdAt=coerce_utc(r.created_at),
        )
        for r in rows
    ]


# POST /api/v0/matches/{mid}/start
async def start_match(mid: str, body: StartIn, session: AsyncSession) -> ScoreResultOut:
    state, event = await event_log.start_match(
        session, mid, body.servingSide, recorded_by=body.recordedBy
    )
    return _score_result(state, event)


@router.post("/{mid}/start", response_model=ScoreResultOut)
@limiter.limit(SCORE_RATE_LIMIT)
async def start_match_route(
    request: Request,
    mid: str,
    body: StartIn,
    session: AsyncSession = Depends(get_session),
) -> ScoreResultOut:
    return await start_match(mid, body, session)


# POST /api/v0/matches/{mid}/points
async def score_point(mid: str, body: PointIn, session: AsyncSession) -> ScoreResultOut:
    try:
        state, event = await event_log.score_point(
            session,
            mid,
            body.side,
            expected_tail_id=_expected(body, "expectedTailId"),
            recorded_by=body.recordedBy,
            notes=body.notes,
        )
    except ValueError as exc:
        raise http_problem(
            status_code=400,
            detail=str(exc),
            code="match_event_invalid",
        )
    return _score_result(state, event)


@router.post("/{mid}/points", response_model=ScoreResultOut)
@limiter.limit(SCORE_RATE_LIMIT)
async def score_point_route(
    request: Request,
    mid: str,
    body: PointIn,
    session: AsyncSession = Depends(get_session),
) -> ScoreResultOut:
    return await score_point(mid, body, session)


# POST /api/v0/matches/{mid}/undo
async def undo_last_point(mid: str, body: UndoIn, session: AsyncSession) -> UndoResultOut:
    state, removed = await event_log.undo_last_point(
        session,
        mid,
        expected_event_id=_expected(body, "expectedEventId"),
        recorded_by=body.recordedBy,
    )
    score, game_score = _scores(state)
    return UndoResultOut(
        state=state.model_dump(mode="json"),
        score=score,
        gameScore=game_score,
        removedEventId=removed,
    )


@router.post("/{mid}/undo", response_model=UndoResultOut)
@limiter.limit(SCORE_RATE_LIMIT)
async def undo_last_point_route(
    request: Request,
    mid: str,
    body: UndoIn,
    session: AsyncSession = Depends(get_session),
) -> UndoResultOut:
    return await undo_last_point(mid, body, session)


# POST /api/v0/matches/{mid}/corrections
async def record_correction(
    mid: str, body: CorrectionIn, session: AsyncSession
) -> ScoreResultOut:
    try:
        state, event = await event_log.record_correction(
            session,
            mid,
            body.snapshot,
            body.notes,
            scoring_side=body.side,
            expected_tail_id=_expected(body, "expectedTailId"),
            recorded_by=body.recordedBy,
        )
    except PydanticValidationError as exc:
        raise http_problem(
            status_code=422,
            detail=f"invalid snapshot: {exc.error_count()} error(s)",
            code="match_snapshot_invalid",
        )
    except ValueError as exc:
        raise http_problem(
            status_code=400,
            detail=str(exc),
            code="match_correction_invalid",
        )
    return _score_result(state, event)


@router.post("/{mid}/corrections", response_model=ScoreResultOut)
@limiter.limit(SCORE_RATE_LIMIT)
async def record_correction_route(
    request: Request,
    mid: str,
    body: CorrectionIn,
    session: AsyncSession = Depends(get_session),
) -> ScoreResultOut:
    return await record_correction(mid, body, session)
