# backend/matchscore/routers/rulesets.py
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from ..db import get_session
from ..exceptions import http_problem
from ..models import RuleSet
from ..schemas import RuleSetOut, RuleSetCreate
from ..services.validation import ValidationError, resolve_policy
from .sports import ensure_sport

# Resource-only prefix
router = APIRouter(prefix="/rulesets", tags=["rulesets"])

# GET /api/v0/rulesets?sport=tennis
@router.get("", response_model=list[RuleSetOut])
async def list_rulesets(
    sport: str = Query(..., description="Sport id, e.g. 'tennis' or 'pickleball'"),
    session: AsyncSession = Depends(get_session),
):
    rows = (await session.execute(select(RuleSet).where(RuleSet.sport_id == sport))).scalars().all()
    return [RuleSetOut(id=r.id, sport_id=r.sport_id, name=r.name, config=r.config) for r in rows]


@router.post("", response_model=RuleSetOut)
async def create_ruleset(
    body: RuleSetCreate,
    session: AsyncSession = Depends(get_session),
):
    # Reject configs that would not produce a usable policy.
    try:
        resolve_policy(body.sport_id, config=body.config)
    except ValidationError as exc:
        raise http_problem(
            status_code=422,
            detail=exc.detail,
            code="ruleset_invalid_config",
        )
    await ensure_sport(session, body.sport_id)
    rid = uuid.uuid4().hex
    r = RuleSet(id=rid, sport_id=body.sport_id, name=body.name, config=body.config)
    session.add(r)
    await session.commit()
    return RuleSetOut(id=rid, sport_id=body.sport_id, name=body.name, config=body.config)


@router.delete("/{ruleset_id}", status_code=204)
async def delete_ruleset(
    ruleset_id: str,
    session: AsyncSession = Depends(get_session),
):
    r = await session.get(RuleSet, ruleset_id)
    if not r:
        raise http_problem(
            status_code=404,
            detail="ruleset not found",
            code="ruleset_not_found",
        )
    await session.delete(r)
    await session.commit()
    return Response(status_code=204)
