from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..models import Sport
from ..schemas import SportOut

router = APIRouter(prefix="/sports", tags=["sports"])


DEFAULT_SPORT_CATALOG: tuple[tuple[str, str], ...] = (
    ("tennis", "Tennis"),
    ("padel", "Padel"),
    ("badminton", "Badminton"),
    ("pickleball", "Pickleball"),
)

DEFAULT_SPORT_NAME_LOOKUP = {sport_id: name for sport_id, name in DEFAULT_SPORT_CATALOG}


def _fallback_sport_name(sport_id: str, provided_name: str | None) -> str:
    if provided_name:
        normalized = provided_name.strip()
        if normalized:
            return normalized

    fallback = DEFAULT_SPORT_NAME_LOOKUP.get(sport_id)
    if fallback:
        return fallback

    normalized_id = sport_id.replace("_", " ").replace("-", " ").strip()
    if not normalized_id:
        return sport_id

    return normalized_id.title()


async def ensure_sport(session: AsyncSession, sport_id: str) -> Sport:
    """Return the catalog row for ``sport_id``, adding it if missing."""

    sport = await session.get(Sport, sport_id)
    if sport is None:
        sport = Sport(id=sport_id, name=_fallback_sport_name(sport_id, None))
        session.add(sport)
    return sport


# GET /api/v0/sports
@router.get("", response_model=list[SportOut])
async def list_sports(session: AsyncSession = Depends(get_session)) -> list[SportOut]:
    rows = (await session.execute(select(Sport))).scalars().all()

    catalog: dict[str, str] = {}
    for sport in rows:
        catalog[sport.id] = _fallback_sport_name(sport.id, sport.name)

    for sport_id, name in DEFAULT_SPORT_CATALOG:
        catalog.setdefault(sport_id, name)

    # Return a deterministic ordering for consumers
    sorted_catalog = sorted(
        catalog.items(), key=lambda item: (item[1].lower(), item[0])
    )

    return [SportOut(id=sport_id, name=name) for sport_id, name in sorted_catalog]
