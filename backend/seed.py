import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from matchscore.db import database_url
from matchscore.models import RuleSet, Sport
from matchscore.routers.sports import DEFAULT_SPORT_CATALOG
from matchscore.scoring import PRESETS
from matchscore.services.validation import SPORT_RULES

engine = create_async_engine(database_url(), echo=False, pool_pre_ping=True)
Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _ruleset_id(sport_id: str, preset: str) -> str:
    # "tennis_fast4" for padel -> "padel-fast4"
    variant = preset.split("_", 1)[1]
    return f"{sport_id.replace('_', '-')}-{variant}"


async def main():
    async with Session() as s:
        existing = (await s.execute(select(Sport))).scalars().all()
        have = {x.id for x in existing}
        for sid, name in DEFAULT_SPORT_CATALOG:
            if sid not in have:
                s.add(Sport(id=sid, name=name))
        await s.commit()

        # one ruleset per preset each sport may use
        existing_rs = {
            x.id for x in (await s.execute(select(RuleSet))).scalars().all()
        }
        for sid, name in DEFAULT_SPORT_CATALOG:
            for preset in sorted(SPORT_RULES.get(sid, {}).get("presets", ())):
                rid = _ruleset_id(sid, preset)
                if rid in existing_rs:
                    continue
                config = PRESETS[preset].model_dump(exclude={"sport"})
                variant = preset.split("_", 1)[1].replace("_", " ")
                s.add(
                    RuleSet(
                        id=rid,
                        sport_id=sid,
                        name=f"{name} {variant}",
                        config=config,
                    )
                )
        await s.commit()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
