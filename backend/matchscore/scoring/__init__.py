"""Scoring engines for the supported racquet sports.

Each engine is a module exposing ``init_state``, ``apply``, ``format_score``,
``format_game_score`` and ``summary``. ``ENGINES`` maps a sport id to the
engine that scores it.
"""

import logging
from types import MappingProxyType, ModuleType

from . import pickleball, tennis
from .policy import PRESETS, ScoringPolicy, default_policy, policy_from_config
from .state import MatchState, ScoringInvariantError, validate_side

logger = logging.getLogger(__name__)

# Padel and badminton are scored with the tennis engine until they get rule
# sets of their own.
ENGINES = MappingProxyType(
    {
        "tennis": tennis,
        "padel": tennis,
        "badminton": tennis,
        "pickleball": pickleball,
    }
)

FALLBACK_ENGINE = tennis


def get_engine(sport: str) -> ModuleType:
    """Return the engine module for ``sport``.

    Unknown sports fall back to the tennis engine, which gives plausible but
    not rule-accurate scores for them.
    """

    engine = ENGINES.get(sport)
    if engine is None:
        logger.warning(
            "No scoring engine registered for sport %r; using %s",
            sport,
            FALLBACK_ENGINE.__name__,
        )
        return FALLBACK_ENGINE
    return engine


__all__ = [
    "ENGINES",
    "FALLBACK_ENGINE",
    "MatchState",
    "PRESETS",
    "ScoringInvariantError",
    "ScoringPolicy",
    "default_policy",
    "get_engine",
    "pickleball",
    "policy_from_config",
    "tennis",
    "validate_side",
]
