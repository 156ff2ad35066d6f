from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..scoring import PRESETS, ScoringPolicy, policy_from_config


class ValidationError(Exception):
    """Raised when a submitted match configuration is invalid."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


SPORT_RULES: dict[str, dict[str, object]] = {
    "tennis": {"presets": {"tennis_standard", "tennis_fast4"}},
    "padel": {"presets": {"tennis_standard", "tennis_fast4"}},
    "badminton": {"presets": {"tennis_standard"}},
    "pickleball": {"presets": {"pickleball_standard", "pickleball_sideout"}},
}


def _sport_label(sport_id: str) -> str:
    return sport_id.replace("_", " ").title() or "Sport"


def _first_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    loc = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
    msg = err.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def resolve_policy(
    sport_id: str,
    *,
    preset: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> ScoringPolicy:
    """Build the scoring policy for a new match.

    Rules:
    - ``preset`` must name a known preset allowed for ``sport_id``
    - ``config`` overrides individual thresholds on top of the preset or the
      sport's default policy
    - sports without a default policy must supply a ``config``
    """

    if preset is not None:
        if preset not in PRESETS:
            raise ValidationError(f"Unknown scoring preset '{preset}'.")
        allowed = SPORT_RULES.get(sport_id, {}).get("presets")
        if isinstance(allowed, set) and preset not in allowed:
            raise ValidationError(
                f"{_sport_label(sport_id)} matches cannot use the '{preset}' preset."
            )
        base = PRESETS[preset].model_dump()
        base.update(config or {})
        base["sport"] = sport_id
        config = base

    if config is not None and not isinstance(config, dict):
        raise ValidationError("Scoring config must be an object.")

    try:
        return policy_from_config(sport_id, config)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid scoring config: {_first_error(exc)}.")
    except ValueError as exc:
        raise ValidationError(f"{_sport_label(sport_id)}: {exc}.")
