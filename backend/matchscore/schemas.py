from typing import Annotated, Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, BeforeValidator, Field, field_validator, ConfigDict


class SportOut(BaseModel):
    id: str
    name: str


class RuleSetOut(BaseModel):
    id: str
    sport_id: str
    name: str
    config: dict


class RuleSetCreate(BaseModel):
    sport_id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    config: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class MatchCreate(BaseModel):
    id: Optional[str] = Field(None, min_length=1, max_length=100)
    sport: str = Field(..., min_length=1, max_length=100)
    rulesetId: Optional[str] = None
    preset: Optional[str] = None
    config: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("id", "sport", mode="before")
    @classmethod
    def _strip_identifier(cls, value):
        if value is None:
            return value
        if not isinstance(value, str):
            raise TypeError("value must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("value must not be empty")
        if any(ch.isspace() for ch in trimmed):
            raise ValueError("value must not contain whitespace")
        return trimmed


class MatchIdOut(BaseModel):
    id: str


def _strict_side(value):
    # Sides are the integers 1 and 2; booleans and numeric strings are rejected.
    if value is None:
        return value
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("side must be 1 or 2")
    return value


SideIn = Annotated[Literal[1, 2], BeforeValidator(_strict_side)]


class StartIn(BaseModel):
    servingSide: SideIn = 1
    recordedBy: Optional[str] = Field(None, max_length=200)

    model_config = ConfigDict(extra="forbid")


class PointIn(BaseModel):
    side: SideIn
    # Id of the last event the caller saw; null means "the log was empty".
    expectedTailId: Optional[str] = None
    recordedBy: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)

    model_config = ConfigDict(extra="forbid")


class UndoIn(BaseModel):
    expectedEventId: Optional[str] = None
    recordedBy: Optional[str] = Field(None, max_length=200)

    model_config = ConfigDict(extra="forbid")


class CorrectionIn(BaseModel):
    snapshot: Dict[str, Any]
    notes: str = Field(..., min_length=1, max_length=2000)
    side: Optional[SideIn] = None
    expectedTailId: Optional[str] = None
    recordedBy: Optional[str] = Field(None, max_length=200)

    model_config = ConfigDict(extra="forbid")


class ScoreEventOut(BaseModel):
    """Represents an individual scoring event within a match."""

    id: str
    type: str
    side: Optional[int] = None
    snapshot: Dict[str, Any]
    recordedBy: Optional[str] = None
    notes: Optional[str] = None
    createdAt: datetime


class MatchOut(BaseModel):
    """Detailed match information returned by the API."""

    id: str
    sport: str
    rulesetId: Optional[str] = None
    status: str
    policy: Dict[str, Any]
    state: Dict[str, Any]
    score: str
    gameScore: str
    summary: Optional[Dict[str, Any]] = None
    lastEventId: Optional[str] = None
    eventCount: int = 0
    version: int
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None


class ScoreResultOut(BaseModel):
    state: Dict[str, Any]
    score: str
    gameScore: str
    event: Optional[ScoreEventOut] = None


class UndoResultOut(BaseModel):
    state: Dict[str, Any]
    score: str
    gameScore: str
    removedEventId: Optional[str] = None


class AuditEntryOut(BaseModel):
    id: str
    action: str
    actor: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    createdAt: datetime


class MatchEventsOut(BaseModel):
    matchId: str
    events: List[ScoreEventOut] = Field(default_factory=list)
