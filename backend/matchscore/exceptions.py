from fastapi import HTTPException
from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class MatchNotFound(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Match not found",
            detail=f"match '{match_id}' not found",
            code="match_not_found",
        )


class MatchAlreadyExists(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=409,
            title="Match exists",
            detail=f"match '{match_id}' already exists",
            code="match_exists",
        )


class MatchPolicyMissing(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=400,
            title="Scoring policy missing",
            detail=f"match '{match_id}' has no scoring policy",
            code="match_policy_missing",
        )


class EventLogConflict(DomainException):
    """The match log changed between reading it and writing to it.

    Callers should reload the match state and retry.
    """

    def __init__(self, match_id: str, detail: str | None = None) -> None:
        super().__init__(
            status_code=409,
            title="Event log conflict",
            detail=detail or f"score log for match '{match_id}' changed; reload and retry",
            code="event_log_conflict",
        )
        self.match_id = match_id


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
