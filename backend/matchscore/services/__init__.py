"""Application services between the HTTP routers and the scoring engines."""

from . import event_log
from .validation import ValidationError, resolve_policy

__all__ = [
    "ValidationError",
    "event_log",
    "resolve_policy",
]
