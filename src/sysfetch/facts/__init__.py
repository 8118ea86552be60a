"""Fact model shared by collectors, the orchestrator and the renderer."""

from .errors import (
    FetchError,
    SourceError,
    SourceParseError,
    SourceTimeout,
    SourceUnavailable,
)
from .models import Fact, FactKind, FactStatus, Snapshot

__all__ = [
    "Fact",
    "FactKind",
    "FactStatus",
    "FetchError",
    "Snapshot",
    "SourceError",
    "SourceParseError",
    "SourceTimeout",
    "SourceUnavailable",
]
