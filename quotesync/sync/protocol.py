"""Sync outcome data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..quotes.models import Quote


class SyncPhase(str, Enum):
    """Where the current sync cycle stands."""
    IDLE = "idle"
    FETCHING = "fetching"
    MERGED = "merged"
    CONFLICTS_PENDING = "conflicts_pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class CycleStatus(str, Enum):
    """How a single fetch-and-sync cycle ended."""
    MERGED = "merged"
    CONFLICTS_PENDING = "conflicts_pending"
    RESOLVED = "resolved"
    FAILED = "failed"
    SKIPPED = "skipped"


class ResolutionSource(str, Enum):
    """Whose values win when settling conflicts."""
    SERVER = "server"
    LOCAL = "local"


@dataclass(frozen=True)
class ConflictRecord:
    """A local and a remote quote sharing an id but not their content."""

    local: Quote
    remote: Quote

    @property
    def id(self) -> int:
        return self.local.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "local": self.local.to_dict(),
            "remote": self.remote.to_dict(),
        }


@dataclass
class Merged:
    """No shared id diverged; ``quotes`` is ready to commit."""

    quotes: List[Quote]
    added: int = 0


@dataclass
class ConflictsPending:
    """At least one shared id diverged; nothing may be committed yet."""

    conflicts: List[ConflictRecord]
    merged_so_far: List[Quote]


SyncOutcome = Union[Merged, ConflictsPending]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CycleReport:
    """Result of one timer- or user-triggered sync cycle."""

    status: CycleStatus
    message: str = ""
    added: int = 0
    conflicts: int = 0
    auto_resolved: Optional[ResolutionSource] = None
    errors: List[str] = field(default_factory=list)
    finished_at: str = field(default_factory=_utc_now)

    @property
    def success(self) -> bool:
        return self.status in (CycleStatus.MERGED, CycleStatus.RESOLVED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "added": self.added,
            "conflicts": self.conflicts,
            "auto_resolved": self.auto_resolved.value if self.auto_resolved else None,
            "errors": self.errors,
            "finished_at": self.finished_at,
        }


@dataclass
class ResolutionOutcome:
    """Result of settling the pending conflict set."""

    source: ResolutionSource
    resolved: bool
    conflicts: int = 0
    updated: int = 0
    added: int = 0
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.value,
            "resolved": self.resolved,
            "conflicts": self.conflicts,
            "updated": self.updated,
            "added": self.added,
            "message": self.message,
        }


@dataclass
class PublishReport:
    """Result of a fire-and-forget publish of one quote."""

    quote_id: int
    success: bool
    message: str = ""
    finished_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quote_id": self.quote_id,
            "success": self.success,
            "message": self.message,
            "finished_at": self.finished_at,
        }


__all__ = [
    "SyncPhase",
    "CycleStatus",
    "ResolutionSource",
    "ConflictRecord",
    "Merged",
    "ConflictsPending",
    "SyncOutcome",
    "CycleReport",
    "ResolutionOutcome",
    "PublishReport",
]
