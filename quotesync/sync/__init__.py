"""Quote synchronization module for quotesync."""

from __future__ import annotations

from .protocol import (
    ConflictRecord,
    ConflictsPending,
    CycleReport,
    CycleStatus,
    Merged,
    PublishReport,
    ResolutionOutcome,
    ResolutionSource,
    SyncOutcome,
    SyncPhase,
)
from .engine import check_snapshot, sync
from .conflict import ConflictDecision, ConflictResolver, ConflictStrategy, resolve, summarize
from .remote import RemoteSettings, RemoteSource
from .scheduler import SyncScheduler

__all__ = [
    # Protocol
    "ConflictRecord",
    "ConflictsPending",
    "CycleReport",
    "CycleStatus",
    "Merged",
    "PublishReport",
    "ResolutionOutcome",
    "ResolutionSource",
    "SyncOutcome",
    "SyncPhase",
    # Engine
    "check_snapshot",
    "sync",
    # Conflict
    "ConflictDecision",
    "ConflictResolver",
    "ConflictStrategy",
    "resolve",
    "summarize",
    # Remote
    "RemoteSettings",
    "RemoteSource",
    # Scheduler
    "SyncScheduler",
]
