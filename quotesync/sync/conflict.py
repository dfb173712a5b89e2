"""Conflict resolution strategies for quote synchronization."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from ..quotes.models import Quote
from .protocol import ConflictRecord, ResolutionSource

logger = logging.getLogger("quotesync.sync.conflict")


class ConflictStrategy(str, Enum):
    """How a detected conflict set is handled."""
    MANUAL = "manual"
    SERVER_WINS = "server"
    LOCAL_WINS = "local"


def resolve(
    conflicts: Sequence[ConflictRecord],
    collection: Sequence[Quote],
    remote_snapshot: Sequence[Quote],
    source: ResolutionSource,
) -> List[Quote]:
    """Settle conflicts and return the collection to commit.

    ``server``: every remote record overwrites its local id in place or is
    appended. ``local``: conflicting ids keep their local values and only
    remote-only records are appended.
    """

    source = ResolutionSource(source)
    result: List[Quote] = list(collection)
    index: Dict[int, int] = {q.id: i for i, q in enumerate(result)}
    conflicting = {c.id for c in conflicts}

    for record in remote_snapshot:
        position = index.get(record.id)
        if position is None:
            index[record.id] = len(result)
            result.append(record)
        elif source is ResolutionSource.SERVER:
            result[position] = record
        elif record.id in conflicting:
            logger.debug("Keeping local value for quote %s", record.id)

    return result


def summarize(before: Sequence[Quote], after: Sequence[Quote]) -> Tuple[int, int]:
    """Return (updated, added) counts between two collections."""
    previous = {q.id: q for q in before}
    updated = 0
    added = 0
    for quote in after:
        old = previous.get(quote.id)
        if old is None:
            added += 1
        elif not old.same_content(quote):
            updated += 1
    return updated, added


@dataclass
class ConflictDecision:
    """What the resolver wants done with a conflict set."""

    source: Optional[ResolutionSource]
    message: str = ""

    @property
    def deferred(self) -> bool:
        return self.source is None


class ConflictResolver:
    """Maps the configured strategy onto a resolution decision."""

    def __init__(self, strategy: ConflictStrategy = ConflictStrategy.MANUAL):
        self.strategy = ConflictStrategy(strategy)

    def decide(self, conflicts: Sequence[ConflictRecord]) -> ConflictDecision:
        if not conflicts:
            return ConflictDecision(source=None, message="No conflicts")

        if self.strategy == ConflictStrategy.SERVER_WINS:
            return ConflictDecision(
                source=ResolutionSource.SERVER,
                message="Server wins strategy",
            )
        elif self.strategy == ConflictStrategy.LOCAL_WINS:
            return ConflictDecision(
                source=ResolutionSource.LOCAL,
                message="Local wins strategy",
            )
        else:  # MANUAL
            return ConflictDecision(
                source=None,
                message=f"{len(conflicts)} conflict(s) marked for manual resolution",
            )


__all__ = [
    "ConflictStrategy",
    "ConflictDecision",
    "ConflictResolver",
    "resolve",
    "summarize",
]
