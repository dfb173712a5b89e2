"""Reconcile the local collection against a remote snapshot."""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set

from ..errors import MalformedSnapshotError
from ..quotes.models import Quote
from .protocol import ConflictRecord, ConflictsPending, Merged, SyncOutcome

logger = logging.getLogger("quotesync.sync.engine")


def check_snapshot(remote: Sequence[Quote]) -> None:
    """Reject snapshots that list the same id more than once."""
    seen: Set[int] = set()
    for record in remote:
        if record.id in seen:
            raise MalformedSnapshotError(
                f"Remote snapshot repeats quote id {record.id}."
            )
        seen.add(record.id)


def sync(local: Sequence[Quote], remote: Sequence[Quote]) -> SyncOutcome:
    """Merge remote additions and detect same-id divergence.

    Remote records with unknown ids are appended. Records whose id exists
    locally with different text or category become conflicts and are not
    applied. The caller commits ``Merged.quotes`` only when there are no
    conflicts.
    """

    check_snapshot(remote)

    by_id: Dict[int, Quote] = {q.id: q for q in local}
    merged: List[Quote] = list(local)
    conflicts: List[ConflictRecord] = []
    added = 0

    for record in remote:
        existing = by_id.get(record.id)
        if existing is None:
            merged.append(record)
            added += 1
        elif not existing.same_content(record):
            conflicts.append(ConflictRecord(local=existing, remote=record))

    if conflicts:
        logger.info(
            "Sync found %d conflict(s); %d addition(s) held back",
            len(conflicts),
            added,
        )
        return ConflictsPending(conflicts=conflicts, merged_so_far=merged)

    logger.debug("Sync merged cleanly with %d addition(s)", added)
    return Merged(quotes=merged, added=added)


__all__ = ["sync", "check_snapshot"]
