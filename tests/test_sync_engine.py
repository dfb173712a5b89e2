"""Tests for snapshot reconciliation."""

from __future__ import annotations

import pytest

from quotesync.errors import MalformedSnapshotError
from quotesync.quotes.models import Quote
from quotesync.sync.engine import sync
from quotesync.sync.protocol import ConflictsPending, Merged


LOCAL = [
    Quote(1, "A", "X"),
    Quote(2, "B", "Y"),
]


def test_remote_additions_are_appended_in_order():
    remote = [Quote(3, "C", "Z"), Quote(4, "D", "Z")]

    outcome = sync(LOCAL, remote)

    assert isinstance(outcome, Merged)
    assert [q.id for q in outcome.quotes] == [1, 2, 3, 4]
    assert outcome.added == 2


def test_identical_shared_ids_are_not_conflicts():
    outcome = sync(LOCAL, [Quote(1, "A", "X"), Quote(2, "B", "Y")])

    assert isinstance(outcome, Merged)
    assert outcome.quotes == LOCAL
    assert outcome.added == 0


def test_divergent_shared_id_is_reported_and_held_back():
    remote = [Quote(1, "A", "X"), Quote(2, "B2", "Y"), Quote(3, "C", "Z")]

    outcome = sync(LOCAL, remote)

    assert isinstance(outcome, ConflictsPending)
    assert len(outcome.conflicts) == 1
    conflict = outcome.conflicts[0]
    assert conflict.id == 2
    assert conflict.local.text == "B"
    assert conflict.remote.text == "B2"
    # local values survive in the partial merge
    assert outcome.merged_so_far[1] == Quote(2, "B", "Y")


def test_category_difference_is_a_conflict():
    outcome = sync(LOCAL, [Quote(1, "A", "Other")])

    assert isinstance(outcome, ConflictsPending)
    assert outcome.conflicts[0].id == 1


def test_local_only_records_are_kept():
    outcome = sync(LOCAL, [])

    assert isinstance(outcome, Merged)
    assert outcome.quotes == LOCAL


def test_sync_does_not_mutate_inputs():
    local = list(LOCAL)
    remote = [Quote(3, "C", "Z")]

    sync(local, remote)

    assert local == LOCAL
    assert remote == [Quote(3, "C", "Z")]


def test_repeated_snapshot_id_is_rejected():
    with pytest.raises(MalformedSnapshotError):
        sync(LOCAL, [Quote(5, "a", "b"), Quote(5, "c", "d")])
