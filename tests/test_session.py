"""Tests for the quote session: persistence, sync cycles and resolution."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional

import pytest

from quotesync.configuration import ConfigurationBundle
from quotesync.errors import DecodeError, NetworkError, StorageError
from quotesync.quotes.models import DEFAULT_QUOTES, Quote
from quotesync.session import QuoteSession, SessionSettings
from quotesync.sync.protocol import CycleStatus, ResolutionSource, SyncPhase
from quotesync.sync.remote import RemoteSettings


class FakeRemote:
    """In-memory stand-in for the HTTP remote."""

    def __init__(self, snapshot: Optional[List[Quote]] = None, error: Optional[Exception] = None):
        self.settings = RemoteSettings(url="https://example.invalid/posts")
        self.snapshot = list(snapshot or [])
        self.error = error
        self.fetches = 0
        self.published: List[Quote] = []

    def fetch_snapshot(self) -> List[Quote]:
        self.fetches += 1
        if self.error is not None:
            raise self.error
        return list(self.snapshot)

    def publish(self, quote: Quote) -> None:
        self.published.append(quote)


def _session(tmp_path: Path, remote: Optional[FakeRemote] = None, **settings) -> QuoteSession:
    settings.setdefault("publish", False)
    return QuoteSession(tmp_path, SessionSettings(**settings), remote or FakeRemote())


def _conflicting_remote() -> FakeRemote:
    return FakeRemote(
        [
            Quote(1, "The best way to predict the future is to create it.", "Motivation"),
            Quote(2, "Simplicity wins.", "Design"),
            Quote(10, "New from server.", "Life"),
        ]
    )


def test_first_run_starts_from_defaults(tmp_path: Path):
    session = _session(tmp_path)

    assert session.collection.snapshot() == DEFAULT_QUOTES
    assert session.phase is SyncPhase.IDLE


def test_added_quote_survives_restart(tmp_path: Path):
    session = _session(tmp_path)
    quote = session.add_quote("Persistence pays.", "Life")

    reloaded = _session(tmp_path)

    assert reloaded.collection.get(quote.id) == quote
    assert len(reloaded.collection) == 4


def test_corrupt_store_falls_back_to_defaults(tmp_path: Path):
    state = tmp_path / "state"
    state.mkdir()
    (state / "quotes.json").write_text("not json", encoding="utf-8")

    session = _session(tmp_path)

    assert session.collection.snapshot() == DEFAULT_QUOTES
    assert session.storage_error


def test_storage_failure_keeps_memory_authoritative(tmp_path: Path, monkeypatch):
    session = _session(tmp_path)

    def broken_save(quotes):
        raise StorageError("disk full")

    monkeypatch.setattr(session.store, "save", broken_save)

    quote = session.add_quote("Still here.", "Life")

    assert session.collection.get(quote.id) == quote
    assert session.storage_error == "disk full"


def test_clean_sync_appends_remote_additions(tmp_path: Path):
    remote = FakeRemote([Quote(2, "Simplicity is the ultimate sophistication.", "Design"), Quote(20, "Fresh.", "Life")])
    session = _session(tmp_path, remote)

    report = session.run_cycle("manual")

    assert report.status is CycleStatus.MERGED
    assert report.added == 1
    assert report.message.startswith("Quotes synced with server!")
    assert [q.id for q in session.collection] == [1, 2, 3, 20]
    assert session.phase is SyncPhase.MERGED
    assert _session(tmp_path).collection.get(20) is not None


def test_conflicts_block_partial_commit(tmp_path: Path):
    session = _session(tmp_path, _conflicting_remote())
    before = session.collection.snapshot()

    report = session.run_cycle()

    assert report.status is CycleStatus.CONFLICTS_PENDING
    assert report.message == "Conflicts detected: 1 quotes differ."
    assert session.collection.snapshot() == before
    assert [c.id for c in session.pending_conflicts] == [2]
    assert session.phase is SyncPhase.CONFLICTS_PENDING


def test_pending_conflicts_block_next_cycle(tmp_path: Path):
    remote = _conflicting_remote()
    session = _session(tmp_path, remote)
    session.run_cycle()

    report = session.run_cycle()

    assert report.status is CycleStatus.SKIPPED
    assert remote.fetches == 1
    assert len(session.pending_conflicts) == 1


def test_replace_policy_refetches_while_pending(tmp_path: Path):
    remote = _conflicting_remote()
    session = _session(tmp_path, remote, on_pending="replace")
    session.run_cycle()

    remote.snapshot = [Quote(3, "Changed again.", "Programming")]
    report = session.run_cycle()

    assert report.status is CycleStatus.CONFLICTS_PENDING
    assert remote.fetches == 2
    assert [c.id for c in session.pending_conflicts] == [3]


def test_replace_policy_clean_cycle_discards_pending(tmp_path: Path):
    remote = _conflicting_remote()
    session = _session(tmp_path, remote, on_pending="replace")
    session.run_cycle()

    remote.snapshot = []
    report = session.run_cycle()

    assert report.status is CycleStatus.MERGED
    assert session.pending_conflicts == []


def test_resolve_with_server_data(tmp_path: Path):
    session = _session(tmp_path, _conflicting_remote())
    session.run_cycle()

    outcome = session.resolve(ResolutionSource.SERVER)

    assert outcome.resolved
    assert outcome.message == "Conflicts resolved using server data."
    assert outcome.updated == 1
    assert outcome.added == 1
    assert session.collection.get(2).text == "Simplicity wins."
    assert session.collection.get(10) is not None
    assert session.pending_conflicts == []
    assert session.phase is SyncPhase.RESOLVED


def test_resolve_with_local_data_keeps_local_text(tmp_path: Path):
    session = _session(tmp_path, _conflicting_remote())
    session.run_cycle()

    outcome = session.resolve("local")

    assert outcome.message == "Conflicts resolved using local data."
    assert session.collection.get(2).text == "Simplicity is the ultimate sophistication."
    assert session.collection.get(10) is not None


def test_resolve_without_pending_is_a_no_op(tmp_path: Path):
    session = _session(tmp_path)
    before = session.collection.snapshot()

    outcome = session.resolve(ResolutionSource.SERVER)

    assert outcome.resolved is False
    assert outcome.message == "No pending conflicts to resolve."
    assert session.collection.snapshot() == before


def test_resolve_with_server_twice_is_idempotent(tmp_path: Path):
    remote = _conflicting_remote()
    session = _session(tmp_path, remote)
    session.run_cycle()
    session.resolve("server")
    after_first = session.collection.snapshot()

    report = session.run_cycle()

    assert report.status is CycleStatus.MERGED
    assert report.added == 0
    assert session.collection.snapshot() == after_first


def test_automatic_strategy_resolves_in_cycle(tmp_path: Path):
    session = _session(tmp_path, _conflicting_remote(), conflict_strategy="server")

    report = session.run_cycle()

    assert report.status is CycleStatus.RESOLVED
    assert report.auto_resolved is ResolutionSource.SERVER
    assert session.collection.get(2).text == "Simplicity wins."
    assert session.pending_conflicts == []


@pytest.mark.parametrize("error", [NetworkError("offline"), DecodeError("garbage")])
def test_failed_fetch_leaves_collection_untouched(tmp_path: Path, error):
    session = _session(tmp_path, FakeRemote(error=error))
    before = session.collection.snapshot()

    report = session.run_cycle()

    assert report.status is CycleStatus.FAILED
    assert report.message.startswith("Error fetching server quotes:")
    assert session.collection.snapshot() == before
    assert session.phase is SyncPhase.FAILED


def test_failed_fetch_keeps_pending_conflicts(tmp_path: Path):
    remote = _conflicting_remote()
    session = _session(tmp_path, remote, on_pending="replace")
    session.run_cycle()

    remote.error = NetworkError("offline")
    report = session.run_cycle()

    assert report.status is CycleStatus.FAILED
    assert len(session.pending_conflicts) == 1
    assert session.phase is SyncPhase.CONFLICTS_PENDING


def test_malformed_snapshot_fails_cycle(tmp_path: Path):
    remote = FakeRemote([Quote(50, "a", "b"), Quote(50, "c", "d")])
    session = _session(tmp_path, remote)

    report = session.run_cycle()

    assert report.status is CycleStatus.FAILED
    assert len(session.collection) == 3


def test_overlapping_cycle_is_skipped(tmp_path: Path):
    entered = threading.Event()
    release = threading.Event()

    class SlowRemote(FakeRemote):
        def fetch_snapshot(self):
            entered.set()
            release.wait(timeout=5)
            return super().fetch_snapshot()

    session = _session(tmp_path, SlowRemote())
    worker = threading.Thread(target=session.run_cycle)
    worker.start()
    try:
        assert entered.wait(timeout=5)
        report = session.run_cycle("manual")
        assert report.status is CycleStatus.SKIPPED
    finally:
        release.set()
        worker.join(timeout=5)


def test_add_and_import_publish_when_enabled(tmp_path: Path):
    remote = FakeRemote()
    session = _session(tmp_path, remote, publish=True)

    added = session.add_quote("Ship it.", "Programming")
    imported = session.import_quotes([{"text": "Imported", "category": "Misc"}])
    session.flush_publishes(timeout=5)
    session.close()

    assert remote.published == [added] + imported
    assert all(report.success for report in session.publish_reports)


def test_publish_failure_is_reported_not_raised(tmp_path: Path):
    class FailingRemote(FakeRemote):
        def publish(self, quote):
            raise NetworkError("offline")

    session = _session(tmp_path, FailingRemote(), publish=True)
    quote = session.add_quote("Offline thought.", "Life")
    session.flush_publishes(timeout=5)
    session.close()

    assert session.collection.get(quote.id) == quote
    assert session.publish_reports[0].success is False


def test_filter_is_persisted_and_applied(tmp_path: Path):
    session = _session(tmp_path)

    quote = session.set_filter("Design")

    assert quote.category == "Design"
    assert _session(tmp_path).selection.selected_category == "Design"
    assert session.random_quote().category == "Design"
    assert session.selection.last_quote is not None


def test_random_quote_for_empty_category(tmp_path: Path):
    session = _session(tmp_path)

    assert session.random_quote("Nope") is None


def test_export_and_import_file(tmp_path: Path):
    session = _session(tmp_path)
    target = tmp_path / "exports" / "quotes.json"

    assert session.export_file(target) == 3

    other = _session(tmp_path / "other")
    imported = other.import_file(target)

    assert len(imported) == 3
    assert len(other.collection) == 6
    assert len(other.collection.ids()) == 6


def test_from_config_reads_settings(tmp_path: Path):
    bundle = ConfigurationBundle(
        data_dir=tmp_path,
        status="ready",
        merged={
            "sync": {"conflict_strategy": "local", "on_pending": "bogus", "publish": False},
            "remote": {"url": "https://example.invalid/q"},
        },
    )

    session = QuoteSession.from_config(bundle)

    assert session.settings.on_pending == "block"
    assert session.resolver.strategy.value == "local"
    assert session.status()["remote_url"] == "https://example.invalid/q"


def test_undecodable_store_falls_back_to_defaults(tmp_path: Path):
    state = tmp_path / "state"
    state.mkdir()
    (state / "quotes.json").write_bytes(b"\xff\xfe[garbage")
    (state / "selected_category.json").write_bytes(b"\xff\xfe")

    session = _session(tmp_path)

    assert session.collection.snapshot() == DEFAULT_QUOTES
    assert session.storage_error
    assert session.selection.selected_category == "all"


def test_finished_publishes_are_not_retained(tmp_path: Path):
    remote = FakeRemote()
    session = _session(tmp_path, remote, publish=True)

    for index in range(5):
        session.add_quote(f"Thought {index}", "Life")
    session.flush_publishes(timeout=5)
    session.close()

    assert len(remote.published) == 5
    assert session._publish_futures == []
