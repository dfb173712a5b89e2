"""Runtime context tying the quote collection to storage and sync."""

from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .configuration import ConfigurationBundle
from .errors import DecodeError, MalformedSnapshotError, NetworkError, StorageError
from .quotes.models import ALL_CATEGORIES, DEFAULT_QUOTES, Quote, QuoteCollection
from .quotes.store import LocalStore, SelectionState
from .quotes.transfer import export_quotes, read_import_file
from .sync.conflict import ConflictResolver, ConflictStrategy, resolve, summarize
from .sync.engine import sync
from .sync.protocol import (
    ConflictRecord,
    ConflictsPending,
    CycleReport,
    CycleStatus,
    PublishReport,
    ResolutionOutcome,
    ResolutionSource,
    SyncPhase,
)
from .sync.remote import RemoteSettings, RemoteSource

logger = logging.getLogger("quotesync.session")

ON_PENDING_BLOCK = "block"
ON_PENDING_REPLACE = "replace"
MAX_PUBLISH_REPORTS = 50


@dataclass
class SessionSettings:
    """Sync, storage and import settings read from configuration."""

    sync_enabled: bool = True
    interval_seconds: int = 30
    conflict_strategy: str = "manual"
    on_pending: str = ON_PENDING_BLOCK
    publish: bool = True
    store_directory: str = "state"
    validate_imports: bool = False

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SessionSettings":
        config = config or {}
        sync_cfg = config.get("sync", {}) or {}
        store_cfg = config.get("store", {}) or {}
        import_cfg = config.get("import", {}) or {}
        on_pending = str(sync_cfg.get("on_pending", ON_PENDING_BLOCK)).lower()
        if on_pending not in (ON_PENDING_BLOCK, ON_PENDING_REPLACE):
            logger.warning("Unknown sync.on_pending '%s'; using 'block'", on_pending)
            on_pending = ON_PENDING_BLOCK
        return cls(
            sync_enabled=bool(sync_cfg.get("enabled", True)),
            interval_seconds=int(sync_cfg.get("interval_seconds", 30)),
            conflict_strategy=str(sync_cfg.get("conflict_strategy", "manual")),
            on_pending=on_pending,
            publish=bool(sync_cfg.get("publish", True)),
            store_directory=str(store_cfg.get("directory", "state")),
            validate_imports=bool(import_cfg.get("validate", False)),
        )


class QuoteSession:
    """Holds the collection plus the pending sync state for one process.

    Mutations take ``_state_lock``; sync cycles are single-flight through
    ``_cycle_guard`` so at most one remote snapshot is reconciled at a time.
    """

    def __init__(
        self,
        data_dir: Path,
        settings: SessionSettings,
        remote: RemoteSource,
        store: Optional[LocalStore] = None,
    ):
        self.data_dir = data_dir
        self.settings = settings
        self.remote = remote
        self.store = store or LocalStore(data_dir / settings.store_directory)
        self.selection = SelectionState(self.store)
        self.resolver = ConflictResolver(ConflictStrategy(settings.conflict_strategy))

        self.phase = SyncPhase.IDLE
        self.pending_conflicts: List[ConflictRecord] = []
        self.pending_snapshot: List[Quote] = []
        self.last_report: Optional[CycleReport] = None
        self.last_resolution: Optional[ResolutionOutcome] = None
        self.publish_reports: List[PublishReport] = []
        self.storage_error: Optional[str] = None

        self._state_lock = threading.RLock()
        self._cycle_guard = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._publish_futures: List[Future] = []

        self.collection = QuoteCollection(self._load_initial(), on_change=self._persist)

    @classmethod
    def from_config(
        cls,
        bundle: ConfigurationBundle,
        remote: Optional[RemoteSource] = None,
    ) -> "QuoteSession":
        merged = bundle.merged or {}
        settings = SessionSettings.from_config(merged)
        remote = remote or RemoteSource(RemoteSettings.from_config(merged))
        return cls(bundle.data_dir, settings, remote)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _load_initial(self) -> List[Quote]:
        try:
            stored = self.store.load()
        except StorageError as e:
            logger.warning("Could not load stored quotes, using defaults: %s", e)
            self.storage_error = str(e)
            return list(DEFAULT_QUOTES)
        if stored is None:
            logger.info("No stored quotes found; starting from the default set")
            return list(DEFAULT_QUOTES)
        return stored

    def _persist(self, collection: QuoteCollection) -> None:
        try:
            self.store.save(collection)
        except StorageError as e:
            # The in-memory collection stays authoritative for this session.
            logger.error("Failed to persist quotes: %s", e)
            self.storage_error = str(e)
            return
        self.storage_error = None

    # ------------------------------------------------------------------
    # Local operations
    # ------------------------------------------------------------------
    def add_quote(self, text: str, category: str) -> Quote:
        with self._state_lock:
            quote = self.collection.add(text, category)
        self.publish(quote)
        return quote

    def import_quotes(self, records: Sequence[Any]) -> List[Quote]:
        with self._state_lock:
            imported = self.collection.import_batch(
                records,
                validate=self.settings.validate_imports,
            )
        for quote in imported:
            self.publish(quote)
        return imported

    def import_file(self, path: Path) -> List[Quote]:
        return self.import_quotes(read_import_file(path))

    def export_file(self, path: Path) -> int:
        with self._state_lock:
            quotes = self.collection.snapshot()
        return export_quotes(quotes, path)

    def random_quote(self, category: Optional[str] = None) -> Optional[Quote]:
        label = category or self.selection.selected_category
        candidates = self.collection.by_category(label)
        if not candidates:
            return None
        quote = random.choice(candidates)
        self.selection.last_quote = quote
        return quote

    def set_filter(self, label: str) -> Optional[Quote]:
        label = (label or ALL_CATEGORIES).strip() or ALL_CATEGORIES
        try:
            self.selection.select_category(label)
        except StorageError as e:
            logger.error("Failed to persist category filter: %s", e)
            self.storage_error = str(e)
        return self.random_quote(label)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------
    def publish(self, quote: Quote) -> Optional[Future]:
        """Submit a best-effort publish; never retried."""
        if not self.settings.publish:
            return None
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="quotesync-publish",
            )
        future = self._executor.submit(self.remote.publish, quote)
        with self._state_lock:
            self._publish_futures.append(future)
        # registered after the append so an already finished future is dropped too
        future.add_done_callback(lambda f, q=quote: self._on_published(q, f))
        return future

    def _on_published(self, quote: Quote, future: Future) -> None:
        error = future.exception()
        if error is None:
            report = PublishReport(quote_id=quote.id, success=True, message="Quote synced to server.")
        else:
            logger.warning("Publishing quote %s failed: %s", quote.id, error)
            report = PublishReport(quote_id=quote.id, success=False, message=str(error))
        with self._state_lock:
            self.publish_reports.append(report)
            del self.publish_reports[:-MAX_PUBLISH_REPORTS]
            if future in self._publish_futures:
                self._publish_futures.remove(future)

    def flush_publishes(self, timeout: Optional[float] = None) -> None:
        """Block until submitted publishes have finished."""
        with self._state_lock:
            futures = list(self._publish_futures)
        if futures:
            wait(futures, timeout=timeout)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------
    @property
    def has_pending_conflicts(self) -> bool:
        return bool(self.pending_conflicts)

    def run_cycle(self, trigger: str = "timer") -> CycleReport:
        """Fetch a snapshot and reconcile it against the collection."""

        if not self._cycle_guard.acquire(blocking=False):
            report = CycleReport(
                status=CycleStatus.SKIPPED,
                message="A sync cycle is already running.",
            )
            logger.debug("Skipping %s sync: cycle in flight", trigger)
            return report

        try:
            if self.has_pending_conflicts and self.settings.on_pending == ON_PENDING_BLOCK:
                report = CycleReport(
                    status=CycleStatus.SKIPPED,
                    message="Conflicts pending; resolve them before syncing again.",
                    conflicts=len(self.pending_conflicts),
                )
                logger.info("Skipping %s sync: %d conflict(s) pending", trigger, len(self.pending_conflicts))
                return self._record(report)

            self.phase = SyncPhase.FETCHING
            try:
                snapshot = self.remote.fetch_snapshot()
            except (NetworkError, DecodeError) as e:
                return self._fail(e)

            with self._state_lock:
                try:
                    outcome = sync(self.collection.snapshot(), snapshot)
                except MalformedSnapshotError as e:
                    return self._fail(e)

                if isinstance(outcome, ConflictsPending):
                    return self._hold_conflicts(outcome, snapshot)

                if self.has_pending_conflicts:
                    logger.warning(
                        "Discarding %d pending conflict(s): superseded by a clean sync",
                        len(self.pending_conflicts),
                    )
                    self._clear_pending()

                self.collection.commit(outcome.quotes)
                self.phase = SyncPhase.MERGED
                message = "Quotes synced with server!"
                if outcome.added:
                    message = f"Quotes synced with server! {outcome.added} new quote(s)."
                logger.info("Sync (%s) merged %d addition(s)", trigger, outcome.added)
                return self._record(
                    CycleReport(status=CycleStatus.MERGED, message=message, added=outcome.added)
                )
        finally:
            self._cycle_guard.release()

    def _hold_conflicts(self, outcome: ConflictsPending, snapshot: List[Quote]) -> CycleReport:
        if self.has_pending_conflicts:
            logger.warning(
                "Replacing %d pending conflict(s) with %d from the new cycle",
                len(self.pending_conflicts),
                len(outcome.conflicts),
            )
        self.pending_conflicts = list(outcome.conflicts)
        self.pending_snapshot = list(snapshot)
        self.phase = SyncPhase.CONFLICTS_PENDING
        count = len(outcome.conflicts)

        decision = self.resolver.decide(outcome.conflicts)
        if not decision.deferred:
            resolution = self.resolve(decision.source)
            return self._record(
                CycleReport(
                    status=CycleStatus.RESOLVED,
                    message=resolution.message,
                    added=resolution.added,
                    conflicts=count,
                    auto_resolved=decision.source,
                )
            )

        return self._record(
            CycleReport(
                status=CycleStatus.CONFLICTS_PENDING,
                message=f"Conflicts detected: {count} quotes differ.",
                conflicts=count,
            )
        )

    def _fail(self, error: Exception) -> CycleReport:
        logger.warning("Sync cycle failed: %s", error)
        # pending conflicts survive a failed cycle
        self.phase = SyncPhase.CONFLICTS_PENDING if self.has_pending_conflicts else SyncPhase.FAILED
        return self._record(
            CycleReport(
                status=CycleStatus.FAILED,
                message=f"Error fetching server quotes: {error}",
                conflicts=len(self.pending_conflicts),
                errors=[str(error)],
            )
        )

    def _record(self, report: CycleReport) -> CycleReport:
        self.last_report = report
        return report

    def _clear_pending(self) -> None:
        self.pending_conflicts = []
        self.pending_snapshot = []

    def resolve(self, source: ResolutionSource) -> ResolutionOutcome:
        """Settle the pending conflicts with server or local values."""

        source = ResolutionSource(source)
        with self._state_lock:
            if not self.has_pending_conflicts:
                outcome = ResolutionOutcome(
                    source=source,
                    resolved=False,
                    message="No pending conflicts to resolve.",
                )
                self.last_resolution = outcome
                return outcome

            before = self.collection.snapshot()
            after = resolve(self.pending_conflicts, before, self.pending_snapshot, source)
            updated, added = summarize(before, after)
            conflicts = len(self.pending_conflicts)

            self.collection.commit(after)
            self._clear_pending()
            self.phase = SyncPhase.RESOLVED

            outcome = ResolutionOutcome(
                source=source,
                resolved=True,
                conflicts=conflicts,
                updated=updated,
                added=added,
                message=f"Conflicts resolved using {source.value} data.",
            )
            self.last_resolution = outcome
            logger.info(
                "Resolved %d conflict(s) using %s data (%d updated, %d added)",
                conflicts,
                source.value,
                updated,
                added,
            )
            return outcome

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def status(self) -> Dict[str, Any]:
        with self._state_lock:
            return {
                "data_dir": str(self.data_dir),
                "quotes": len(self.collection),
                "categories": self.collection.categories(),
                "selected_category": self.selection.selected_category,
                "phase": self.phase.value,
                "pending_conflicts": len(self.pending_conflicts),
                "conflict_strategy": self.resolver.strategy.value,
                "on_pending": self.settings.on_pending,
                "last_report": self.last_report.to_dict() if self.last_report else None,
                "last_resolution": self.last_resolution.to_dict() if self.last_resolution else None,
                "storage_error": self.storage_error,
                "remote_url": getattr(self.remote.settings, "url", "") or "(not configured)",
            }


__all__ = ["QuoteSession", "SessionSettings", "ON_PENDING_BLOCK", "ON_PENDING_REPLACE"]
