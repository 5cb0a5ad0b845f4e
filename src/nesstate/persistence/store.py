from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..paths import get_save_dir
from ..settings import Settings
from .backend import InMemoryBackend, SnapshotBackend
from .models import SnapshotRecord
from .retention import RetentionPolicy
from .sqlite_backend import SQLiteBackend

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotStore:
    """Save, list and prune console snapshots keyed by program fingerprint.

    Every save runs insert and retention pruning in one backend transaction,
    so readers never see a fingerprint holding more than the configured caps.
    Absence is never an error: lookups return an empty list or None.
    """

    def __init__(
        self,
        backend: SnapshotBackend,
        policy: Optional[RetentionPolicy] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.backend = backend
        self.policy = policy or RetentionPolicy()
        self._clock = clock or _utc_now
        self._lock = threading.RLock()

    # Lifecycle

    def open(self) -> "SnapshotStore":
        self.backend.open()
        return self

    def close(self) -> None:
        self.backend.close()

    def __enter__(self) -> "SnapshotStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Public API

    def save(self, record: SnapshotRecord) -> SnapshotRecord:
        """Persist `record` stamped with the current time and prune its fingerprint.

        Returns the stamped record. Raises PersistenceFailure when the
        transaction cannot commit, in which case nothing is written or pruned.
        """
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        stamped = replace(record, date=now)
        with self._lock:
            with self.backend.transaction() as session:
                snapshot_id = session.insert(stamped)
                evicted = self.policy.evictions(session.entries(stamped.fingerprint))
                if evicted:
                    session.delete_ids(e.snapshot_id for e in evicted)
        logger.info(
            "Saved %s snapshot %d for %s",
            "auto" if stamped.is_auto_save else "manual",
            snapshot_id,
            stamped.fingerprint,
        )
        if evicted:
            logger.info("Pruned %d old snapshot(s) for %s", len(evicted), stamped.fingerprint)
        return stamped

    def list(self, fingerprint: str) -> List[SnapshotRecord]:
        """All snapshots for `fingerprint`, most recent first."""
        with self._lock:
            with self.backend.transaction() as session:
                records = session.fetch(fingerprint)
        logger.debug("Found %d snapshot(s) for %s", len(records), fingerprint)
        return records

    def most_recent(self, fingerprint: str) -> Optional[SnapshotRecord]:
        """The newest snapshot for `fingerprint`, auto or manual, or None."""
        with self._lock:
            with self.backend.transaction() as session:
                records = session.fetch(fingerprint, limit=1)
        return records[0] if records else None

    def count(self, fingerprint: str, is_auto_save: Optional[bool] = None) -> int:
        with self._lock:
            with self.backend.transaction() as session:
                entries = session.entries(fingerprint)
        if is_auto_save is None:
            return len(entries)
        return sum(1 for e in entries if e.is_auto_save == is_auto_save)

    def delete(self, fingerprint: str, date: datetime) -> int:
        """Delete the snapshot(s) of `fingerprint` taken exactly at `date`."""
        with self._lock:
            with self.backend.transaction() as session:
                removed = session.delete_matching(fingerprint, date)
        logger.info("Deleted %d snapshot(s) for %s at %s", removed, fingerprint, date.isoformat())
        return removed

    def delete_all(self, fingerprint: str) -> int:
        with self._lock:
            with self.backend.transaction() as session:
                removed = session.delete_matching(fingerprint)
        logger.info("Deleted all %d snapshot(s) for %s", removed, fingerprint)
        return removed

    def clear(self) -> int:
        """Delete every snapshot of every program image."""
        with self._lock:
            with self.backend.transaction() as session:
                removed = session.delete_everything()
        logger.info("Cleared %d snapshot(s)", removed)
        return removed


def build_backend(settings: Settings) -> SnapshotBackend:
    storage = settings.storage
    if storage.backend == "memory":
        return InMemoryBackend()
    directory = storage.directory if storage.directory is not None else get_save_dir()
    return SQLiteBackend(directory / storage.filename, timeout=storage.timeout)


def open_store(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> SnapshotStore:
    """Build and open a SnapshotStore from settings (loaded from defaults when omitted)."""
    settings = settings or Settings.load()
    policy = RetentionPolicy(
        max_auto=settings.retention.max_auto,
        max_manual=settings.retention.max_manual,
    )
    store = SnapshotStore(build_backend(settings), policy=policy, clock=clock)
    return store.open()
