from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import PersistenceFailure
from .codec import to_microseconds
from .models import SnapshotEntry, SnapshotRecord

logger = logging.getLogger(__name__)


class BackendSession(ABC):
    """Operations available inside one backend transaction.

    Nothing done through a session is visible to other readers until the
    enclosing `SnapshotBackend.transaction()` block exits normally.
    """

    @abstractmethod
    def insert(self, record: SnapshotRecord) -> int:
        """Store a stamped record with its whole state graph; return its snapshot id."""

    @abstractmethod
    def entries(self, fingerprint: str) -> List[SnapshotEntry]:
        """Metadata of every snapshot stored for `fingerprint`."""

    @abstractmethod
    def fetch(self, fingerprint: str, limit: Optional[int] = None) -> List[SnapshotRecord]:
        """Records for `fingerprint`, most recent first (ties: latest insertion first)."""

    @abstractmethod
    def delete_ids(self, snapshot_ids: Iterable[int]) -> int:
        """Delete snapshots and their state graphs by id; return how many went."""

    @abstractmethod
    def delete_matching(self, fingerprint: str, date: Optional[datetime] = None) -> int:
        """Delete snapshots of `fingerprint`, restricted to an exact `date` when given."""

    @abstractmethod
    def delete_everything(self) -> int:
        """Delete every snapshot of every fingerprint."""


class SnapshotBackend(ABC):
    """Durable storage for snapshot graphs with explicit open/close lifecycle."""

    @abstractmethod
    def open(self) -> None:
        """Acquire resources. Calling open() on an open backend is a no-op."""

    @abstractmethod
    def close(self) -> None:
        """Release resources. Calling close() on a closed backend is a no-op."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    @abstractmethod
    def transaction(self):
        """Context manager yielding a `BackendSession`.

        Commits when the block exits normally, rolls back otherwise. A commit
        that fails raises `PersistenceFailure` and leaves the store as it was.
        """


class _MemorySession(BackendSession):
    def __init__(self, rows: Dict[int, SnapshotRecord], next_id: int) -> None:
        self.rows = rows
        self.next_id = next_id

    def _ordered(self, fingerprint: str) -> List[Tuple[int, SnapshotRecord]]:
        matches = [(sid, rec) for sid, rec in self.rows.items() if rec.fingerprint == fingerprint]
        matches.sort(key=lambda item: (item[1].date, item[0]), reverse=True)
        return matches

    def insert(self, record: SnapshotRecord) -> int:
        if record.date is None:
            raise ValueError("Only stamped records can be stored")
        sid = self.next_id
        self.next_id += 1
        self.rows[sid] = record
        return sid

    def entries(self, fingerprint: str) -> List[SnapshotEntry]:
        return [
            SnapshotEntry(snapshot_id=sid, date=rec.date, is_auto_save=rec.is_auto_save)
            for sid, rec in self._ordered(fingerprint)
        ]

    def fetch(self, fingerprint: str, limit: Optional[int] = None) -> List[SnapshotRecord]:
        records = [rec for _, rec in self._ordered(fingerprint)]
        return records if limit is None else records[:limit]

    def delete_ids(self, snapshot_ids: Iterable[int]) -> int:
        removed = 0
        for sid in snapshot_ids:
            if self.rows.pop(sid, None) is not None:
                removed += 1
        return removed

    def delete_matching(self, fingerprint: str, date: Optional[datetime] = None) -> int:
        wanted = None if date is None else to_microseconds(date)
        doomed = [
            sid
            for sid, rec in self.rows.items()
            if rec.fingerprint == fingerprint
            and (wanted is None or to_microseconds(rec.date) == wanted)
        ]
        return self.delete_ids(doomed)

    def delete_everything(self) -> int:
        removed = len(self.rows)
        self.rows.clear()
        return removed


class InMemoryBackend(SnapshotBackend):
    """Test/deterministic backend that holds snapshots in memory only.

    Each transaction works on a copy of the row table which replaces the live
    table on commit. Records are immutable, so a shallow copy is enough.
    """

    def __init__(self) -> None:
        self._rows: Dict[int, SnapshotRecord] = {}
        self._next_id = 1
        self._open = False
        self._lock = threading.RLock()

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    @contextmanager
    def transaction(self) -> Iterator[BackendSession]:
        if not self._open:
            raise PersistenceFailure("In-memory backend is not open")
        with self._lock:
            session = _MemorySession(dict(self._rows), self._next_id)
            yield session
            self._commit(session)

    def _commit(self, session: _MemorySession) -> None:
        self._rows = session.rows
        self._next_id = session.next_id
