from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .models import SnapshotEntry

DEFAULT_MAX_AUTO = 3
DEFAULT_MAX_MANUAL = 13


def _newest_first(entry: SnapshotEntry):
    # equal dates: the later insertion counts as newer
    return (entry.date, entry.snapshot_id)


@dataclass(frozen=True)
class RetentionPolicy:
    """Per-fingerprint caps for auto and manual snapshots.

    The two categories are pruned independently: an auto-save never counts
    against the manual cap or the other way round.
    """

    max_auto: int = DEFAULT_MAX_AUTO
    max_manual: int = DEFAULT_MAX_MANUAL

    def __post_init__(self) -> None:
        if self.max_auto < 0 or self.max_manual < 0:
            raise ValueError("Retention caps must be non-negative")

    def cap_for(self, is_auto_save: bool) -> int:
        return self.max_auto if is_auto_save else self.max_manual

    def evictions(self, entries: Iterable[SnapshotEntry]) -> List[SnapshotEntry]:
        """Return the entries to delete so that each category fits its cap.

        `entries` must all belong to one fingerprint. The most recent
        `max_auto` auto-saves and `max_manual` manual saves survive.
        """
        entries = list(entries)
        evicted: List[SnapshotEntry] = []
        for is_auto_save in (True, False):
            group = sorted(
                (e for e in entries if e.is_auto_save == is_auto_save),
                key=_newest_first,
                reverse=True,
            )
            evicted.extend(group[self.cap_for(is_auto_save):])
        return evicted
