"""Snapshot persistence for emulated console state.

This package provides:
- Immutable state models for CPU, PPU, APU (with its five channels) and mapper
- A retention policy capping auto and manual snapshots per program image
- Backends (SQLAlchemy on SQLite, in-memory) with transactional graph insert/fetch/delete
- SnapshotStore, the repository the emulator session talks to
"""

from .backend import BackendSession, InMemoryBackend, SnapshotBackend
from .models import (
    SCHEMA_VERSION,
    APUState,
    CPUState,
    DMCState,
    MapperState,
    NoiseState,
    PPUState,
    PulseState,
    SnapshotEntry,
    SnapshotRecord,
    TriangleState,
)
from .retention import RetentionPolicy
from .sqlite_backend import SQLiteBackend
from .store import SnapshotStore, build_backend, open_store

__all__ = [
    "SCHEMA_VERSION",
    "APUState",
    "CPUState",
    "DMCState",
    "MapperState",
    "NoiseState",
    "PPUState",
    "PulseState",
    "SnapshotEntry",
    "SnapshotRecord",
    "TriangleState",
    "RetentionPolicy",
    "BackendSession",
    "SnapshotBackend",
    "InMemoryBackend",
    "SQLiteBackend",
    "SnapshotStore",
    "build_backend",
    "open_store",
]
