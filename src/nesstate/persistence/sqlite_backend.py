"""SQLite storage for snapshot graphs through SQLAlchemy.

The table layout lives in `tables`. Foreign keys are switched on for every
pooled connection so `ON DELETE CASCADE` backs the ORM cascades. A
`schema_meta` row records `SCHEMA_VERSION`; a database written by a newer
schema is refused.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Type, Union

from sqlalchemy import Engine, create_engine, event, select
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import PersistenceFailure, SchemaVersionError, SnapshotDecodeError
from .backend import BackendSession, SnapshotBackend
from .codec import decode_state, encode_state, from_microseconds, row_values, to_microseconds
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
from .tables import (
    APUStateRow,
    Base,
    CPUStateRow,
    DMCStateRow,
    MapperStateRow,
    NoiseStateRow,
    PPUStateRow,
    PulseStateRow,
    SchemaMetaRow,
    SnapshotRow,
    TriangleStateRow,
)

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"
SCHEMA_KEY = "schema_version"

_FULL_GRAPH = (
    selectinload(SnapshotRow.cpu),
    selectinload(SnapshotRow.ppu),
    selectinload(SnapshotRow.mapper),
    selectinload(SnapshotRow.apu).selectinload(APUStateRow.pulses),
    selectinload(SnapshotRow.apu).selectinload(APUStateRow.triangle),
    selectinload(SnapshotRow.apu).selectinload(APUStateRow.noise),
    selectinload(SnapshotRow.apu).selectinload(APUStateRow.dmc),
)


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _required(row: Optional[Any], table: str, snapshot_id: int) -> Any:
    if row is None:
        raise SnapshotDecodeError(f"{table}: no row for snapshot {snapshot_id}")
    return row


def _decode(model: Type[Any], row: Any, **children: Any) -> Any:
    return decode_state(model, row_values(row, model), **children)


class _SQLiteSession(BackendSession):
    def __init__(self, session: Session) -> None:
        self.session = session

    def insert(self, record: SnapshotRecord) -> int:
        if record.date is None:
            raise ValueError("Only stamped records can be stored")
        apu = record.apu_state
        row = SnapshotRow(
            fingerprint=record.fingerprint,
            is_auto_save=record.is_auto_save,
            date_us=to_microseconds(record.date),
            cpu=CPUStateRow(**encode_state(record.cpu_state)),
            ppu=PPUStateRow(**encode_state(record.ppu_state)),
            mapper=MapperStateRow(**encode_state(record.mapper_state)),
            apu=APUStateRow(
                **encode_state(apu),
                pulses=[
                    PulseStateRow(channel=0, **encode_state(apu.pulse1)),
                    PulseStateRow(channel=1, **encode_state(apu.pulse2)),
                ],
                triangle=TriangleStateRow(**encode_state(apu.triangle)),
                noise=NoiseStateRow(**encode_state(apu.noise)),
                dmc=DMCStateRow(**encode_state(apu.dmc)),
            ),
        )
        self.session.add(row)
        self.session.flush()
        return row.id

    def _parents(self, fingerprint: str, limit: Optional[int] = None, full: bool = False):
        stmt = (
            select(SnapshotRow)
            .where(SnapshotRow.fingerprint == fingerprint)
            .order_by(SnapshotRow.date_us.desc(), SnapshotRow.id.desc())
        )
        if full:
            stmt = stmt.options(*_FULL_GRAPH)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.session.scalars(stmt).all()

    def entries(self, fingerprint: str) -> List[SnapshotEntry]:
        return [
            SnapshotEntry(
                snapshot_id=row.id,
                date=from_microseconds(row.date_us),
                is_auto_save=bool(row.is_auto_save),
            )
            for row in self._parents(fingerprint)
        ]

    def fetch(self, fingerprint: str, limit: Optional[int] = None) -> List[SnapshotRecord]:
        return [self._load(row) for row in self._parents(fingerprint, limit, full=True)]

    def _load(self, row: SnapshotRow) -> SnapshotRecord:
        sid = row.id
        apu = _required(row.apu, "apu_states", sid)
        if len(apu.pulses) != 2:
            raise SnapshotDecodeError(f"pulse_states: expected two channels for {sid}, found {len(apu.pulses)}")
        apu_state = _decode(
            APUState,
            apu,
            pulse1=_decode(PulseState, apu.pulses[0]),
            pulse2=_decode(PulseState, apu.pulses[1]),
            triangle=_decode(TriangleState, _required(apu.triangle, "triangle_states", sid)),
            noise=_decode(NoiseState, _required(apu.noise, "noise_states", sid)),
            dmc=_decode(DMCState, _required(apu.dmc, "dmc_states", sid)),
        )
        return SnapshotRecord(
            fingerprint=row.fingerprint,
            is_auto_save=bool(row.is_auto_save),
            date=from_microseconds(row.date_us),
            cpu_state=_decode(CPUState, _required(row.cpu, "cpu_states", sid)),
            ppu_state=_decode(PPUState, _required(row.ppu, "ppu_states", sid)),
            mapper_state=_decode(MapperState, _required(row.mapper, "mapper_states", sid)),
            apu_state=apu_state,
        )

    def _delete_rows(self, rows: Iterable[SnapshotRow]) -> int:
        removed = 0
        for row in rows:
            self.session.delete(row)
            removed += 1
        self.session.flush()
        return removed

    def delete_ids(self, snapshot_ids: Iterable[int]) -> int:
        rows = (self.session.get(SnapshotRow, sid) for sid in snapshot_ids)
        return self._delete_rows(row for row in rows if row is not None)

    def delete_matching(self, fingerprint: str, date: Optional[datetime] = None) -> int:
        stmt = select(SnapshotRow).where(SnapshotRow.fingerprint == fingerprint)
        if date is not None:
            stmt = stmt.where(SnapshotRow.date_us == to_microseconds(date))
        return self._delete_rows(self.session.scalars(stmt).all())

    def delete_everything(self) -> int:
        return self._delete_rows(self.session.scalars(select(SnapshotRow)).all())


class SQLiteBackend(SnapshotBackend):
    """Snapshot backend on a single SQLite database file.

    Pass ":memory:" for a private in-process database (useful in tests).
    `timeout` is how many seconds a connection waits for another writer's
    lock before the transaction fails.
    """

    def __init__(self, path: Union[str, Path] = MEMORY_DATABASE, timeout: float = 5.0) -> None:
        self.path: Union[str, Path] = MEMORY_DATABASE if str(path) == MEMORY_DATABASE else Path(path)
        self.timeout = timeout
        self._engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None
        self._lock = threading.RLock()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def _create_engine(self) -> Engine:
        connect_args = {"check_same_thread": False, "timeout": self.timeout}
        if self.path == MEMORY_DATABASE:
            # one shared connection, or every checkout would see a new empty database
            engine = create_engine("sqlite://", connect_args=connect_args, poolclass=StaticPool)
        else:
            engine = create_engine(URL.create("sqlite", database=str(self.path)), connect_args=connect_args)
        event.listen(engine, "connect", _enable_foreign_keys)
        return engine

    def open(self) -> None:
        with self._lock:
            if self._engine is not None:
                return
            try:
                if isinstance(self.path, Path):
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                engine = self._create_engine()
            except (SQLAlchemyError, OSError) as exc:
                logger.exception("Failed to open snapshot database %s", self.path)
                raise PersistenceFailure(f"Unable to open snapshot database {self.path}: {exc}") from exc
            try:
                self._create_schema(engine)
            except Exception:
                engine.dispose()
                raise
            self._engine = engine
            self._sessions = sessionmaker(bind=engine, expire_on_commit=False)
            logger.info("Opened snapshot database %s", self.path)

    def close(self) -> None:
        with self._lock:
            if self._engine is None:
                return
            self._engine.dispose()
            self._engine = None
            self._sessions = None
            logger.info("Closed snapshot database %s", self.path)

    def _create_schema(self, engine: Engine) -> None:
        try:
            with Session(engine) as session, session.begin():
                SchemaMetaRow.__table__.create(session.connection(), checkfirst=True)
                meta = session.get(SchemaMetaRow, SCHEMA_KEY)
                if meta is not None and meta.value > SCHEMA_VERSION:
                    raise SchemaVersionError(
                        f"Snapshot database {self.path} uses schema {meta.value}, newer than supported {SCHEMA_VERSION}"
                    )
                Base.metadata.create_all(session.connection())
                if meta is None:
                    session.add(SchemaMetaRow(key=SCHEMA_KEY, value=SCHEMA_VERSION))
                else:
                    meta.value = SCHEMA_VERSION
        except SQLAlchemyError as exc:
            logger.exception("Failed to prepare snapshot schema in %s", self.path)
            raise PersistenceFailure(f"Unable to prepare snapshot schema: {exc}") from exc

    @contextmanager
    def transaction(self) -> Iterator[BackendSession]:
        with self._lock:
            if self._sessions is None:
                raise PersistenceFailure("Snapshot database is not open")
            session = self._sessions()
            try:
                yield _SQLiteSession(session)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("Snapshot transaction on %s rolled back", self.path)
                raise PersistenceFailure(f"Snapshot transaction failed: {exc}") from exc
            except BaseException:
                session.rollback()
                raise
            finally:
                session.close()
