"""Mapping between state dataclasses and flat storage rows.

Every non-child field of a state dataclass becomes one column:

- int / bool    -> integer column (u64 counters folded into the signed range)
- float         -> real column
- memory images -> binary column, stored verbatim
- packed arrays -> binary column, little-endian `struct` encoding of the tuple

The same packing is applied when a state object is built (see
`normalise_array`), so a record reads back from any backend exactly as it
was saved.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass, fields
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Type, TypeVar

from ..errors import SnapshotDecodeError

T = TypeVar("T")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_SCALAR_KINDS = frozenset({"int", "bool", "float"})
_U64_SPAN = 1 << 64
_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1


@dataclass(frozen=True)
class Column:
    name: str
    kind: str
    pack: str = ""
    u64: bool = False


@lru_cache(maxsize=None)
def columns(model: Type[Any]) -> Tuple[Column, ...]:
    """Return the storage columns of a state dataclass, in field order."""
    cols: List[Column] = []
    for f in fields(model):
        if f.metadata.get("child"):
            continue
        if "pack" in f.metadata:
            cols.append(Column(f.name, "packed", pack=f.metadata["pack"]))
            continue
        if f.metadata.get("memory"):
            cols.append(Column(f.name, "memory"))
            continue
        kind = f.type if isinstance(f.type, str) else f.type.__name__
        if kind not in _SCALAR_KINDS:
            raise TypeError(f"{model.__name__}.{f.name}: unsupported field type {kind!r}")
        cols.append(Column(f.name, kind, u64=bool(f.metadata.get("u64"))))
    return tuple(cols)


def pack_array(code: str, values: Tuple[Any, ...]) -> bytes:
    return struct.pack(f"<{len(values)}{code}", *values)


def unpack_array(code: str, blob: bytes) -> Tuple[Any, ...]:
    size = struct.calcsize(f"<{code}")
    if len(blob) % size:
        raise SnapshotDecodeError(
            f"Packed array of {len(blob)} bytes is not a multiple of {size} ({code!r})"
        )
    return struct.unpack(f"<{len(blob) // size}{code}", blob)


def normalise_array(code: str, values: Iterable[Any]) -> Tuple[Any, ...]:
    """Return `values` as they will read back after packing with `code`.

    Floats are narrowed to the stored precision. Values the format cannot
    hold raise ValueError.
    """
    values = tuple(values)
    try:
        return unpack_array(code, pack_array(code, values))
    except struct.error as exc:
        raise ValueError(f"Array does not fit format {code!r}: {exc}") from exc


def check_integer(col: Column, value: int) -> None:
    """Raise ValueError unless `value` fits the storage range of `col`."""
    low, high = (0, _U64_SPAN - 1) if col.u64 else (_I64_MIN, _I64_MAX)
    if not low <= value <= high:
        raise ValueError(f"{col.name}={value} is outside [{low}, {high}]")


def encode_state(state: Any) -> Dict[str, Any]:
    """Flatten a state dataclass into a column -> value mapping."""
    row: Dict[str, Any] = {}
    for col in columns(type(state)):
        value = getattr(state, col.name)
        if col.kind == "packed":
            row[col.name] = pack_array(col.pack, value)
        elif col.kind == "memory":
            row[col.name] = bytes(value)
        elif col.kind == "bool":
            row[col.name] = bool(value)
        elif col.u64 and value > _I64_MAX:
            row[col.name] = value - _U64_SPAN
        else:
            row[col.name] = value
    return row


def decode_state(model: Type[T], row: Mapping[str, Any], **children: Any) -> T:
    """Rebuild a state dataclass from a row produced by `encode_state`.

    Child sub-states (e.g. the APU channels) are not columns and must be
    passed in as keyword arguments.
    """
    kwargs: Dict[str, Any] = dict(children)
    for col in columns(model):
        try:
            value = row[col.name]
        except (KeyError, IndexError) as exc:
            raise SnapshotDecodeError(f"{model.__name__}: missing column {col.name!r}") from exc
        if value is None:
            raise SnapshotDecodeError(f"{model.__name__}: column {col.name!r} is NULL")
        if col.kind == "packed":
            value = unpack_array(col.pack, bytes(value))
        elif col.kind == "memory":
            value = bytes(value)
        elif col.kind == "bool":
            value = bool(value)
        elif col.kind == "float":
            value = float(value)
        elif col.u64 and value < 0:
            value = value + _U64_SPAN
        kwargs[col.name] = value
    return model(**kwargs)


def row_values(row: Any, model: Type[Any]) -> Dict[str, Any]:
    """Read the columns of `model` off a mapped row object."""
    return {col.name: getattr(row, col.name, None) for col in columns(model)}


def to_microseconds(moment: datetime) -> int:
    """Microseconds since the Unix epoch; naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(microseconds=1)


def from_microseconds(value: int) -> datetime:
    return EPOCH + timedelta(microseconds=value)
