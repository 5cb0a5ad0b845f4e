"""Declarative tables for the snapshot graph.

    snapshots
      cpu_states      1:1
      ppu_states      1:1
      mapper_states   1:1
      apu_states      1:1
        pulse_states    two rows, keyed by channel
        triangle_states 1:1
        noise_states    1:1
        dmc_states      1:1

Children hang off their owner through `relationship(cascade="all,
delete-orphan")` backed by `ON DELETE CASCADE` foreign keys, so deleting a
`SnapshotRow` removes its whole graph. State columns carry the names of the
matching state dataclass fields (`codec.columns`); u64 counters use
BigInteger and hold the folded signed value.
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import BigInteger, ForeignKey, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .models import (
    APUState,
    CPUState,
    DMCState,
    MapperState,
    NoiseState,
    PPUState,
    PulseState,
    TriangleState,
)

_CHILD = dict(cascade="all, delete-orphan", passive_deletes=True)


class Base(DeclarativeBase):
    pass


def _owned_by_snapshot():
    return mapped_column(ForeignKey("snapshots.id", ondelete="CASCADE"), primary_key=True)


def _owned_by_apu():
    return mapped_column(ForeignKey("apu_states.snapshot_id", ondelete="CASCADE"), primary_key=True)


class SchemaMetaRow(Base):
    __tablename__ = "schema_meta"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int]


class SnapshotRow(Base):
    """Parent row of one saved console state."""

    __tablename__ = "snapshots"
    __table_args__ = (
        Index("snapshots_by_fingerprint", "fingerprint", "date_us"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    fingerprint: Mapped[str] = mapped_column(String(64))
    is_auto_save: Mapped[bool]
    # microseconds since the Unix epoch, UTC
    date_us: Mapped[int] = mapped_column(BigInteger)

    cpu: Mapped[Optional[CPUStateRow]] = relationship(**_CHILD)
    ppu: Mapped[Optional[PPUStateRow]] = relationship(**_CHILD)
    mapper: Mapped[Optional[MapperStateRow]] = relationship(**_CHILD)
    apu: Mapped[Optional[APUStateRow]] = relationship(**_CHILD)

    def __repr__(self) -> str:
        return f"<SnapshotRow id={self.id} fingerprint={self.fingerprint!r} auto={self.is_auto_save}>"


class CPUStateRow(Base):
    __tablename__ = "cpu_states"

    snapshot_id: Mapped[int] = _owned_by_snapshot()
    ram: Mapped[bytes]
    a: Mapped[int]
    x: Mapped[int]
    y: Mapped[int]
    pc: Mapped[int]
    sp: Mapped[int]
    cycles: Mapped[int] = mapped_column(BigInteger)
    flags: Mapped[int]
    interrupt: Mapped[int]
    stall: Mapped[int] = mapped_column(BigInteger)


class PPUStateRow(Base):
    __tablename__ = "ppu_states"

    snapshot_id: Mapped[int] = _owned_by_snapshot()
    cycle: Mapped[int]
    scanline: Mapped[int]
    frame: Mapped[int] = mapped_column(BigInteger)
    palette_data: Mapped[bytes]
    name_table_data: Mapped[bytes]
    oam_data: Mapped[bytes]
    v: Mapped[int]
    t: Mapped[int]
    x: Mapped[int]
    w: Mapped[bool]
    f: Mapped[bool]
    register: Mapped[int]
    nmi_occurred: Mapped[bool]
    nmi_output: Mapped[bool]
    nmi_previous: Mapped[bool]
    nmi_delay: Mapped[int]
    name_table_byte: Mapped[int]
    attribute_table_byte: Mapped[int]
    low_tile_byte: Mapped[int]
    high_tile_byte: Mapped[int]
    tile_data: Mapped[int] = mapped_column(BigInteger)
    sprite_count: Mapped[int]
    sprite_patterns: Mapped[bytes]
    sprite_positions: Mapped[bytes]
    sprite_priorities: Mapped[bytes]
    sprite_indexes: Mapped[bytes]
    flag_name_table: Mapped[int]
    flag_increment: Mapped[bool]
    flag_sprite_table: Mapped[bool]
    flag_background_table: Mapped[bool]
    flag_sprite_size: Mapped[bool]
    flag_master_slave: Mapped[bool]
    flag_grayscale: Mapped[bool]
    flag_show_left_background: Mapped[bool]
    flag_show_left_sprites: Mapped[bool]
    flag_show_background: Mapped[bool]
    flag_show_sprites: Mapped[bool]
    flag_red_tint: Mapped[bool]
    flag_green_tint: Mapped[bool]
    flag_blue_tint: Mapped[bool]
    flag_sprite_zero_hit: Mapped[int]
    flag_sprite_overflow: Mapped[int]
    oam_address: Mapped[int]
    buffered_data: Mapped[int]
    front_buffer: Mapped[bytes]


class MapperStateRow(Base):
    __tablename__ = "mapper_states"

    snapshot_id: Mapped[int] = _owned_by_snapshot()
    mirroring_mode: Mapped[int]
    ints: Mapped[bytes]
    bools: Mapped[bytes]
    uint8s: Mapped[bytes]
    chr: Mapped[bytes]


class APUStateRow(Base):
    __tablename__ = "apu_states"

    snapshot_id: Mapped[int] = _owned_by_snapshot()
    cycle: Mapped[int] = mapped_column(BigInteger)
    frame_period: Mapped[int]
    frame_value: Mapped[int]
    frame_irq: Mapped[bool]
    audio_buffer: Mapped[bytes]
    audio_buffer_index: Mapped[int]

    pulses: Mapped[List[PulseStateRow]] = relationship(order_by="PulseStateRow.channel", **_CHILD)
    triangle: Mapped[Optional[TriangleStateRow]] = relationship(**_CHILD)
    noise: Mapped[Optional[NoiseStateRow]] = relationship(**_CHILD)
    dmc: Mapped[Optional[DMCStateRow]] = relationship(**_CHILD)


class PulseStateRow(Base):
    __tablename__ = "pulse_states"

    apu_id: Mapped[int] = _owned_by_apu()
    # 0 for pulse 1, 1 for pulse 2
    channel: Mapped[int] = mapped_column(primary_key=True)
    enabled: Mapped[bool]
    length_enabled: Mapped[bool]
    length_value: Mapped[int]
    timer_period: Mapped[int]
    timer_value: Mapped[int]
    duty_mode: Mapped[int]
    duty_value: Mapped[int]
    sweep_reload: Mapped[bool]
    sweep_enabled: Mapped[bool]
    sweep_negate: Mapped[bool]
    sweep_shift: Mapped[int]
    sweep_period: Mapped[int]
    sweep_value: Mapped[int]
    envelope_enabled: Mapped[bool]
    envelope_loop: Mapped[bool]
    envelope_start: Mapped[bool]
    envelope_period: Mapped[int]
    envelope_value: Mapped[int]
    envelope_volume: Mapped[int]
    constant_volume: Mapped[int]


class TriangleStateRow(Base):
    __tablename__ = "triangle_states"

    apu_id: Mapped[int] = _owned_by_apu()
    enabled: Mapped[bool]
    length_enabled: Mapped[bool]
    length_value: Mapped[int]
    timer_period: Mapped[int]
    timer_value: Mapped[int]
    duty_value: Mapped[int]
    counter_period: Mapped[int]
    counter_value: Mapped[int]
    counter_reload: Mapped[bool]


class NoiseStateRow(Base):
    __tablename__ = "noise_states"

    apu_id: Mapped[int] = _owned_by_apu()
    enabled: Mapped[bool]
    mode: Mapped[bool]
    shift_register: Mapped[int]
    length_enabled: Mapped[bool]
    length_value: Mapped[int]
    timer_period: Mapped[int]
    timer_value: Mapped[int]
    envelope_enabled: Mapped[bool]
    envelope_loop: Mapped[bool]
    envelope_start: Mapped[bool]
    envelope_period: Mapped[int]
    envelope_value: Mapped[int]
    envelope_volume: Mapped[int]
    constant_volume: Mapped[int]


class DMCStateRow(Base):
    __tablename__ = "dmc_states"

    apu_id: Mapped[int] = _owned_by_apu()
    enabled: Mapped[bool]
    value: Mapped[int]
    sample_address: Mapped[int]
    sample_length: Mapped[int]
    current_address: Mapped[int]
    current_length: Mapped[int]
    shift_register: Mapped[int]
    bit_count: Mapped[int]
    tick_period: Mapped[int]
    tick_value: Mapped[int]
    loop: Mapped[bool]
    irq: Mapped[bool]


# Row class -> state dataclass whose fields it stores
STATE_TABLES = (
    (CPUStateRow, CPUState),
    (PPUStateRow, PPUState),
    (MapperStateRow, MapperState),
    (APUStateRow, APUState),
    (PulseStateRow, PulseState),
    (TriangleStateRow, TriangleState),
    (NoiseStateRow, NoiseState),
    (DMCStateRow, DMCState),
)
