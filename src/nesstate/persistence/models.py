"""Immutable snapshot of an emulated console.

The emulation engine owns the live, mutable registers and memories. At a
save point it hands over copies built from these frozen dataclasses; on
resume it receives the same types back from the store. Mutable inputs
(bytearray, list) are frozen into bytes / tuples on construction so a record
can never alias engine memory.

Fields declared with `packed(...)` are fixed-width numeric arrays. Their
struct format code decides how they are stored (see `codec`).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Tuple

from .codec import check_integer, columns, normalise_array

# Increment when the stored layout of any state table changes
SCHEMA_VERSION = 1

CPU_RAM_SIZE = 2048
PALETTE_SIZE = 32
NAME_TABLE_SIZE = 2048
OAM_SIZE = 256


def packed(code: str) -> Any:
    """Declare a tuple field stored as little-endian `struct` code `code`."""
    return field(default=(), metadata={"pack": code})


def u64() -> Any:
    """Declare an unsigned 64-bit counter that may exceed the signed range."""
    return field(default=0, metadata={"u64": True})


def memory(size: int = 0) -> Any:
    """Declare a byte-image field, zero-filled to `size` by default."""
    return field(default=bytes(size), metadata={"memory": True})


class _FrozenState:
    """Freeze and check field values after dataclass init.

    Packed arrays become tuples holding exactly what storage will return
    (floats narrowed to the packed width), memory images become bytes, and
    integers must fit their stored range. Out-of-range values raise
    ValueError here rather than when the record is saved.
    """

    def __post_init__(self) -> None:
        for col in columns(type(self)):
            value = getattr(self, col.name)
            if col.kind == "packed":
                object.__setattr__(self, col.name, normalise_array(col.pack, value))
            elif col.kind == "memory" and not isinstance(value, bytes):
                object.__setattr__(self, col.name, bytes(value))
            elif col.kind == "int":
                check_integer(col, value)


@dataclass(frozen=True)
class CPUState(_FrozenState):
    ram: bytes = memory(CPU_RAM_SIZE)
    a: int = 0
    x: int = 0
    y: int = 0
    pc: int = 0
    sp: int = 0
    cycles: int = u64()
    flags: int = 0
    interrupt: int = 0
    stall: int = u64()


@dataclass(frozen=True)
class PPUState(_FrozenState):
    cycle: int = 0
    scanline: int = 0
    frame: int = u64()
    palette_data: bytes = memory(PALETTE_SIZE)
    name_table_data: bytes = memory(NAME_TABLE_SIZE)
    oam_data: bytes = memory(OAM_SIZE)

    # current / temporary vram address (15 bit), fine x scroll (3 bit)
    v: int = 0
    t: int = 0
    x: int = 0
    # write toggle, even/odd frame
    w: bool = False
    f: bool = False
    register: int = 0

    nmi_occurred: bool = False
    nmi_output: bool = False
    nmi_previous: bool = False
    nmi_delay: int = 0

    # background fetch latches
    name_table_byte: int = 0
    attribute_table_byte: int = 0
    low_tile_byte: int = 0
    high_tile_byte: int = 0
    tile_data: int = u64()

    # sprite evaluation for the current scanline
    sprite_count: int = 0
    sprite_patterns: Tuple[int, ...] = packed("I")
    sprite_positions: Tuple[int, ...] = packed("B")
    sprite_priorities: Tuple[int, ...] = packed("B")
    sprite_indexes: Tuple[int, ...] = packed("B")

    # $2000 PPUCTRL
    flag_name_table: int = 0
    flag_increment: bool = False
    flag_sprite_table: bool = False
    flag_background_table: bool = False
    flag_sprite_size: bool = False
    flag_master_slave: bool = False

    # $2001 PPUMASK
    flag_grayscale: bool = False
    flag_show_left_background: bool = False
    flag_show_left_sprites: bool = False
    flag_show_background: bool = False
    flag_show_sprites: bool = False
    flag_red_tint: bool = False
    flag_green_tint: bool = False
    flag_blue_tint: bool = False

    # $2002 PPUSTATUS
    flag_sprite_zero_hit: int = 0
    flag_sprite_overflow: int = 0

    oam_address: int = 0
    # $2007 read buffer
    buffered_data: int = 0

    # 0xBBGGRRAA pixels
    front_buffer: Tuple[int, ...] = packed("I")


@dataclass(frozen=True)
class PulseState(_FrozenState):
    enabled: bool = False
    length_enabled: bool = False
    length_value: int = 0
    timer_period: int = 0
    timer_value: int = 0
    duty_mode: int = 0
    duty_value: int = 0
    sweep_reload: bool = False
    sweep_enabled: bool = False
    sweep_negate: bool = False
    sweep_shift: int = 0
    sweep_period: int = 0
    sweep_value: int = 0
    envelope_enabled: bool = False
    envelope_loop: bool = False
    envelope_start: bool = False
    envelope_period: int = 0
    envelope_value: int = 0
    envelope_volume: int = 0
    constant_volume: int = 0


@dataclass(frozen=True)
class TriangleState(_FrozenState):
    enabled: bool = False
    length_enabled: bool = False
    length_value: int = 0
    timer_period: int = 0
    timer_value: int = 0
    duty_value: int = 0
    counter_period: int = 0
    counter_value: int = 0
    counter_reload: bool = False


@dataclass(frozen=True)
class NoiseState(_FrozenState):
    enabled: bool = False
    mode: bool = False
    shift_register: int = 0
    length_enabled: bool = False
    length_value: int = 0
    timer_period: int = 0
    timer_value: int = 0
    envelope_enabled: bool = False
    envelope_loop: bool = False
    envelope_start: bool = False
    envelope_period: int = 0
    envelope_value: int = 0
    envelope_volume: int = 0
    constant_volume: int = 0


@dataclass(frozen=True)
class DMCState(_FrozenState):
    enabled: bool = False
    value: int = 0
    sample_address: int = 0
    sample_length: int = 0
    current_address: int = 0
    current_length: int = 0
    shift_register: int = 0
    bit_count: int = 0
    tick_period: int = 0
    tick_value: int = 0
    loop: bool = False
    irq: bool = False


@dataclass(frozen=True)
class APUState(_FrozenState):
    """Frame sequencer plus the five channel sub-states."""

    cycle: int = u64()
    frame_period: int = 0
    frame_value: int = 0
    frame_irq: bool = False
    audio_buffer: Tuple[float, ...] = packed("f")
    audio_buffer_index: int = 0
    pulse1: PulseState = field(default_factory=PulseState, metadata={"child": True})
    pulse2: PulseState = field(default_factory=PulseState, metadata={"child": True})
    triangle: TriangleState = field(default_factory=TriangleState, metadata={"child": True})
    noise: NoiseState = field(default_factory=NoiseState, metadata={"child": True})
    dmc: DMCState = field(default_factory=DMCState, metadata={"child": True})


@dataclass(frozen=True)
class MapperState(_FrozenState):
    """Bank-switching registers, opaque to the store.

    `chr` holds the CHR-RAM image for boards without CHR-ROM and is empty
    otherwise.
    """

    mirroring_mode: int = 0
    ints: Tuple[int, ...] = packed("q")
    bools: Tuple[bool, ...] = packed("?")
    uint8s: Tuple[int, ...] = packed("B")
    chr: bytes = memory()


@dataclass(frozen=True)
class SnapshotRecord:
    """One saved console state for one program image.

    `date` is None until the store stamps the record on save.
    """

    fingerprint: str
    cpu_state: CPUState
    apu_state: APUState
    ppu_state: PPUState
    mapper_state: MapperState
    is_auto_save: bool = False
    date: Optional[datetime] = None


@dataclass(frozen=True)
class SnapshotEntry:
    """Metadata of a stored snapshot, as seen by the retention policy.

    `snapshot_id` increases with insertion order within a backend.
    """

    snapshot_id: int
    date: datetime
    is_auto_save: bool
