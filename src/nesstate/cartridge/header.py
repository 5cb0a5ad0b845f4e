"""iNES cartridge header parsing.

The first 16 bytes of an iNES image describe how the rest of the file is laid
out::

    0-3   "NES" followed by 0x1A
    4     PRG-ROM size in 16 KiB units
    5     CHR-ROM size in 8 KiB units (0: the board uses CHR-RAM)
    6     flags 6: mirroring, battery, trainer, four-screen, mapper low nibble
    7     flags 7: mapper high nibble in bits 4-7
    8-15  ignored here

Parsing never raises. A header that fails the size/magic gate comes back as
`CartridgeHeader.invalid()`, with every field at its default.
"""
from __future__ import annotations

from dataclasses import dataclass

from .mappers import MapperIdentifier
from .mirroring import MirroringMode

HEADER_SIZE = 16
MAGIC = b"NES\x1a"

_FLAG6_VERTICAL = 0x01
_FLAG6_BATTERY = 0x02
_FLAG6_TRAINER = 0x04
_FLAG6_FOUR_SCREEN = 0x08


@dataclass(frozen=True)
class CartridgeHeader:
    num_prg_blocks: int = 0
    num_chr_blocks: int = 0
    mapper: MapperIdentifier = MapperIdentifier.NROM
    mapper_number: int = 0
    mirroring_mode: MirroringMode = MirroringMode.HORIZONTAL
    has_trainer: bool = False
    has_battery: bool = False
    is_valid: bool = False

    @classmethod
    def invalid(cls) -> "CartridgeHeader":
        return cls()

    @property
    def uses_chr_ram(self) -> bool:
        """True when the board has no CHR-ROM and renders from writable CHR-RAM."""
        return self.is_valid and self.num_chr_blocks == 0

    @property
    def is_mapper_recognized(self) -> bool:
        return self.is_valid and MapperIdentifier.is_known(self.mapper_number)


def parse_header(data: bytes) -> CartridgeHeader:
    """Parse the 16-byte iNES header at the start of `data`."""
    raw = bytes(data[:HEADER_SIZE])
    if len(raw) < HEADER_SIZE or raw[:4] != MAGIC:
        return CartridgeHeader.invalid()

    flags6 = raw[6]
    flags7 = raw[7]

    mapper_number = (flags6 >> 4) | ((flags7 >> 4) << 4)

    # four-screen overrides the vertical bit
    if flags6 & _FLAG6_FOUR_SCREEN:
        mirroring = MirroringMode.FOUR_SCREEN
    elif flags6 & _FLAG6_VERTICAL:
        mirroring = MirroringMode.VERTICAL
    else:
        mirroring = MirroringMode.HORIZONTAL

    return CartridgeHeader(
        num_prg_blocks=raw[4],
        num_chr_blocks=raw[5],
        mapper=MapperIdentifier.from_number(mapper_number),
        mapper_number=mapper_number,
        mirroring_mode=mirroring,
        has_trainer=bool(flags6 & _FLAG6_TRAINER),
        has_battery=bool(flags6 & _FLAG6_BATTERY),
        is_valid=True,
    )
