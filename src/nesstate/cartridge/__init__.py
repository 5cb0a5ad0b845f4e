"""Cartridge image inspection: iNES header, content fingerprint, section split."""

from .fingerprint import fingerprint
from .header import HEADER_SIZE, MAGIC, CartridgeHeader, parse_header
from .image import CHR_BLOCK_SIZE, PRG_BLOCK_SIZE, TRAINER_SIZE, CartridgeImage
from .mappers import MapperIdentifier
from .mirroring import MirroringMode

__all__ = [
    "HEADER_SIZE",
    "MAGIC",
    "PRG_BLOCK_SIZE",
    "CHR_BLOCK_SIZE",
    "TRAINER_SIZE",
    "CartridgeHeader",
    "CartridgeImage",
    "MapperIdentifier",
    "MirroringMode",
    "fingerprint",
    "parse_header",
]
