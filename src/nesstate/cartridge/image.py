from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple, Union

from ..errors import InvalidCartridgeImage
from .fingerprint import fingerprint
from .header import HEADER_SIZE, CartridgeHeader, parse_header

logger = logging.getLogger(__name__)

PRG_BLOCK_SIZE = 16384
CHR_BLOCK_SIZE = 8192
TRAINER_SIZE = 512


@dataclass(frozen=True)
class CartridgeImage:
    """A whole iNES file split into its sections.

    The image is only valid when the header passes its gate and the file size
    is exactly what the header announces; otherwise the block tuples are empty.
    """

    header: CartridgeHeader
    fingerprint: str
    trainer: bytes = b""
    prg_blocks: Tuple[bytes, ...] = field(default_factory=tuple)
    chr_blocks: Tuple[bytes, ...] = field(default_factory=tuple)
    is_valid: bool = False

    @staticmethod
    def expected_size(header: CartridgeHeader) -> int:
        trainer = TRAINER_SIZE if header.has_trainer else 0
        return (
            HEADER_SIZE
            + trainer
            + header.num_prg_blocks * PRG_BLOCK_SIZE
            + header.num_chr_blocks * CHR_BLOCK_SIZE
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "CartridgeImage":
        data = bytes(data)
        header = parse_header(data)
        digest = fingerprint(data)
        if not header.is_valid:
            logger.debug("Image %s has no valid iNES header", digest)
            return cls(header=header, fingerprint=digest)

        expected = cls.expected_size(header)
        if expected != len(data):
            logger.warning(
                "Image %s size mismatch: header announces %d bytes, file has %d",
                digest,
                expected,
                len(data),
            )
            return cls(header=header, fingerprint=digest)

        offset = HEADER_SIZE
        trainer = b""
        if header.has_trainer:
            trainer = data[offset : offset + TRAINER_SIZE]
            offset += TRAINER_SIZE

        prg = []
        for _ in range(header.num_prg_blocks):
            prg.append(data[offset : offset + PRG_BLOCK_SIZE])
            offset += PRG_BLOCK_SIZE

        chr_ = []
        for _ in range(header.num_chr_blocks):
            chr_.append(data[offset : offset + CHR_BLOCK_SIZE])
            offset += CHR_BLOCK_SIZE

        return cls(
            header=header,
            fingerprint=digest,
            trainer=trainer,
            prg_blocks=tuple(prg),
            chr_blocks=tuple(chr_),
            is_valid=True,
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "CartridgeImage":
        """Read and split an image file. I/O errors propagate to the caller."""
        return cls.from_bytes(Path(path).read_bytes())

    def require_valid(self) -> "CartridgeImage":
        if not self.is_valid:
            if not self.header.is_valid:
                raise InvalidCartridgeImage(f"Image {self.fingerprint} has no valid iNES header")
            raise InvalidCartridgeImage(
                f"Image {self.fingerprint} does not match the size its header announces"
            )
        return self
