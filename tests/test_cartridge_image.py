import pytest

from nesstate.cartridge import (
    CHR_BLOCK_SIZE,
    PRG_BLOCK_SIZE,
    TRAINER_SIZE,
    CartridgeImage,
    fingerprint,
)
from nesstate.errors import InvalidCartridgeImage


def build_rom(prg=2, chr_=1, trainer=False) -> bytes:
    flags6 = 0x04 if trainer else 0x00
    header = b"NES\x1a" + bytes([prg, chr_, flags6, 0]) + bytes(8)
    body = b""
    if trainer:
        body += b"\x77" * TRAINER_SIZE
    for i in range(prg):
        body += bytes([0x10 + i]) * PRG_BLOCK_SIZE
    for i in range(chr_):
        body += bytes([0x80 + i]) * CHR_BLOCK_SIZE
    return header + body


def test_split_sections():
    data = build_rom(prg=2, chr_=1)
    image = CartridgeImage.from_bytes(data)
    assert image.is_valid
    assert image.fingerprint == fingerprint(data)
    assert image.trainer == b""
    assert [b[0] for b in image.prg_blocks] == [0x10, 0x11]
    assert all(len(b) == PRG_BLOCK_SIZE for b in image.prg_blocks)
    assert [b[0] for b in image.chr_blocks] == [0x80]


def test_trainer_precedes_prg():
    image = CartridgeImage.from_bytes(build_rom(prg=1, chr_=0, trainer=True))
    assert image.is_valid
    assert image.trainer == b"\x77" * TRAINER_SIZE
    assert image.prg_blocks[0][0] == 0x10
    assert image.chr_blocks == ()
    assert image.header.uses_chr_ram


def test_size_mismatch_is_invalid():
    data = build_rom(prg=1, chr_=1) + b"\x00"
    image = CartridgeImage.from_bytes(data)
    assert image.header.is_valid
    assert not image.is_valid
    assert image.prg_blocks == ()
    with pytest.raises(InvalidCartridgeImage):
        image.require_valid()


def test_garbage_is_invalid_but_still_fingerprinted():
    image = CartridgeImage.from_bytes(b"not a rom")
    assert not image.is_valid
    assert not image.header.is_valid
    assert image.fingerprint == fingerprint(b"not a rom")
    with pytest.raises(InvalidCartridgeImage):
        image.require_valid()


def test_load_from_path(tmp_path):
    path = tmp_path / "game.nes"
    path.write_bytes(build_rom(prg=1, chr_=1))
    image = CartridgeImage.load(path).require_valid()
    assert image.header.num_prg_blocks == 1


def test_renamed_file_keeps_fingerprint(tmp_path):
    data = build_rom(prg=1, chr_=1)
    a = tmp_path / "a.nes"
    b = tmp_path / "nested" / "renamed.nes"
    b.parent.mkdir()
    a.write_bytes(data)
    b.write_bytes(data)
    assert CartridgeImage.load(a).fingerprint == CartridgeImage.load(b).fingerprint
