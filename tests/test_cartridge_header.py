import pytest

from nesstate.cartridge import CartridgeHeader, MapperIdentifier, MirroringMode, parse_header


def make_header(prg=2, chr_=1, flags6=0x00, flags7=0x00) -> bytes:
    return b"NES\x1a" + bytes([prg, chr_, flags6, flags7]) + bytes(8)


def assert_all_default(header: CartridgeHeader) -> None:
    assert header.is_valid is False
    assert header.num_prg_blocks == 0
    assert header.num_chr_blocks == 0
    assert header.mapper == MapperIdentifier.NROM
    assert header.mapper_number == 0
    assert header.mirroring_mode == MirroringMode.HORIZONTAL
    assert header.has_trainer is False
    assert header.has_battery is False


@pytest.mark.parametrize("length", range(0, 16))
def test_short_input_is_invalid(length):
    data = make_header(flags6=0xFF, flags7=0xFF)[:length]
    assert_all_default(parse_header(data))


@pytest.mark.parametrize(
    "magic",
    [b"NES\x00", b"nes\x1a", b"NEZ\x1a", b"\x1aSEN", b"UNIF"],
)
def test_bad_magic_is_invalid(magic):
    data = magic + bytes([4, 2, 0xFF, 0xFF]) + bytes(8)
    assert_all_default(parse_header(data))


def test_invalid_header_equals_factory_default():
    assert parse_header(b"") == CartridgeHeader.invalid()


def test_basic_fields():
    header = parse_header(make_header(prg=8, chr_=0, flags6=0x02 | 0x04))
    assert header.is_valid
    assert header.num_prg_blocks == 8
    assert header.num_chr_blocks == 0
    assert header.uses_chr_ram
    assert header.has_battery
    assert header.has_trainer
    assert header.mirroring_mode == MirroringMode.HORIZONTAL


def test_trailing_bytes_are_ignored():
    data = make_header(prg=1, chr_=1, flags6=0x01) + b"\xAA" * 100
    header = parse_header(data)
    assert header.is_valid
    assert header.mirroring_mode == MirroringMode.VERTICAL


def test_vertical_mirroring():
    assert parse_header(make_header(flags6=0x01)).mirroring_mode == MirroringMode.VERTICAL


@pytest.mark.parametrize("vertical", [0x00, 0x01])
def test_four_screen_wins_over_vertical(vertical):
    header = parse_header(make_header(flags6=0x08 | vertical))
    assert header.mirroring_mode == MirroringMode.FOUR_SCREEN


def test_mapper_nibbles_for_every_number():
    for number in range(256):
        low, high = number & 0x0F, number >> 4
        header = parse_header(make_header(flags6=low << 4, flags7=high << 4))
        assert header.mapper_number == (low | (high << 4))
        if number < 150:
            assert header.mapper == MapperIdentifier(number)
            assert header.is_mapper_recognized
        else:
            assert header.mapper == MapperIdentifier.default()
            assert not header.is_mapper_recognized


def test_low_bits_of_flags7_do_not_leak_into_mapper():
    header = parse_header(make_header(flags6=0x10, flags7=0x0F))
    assert header.mapper_number == 1
    assert header.mapper == MapperIdentifier.MMC1


def test_flag_bits_do_not_leak_into_mapper():
    header = parse_header(make_header(flags6=0x0F))
    assert header.mapper_number == 0
    assert header.has_battery and header.has_trainer


def test_accepts_bytearray_and_memoryview():
    raw = make_header(prg=1, chr_=1, flags6=0x40)
    assert parse_header(bytearray(raw)).mapper == MapperIdentifier.MMC3
    assert parse_header(memoryview(raw)).mapper == MapperIdentifier.MMC3


def test_header_is_immutable():
    header = parse_header(make_header())
    with pytest.raises(AttributeError):
        header.num_prg_blocks = 4


def test_mapper_catalogue_flags():
    assert MapperIdentifier.MMC1.is_supported
    assert not MapperIdentifier.VRC6A.is_supported
    assert MapperIdentifier.VRC6A.has_expansion_audio
    assert MapperIdentifier.MMC5.is_supported and MapperIdentifier.MMC5.has_expansion_audio
    assert MapperIdentifier.from_number(255) == MapperIdentifier.NROM
    assert MapperIdentifier.from_number(66) == MapperIdentifier.GXROM
