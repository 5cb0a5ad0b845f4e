import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from nesstate.persistence import (  # noqa: E402
    APUState,
    CPUState,
    DMCState,
    MapperState,
    NoiseState,
    PPUState,
    PulseState,
    SnapshotRecord,
    TriangleState,
)

FINGERPRINT = "0123456789abcdef0123456789abcdef"
T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class StepClock:
    """Deterministic clock: each call returns the next queued timestamp."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step
        self.calls = []

    def __call__(self) -> datetime:
        current = self.now
        self.calls.append(current)
        self.now = current + self.step
        return current

    def at(self, n: int) -> datetime:
        """Timestamp handed out by the n-th call (1-based)."""
        return T0 + self.step * (n - 1)


def make_record(fingerprint: str = FINGERPRINT, is_auto_save: bool = False, marker: int = 0) -> SnapshotRecord:
    """Build a small but fully populated record; `marker` tags it for identification."""
    ram = bytearray(2048)
    ram[0] = marker & 0xFF
    return SnapshotRecord(
        fingerprint=fingerprint,
        is_auto_save=is_auto_save,
        cpu_state=CPUState(
            ram=ram,
            a=0x12,
            x=0x34,
            y=0x56,
            pc=0xC000 + marker,
            sp=0xFD,
            cycles=7 + marker,
            flags=0x24,
            interrupt=0,
            stall=0,
        ),
        ppu_state=PPUState(
            cycle=21,
            scanline=241,
            frame=marker,
            v=0x2000,
            t=0x2400,
            x=3,
            w=True,
            nmi_output=True,
            tile_data=0xFEDCBA9876543210,
            sprite_count=2,
            sprite_patterns=[0xDEADBEEF, 0x01020304],
            sprite_positions=[10, 20],
            sprite_priorities=[0, 1],
            sprite_indexes=[0, 5],
            flag_show_background=True,
            front_buffer=[0xFF0000FF, 0x00FF00FF, 0x0000FFFF],
        ),
        apu_state=APUState(
            cycle=1000 + marker,
            frame_period=4,
            frame_value=2,
            frame_irq=True,
            audio_buffer=[0.5, -0.25, 0.0],
            audio_buffer_index=3,
            pulse1=PulseState(enabled=True, timer_period=0x1AB, duty_mode=2),
            pulse2=PulseState(enabled=False, sweep_enabled=True, sweep_shift=3),
            triangle=TriangleState(enabled=True, counter_period=7, counter_reload=True),
            noise=NoiseState(mode=True, shift_register=1),
            dmc=DMCState(sample_address=0xC000, sample_length=0x11, loop=True),
        ),
        mapper_state=MapperState(
            mirroring_mode=1,
            ints=[0, 1, -1, 2**40],
            bools=[True, False, True],
            uint8s=[0xFF, 0x00, 0x7F],
            chr=bytes(range(16)),
        ),
    )


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()
