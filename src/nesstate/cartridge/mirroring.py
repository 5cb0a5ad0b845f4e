from enum import IntEnum


class MirroringMode(IntEnum):
    """Name-table mirroring arrangement; values match the stored byte."""

    HORIZONTAL = 0
    VERTICAL = 1
    SINGLE_SCREEN_0 = 2
    SINGLE_SCREEN_1 = 3
    FOUR_SCREEN = 4
