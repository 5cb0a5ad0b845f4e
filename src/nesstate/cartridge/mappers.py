from __future__ import annotations

from enum import IntEnum


class MapperIdentifier(IntEnum):
    """iNES mapper numbers 0-149.

    See https://wiki.nesdev.com/w/index.php/List_of_mappers. Numbers without a
    well-known board name are kept as MAPPER_NNN so every value in range
    round-trips through the enum.
    """

    NROM = 0
    MMC1 = 1
    UXROM = 2
    CNROM = 3
    MMC3 = 4
    MMC5 = 5
    FFE_F4XXX = 6
    AXROM = 7
    MAPPER_008 = 8
    MMC2 = 9
    MMC4 = 10
    COLOR_DREAMS = 11
    MAPPER_012 = 12
    CPROM = 13
    MAPPER_014 = 14
    MULTI_100_IN_1_CONTRA_FUNCTION_16 = 15
    BANDAI_EPROM = 16
    MAPPER_017 = 17
    JALECO_SS8806 = 18
    NAMCO_163 = 19
    MAPPER_020 = 20
    VRC4A_VRC4C = 21
    VRC2A = 22
    VRC2B_VRC4E = 23
    VRC6A = 24
    VRC4B_VRC4D = 25
    VRC6B = 26
    MAPPER_027 = 27
    ACTION_53 = 28
    MAPPER_029 = 29
    UNROM_512 = 30
    MAPPER_031 = 31
    IREM_G101 = 32
    TC0190_TC0350 = 33
    BNROM_NINA001 = 34
    MAPPER_035 = 35
    TXC_01_22000_400 = 36
    MAPPER_037 = 37
    UNL_PCI556 = 38
    MAPPER_039 = 39
    NTDEC_2722 = 40
    MAPPER_041 = 41
    MAPPER_042 = 42
    MAPPER_043 = 43
    MAPPER_044 = 44
    MAPPER_045 = 45
    MAPPER_046 = 46
    MAPPER_047 = 47
    MAPPER_048 = 48
    MAPPER_049 = 49
    MAPPER_050 = 50
    MAPPER_051 = 51
    MAPPER_052 = 52
    MAPPER_053 = 53
    MAPPER_054 = 54
    MAPPER_055 = 55
    MAPPER_056 = 56
    MAPPER_057 = 57
    MAPPER_058 = 58
    MAPPER_059 = 59
    MAPPER_060 = 60
    MAPPER_061 = 61
    MAPPER_062 = 62
    MAPPER_063 = 63
    RAMBO1 = 64
    IREM_H3001 = 65
    GXROM = 66
    MAPPER_067 = 67
    MAPPER_068 = 68
    SUNSOFT_5 = 69
    MAPPER_070 = 70
    CAMERICA = 71
    MAPPER_072 = 72
    MAPPER_073 = 73
    MAPPER_074 = 74
    MAPPER_075 = 75
    MAPPER_076 = 76
    MAPPER_077 = 77
    MAPPER_078 = 78
    MAPPER_079 = 79
    MAPPER_080 = 80
    MAPPER_081 = 81
    TAITO_X117 = 82
    MAPPER_083 = 83
    MAPPER_084 = 84
    MAPPER_085 = 85
    MAPPER_086 = 86
    MAPPER_087 = 87
    NAMCO_118 = 88
    MAPPER_089 = 89
    MAPPER_090 = 90
    MAPPER_091 = 91
    MAPPER_092 = 92
    MAPPER_093 = 93
    MAPPER_094 = 94
    NAMCO_1XX = 95
    MAPPER_096 = 96
    IREM_74161_32 = 97
    MAPPER_098 = 98
    MAPPER_099 = 99
    MAPPER_100 = 100
    MAPPER_101 = 101
    MAPPER_102 = 102
    MAPPER_103 = 103
    MAPPER_104 = 104
    MAPPER_105 = 105
    MAPPER_106 = 106
    MAPPER_107 = 107
    MAPPER_108 = 108
    MAPPER_109 = 109
    MAPPER_110 = 110
    MAPPER_111 = 111
    MAPPER_112 = 112
    MAPPER_113 = 113
    MAPPER_114 = 114
    MAPPER_115 = 115
    MAPPER_116 = 116
    MAPPER_117 = 117
    MAPPER_118 = 118
    TQROM = 119
    MAPPER_120 = 120
    MAPPER_121 = 121
    MAPPER_122 = 122
    MAPPER_123 = 123
    MAPPER_124 = 124
    MAPPER_125 = 125
    MAPPER_126 = 126
    MAPPER_127 = 127
    MAPPER_128 = 128
    MAPPER_129 = 129
    MAPPER_130 = 130
    MAPPER_131 = 131
    MAPPER_132 = 132
    MAPPER_133 = 133
    MAPPER_134 = 134
    MAPPER_135 = 135
    MAPPER_136 = 136
    MAPPER_137 = 137
    MAPPER_138 = 138
    MAPPER_139 = 139
    MAPPER_140 = 140
    MAPPER_141 = 141
    MAPPER_142 = 142
    MAPPER_143 = 143
    MAPPER_144 = 144
    MAPPER_145 = 145
    MAPPER_146 = 146
    MAPPER_147 = 147
    MAPPER_148 = 148
    MAPPER_149 = 149

    @classmethod
    def default(cls) -> "MapperIdentifier":
        return cls.NROM

    @classmethod
    def from_number(cls, number: int) -> "MapperIdentifier":
        """Resolve a raw mapper number, falling back to `default()` when unknown."""
        try:
            return cls(number)
        except ValueError:
            return cls.default()

    @classmethod
    def is_known(cls, number: int) -> bool:
        return number in cls._value2member_map_

    @property
    def is_supported(self) -> bool:
        return self in _SUPPORTED

    @property
    def has_expansion_audio(self) -> bool:
        return self in _EXPANSION_AUDIO


_SUPPORTED = frozenset(
    {
        MapperIdentifier.NROM,
        MapperIdentifier.UXROM,
        MapperIdentifier.MMC1,
        MapperIdentifier.CNROM,
        MapperIdentifier.MMC3,
        MapperIdentifier.AXROM,
        MapperIdentifier.MMC2,
        MapperIdentifier.COLOR_DREAMS,
        MapperIdentifier.GXROM,
        MapperIdentifier.MMC5,
    }
)

_EXPANSION_AUDIO = frozenset(
    {
        MapperIdentifier.NAMCO_163,
        MapperIdentifier.VRC6A,
        MapperIdentifier.VRC6B,
        MapperIdentifier.MMC5,
    }
)
