"""
nesstate package root.

Cartridge header parsing and fingerprinting live in `nesstate.cartridge`;
console snapshots and their retention-capped store live in
`nesstate.persistence`.
"""

__version__ = "0.1.0"

__all__ = [
    "cartridge",
    "persistence",
]
