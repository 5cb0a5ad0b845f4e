from __future__ import annotations

import hashlib


def fingerprint(data: bytes) -> str:
    """Return the content identity of a program image.

    Lowercase hex MD5 of the whole byte sequence, header included. Renaming or
    moving the file does not change it; any byte change does.
    """
    return hashlib.md5(bytes(data), usedforsecurity=False).hexdigest()
