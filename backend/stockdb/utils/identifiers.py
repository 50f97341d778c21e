from __future__ import annotations

import os
import random
import string
import time
import uuid


def generate_uuid7() -> str:
    """
    Time-ordered UUIDv7 string used for items and movements.

    48-bit millisecond timestamp, 4-bit version, 74 random bits, so ids
    created later sort after earlier ones.
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def _random_block(length: int = 10) -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "".join(random.choices(alphabet, k=length))


def generate_user_id(prefix: str = "USR") -> str:
    """
    Short human-readable id like 'USR-1F2A9C3D0K'.

    Used as a SQLAlchemy column default, which calls it with no arguments.
    """
    block = _random_block()
    if prefix:
        return f"{prefix}-{block}"
    return block
