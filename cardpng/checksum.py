"""
CRC-32 for PNG chunk records.

Table-driven, polynomial 0xEDB88320 (reflected), register starts at all-ones
and the result is complemented. The 256-entry table is built on first use,
exactly once, and then shared read-only.
"""

from __future__ import annotations

import threading

POLYNOMIAL = 0xEDB88320

_table: tuple[int, ...] | None = None
_table_lock = threading.Lock()


def _build_table() -> tuple[int, ...]:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            if c & 1:
                c = POLYNOMIAL ^ (c >> 1)
            else:
                c >>= 1
        table.append(c)
    return tuple(table)


def crc_table() -> tuple[int, ...]:
    """Return the lookup table, building it on first call."""
    global _table
    if _table is None:
        with _table_lock:
            if _table is None:
                _table = _build_table()
    return _table


def crc32(data: bytes) -> int:
    """CRC-32 of data as an unsigned 32-bit integer."""
    table = crc_table()
    crc = 0xFFFFFFFF
    for byte in data:
        crc = (crc >> 8) ^ table[(crc ^ byte) & 0xFF]
    return crc ^ 0xFFFFFFFF


def chunk_crc(chunk_type: bytes, data: bytes) -> int:
    """CRC stored after a chunk: computed over type + data."""
    return crc32(chunk_type + data)
