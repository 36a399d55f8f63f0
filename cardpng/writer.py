"""
PNG Writer - Serializes chunk lists back into PNG bytes.

Every record gets a freshly computed length and CRC; whatever CRC the
chunk carried when it was read is never reused.
"""

from __future__ import annotations

import struct
from pathlib import Path

from cardpng.checksum import chunk_crc
from cardpng.chunk import PNGChunk
from cardpng.spec import PNG_SIGNATURE


class PNGWriter:
    """
    Chunk list -> PNG bytes.

    Usage:
        data = PNGWriter.serialize(chunks)
        PNGWriter.write(chunks, "out.png")
    """

    @staticmethod
    def serialize(chunks: list[PNGChunk]) -> bytes:
        """Emit signature then each chunk as length, type, data, CRC."""
        parts = [PNG_SIGNATURE]
        for chunk in chunks:
            type_bytes = chunk.type_bytes
            parts.append(struct.pack(">I", len(chunk.data)))
            parts.append(type_bytes)
            parts.append(chunk.data)
            parts.append(struct.pack(">I", chunk_crc(type_bytes, chunk.data)))
        return b"".join(parts)

    @staticmethod
    def serialized_size(chunks: list[PNGChunk]) -> int:
        return len(PNG_SIGNATURE) + sum(chunk.size for chunk in chunks)

    @classmethod
    def write(cls, chunks: list[PNGChunk], path: str | Path) -> int:
        """Write chunks to a file. Returns bytes written."""
        data = cls.serialize(chunks)
        Path(path).write_bytes(data)
        return len(data)
