"""PNG chunk record."""

from __future__ import annotations

from dataclasses import dataclass

from cardpng.spec import CHUNK_OVERHEAD


@dataclass(frozen=True)
class PNGChunk:
    """A single chunk: 4-character tag plus raw payload bytes."""

    type: str
    data: bytes = b""

    @property
    def length(self) -> int:
        return len(self.data)

    @property
    def size(self) -> int:
        """Bytes this chunk occupies on the wire."""
        return CHUNK_OVERHEAD + len(self.data)

    @property
    def type_bytes(self) -> bytes:
        # latin-1 so any tag the reader produced is written back byte for byte
        try:
            encoded = self.type.encode("latin-1")
        except UnicodeEncodeError:
            encoded = b""
        if len(encoded) != 4:
            raise ValueError(f"Invalid chunk type {self.type!r}: must be exactly 4 single-byte characters")
        return encoded

    def __repr__(self) -> str:
        return f"PNGChunk(type={self.type!r}, length={len(self.data)})"
