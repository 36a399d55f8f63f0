"""
PNG Reader - Chunk-level parser for PNG byte streams.

Speed features:
  - Signature check on the first 8 bytes (instant file identification)
  - No image decoding: chunks are sliced out by their length prefix
  - Stops at IEND, never looks at trailing bytes

Failure is signalled by an empty chunk list, never by an exception, so a
caller can treat "not a PNG" and "corrupted PNG" the same way.
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path

from cardpng.checksum import chunk_crc
from cardpng.chunk import PNGChunk
from cardpng.spec import CHUNK_IEND, MAX_FILE_SIZE, PNG_SIGNATURE, VERIFY_CRC

logger = logging.getLogger(__name__)

_HEADER = struct.Struct(">I4s")
_CRC = struct.Struct(">I")


class PNGReader:
    """
    PNG chunk reader.

    Usage:
        # From memory
        chunks = PNGReader.decode(data)

        # From disk
        chunks = PNGReader.read("card.png")

        # Strict mode: any CRC mismatch rejects the whole buffer
        chunks = PNGReader.decode(data, verify_crc=True)
    """

    @staticmethod
    def is_png(path: str | Path) -> bool:
        """Fast check if a file is a PNG. Reads only the signature."""
        with open(path, "rb") as f:
            head = f.read(len(PNG_SIGNATURE))
        return head == PNG_SIGNATURE

    @staticmethod
    def is_png_bytes(data: bytes) -> bool:
        """Fast check if bytes start with the PNG signature."""
        return data[:len(PNG_SIGNATURE)] == PNG_SIGNATURE

    @classmethod
    def read(
        cls,
        path: str | Path,
        max_size: int = MAX_FILE_SIZE,
        verify_crc: bool = VERIFY_CRC,
    ) -> list[PNGChunk]:
        """Read a PNG file from disk and decode its chunks."""
        data = cls.load(path, max_size=max_size)
        return cls.decode(data, verify_crc=verify_crc)

    @staticmethod
    def load(path: str | Path, max_size: int = MAX_FILE_SIZE) -> bytes:
        """Read raw file bytes, refusing anything over max_size."""
        path = Path(path)
        size = path.stat().st_size
        if size > max_size:
            raise ValueError(f"File size {size} exceeds maximum of {max_size} bytes: {path}")
        return path.read_bytes()

    @classmethod
    def decode(cls, data: bytes, verify_crc: bool = VERIFY_CRC) -> list[PNGChunk]:
        """
        Parse bytes into an ordered list of chunks.

        Returns [] if the signature does not match, or if verify_crc is set
        and any record's stored CRC disagrees with its contents.
        """
        if not cls.is_png_bytes(data):
            logger.debug("Not a PNG: signature mismatch")
            return []

        chunks: list[PNGChunk] = []
        for chunk, raw_type, stored_crc in cls._iter_records(data):
            if verify_crc and stored_crc != chunk_crc(raw_type, chunk.data):
                logger.warning("CRC mismatch in %s chunk #%d, rejecting PNG", chunk.type, len(chunks))
                return []
            chunks.append(chunk)
        return chunks

    @classmethod
    def bad_checksums(cls, data: bytes) -> list[int]:
        """Indexes of chunks whose stored CRC does not match type + data."""
        if not cls.is_png_bytes(data):
            return []
        bad = []
        for i, (chunk, raw_type, stored_crc) in enumerate(cls._iter_records(data)):
            if stored_crc != chunk_crc(raw_type, chunk.data):
                bad.append(i)
        return bad

    @staticmethod
    def _iter_records(data: bytes):
        """Yield (chunk, raw type bytes, stored CRC) up to and including IEND."""
        offset = len(PNG_SIGNATURE)
        total = len(data)

        while offset + _HEADER.size <= total:
            length, raw_type = _HEADER.unpack_from(data, offset)
            body_start = offset + _HEADER.size
            body_end = body_start + length
            if body_end + _CRC.size > total:
                logger.debug("Truncated chunk at offset %d (declared length %d)", offset, length)
                return

            chunk_type = raw_type.decode("latin-1")
            (stored_crc,) = _CRC.unpack_from(data, body_end)
            yield PNGChunk(chunk_type, bytes(data[body_start:body_end])), raw_type, stored_crc

            if chunk_type == CHUNK_IEND:
                return
            offset = body_end + _CRC.size
