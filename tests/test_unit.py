"""
Unit Tests - Test individual components in isolation.
"""

import struct
import tempfile
import threading
import zlib
from pathlib import Path

import pytest

from cardpng import checksum
from cardpng.checksum import chunk_crc, crc32, crc_table
from cardpng.chunk import PNGChunk
from cardpng.reader import PNGReader
from cardpng.spec import (
    CARD_SPEC,
    CARD_SPEC_VERSION,
    CHARACTER_KEYWORD,
    CHUNK_IEND,
    CHUNK_TEXT,
    PNG_SIGNATURE,
    REQUIRED_CARD_FIELDS,
)
from cardpng.writer import PNGWriter


# =============================================================================
# Spec constants
# =============================================================================

class TestSpec:

    def test_signature(self):
        assert PNG_SIGNATURE == bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A])

    def test_chunk_tags(self):
        assert CHUNK_IEND == "IEND"
        assert CHUNK_TEXT == "tEXt"

    def test_keyword(self):
        assert CHARACTER_KEYWORD == "chara"

    def test_envelope_version(self):
        assert CARD_SPEC == "chara_card_v3"
        assert CARD_SPEC_VERSION == "3.0"

    def test_required_fields(self):
        assert "name" in REQUIRED_CARD_FIELDS
        assert "first_mes" in REQUIRED_CARD_FIELDS
        assert "mes_example" in REQUIRED_CARD_FIELDS


# =============================================================================
# Checksum
# =============================================================================

class TestChecksum:

    def test_empty(self):
        assert crc32(b"") == 0

    def test_known_value(self):
        assert crc32(b"123456789") == 0xCBF43926

    def test_iend_crc(self):
        # Every PNG ends with AE 42 60 82
        assert chunk_crc(b"IEND", b"") == 0xAE426082

    @pytest.mark.parametrize("data", [b"a", b"\x00" * 17, bytes(range(256)), b"tEXtchara\x00abc"])
    def test_matches_zlib(self, data):
        assert crc32(data) == zlib.crc32(data) & 0xFFFFFFFF

    def test_table_is_immutable_and_cached(self):
        table = crc_table()
        assert isinstance(table, tuple)
        assert len(table) == 256
        assert crc_table() is table

    def test_concurrent_first_use(self, monkeypatch):
        monkeypatch.setattr(checksum, "_table", None)
        results = []

        def work():
            results.append((crc_table(), crc32(b"concurrent")))

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        tables = {id(table) for table, _ in results}
        assert len(tables) == 1
        assert {value for _, value in results} == {zlib.crc32(b"concurrent") & 0xFFFFFFFF}


# =============================================================================
# PNGChunk
# =============================================================================

class TestPNGChunk:

    def test_create_chunk(self):
        c = PNGChunk("tEXt", b"abc")
        assert c.type == "tEXt"
        assert c.data == b"abc"
        assert c.length == 3
        assert c.size == 15

    def test_default_data(self):
        c = PNGChunk("IEND")
        assert c.data == b""
        assert c.size == 12

    def test_type_bytes(self):
        assert PNGChunk("IHDR").type_bytes == b"IHDR"

    def test_rejects_bad_type(self):
        with pytest.raises(ValueError, match="Invalid chunk type"):
            PNGChunk("TXT").type_bytes

    def test_repr(self):
        r = repr(PNGChunk("IDAT", b"xx"))
        assert "IDAT" in r
        assert "2" in r


# =============================================================================
# PNGReader
# =============================================================================

class TestReader:

    def test_decode_minimal(self, png_bytes):
        chunks = PNGReader.decode(png_bytes)
        assert [c.type for c in chunks] == ["IHDR", "IDAT", "IEND"]
        assert chunks[0].length == 13
        assert chunks[-1].data == b""

    def test_bad_signature(self, png_bytes):
        assert PNGReader.decode(b"GIF89a" + png_bytes[6:]) == []

    def test_empty_input(self):
        assert PNGReader.decode(b"") == []

    def test_signature_only(self):
        assert PNGReader.decode(PNG_SIGNATURE) == []

    def test_stops_at_iend(self, make_png):
        data = make_png(trailing=b"garbage after the end" * 3)
        chunks = PNGReader.decode(data)
        assert chunks[-1].type == "IEND"
        assert len(chunks) == 3

    def test_truncated_chunk(self, png_bytes):
        # Cut inside IEND's CRC
        chunks = PNGReader.decode(png_bytes[:-2])
        assert [c.type for c in chunks] == ["IHDR", "IDAT"]

    def test_huge_declared_length(self, record):
        data = PNG_SIGNATURE + record(b"IHDR", b"x" * 13) + struct.pack(">I4s", 0xFFFFFFF0, b"IDAT")
        chunks = PNGReader.decode(data)
        assert [c.type for c in chunks] == ["IHDR"]

    def test_missing_iend(self, make_png):
        chunks = PNGReader.decode(make_png(include_iend=False))
        assert [c.type for c in chunks] == ["IHDR", "IDAT"]

    def test_is_png_bytes(self, png_bytes):
        assert PNGReader.is_png_bytes(png_bytes)
        assert not PNGReader.is_png_bytes(b"not a png")

    def test_is_png_file(self, png_bytes):
        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            f.write(png_bytes)
            path = f.name
        assert PNGReader.is_png(path)
        Path(path).unlink()

    def test_read_file(self, png_bytes):
        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            f.write(png_bytes)
            path = f.name
        chunks = PNGReader.read(path)
        assert len(chunks) == 3
        Path(path).unlink()

    def test_file_size_limit_enforced(self, png_bytes):
        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            f.write(png_bytes)
            path = f.name
        with pytest.raises(ValueError, match="exceeds maximum"):
            PNGReader.read(path, max_size=10)
        Path(path).unlink()


class TestCrcPolicy:

    def _corrupt_idat_crc(self, data):
        chunks_end = 8 + 12 + 13  # signature + IHDR record
        length = struct.unpack(">I", data[chunks_end:chunks_end + 4])[0]
        crc_at = chunks_end + 8 + length
        corrupted = bytearray(data)
        corrupted[crc_at] ^= 0xFF
        return bytes(corrupted)

    def test_lenient_by_default(self, png_bytes):
        data = self._corrupt_idat_crc(png_bytes)
        assert len(PNGReader.decode(data)) == 3

    def test_strict_rejects_mismatch(self, png_bytes):
        data = self._corrupt_idat_crc(png_bytes)
        assert PNGReader.decode(data, verify_crc=True) == []

    def test_strict_accepts_valid(self, png_bytes):
        assert len(PNGReader.decode(png_bytes, verify_crc=True)) == 3

    def test_bad_checksums_report(self, png_bytes):
        assert PNGReader.bad_checksums(png_bytes) == []
        assert PNGReader.bad_checksums(self._corrupt_idat_crc(png_bytes)) == [1]


# =============================================================================
# PNGWriter
# =============================================================================

class TestWriter:

    def test_reproduces_input(self, png_bytes):
        assert PNGWriter.serialize(PNGReader.decode(png_bytes)) == png_bytes

    def test_drops_trailing_bytes(self, make_png, png_bytes):
        chunks = PNGReader.decode(make_png(trailing=b"tail"))
        assert PNGWriter.serialize(chunks) == png_bytes

    def test_total_length(self):
        chunks = [PNGChunk("IHDR", b"x" * 13), PNGChunk("tEXt", b"k\x00v"), PNGChunk("IEND")]
        out = PNGWriter.serialize(chunks)
        assert len(out) == 8 + (12 + 13) + (12 + 3) + 12
        assert PNGWriter.serialized_size(chunks) == len(out)

    def test_record_layout_and_crc(self):
        out = PNGWriter.serialize([PNGChunk("tEXt", b"abc")])
        assert out[:8] == PNG_SIGNATURE
        assert struct.unpack(">I", out[8:12])[0] == 3
        assert out[12:16] == b"tEXt"
        assert out[16:19] == b"abc"
        assert struct.unpack(">I", out[19:23])[0] == zlib.crc32(b"tEXtabc") & 0xFFFFFFFF

    def test_recomputes_stale_crc(self, png_bytes):
        corrupted = bytearray(png_bytes)
        corrupted[-1] ^= 0xFF
        assert PNGWriter.serialize(PNGReader.decode(bytes(corrupted))) == png_bytes

    def test_does_not_mutate_input(self):
        chunks = [PNGChunk("IEND")]
        PNGWriter.serialize(chunks)
        assert chunks == [PNGChunk("IEND")]

    def test_rejects_bad_type(self):
        with pytest.raises(ValueError, match="Invalid chunk type"):
            PNGWriter.serialize([PNGChunk("TOOLONG")])

    def test_write_file(self, png_bytes):
        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            path = f.name
        written = PNGWriter.write(PNGReader.decode(png_bytes), path)
        assert written == len(png_bytes)
        assert Path(path).read_bytes() == png_bytes
        Path(path).unlink()
