"""
Shared fixtures: tiny PNGs built with zlib/struct, independent of cardpng.
"""

import base64
import json
import struct
import zlib

import pytest

SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _record(chunk_type: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + chunk_type + data + struct.pack(">I", crc)


def _build(extra_before_iend=(), include_iend=True, trailing=b"") -> bytes:
    ihdr = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)  # 1x1 RGB
    idat = zlib.compress(b"\x00\xff\x00\x00")
    out = SIGNATURE + _record(b"IHDR", ihdr) + _record(b"IDAT", idat)
    for chunk_type, data in extra_before_iend:
        out += _record(chunk_type, data)
    if include_iend:
        out += _record(b"IEND", b"")
    return out + trailing


@pytest.fixture
def record():
    """Serialize one chunk record: record(b"tEXt", b"...")."""
    return _record


@pytest.fixture
def make_png():
    """Factory: make_png(extra_before_iend=[(type, data)], include_iend=True, trailing=b"")."""
    return _build


@pytest.fixture
def png_bytes():
    return _build()


@pytest.fixture
def chara_text():
    """Factory: raw tEXt data for keyword 'chara' holding obj as base64 JSON."""
    def _make(obj, keyword=b"chara"):
        encoded = base64.b64encode(json.dumps(obj).encode("utf-8"))
        return keyword + b"\x00" + encoded
    return _make


@pytest.fixture
def aria():
    return {
        "name": "Aria",
        "description": "A wandering bard.",
        "personality": "Cheerful, curious",
        "scenario": "A tavern at dusk.",
        "first_mes": "Oh! A new face. Care for a song?",
        "mes_example": "<START>\n{{char}}: La la la.",
        "creator_notes": "",
        "system_prompt": "",
        "post_history_instructions": "",
        "creator": "tester",
        "character_version": "1.0",
        "tags": ["fantasy", "music"],
    }
