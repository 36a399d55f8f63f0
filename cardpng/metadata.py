"""
Metadata codec - Character cards inside tEXt chunks.

A tEXt chunk is `keyword NUL text`, both single-byte text. The card goes in
as base64 of the UTF-8 JSON envelope, so the text part is pure ASCII no
matter what the card contains.

Reading accepts every shape seen in the wild:
  - {"spec": "chara_card_v2"|"chara_card_v3", "spec_version": ..., "data": {...}}
  - a bare card object with no envelope (v1 cards)
  - tags as a list or as one comma-separated string
"""

from __future__ import annotations

import base64
import json
import logging
import re
from typing import Any

from cardpng.chunk import PNGChunk
from cardpng.spec import (
    CARD_SPEC,
    CARD_SPEC_PREFIX,
    CARD_SPEC_VERSION,
    CHARACTER_KEYWORD,
    CHUNK_TEXT,
    FALLBACK_ON_BAD_PAYLOAD,
)

logger = logging.getLogger(__name__)

# ASCII whitespace only (tab, LF, FF, CR, space); latin-1 \xa0 stays an error
_BASE64_WHITESPACE = re.compile(r"[\t\n\f\r ]+")


class PayloadError(ValueError):
    """A matching tEXt chunk whose value is not a decodable card."""


# =============================================================================
# Envelope
# =============================================================================

def wrap_envelope(payload: dict[str, Any]) -> dict[str, Any]:
    return {"spec": CARD_SPEC, "spec_version": CARD_SPEC_VERSION, "data": payload}


def unwrap_envelope(parsed: dict[str, Any]) -> dict[str, Any]:
    """
    Return the card inside an envelope, or the object itself if it has none.
    Raises PayloadError for an envelope whose data is missing.
    """
    spec = parsed.get("spec")
    if isinstance(spec, str) and spec.startswith(CARD_SPEC_PREFIX):
        data = parsed.get("data")
        if not isinstance(data, dict):
            raise PayloadError(f"{spec} envelope has no data object")
        return data
    return parsed


def normalize_tags(payload: dict[str, Any]) -> dict[str, Any]:
    """Copy of payload with tags coerced to a list of strings."""
    tags = payload.get("tags")
    if isinstance(tags, str):
        tags = [tag.strip() for tag in tags.split(",")]
    elif not isinstance(tags, list):
        tags = []
    normalized = dict(payload)
    normalized["tags"] = tags
    return normalized


# =============================================================================
# tEXt chunks
# =============================================================================

def read_text_chunk(chunk: PNGChunk) -> tuple[str, str] | None:
    """Split a tEXt chunk into (keyword, text). None for other chunk types."""
    if chunk.type != CHUNK_TEXT:
        return None
    text = chunk.data.decode("latin-1")
    keyword, sep, value = text.partition("\x00")
    if not sep:
        # No separator: no keyword, the whole chunk is text
        return "", text
    return keyword, value


def has_keyword(chunk: PNGChunk, keyword: str = CHARACTER_KEYWORD) -> bool:
    parsed = read_text_chunk(chunk)
    return parsed is not None and parsed[0] == keyword


def encode_payload(payload: dict[str, Any]) -> str:
    """Card -> base64 text of the UTF-8 JSON envelope."""
    raw = json.dumps(wrap_envelope(payload), ensure_ascii=False).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_payload(value: str) -> dict[str, Any]:
    """base64 text -> card. Raises PayloadError on any malformed layer."""
    # Some writers wrap lines or strip the trailing '=' padding
    compact = _BASE64_WHITESPACE.sub("", value)
    padded = compact + "=" * (-len(compact) % 4)
    try:
        raw = base64.b64decode(padded, validate=True)
        parsed = json.loads(raw.decode("utf-8"))
    except ValueError as e:
        # binascii.Error, UnicodeDecodeError and JSONDecodeError are all ValueErrors
        raise PayloadError(f"Undecodable card payload: {e}") from e
    if not isinstance(parsed, dict):
        raise PayloadError(f"Card payload is {type(parsed).__name__}, expected an object")
    return normalize_tags(unwrap_envelope(parsed))


def build_chunk(payload: dict[str, Any], keyword: str = CHARACTER_KEYWORD) -> PNGChunk:
    """Build the tEXt chunk carrying payload under keyword."""
    data = keyword.encode("ascii") + b"\x00" + encode_payload(payload).encode("ascii")
    return PNGChunk(CHUNK_TEXT, data)


def find_payload(
    chunks: list[PNGChunk],
    keyword: str = CHARACTER_KEYWORD,
    fallback: bool = FALLBACK_ON_BAD_PAYLOAD,
) -> dict[str, Any] | None:
    """
    Find and decode the card stored under keyword.

    Chunks are scanned in order. A matching chunk that fails to decode is
    logged and skipped; with fallback=False the scan stops there instead.
    """
    for index, chunk in enumerate(chunks):
        parsed = read_text_chunk(chunk)
        if parsed is None or parsed[0] != keyword:
            continue
        try:
            return decode_payload(parsed[1])
        except PayloadError as e:
            logger.warning("Skipping %r tEXt chunk #%d: %s", keyword, index, e)
            if not fallback:
                return None
    return None
