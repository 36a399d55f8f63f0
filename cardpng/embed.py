"""
Embed pipeline - the two entry points the rest of an application uses.

    card = extract(png_bytes)            # dict or None
    new_png = embed(png_bytes, card)     # bytes or None

Neither raises on bad image data. None means "no result": the input was
not a PNG, had no card, or (for embed) had no IEND to insert before.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

from cardpng.metadata import build_chunk, find_payload, has_keyword
from cardpng.reader import PNGReader
from cardpng.spec import CHARACTER_KEYWORD, CHUNK_IEND, FALLBACK_ON_BAD_PAYLOAD, VERIFY_CRC
from cardpng.writer import PNGWriter

if TYPE_CHECKING:
    from cardpng.card import CharacterCard

logger = logging.getLogger(__name__)

Payload = Union[dict[str, Any], "CharacterCard"]


def extract(
    image: bytes,
    verify_crc: bool = VERIFY_CRC,
    fallback: bool = FALLBACK_ON_BAD_PAYLOAD,
) -> dict[str, Any] | None:
    """Recover the card embedded in a PNG, or None."""
    chunks = PNGReader.decode(image, verify_crc=verify_crc)
    if not chunks:
        logger.info("Cannot extract card: not a valid PNG")
        return None
    payload = find_payload(chunks, CHARACTER_KEYWORD, fallback=fallback)
    if payload is None:
        logger.debug("No %r tEXt chunk with a readable card", CHARACTER_KEYWORD)
    return payload


def embed(image: bytes, payload: Payload, verify_crc: bool = VERIFY_CRC) -> bytes | None:
    """
    Return a copy of image carrying payload as its only card chunk.

    Existing card chunks are removed and the new one goes right before
    IEND; every other chunk keeps its relative order.
    """
    chunks = PNGReader.decode(image, verify_crc=verify_crc)
    if not chunks:
        logger.error("Cannot embed card: not a valid PNG")
        return None

    kept = [chunk for chunk in chunks if not has_keyword(chunk, CHARACTER_KEYWORD)]
    removed = len(chunks) - len(kept)
    if removed:
        logger.debug("Removed %d existing %r chunk(s)", removed, CHARACTER_KEYWORD)

    iend_index = next((i for i, chunk in enumerate(kept) if chunk.type == CHUNK_IEND), None)
    if iend_index is None:
        logger.error("Cannot embed card: PNG has no %s chunk", CHUNK_IEND)
        return None

    if not isinstance(payload, dict):
        payload = payload.to_dict()
    kept.insert(iend_index, build_chunk(payload, CHARACTER_KEYWORD))
    return PNGWriter.serialize(kept)


def extract_file(path: str | Path, **kwargs) -> dict[str, Any] | None:
    """extract() on a file read from disk."""
    return extract(PNGReader.load(path), **kwargs)


def embed_file(source: str | Path, payload: Payload, dest: str | Path, **kwargs) -> bool:
    """embed() from one file into another. Returns False if nothing was written."""
    result = embed(PNGReader.load(source), payload, **kwargs)
    if result is None:
        return False
    Path(dest).write_bytes(result)
    return True
