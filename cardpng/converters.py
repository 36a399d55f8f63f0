"""
Converters - Cards and lorebooks to and from JSON files.

Card files use the same envelope as the PNG chunk. Lorebook files are the
bare lorebook object. Importing accepts an envelope under any spec name or
a bare card.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from cardpng.card import CharacterCard, Lorebook
from cardpng.metadata import PayloadError, unwrap_envelope, wrap_envelope
from cardpng.spec import JSON_EXTENSION

_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def _load_object(text: str | bytes, kind: str) -> dict[str, Any]:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid {kind} file: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError(f"Invalid {kind} file: expected a JSON object, got {type(parsed).__name__}")
    return parsed


# =============================================================================
# Cards
# =============================================================================

def export_card_json(card: CharacterCard | dict[str, Any], indent: int = 2) -> str:
    payload = card if isinstance(card, dict) else card.to_dict()
    return json.dumps(wrap_envelope(payload), indent=indent, ensure_ascii=False)


def import_card_json(text: str | bytes) -> CharacterCard:
    """Parse an enveloped or bare card. Raises ValueError for anything else."""
    parsed = _load_object(text, "card")
    # Files from other tools use their own spec names; any spec + data is an envelope
    if parsed.get("spec") and isinstance(parsed.get("data"), dict):
        return CharacterCard.from_dict(parsed["data"])
    try:
        payload = unwrap_envelope(parsed)
    except PayloadError as e:
        raise ValueError(f"Invalid card file: {e}") from e
    return CharacterCard.from_dict(payload)


def card_filename(card: CharacterCard, extension: str = JSON_EXTENSION) -> str:
    return _safe_stem(card.name, "character") + extension


# =============================================================================
# Lorebooks
# =============================================================================

def export_lorebook_json(lorebook: Lorebook, indent: int = 2) -> str:
    return json.dumps(lorebook.to_dict(), indent=indent, ensure_ascii=False)


def import_lorebook_json(text: str | bytes) -> Lorebook:
    return Lorebook.from_dict(_load_object(text, "lorebook"))


def lorebook_filename(lorebook: Lorebook) -> str:
    return _safe_stem(lorebook.name, "lorebook") + JSON_EXTENSION


# =============================================================================
# Disk helpers
# =============================================================================

def write_card_json(card: CharacterCard, directory: str | Path = ".") -> Path:
    path = Path(directory) / card_filename(card)
    path.write_text(export_card_json(card), encoding="utf-8")
    return path


def read_card_json(path: str | Path) -> CharacterCard:
    return import_card_json(Path(path).read_text(encoding="utf-8"))


def write_lorebook_json(lorebook: Lorebook, directory: str | Path = ".") -> Path:
    path = Path(directory) / lorebook_filename(lorebook)
    path.write_text(export_lorebook_json(lorebook), encoding="utf-8")
    return path


def _safe_stem(name: str | None, default: str) -> str:
    stem = _UNSAFE_FILENAME.sub("_", (name or "").strip())
    return stem or default
