"""
Card model - CharacterCard, Lorebook, LorebookEntry.

One canonical schema (the chara_card_v3 field names). Older tools wrote
lorebook entries under other names; those are resolved once, in from_dict,
through ENTRY_ALIASES and POSITION_ALIASES. Keys this model does not know
are kept in `extra` and written back by to_dict, so nothing is lost on a
round trip.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from cardpng.metadata import normalize_tags
from cardpng.spec import ENTRY_POSITIONS, OPTIONAL_CARD_FIELDS, REQUIRED_CARD_FIELDS

logger = logging.getLogger(__name__)

# alias -> canonical field
ENTRY_ALIASES = {
    "key": "keys",
    "keysecondary": "secondary_keys",
    "priority": "insertion_order",
    "order": "insertion_order",
}

# Placement vocabularies seen in exported lorebooks
POSITION_ALIASES: dict[Any, str] = {
    0: "before_char",
    1: "after_char",
    "before": "before_char",
    "after": "after_char",
    "before_char": "before_char",
    "after_char": "after_char",
    "after_prompt": "after_prompt",
}

_ENTRY_FLAGS = ("constant", "case_sensitive", "use_regex", "selective")


def _new_id() -> str:
    return uuid.uuid4().hex


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list):
        return [str(item) for item in value]
    return []


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def resolve_position(value: Any) -> str | None:
    if isinstance(value, str):
        value = value.strip().lower()
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    position = POSITION_ALIASES.get(value)
    if value is not None and value != "" and position is None:
        logger.debug("Unknown lorebook position %r, dropping", value)
    return position


def resolve_aliases(data: dict[str, Any]) -> dict[str, Any]:
    """Rename alias keys to canonical ones. A canonical key already present wins."""
    resolved = {}
    for key, value in data.items():
        if key in ENTRY_ALIASES:
            continue
        resolved[key] = value
    for alias, canonical in ENTRY_ALIASES.items():
        if alias in data and canonical not in resolved:
            resolved[canonical] = data[alias]
    if "disable" in resolved:
        disable = resolved.pop("disable")
        resolved.setdefault("enabled", not bool(disable))
    return resolved


# =============================================================================
# LorebookEntry
# =============================================================================

@dataclass
class LorebookEntry:
    """One keyed snippet. insertion_order decides placement, not list index."""

    keys: list[str] = field(default_factory=list)
    content: str = ""
    id: int | str = field(default_factory=_new_id)
    secondary_keys: list[str] = field(default_factory=list)
    enabled: bool = True
    constant: bool = False
    case_sensitive: bool = False
    use_regex: bool = False
    selective: bool = False
    insertion_order: int = 0
    position: str | None = None
    comment: str | None = None
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        "keys", "content", "id", "secondary_keys", "enabled", "constant",
        "case_sensitive", "use_regex", "selective", "insertion_order",
        "position", "comment", "name", "extensions",
    )

    def __post_init__(self) -> None:
        if self.position is not None and self.position not in ENTRY_POSITIONS:
            raise ValueError(f"Invalid entry position {self.position!r}: expected one of {ENTRY_POSITIONS}")

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_order: int = 0) -> LorebookEntry:
        data = resolve_aliases(data)
        order = _optional_int(data.get("insertion_order"))
        extensions = data.get("extensions")
        entry = cls(
            keys=_string_list(data.get("keys")),
            content=str(data.get("content") or ""),
            secondary_keys=_string_list(data.get("secondary_keys")),
            enabled=bool(data.get("enabled", True)),
            insertion_order=default_order if order is None else order,
            position=resolve_position(data.get("position")),
            comment=data.get("comment"),
            name=data.get("name"),
            extensions=dict(extensions) if isinstance(extensions, dict) else {},
            extra={k: v for k, v in data.items() if k not in cls._FIELDS},
        )
        if data.get("id") is not None:
            entry.id = data["id"]
        for flag in _ENTRY_FLAGS:
            setattr(entry, flag, bool(data.get(flag, False)))
        return entry

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        d.update({
            "id": self.id,
            "keys": list(self.keys),
            "secondary_keys": list(self.secondary_keys),
            "content": self.content,
            "enabled": self.enabled,
            "insertion_order": self.insertion_order,
            "extensions": dict(self.extensions),
        })
        for flag in _ENTRY_FLAGS:
            d[flag] = getattr(self, flag)
        for optional in ("position", "comment", "name"):
            value = getattr(self, optional)
            if value is not None:
                d[optional] = value
        return d


# =============================================================================
# Lorebook
# =============================================================================

@dataclass
class Lorebook:
    """Ordered collection of entries plus scan settings."""

    name: str | None = None
    description: str | None = None
    scan_depth: int | None = None
    token_budget: int | None = None
    recursive_scanning: bool | None = None
    entries: list[LorebookEntry] = field(default_factory=list)
    extensions: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        "name", "description", "scan_depth", "token_budget",
        "recursive_scanning", "entries", "extensions",
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Lorebook:
        raw_entries = data.get("entries")
        if isinstance(raw_entries, dict):
            # Some exporters key entries by uid instead of using a list
            raw_entries = list(raw_entries.values())
        elif not isinstance(raw_entries, list):
            raw_entries = []

        entries = [
            LorebookEntry.from_dict(item, default_order=i)
            for i, item in enumerate(raw_entries)
            if isinstance(item, dict)
        ]
        recursive = data.get("recursive_scanning")
        extensions = data.get("extensions")
        return cls(
            name=data.get("name"),
            description=data.get("description"),
            scan_depth=_optional_int(data.get("scan_depth")),
            token_budget=_optional_int(data.get("token_budget")),
            recursive_scanning=None if recursive is None else bool(recursive),
            entries=entries,
            extensions=dict(extensions) if isinstance(extensions, dict) else {},
            extra={k: v for k, v in data.items() if k not in cls._FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        for key in ("name", "description", "scan_depth", "token_budget", "recursive_scanning"):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        d["entries"] = [entry.to_dict() for entry in self.entries]
        d["extensions"] = dict(self.extensions)
        return d

    def add_entry(self, keys: list[str] | None = None, content: str = "", **kwargs: Any) -> LorebookEntry:
        """Append a new entry ordered after the existing ones."""
        kwargs.setdefault("insertion_order", len(self.entries))
        entry = LorebookEntry(keys=list(keys or []), content=content, **kwargs)
        self.entries.append(entry)
        return entry

    def get_entry(self, entry_id: int | str) -> LorebookEntry | None:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def remove_entry(self, entry_id: int | str) -> bool:
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.id != entry_id]
        return len(self.entries) != before

    def ordered_entries(self) -> list[LorebookEntry]:
        """Entries by insertion_order; ties keep list order."""
        return sorted(self.entries, key=lambda e: e.insertion_order)


# =============================================================================
# CharacterCard
# =============================================================================

@dataclass
class CharacterCard:
    name: str = ""
    description: str = ""
    personality: str = ""
    scenario: str = ""
    first_mes: str = ""
    mes_example: str = ""
    creator_notes: str = ""
    system_prompt: str = ""
    post_history_instructions: str = ""
    creator: str = ""
    character_version: str = ""
    tags: list[str] = field(default_factory=list)
    character_book: Lorebook | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    _TEXT_FIELDS = REQUIRED_CARD_FIELDS + OPTIONAL_CARD_FIELDS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CharacterCard:
        data = normalize_tags(data)
        book = data.get("character_book")
        extensions = data.get("extensions")
        card = cls(
            tags=[str(tag) for tag in data["tags"]],
            character_book=Lorebook.from_dict(book) if isinstance(book, dict) else None,
            extensions=dict(extensions) if isinstance(extensions, dict) else {},
        )
        for key in cls._TEXT_FIELDS:
            value = data.get(key)
            setattr(card, key, "" if value is None else str(value))
        known = set(cls._TEXT_FIELDS) | {"tags", "character_book", "extensions"}
        card.extra = {k: v for k, v in data.items() if k not in known}
        return card

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        for key in self._TEXT_FIELDS:
            d[key] = getattr(self, key)
        d["tags"] = list(self.tags)
        if self.character_book is not None:
            d["character_book"] = self.character_book.to_dict()
        if self.extensions:
            d["extensions"] = dict(self.extensions)
        return d

    @property
    def missing_fields(self) -> list[str]:
        """Required fields left empty."""
        return [key for key in REQUIRED_CARD_FIELDS if not getattr(self, key)]

    def __repr__(self) -> str:
        book = len(self.character_book.entries) if self.character_book else 0
        return f"CharacterCard(name={self.name!r}, tags={self.tags!r}, lorebook_entries={book})"
