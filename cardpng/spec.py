"""
Character Card PNG Format
=========================

Layout:
    89 50 4E 47 0D 0A 1A 0A      <- PNG signature (8 bytes, instant identification)
    <length> <type> <data> <crc> <- Chunk record, repeated
      length: uint32 big-endian  <- Byte length of data only
      type:   4 ASCII bytes      <- Chunk tag (IHDR, IDAT, tEXt, ...)
      data:   <length> bytes
      crc:    uint32 big-endian  <- CRC-32 over type + data
    ...
    <0> IEND <crc>               <- Terminal chunk, always last

Metadata chunk:
    tEXt  chara \x00 <base64(utf8(json(envelope)))>

Envelope:
    {"spec": "chara_card_v3", "spec_version": "3.0", "data": <card>}

Design Decisions:
    - Only tEXt is read or written (no zTXt / iTXt)
    - The metadata chunk is placed right before IEND
    - Everything after IEND is ignored on read and dropped on write
    - CRC verification on read is a policy (VERIFY_CRC), lenient by default
"""

# Magic bytes - first 8 bytes of every PNG
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Chunk tags
CHUNK_IEND = "IEND"
CHUNK_TEXT = "tEXt"

# Fixed per-chunk overhead: length (4) + type (4) + crc (4)
CHUNK_OVERHEAD = 12

# tEXt keyword that carries the character card
CHARACTER_KEYWORD = "chara"

# Envelope written around every embedded card
CARD_SPEC = "chara_card_v3"
CARD_SPEC_VERSION = "3.0"

# Any spec starting with this is unwrapped on read (v2, v3, ...)
CARD_SPEC_PREFIX = "chara_card_v"

# Card fields
REQUIRED_CARD_FIELDS = (
    "name",
    "description",
    "personality",
    "scenario",
    "first_mes",
    "mes_example",
)

OPTIONAL_CARD_FIELDS = (
    "creator_notes",
    "system_prompt",
    "post_history_instructions",
    "creator",
    "character_version",
)

# Lorebook entry placement hints
ENTRY_POSITIONS = ("before_char", "after_char", "after_prompt")

# Reader policy defaults (overridable per call)
VERIFY_CRC = False
FALLBACK_ON_BAD_PAYLOAD = True

# Refuse to load files larger than this from disk
MAX_FILE_SIZE = 50 * 1024 * 1024

# File extensions
PNG_EXTENSION = ".png"
JSON_EXTENSION = ".json"
