"""cardpng - Character cards embedded in PNG tEXt chunks."""

from cardpng.card import CharacterCard, Lorebook, LorebookEntry
from cardpng.chunk import PNGChunk
from cardpng.embed import embed, embed_file, extract, extract_file
from cardpng.reader import PNGReader
from cardpng.writer import PNGWriter

__version__ = "0.1.0"

__all__ = [
    "CharacterCard",
    "Lorebook",
    "LorebookEntry",
    "PNGChunk",
    "PNGReader",
    "PNGWriter",
    "embed",
    "embed_file",
    "extract",
    "extract_file",
]
