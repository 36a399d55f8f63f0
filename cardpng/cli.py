"""
cardpng command line.

    cardpng inspect card.png
    cardpng extract card.png -o card.json
    cardpng embed avatar.png card.json -o card.png
    cardpng export card.png -d out/
    cardpng lorebook card.png -d out/
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from cardpng.card import CharacterCard
from cardpng.converters import (
    card_filename,
    export_card_json,
    read_card_json,
    write_card_json,
    write_lorebook_json,
)
from cardpng.embed import embed, extract
from cardpng.metadata import read_text_chunk
from cardpng.reader import PNGReader
from cardpng.spec import MAX_FILE_SIZE, PNG_EXTENSION


def cmd_inspect(args) -> int:
    data = PNGReader.load(args.png, max_size=args.max_size)
    chunks = PNGReader.decode(data)
    if not chunks:
        print(f"{args.png}: not a PNG", file=sys.stderr)
        return 1
    bad = set(PNGReader.bad_checksums(data))
    for i, chunk in enumerate(chunks):
        line = f"{i:3d}  {chunk.type}  {chunk.length:>10d}  {'BAD CRC' if i in bad else 'ok'}"
        text = read_text_chunk(chunk)
        if text is not None:
            line += f"  keyword={text[0]!r} value_len={len(text[1])}"
        print(line)
    return 0


def _load_card(args) -> CharacterCard | None:
    data = PNGReader.load(args.png, max_size=args.max_size)
    payload = extract(data, verify_crc=args.strict)
    if payload is None:
        print(f"{args.png}: no character card found", file=sys.stderr)
        return None
    return CharacterCard.from_dict(payload)


def cmd_extract(args) -> int:
    card = _load_card(args)
    if card is None:
        return 1
    text = export_card_json(card)
    if args.output:
        args.output.write_text(text, encoding="utf-8")
        print("Wrote:", args.output)
    else:
        print(text)
    return 0


def cmd_embed(args) -> int:
    try:
        card = read_card_json(args.card)
    except ValueError as e:
        print(f"{args.card}: {e}", file=sys.stderr)
        return 1
    image = PNGReader.load(args.png, max_size=args.max_size)
    result = embed(image, card, verify_crc=args.strict)
    if result is None:
        print(f"{args.png}: cannot embed card (not a PNG or no IEND chunk)", file=sys.stderr)
        return 1
    output = args.output or args.png.parent / card_filename(card, PNG_EXTENSION)
    if output.resolve() == args.png.resolve():
        print(f"{output}: refusing to overwrite the source image, pass -o", file=sys.stderr)
        return 1
    output.write_bytes(result)
    print("Wrote:", output)
    return 0


def cmd_export(args) -> int:
    card = _load_card(args)
    if card is None:
        return 1
    args.directory.mkdir(parents=True, exist_ok=True)
    print("Wrote:", write_card_json(card, args.directory))
    return 0


def cmd_lorebook(args) -> int:
    card = _load_card(args)
    if card is None:
        return 1
    if card.character_book is None:
        print(f"{args.png}: card has no lorebook", file=sys.stderr)
        return 1
    args.directory.mkdir(parents=True, exist_ok=True)
    print("Wrote:", write_lorebook_json(card.character_book, args.directory))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="cardpng", description="Read and write character cards embedded in PNG files")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    ap.add_argument("--strict", action="store_true", help="Reject PNGs with any chunk CRC mismatch")
    ap.add_argument("--max-size", type=int, default=MAX_FILE_SIZE, help="Largest file to load, in bytes")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("inspect", help="List chunks and CRC status")
    p.add_argument("png", type=Path)
    p.set_defaults(func=cmd_inspect)

    p = sub.add_parser("extract", help="Print or save the embedded card as JSON")
    p.add_argument("png", type=Path)
    p.add_argument("-o", "--output", type=Path, default=None, help="Output JSON path")
    p.set_defaults(func=cmd_extract)

    p = sub.add_parser("embed", help="Embed a card JSON file into a PNG")
    p.add_argument("png", type=Path)
    p.add_argument("card", type=Path)
    p.add_argument("-o", "--output", type=Path, default=None,
                   help="Output PNG path (default: <card name>.png next to the source)")
    p.set_defaults(func=cmd_embed)

    p = sub.add_parser("export", help="Save the embedded card as <name>.json")
    p.add_argument("png", type=Path)
    p.add_argument("-d", "--directory", type=Path, default=Path("."))
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("lorebook", help="Save the embedded lorebook as <lorebook name>.json")
    p.add_argument("png", type=Path)
    p.add_argument("-d", "--directory", type=Path, default=Path("."))
    p.set_defaults(func=cmd_lorebook)

    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
