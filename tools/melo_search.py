#!/usr/bin/env python3
"""Search a binary file for a byte sequence by melody.

Only the keys of the notes are used; lengths, tempo and rests are parsed
but ignored by the search.

Examples
--------
    python tools/melo_search.py song.bin "o4 l8 e d c d e e e4"
    python tools/melo_search.py -q -l3 rom.gb "cdefg"
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
from typing import List, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from melosearch.pattern import MelodyPattern  # noqa: E402
from melosearch.search import DEFAULT_MAX_NOTE_GAP, Match, search_melody  # noqa: E402

FOOTER = "Note that the above dump omits bytes in between note numbers."


def parse_gap(text: str) -> int:
    """Parse the ``-l`` argument; accepts decimal, 0x hex and 0 octal."""

    try:
        value = int(text, 0)
    except ValueError:
        raise ValueError('Option "-l" must have a positive number') from None
    if value < 1:
        raise ValueError('Option "-l" must have a positive number')
    return value


def format_match(match: Match, *, quiet: bool) -> str:
    if quiet:
        return f"{match.offset:08X}"
    values = " ".join(f"{value:02X}" for value in match.values)
    return f"- {match.offset:08X}: {values}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Small utility to search a byte sequence by melody.",
        epilog=(
            "The search engine uses only the key of notes. "
            "Others, such as lengths, will be ignored."
        ),
        add_help=False,
    )
    parser.add_argument("--help", action="store_true", help="show this help")
    parser.add_argument(
        "-q",
        dest="quiet",
        action="store_true",
        help="quiet mode, prints only errors and offsets",
    )
    parser.add_argument(
        "-l",
        dest="max_note_gap",
        metavar="LENGTH",
        default=str(DEFAULT_MAX_NOTE_GAP),
        help=(
            "max distance between notes (in bytes) "
            f"(default: -l{DEFAULT_MAX_NOTE_GAP})"
        ),
    )
    parser.add_argument("input", nargs="?", help="file to search")
    parser.add_argument("mml", nargs="?", help="melody, e.g. \"o4 cdefg\"")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.help:
        parser.print_help()
        return 1

    try:
        max_note_gap = parse_gap(args.max_note_gap)
    except ValueError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    if args.input is None or args.mml is None:
        parser.print_usage(sys.stderr)
        print("Error: expected an input file and an MML string", file=sys.stderr)
        return 1

    path = Path(args.input)
    try:
        data = path.read_bytes()
    except OSError:
        print(f'Error: Unable to open "{path}"', file=sys.stderr)
        return 1

    try:
        pattern = MelodyPattern.from_mml(args.mml)
        matches = search_melody(data, pattern, max_note_gap)
    except ValueError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    found = False
    for match in matches:
        found = True
        print(format_match(match, quiet=args.quiet))

    if found and not args.quiet:
        print()
        print(FOOTER)

    return 0 if found else 1


if __name__ == "__main__":
    raise SystemExit(main())
