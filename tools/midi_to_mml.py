#!/usr/bin/env python3
"""Print one MIDI lane as an MML string for melo_search.py.

Examples
--------
    python tools/midi_to_mml.py theme.mid
    python tools/midi_to_mml.py theme.mid --track 2 --channel 0
    python tools/melo_search.py rom.bin "$(python tools/midi_to_mml.py theme.mid)"
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
from typing import List, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import mido  # noqa: E402

from melosearch.midi_melody import extract_lanes, notes_to_mml, read_midi_notes  # noqa: E402


def list_lanes(mid: mido.MidiFile) -> None:
    lanes = extract_lanes(mid)
    if not lanes:
        print("(no notes)")
        return
    for (track_idx, channel), events in sorted(lanes.items()):
        keys = [key for _, key, _ in events]
        print(
            f"track {track_idx:2d}  channel {channel:2d}  "
            f"notes={len(events):4d}  range={min(keys)}-{max(keys)}"
        )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Convert a MIDI melody lane into MML for melody search."
    )
    parser.add_argument("input", help="Input MIDI file")
    parser.add_argument("--track", type=int, default=None, help="MIDI track index")
    parser.add_argument("--channel", type=int, default=None, help="MIDI channel (0-15)")
    parser.add_argument(
        "--list", action="store_true", help="List note lanes instead of converting"
    )
    args = parser.parse_args(argv)

    try:
        mid = mido.MidiFile(args.input)
    except (OSError, ValueError, EOFError) as err:
        print(f'Error: Unable to read "{args.input}": {err}', file=sys.stderr)
        return 1

    if args.list:
        list_lanes(mid)
        return 0

    try:
        notes = read_midi_notes(mid, track=args.track, channel=args.channel)
        print(notes_to_mml(notes))
    except ValueError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
