"""Pull a melody out of a Standard MIDI File and write it as MML.

Useful when the tune is already available as a ``.mid`` rip: the lane's
notes are reduced to a single voice, rescaled to the parser's timebase of
48 ticks per quarter note and rendered as text that ``parse_mml`` accepts.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import mido

from .mml import DEFAULT_LENGTH, TIMEBASE, Note, note_name

MAX_DOTS = 2


def _build_length_table() -> Dict[int, str]:
    table: Dict[int, str] = {}
    whole = TIMEBASE * 4
    for length in range(1, whole + 1):
        base = whole // length
        if base <= 0:
            continue
        duration = base
        for dots in range(MAX_DOTS + 1):
            if dots:
                duration += base >> dots
            suffix = f"{length}{'.' * dots}"
            if duration not in table or len(suffix) < len(table[duration]):
                table[duration] = suffix
    return table


# duration in ticks -> shortest "<length><dots>" spelling
LENGTH_SUFFIXES = _build_length_table()
_SORTED_DURATIONS = sorted(LENGTH_SUFFIXES)


def extract_lanes(mid: mido.MidiFile) -> Dict[Tuple[int, int], List[Tuple[int, int, int]]]:
    """Return ``(onset, key, gate)`` triples in MIDI ticks per (track, channel)."""

    lanes: Dict[Tuple[int, int], List[Tuple[int, int, int]]] = {}
    # pending[(track, channel, key)] -> stack of onsets
    pending: Dict[Tuple[int, int, int], List[int]] = {}

    for track_idx, track in enumerate(mid.tracks):
        abs_tick = 0
        for msg in track:
            abs_tick += msg.time
            if msg.type == "note_on" and msg.velocity > 0:
                pending.setdefault((track_idx, msg.channel, msg.note), []).append(abs_tick)
                continue

            if msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0):
                key = (track_idx, msg.channel, msg.note)
                starts = pending.get(key)
                if not starts:
                    continue
                onset = starts.pop()
                lanes.setdefault((track_idx, msg.channel), []).append(
                    (onset, msg.note, max(abs_tick - onset, 1))
                )
                if not starts:
                    pending.pop(key, None)

    for lane in lanes.values():
        lane.sort()
    return lanes


def _select_lane(
    lanes: Dict[Tuple[int, int], List[Tuple[int, int, int]]],
    track: Optional[int],
    channel: Optional[int],
) -> List[Tuple[int, int, int]]:
    for (track_idx, chan), events in sorted(lanes.items()):
        if track is not None and track_idx != track:
            continue
        if channel is not None and chan != channel:
            continue
        return events
    wanted = []
    if track is not None:
        wanted.append(f"track {track}")
    if channel is not None:
        wanted.append(f"channel {channel}")
    where = " ".join(wanted) if wanted else "any track"
    raise ValueError(f"no notes found in {where}")


def read_midi_notes(
    source: Union[str, Path, mido.MidiFile],
    *,
    track: Optional[int] = None,
    channel: Optional[int] = None,
) -> List[Note]:
    """Read one lane of a MIDI file as a monophonic note list.

    At a shared onset the highest key wins; a note still sounding when the
    next one starts is cut short.  Times use the MML timebase (48 ticks per
    quarter note).
    """
    mid = source if isinstance(source, mido.MidiFile) else mido.MidiFile(str(source))
    events = _select_lane(extract_lanes(mid), track, channel)

    ticks_per_beat = mid.ticks_per_beat

    def scale(ticks: int) -> int:
        return round(ticks * TIMEBASE / ticks_per_beat)

    melody: List[Tuple[int, int, int]] = []
    for onset, key, gate in sorted(events, key=lambda e: (scale(e[0]), -e[1])):
        time = scale(onset)
        if melody and melody[-1][0] == time:
            continue
        melody.append((time, key, max(scale(gate), 1)))

    notes: List[Note] = []
    for idx, (time, key, duration) in enumerate(melody):
        if idx + 1 < len(melody):
            duration = min(duration, melody[idx + 1][0] - time)
        notes.append(Note(time=time, key=key, duration=duration))
    return notes


def closest_duration(ticks: int, *, not_above: bool = False) -> int:
    """Return the nearest duration MML can spell without ties."""

    if not_above:
        candidates = [d for d in _SORTED_DURATIONS if d <= ticks]
        return candidates[-1] if candidates else _SORTED_DURATIONS[0]
    return min(_SORTED_DURATIONS, key=lambda d: (abs(d - ticks), d))


def _length_suffix(duration: int) -> str:
    suffix = LENGTH_SUFFIXES[duration]
    return "" if suffix == str(DEFAULT_LENGTH) else suffix


def notes_to_mml(notes: List[Note]) -> str:
    """Render notes as MML.  Keys are exact; lengths are the closest spellable."""

    if not notes:
        raise ValueError("need at least one note")

    parts: List[str] = []
    octave: Optional[int] = None
    cursor = 0

    for note in notes:
        gap = note.time - cursor
        while gap > 0:
            rest = closest_duration(gap, not_above=True)
            parts.append("r" + _length_suffix(rest))
            gap -= rest
            cursor += rest

        name, note_octave = note_name(note.key)
        if octave is None or abs(note_octave - octave) > 1:
            parts.append(f"o{note_octave}")
        elif note_octave == octave + 1:
            parts.append("<")
        elif note_octave == octave - 1:
            parts.append(">")
        octave = note_octave

        duration = closest_duration(note.duration)
        parts.append(name + _length_suffix(duration))
        cursor = note.time + duration

    return " ".join(parts)
