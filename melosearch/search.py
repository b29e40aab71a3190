"""Scan binary data for byte runs that follow a melody's pitch deltas.

Every offset in the buffer is tried as the first note.  Each following
note must appear within ``max_note_gap`` bytes after the previous note's
anchor (its earliest occurrence in that window), so arbitrary bytes such
as lengths, velocities or commands may sit between note numbers:

    pattern deltas  0        +4          +7
    data            3C 18 00 40 18 00 43 18
                    ^        ^           ^
                    anchor   gap 3       gap 3

Byte values are never wrapped: if ``first + delta`` leaves 0x00-0xFF the
offset simply does not match.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, Union

from .pattern import MelodyPattern

MIN_NOTE_GAP = 1
MAX_NOTE_GAP = 16
DEFAULT_MAX_NOTE_GAP = 6

Buffer = Union[bytes, bytearray, memoryview]


class SearchConfigError(ValueError):
    """Raised when search parameters are out of range."""


@dataclass(frozen=True)
class Match:
    """One melody candidate."""

    offset: int  # file position of the first note
    values: Tuple[int, ...]  # byte value searched for at each note
    positions: Tuple[int, ...]  # anchor (earliest hit) of each note
    last_positions: Tuple[int, ...]  # latest hit of each note inside its window


def check_note_gap(max_note_gap: int) -> None:
    if max_note_gap < MIN_NOTE_GAP:
        raise SearchConfigError("search length too small")
    if max_note_gap > MAX_NOTE_GAP:
        raise SearchConfigError("search length too large")


def _as_searchable(data: Buffer) -> Union[bytes, bytearray]:
    if isinstance(data, (bytes, bytearray)):
        return data
    return bytes(data)


def _match_at(
    data: Union[bytes, bytearray],
    offset: int,
    deltas: Sequence[int],
    max_note_gap: int,
) -> Optional[Match]:
    first = data[offset]
    data_len = len(data)

    values: List[int] = [first]
    positions: List[int] = [offset]
    last_positions: List[int] = [offset]

    anchor = offset
    for delta in deltas[1:]:
        target = first + delta
        if target < 0 or target > 0xFF:
            return None

        start = anchor + 1
        end = min(anchor + max_note_gap + 1, data_len)
        if start >= end:
            return None

        hit = data.find(target, start, end)
        if hit == -1:
            return None

        values.append(target)
        positions.append(hit)
        last_positions.append(data.rfind(target, start, end))
        anchor = hit

    return Match(
        offset=offset,
        values=tuple(values),
        positions=tuple(positions),
        last_positions=tuple(last_positions),
    )


def match_at(
    data: Buffer,
    offset: int,
    pattern: MelodyPattern,
    max_note_gap: int = DEFAULT_MAX_NOTE_GAP,
) -> Optional[Match]:
    """Try a single start offset.  Returns None when the melody is not there."""

    check_note_gap(max_note_gap)
    if offset < 0 or offset >= len(data):
        raise ValueError(f"offset {offset} outside data of {len(data)} bytes")
    return _match_at(_as_searchable(data), offset, pattern.deltas, max_note_gap)


def search_melody(
    data: Buffer,
    pattern: MelodyPattern,
    max_note_gap: int = DEFAULT_MAX_NOTE_GAP,
    *,
    should_stop: Optional[Callable[[], bool]] = None,
) -> Iterator[Match]:
    """Yield every offset of ``data`` where ``pattern`` can be found.

    Parameters
    ----------
    data : bytes-like
        Whole file content.
    pattern : MelodyPattern
        Melody to look for; only its deltas are used.
    max_note_gap : int
        Largest distance in bytes (1-16) from one note's anchor to the
        next note.  Validated before the iterator is returned.
    should_stop : callable, optional
        Polled before each offset; a true result ends the scan early.

    Returns
    -------
    iterator of Match
        Matches in increasing offset order.
    """
    check_note_gap(max_note_gap)
    return _scan(_as_searchable(data), pattern.deltas, max_note_gap, should_stop)


def _scan(
    data: Union[bytes, bytearray],
    deltas: Sequence[int],
    max_note_gap: int,
    should_stop: Optional[Callable[[], bool]],
) -> Iterator[Match]:
    for offset in range(len(data)):
        if should_stop is not None and should_stop():
            return
        match = _match_at(data, offset, deltas, max_note_gap)
        if match is not None:
            yield match
