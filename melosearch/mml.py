"""Parse single-voice MML melodies into note sequences.

Grammar (case-insensitive, whitespace ignored):

  t<number>   tempo, validated but otherwise ignored
  o<int>      absolute octave (default 4)
  l<int>      default note length (default 4 = quarter note)
  < / >       octave up / down
  a-g         note, followed by optional ``+``/``-`` modifiers, an optional
              length and optional dots
  r           rest, same suffix as a note; advances time only
  ^           tie, same suffix as a note; always rejected

Durations are in ticks with a fixed timebase of 48 ticks per quarter
note (192 per whole note), so ``c4`` lasts 48 ticks and ``c4.`` lasts 72.

Both ``+`` and ``-`` raise the pitch by one semitone.  Sequence rips made
with this tool over the years rely on that behaviour, so ``e-`` is *not*
E flat here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple, Union

TIMEBASE = 48  # ticks per quarter note
DEFAULT_OCTAVE = 4
DEFAULT_LENGTH = 4
MAX_NOTES = 512

# semitones above C
KEY_OFFSETS = {"c": 0, "d": 2, "e": 4, "f": 5, "g": 7, "a": 9, "b": 11}

_TEMPO_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:e[+-]?\d+)?")
_INT_RE = re.compile(r"[+-]?\d+")
_LENGTH_RE = re.compile(r"\d+")
_WHITESPACE_RE = re.compile(r"\s+")


class MMLParseError(ValueError):
    """Raised for malformed MML.  ``position`` indexes the whitespace-free input."""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


@dataclass(frozen=True)
class Note:
    """A single parsed note."""

    time: int  # ticks from melody start
    key: int  # semitone number, c in octave 4 == 48
    duration: int  # ticks, always > 0


@dataclass(frozen=True)
class Pitched:
    key: int


@dataclass(frozen=True)
class Rest:
    pass


@dataclass(frozen=True)
class Tie:
    pass


Pitch = Union[Pitched, Rest, Tie]


@dataclass
class ParserState:
    """Mutable context shared by the token handlers of one parse."""

    text: str
    pos: int = 0
    octave: int = DEFAULT_OCTAVE
    timebase: int = TIMEBASE
    default_length: int = DEFAULT_LENGTH
    time: int = 0

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def describe_current(self) -> str:
        ch = self.peek()
        return f"'{ch}'" if ch else "end of input"

    def match(self, pattern: re.Pattern[str]) -> str | None:
        m = pattern.match(self.text, self.pos)
        if m is None:
            return None
        self.pos = m.end()
        return m.group(0)


def _parse_tempo(state: ParserState) -> None:
    token = state.match(_TEMPO_RE)
    if token is None:
        raise MMLParseError(
            f"Illegal tempo number {state.describe_current()}", state.pos
        )
    tempo = float(token)
    if tempo <= 0.0:
        raise MMLParseError(f"Illegal tempo '{tempo:.1f}'", state.pos)


def _parse_octave(state: ParserState) -> None:
    token = state.match(_INT_RE)
    if token is None:
        raise MMLParseError(
            f"Illegal octave number {state.describe_current()}", state.pos
        )
    state.octave = int(token)


def _parse_default_length(state: ParserState) -> None:
    token = state.match(_INT_RE)
    if token is None:
        raise MMLParseError(
            f"Illegal default length {state.describe_current()}", state.pos
        )
    length = int(token)
    if length <= 0:
        raise MMLParseError(f"Illegal default length '{length}'", state.pos)
    state.default_length = length


def _pitch_for(command: str, octave: int) -> Pitch:
    if command == "r":
        return Rest()
    if command == "^":
        return Tie()
    return Pitched(KEY_OFFSETS[command] + octave * 12)


def _parse_modifiers(state: ParserState, pitch: Pitch) -> Pitch:
    shift = 0
    while state.peek() in ("+", "-"):
        shift += 1
        state.pos += 1
    if shift and isinstance(pitch, Pitched):
        return Pitched(pitch.key + shift)
    return pitch


def _parse_duration(state: ParserState) -> int:
    """Consume ``[length][dots]`` and return the duration in ticks."""

    token = state.match(_LENGTH_RE)
    length = int(token) if token is not None else state.default_length

    dots = 0
    while state.peek() == ".":
        dots += 1
        state.pos += 1

    if length <= 0:
        raise MMLParseError("length must be greater than 0", state.pos)

    base = (state.timebase * 4) // length
    if base <= 0:
        raise MMLParseError(
            f"Illegal note length '{length}' (shorter than one tick)", state.pos
        )

    duration = base
    for shift in range(1, dots + 1):
        duration += base >> shift
    return duration


def _parse_note(state: ParserState, command: str, notes: List[Note], max_notes: int) -> None:
    start = state.pos - 1
    pitch = _parse_modifiers(state, _pitch_for(command, state.octave))
    duration = _parse_duration(state)

    if isinstance(pitch, Tie):
        raise MMLParseError("Tie is not supported", start)
    if isinstance(pitch, Pitched):
        if len(notes) >= max_notes:
            raise MMLParseError(
                f"too many notes: melody exceeds {max_notes}", start
            )
        notes.append(Note(time=state.time, key=pitch.key, duration=duration))

    state.time += duration


def parse_mml(mml: str, *, max_notes: int = MAX_NOTES) -> List[Note]:
    """Parse ``mml`` into a list of notes.

    Parameters
    ----------
    mml : str
        Melody text, e.g. ``"t120 o4 l8 cdefg4"``.
    max_notes : int
        Upper bound on the number of emitted notes.

    Returns
    -------
    list[Note]
        Pitched notes in order.  Rests are not included but still shift
        the ``time`` of later notes.

    Raises
    ------
    MMLParseError
        On the first malformed token; nothing is returned in that case.
    """
    state = ParserState(text=_WHITESPACE_RE.sub("", mml).lower())
    notes: List[Note] = []

    while state.pos < len(state.text):
        command = state.text[state.pos]
        state.pos += 1

        if command == "t":
            _parse_tempo(state)
        elif command == "o":
            _parse_octave(state)
        elif command == "l":
            _parse_default_length(state)
        elif command == "<":
            state.octave += 1
        elif command == ">":
            state.octave -= 1
        elif command in KEY_OFFSETS or command in ("r", "^"):
            _parse_note(state, command, notes, max_notes)
        else:
            raise MMLParseError(f"Unknown character '{command}'", state.pos - 1)

    return notes


def note_name(key: int) -> Tuple[str, int]:
    """Return ``(name, octave)`` for a key, spelling black keys with ``+``."""

    names = ("c", "c+", "d", "d+", "e", "f", "f+", "g", "g+", "a", "a+", "b")
    return names[key % 12], key // 12
