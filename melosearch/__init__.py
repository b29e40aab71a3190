"""Find melodies embedded in binary files by their note-number deltas."""

from .mml import (  # noqa: F401
    DEFAULT_LENGTH,
    DEFAULT_OCTAVE,
    MAX_NOTES,
    TIMEBASE,
    MMLParseError,
    Note,
    parse_mml,
)
from .pattern import MelodyPattern  # noqa: F401
from .search import (  # noqa: F401
    DEFAULT_MAX_NOTE_GAP,
    MAX_NOTE_GAP,
    MIN_NOTE_GAP,
    Match,
    SearchConfigError,
    check_note_gap,
    match_at,
    search_melody,
)
