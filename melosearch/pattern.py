from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from .mml import MAX_NOTES, Note, parse_mml


@dataclass(frozen=True)
class MelodyPattern:
    """Notes reduced to semitone deltas against the first note.

    The searcher only looks at ``deltas``; absolute keys and timing are
    kept on ``notes`` for display.
    """

    notes: Tuple[Note, ...]
    deltas: Tuple[int, ...]

    @classmethod
    def from_notes(cls, notes: Sequence[Note]) -> "MelodyPattern":
        if not notes:
            raise ValueError("need at least one note")
        root = notes[0].key
        return cls(
            notes=tuple(notes),
            deltas=tuple(note.key - root for note in notes),
        )

    @classmethod
    def from_mml(cls, mml: str, *, max_notes: int = MAX_NOTES) -> "MelodyPattern":
        return cls.from_notes(parse_mml(mml, max_notes=max_notes))

    def __len__(self) -> int:
        return len(self.deltas)
