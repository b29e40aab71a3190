"""Tests for reading melodies from MIDI and rendering them as MML."""

from pathlib import Path
import sys

import mido
import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from melosearch.midi_melody import (  # noqa: E402
    LENGTH_SUFFIXES,
    closest_duration,
    extract_lanes,
    notes_to_mml,
    read_midi_notes,
)
from melosearch.mml import Note, parse_mml  # noqa: E402
from melosearch.pattern import MelodyPattern  # noqa: E402

TPB = 480


def _track(events, channel: int = 0) -> mido.MidiTrack:
    """Build a track from ``(key, start_beats, length_beats)`` triples."""

    timed = []
    for key, start, length in events:
        on = int(start * TPB)
        off = int((start + length) * TPB)
        timed.append((on, 1, mido.Message("note_on", note=key, velocity=100, channel=channel)))
        timed.append((off, 0, mido.Message("note_off", note=key, velocity=0, channel=channel)))
    timed.sort(key=lambda item: (item[0], item[1]))

    track = mido.MidiTrack()
    last = 0
    for tick, _, msg in timed:
        track.append(msg.copy(time=tick - last))
        last = tick
    return track


def _midi(*tracks: mido.MidiTrack) -> mido.MidiFile:
    mid = mido.MidiFile(ticks_per_beat=TPB)
    mid.tracks.extend(tracks)
    return mid


# ── read_midi_notes ─────────────────────────────────────────────────


class TestReadMidiNotes:
    def test_quarter_notes_rescaled(self):
        mid = _midi(_track([(60, 0, 1), (62, 1, 1), (64, 2, 0.5)]))
        assert read_midi_notes(mid) == [
            Note(time=0, key=60, duration=48),
            Note(time=48, key=62, duration=48),
            Note(time=96, key=64, duration=24),
        ]

    def test_chord_keeps_highest_key(self):
        mid = _midi(_track([(60, 0, 1), (67, 0, 1), (64, 0, 1), (62, 1, 1)]))
        assert [n.key for n in read_midi_notes(mid)] == [67, 62]

    def test_overlap_cut_at_next_onset(self):
        mid = _midi(_track([(60, 0, 2), (62, 1, 1)]))
        notes = read_midi_notes(mid)
        assert [(n.time, n.duration) for n in notes] == [(0, 48), (48, 48)]

    def test_note_on_velocity_zero_ends_note(self):
        track = mido.MidiTrack()
        track.append(mido.Message("note_on", note=60, velocity=90, time=0))
        track.append(mido.Message("note_on", note=60, velocity=0, time=240))
        notes = read_midi_notes(_midi(track))
        assert notes == [Note(time=0, key=60, duration=24)]

    def test_lane_selection(self):
        bass = _track([(36, 0, 1)], channel=1)
        lead = _track([(72, 0, 1)], channel=0)
        mid = _midi(mido.MidiTrack(), bass, lead)
        assert sorted(extract_lanes(mid)) == [(1, 1), (2, 0)]
        assert read_midi_notes(mid)[0].key == 36
        assert read_midi_notes(mid, track=2)[0].key == 72
        assert read_midi_notes(mid, channel=0)[0].key == 72

    def test_missing_lane(self):
        mid = _midi(_track([(60, 0, 1)]))
        with pytest.raises(ValueError, match="no notes found in channel 9"):
            read_midi_notes(mid, channel=9)
        with pytest.raises(ValueError, match="any track"):
            read_midi_notes(_midi(mido.MidiTrack()))

    def test_reads_from_path(self, tmp_path):
        path = tmp_path / "tune.mid"
        _midi(_track([(60, 0, 1), (65, 1, 1)])).save(str(path))
        assert [n.key for n in read_midi_notes(path)] == [60, 65]


# ── notes_to_mml ───────────────────────────────────────────────────


class TestNotesToMML:
    def test_lengths_octaves_and_rests(self):
        notes = [
            Note(time=0, key=48, duration=48),
            Note(time=48, key=50, duration=24),
            Note(time=96, key=60, duration=72),
        ]
        assert notes_to_mml(notes) == "o4 c d8 r8 < c4."

    def test_sharps_and_octave_jumps(self):
        notes = [
            Note(time=0, key=61, duration=48),
            Note(time=48, key=30, duration=48),
            Note(time=96, key=47, duration=48),
        ]
        mml = notes_to_mml(notes)
        assert mml == "o5 c+ o2 f+ < b"
        assert [n.key for n in parse_mml(mml)] == [61, 30, 47]

    def test_long_gap_split_into_rests(self):
        notes = [Note(time=0, key=48, duration=48), Note(time=400, key=48, duration=48)]
        parsed = parse_mml(notes_to_mml(notes))
        assert [n.time for n in parsed] == [0, 400]

    def test_midi_to_pattern_round_trip(self):
        mid = _midi(_track([(64, 0, 1), (62, 1, 0.5), (60, 1.5, 0.5), (62, 2, 1), (64, 4, 1)]))
        notes = read_midi_notes(mid)
        pattern = MelodyPattern.from_mml(notes_to_mml(notes))
        assert pattern.deltas == MelodyPattern.from_notes(notes).deltas
        assert [n.time for n in pattern.notes] == [n.time for n in notes]

    def test_empty(self):
        with pytest.raises(ValueError):
            notes_to_mml([])


def test_closest_duration():
    assert closest_duration(48) == 48
    assert closest_duration(72) == 72
    assert closest_duration(1000) == 336
    assert closest_duration(0, not_above=True) == 1
    assert closest_duration(30, not_above=True) <= 30


def test_length_table_spellings_parse_back():
    for duration, suffix in LENGTH_SUFFIXES.items():
        assert parse_mml("c" + suffix)[0].duration == duration
