"""Keys, scales, time signatures and pitch conversion."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

# Semitone offsets from C (case-sensitive, enharmonics included)
NOTE_OFFSETS: Mapping[str, int] = MappingProxyType(
    {
        "C": 0,
        "C#": 1,
        "Db": 1,
        "D": 2,
        "D#": 3,
        "Eb": 3,
        "E": 4,
        "Fb": 4,
        "E#": 5,
        "F": 5,
        "F#": 6,
        "Gb": 6,
        "G": 7,
        "G#": 8,
        "Ab": 8,
        "A": 9,
        "A#": 10,
        "Bb": 10,
        "B": 11,
        "Cb": 11,
        "B#": 0,
    }
)

# Scale intervals (semitones from root) - tuples so they can never be emptied in place
SCALE_INTERVALS: Mapping[str, tuple[int, ...]] = MappingProxyType(
    {
        "major": (0, 2, 4, 5, 7, 9, 11),
        "minor": (0, 2, 3, 5, 7, 8, 10),
        "aeolian": (0, 2, 3, 5, 7, 8, 10),
        "dorian": (0, 2, 3, 5, 7, 9, 10),
        "lydian": (0, 2, 4, 6, 7, 9, 11),
        "mixolydian": (0, 2, 4, 5, 7, 9, 10),
        "phrygian": (0, 1, 3, 5, 7, 8, 10),
        "pentatonic": (0, 2, 4, 7, 9),
        "chromatic": (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11),
    }
)

DEFAULT_MODE = "major"
MIDDLE_C = 60


@dataclass(frozen=True)
class Key:
    """A root pitch plus the scale built on it."""

    root_midi: int
    scale: tuple[int, ...]


@dataclass(frozen=True)
class TimeSignature:
    beats_per_measure: int = 4
    beat_value: int = 4


def parse_key(key: str) -> Key:
    """Parse strings like "E minor", "C Lydian" or "Db major".

    Unknown roots fall back to C and unknown modes to major. The sentinels
    "varies" (or anything mentioning "to", as in "D to F") and "free" map to
    C major and A aeolian respectively.
    """
    parts = key.split()
    root_note = parts[0] if parts else "C"
    mode = " ".join(parts[1:]).lower() if len(parts) > 1 else DEFAULT_MODE

    if key == "varies" or "to" in key:
        root_note, mode = "C", "major"
    if key == "free":
        root_note, mode = "A", "aeolian"

    offset = NOTE_OFFSETS.get(root_note, 0)
    scale = SCALE_INTERVALS.get(mode, SCALE_INTERVALS[DEFAULT_MODE])
    return Key(root_midi=MIDDLE_C + offset, scale=scale)


def scale_note(root_midi: int, scale: Sequence[int], degree: int, octave_shift: int = 0) -> int:
    """MIDI note for a (possibly negative or multi-octave) scale degree."""
    length = len(scale)
    octave, index = divmod(degree, length)
    return root_midi + scale[index] + (octave + octave_shift) * 12


def midi_to_freq(midi: float) -> float:
    return 440.0 * 2 ** ((midi - 69) / 12)


def _positive_int(text: str, default: int) -> int:
    try:
        value = int(float(text))
    except (ValueError, OverflowError):
        return default
    return value if value > 0 else default


def parse_time_signature(text: str) -> TimeSignature:
    """Parse "N/M"; "free" and anything malformed count as 4/4."""
    if text == "free":
        return TimeSignature()
    parts = text.split("/")
    beats = _positive_int(parts[0].strip(), 4)
    value = _positive_int(parts[1].strip(), 4) if len(parts) > 1 else 4
    return TimeSignature(beats_per_measure=beats, beat_value=value)


def beat_duration(tempo: float, division: float = 1.0) -> float:
    """Seconds per beat (times ``division``) at ``tempo`` BPM."""
    return 60.0 / tempo * division


def measure_duration(tempo: float, time_signature: TimeSignature) -> float:
    return time_signature.beats_per_measure * beat_duration(tempo)


def measures_in(duration: float, tempo: float, time_signature: TimeSignature) -> int:
    return math.ceil(duration / measure_duration(tempo, time_signature))
