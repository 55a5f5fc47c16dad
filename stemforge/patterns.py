"""Seeded pattern generators that turn key, tempo and mood into timed notes.

Every generator walks a time cursor across ``[0, duration)`` and returns
the notes in start order. A cursor that cannot advance (a non-positive step)
ends the walk instead of spinning.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from types import MappingProxyType

from .rng import SeededRng
from .theory import (
    TimeSignature,
    beat_duration,
    measure_duration,
    measures_in,
    midi_to_freq,
    scale_note,
)

# Lowest chord span worth emitting; shorter trailing fractions end a chord loop
MIN_CHORD_SECONDS = 0.1
MELODY_DEGREE_RANGE = (-7, 14)
BASS_OCTAVE = -2


@dataclass(frozen=True)
class NoteEvent:
    """A timed note with its frequency already resolved."""

    time: float
    duration: float
    frequency: float
    velocity: float


@dataclass(frozen=True)
class MelodyParams:
    step_range: int = 3
    rest_probability: float = 0.15
    hold_probability: float = 0.2
    base_velocity: float = 0.7


DEFAULT_MELODY_PARAMS = MelodyParams()

_GENTLE = MelodyParams(2, 0.2, 0.3, 0.5)
_LIVELY = MelodyParams(4, 0.1, 0.1, 0.85)
_MYSTERIOUS = MelodyParams(3, 0.25, 0.35, 0.55)
_EPIC = MelodyParams(5, 0.1, 0.15, 0.9)
_ANCIENT = MelodyParams(2, 0.3, 0.4, 0.5)
_COLD = MelodyParams(3, 0.2, 0.25, 0.6)
_WARM = MelodyParams(3, 0.15, 0.25, 0.7)

MOOD_MELODY_PARAMS: Mapping[str, MelodyParams] = MappingProxyType(
    {
        "gentle": _GENTLE,
        "tender": _GENTLE,
        "pastoral": _GENTLE,
        "lively": _LIVELY,
        "energetic": _LIVELY,
        "triumphant": _LIVELY,
        "mysterious": _MYSTERIOUS,
        "ethereal": _MYSTERIOUS,
        "reflective": _MYSTERIOUS,
        "epic": _EPIC,
        "determined": _EPIC,
        "ancient": _ANCIENT,
        "sacred": _ANCIENT,
        "primordial": _ANCIENT,
        "cold": _COLD,
        "stark": _COLD,
        "austere": _COLD,
        "tense": _COLD,
        "warm": _WARM,
        "nostalgic": _WARM,
        "joyful": _WARM,
        "melancholic": MelodyParams(2, 0.2, 0.35, 0.5),
        "expansive": MelodyParams(4, 0.2, 0.3, 0.65),
        "transcendent": MelodyParams(4, 0.15, 0.3, 0.75),
    }
)

# Chord shapes as scale degrees above the tonic
ARPEGGIO_PATTERNS: tuple[tuple[int, ...], ...] = (
    (0, 2, 4, 2),  # I
    (3, 5, 7, 5),  # IV
    (4, 6, 8, 6),  # V
    (0, 2, 4, 7),  # I add
)

CHORD_PROGRESSIONS: tuple[tuple[tuple[int, ...], ...], ...] = (
    ((0, 2, 4), (5, 7, 9), (3, 5, 7), (4, 6, 8)),  # I-vi-IV-V
    ((0, 2, 4), (3, 5, 7), (4, 6, 8), (0, 2, 4)),  # I-IV-V-I
    ((0, 2, 4), (4, 6, 8), (5, 7, 9), (3, 5, 7)),  # I-V-vi-IV
)

BASS_ROOT_DEGREES = (0, 3, 4, 0)  # I-IV-V-I


def melody_params_for(mood: str) -> MelodyParams:
    """Melody knobs for a mood; unmapped moods keep the defaults."""
    return MOOD_MELODY_PARAMS.get(mood, DEFAULT_MELODY_PARAMS)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _note(
    time: float,
    duration: float,
    root_midi: int,
    scale: Sequence[int],
    degree: int,
    octave_shift: int,
    velocity: float,
) -> NoteEvent:
    midi = scale_note(root_midi, scale, degree, octave_shift)
    return NoteEvent(time=time, duration=duration, frequency=midi_to_freq(midi), velocity=velocity)


def generate_melody(
    rng: SeededRng,
    root_midi: int,
    scale: Sequence[int],
    tempo: float,
    time_signature: TimeSignature,
    duration: float,
    mood: str,
    octave_shift: int = 0,
) -> list[NoteEvent]:
    """Random walk over scale degrees with mood-shaped rests and held notes."""
    params = melody_params_for(mood)
    beat = beat_duration(tempo)
    if beat <= 0:
        return []
    events: list[NoteEvent] = []
    low, high = MELODY_DEGREE_RANGE

    degree = 0
    time = 0.0
    for _ in range(measures_in(duration, tempo, time_signature)):
        if time >= duration:
            break
        for _ in range(time_signature.beats_per_measure):
            if time >= duration:
                break
            subdivisions = 2 if rng.next() < 0.3 else 1
            step_len = beat / subdivisions
            for _ in range(subdivisions):
                if time >= duration:
                    break

                if rng.next() < params.rest_probability:
                    time += step_len
                    continue

                if rng.next() < params.hold_probability and events:
                    held = events[-1]
                    events[-1] = replace(held, duration=held.duration + step_len)
                    time += step_len
                    continue

                degree += rng.next_int(-params.step_range, params.step_range)
                degree = int(_clamp(degree, low, high))
                velocity = params.base_velocity + rng.next() * 0.15 - 0.075
                events.append(
                    _note(
                        time,
                        step_len * 0.9,
                        root_midi,
                        scale,
                        degree,
                        octave_shift,
                        _clamp(velocity, 0.1, 1.0),
                    )
                )
                time += step_len

    return events


def generate_arpeggio(
    rng: SeededRng,
    root_midi: int,
    scale: Sequence[int],
    tempo: float,
    time_signature: TimeSignature,
    duration: float,
    octave_shift: int,
    velocity: float,
) -> list[NoteEvent]:
    """Eighth-note broken chords, one chord shape per measure, cycling I-IV-V-I(add)."""
    step_len = beat_duration(tempo, 0.5)
    steps_per_measure = time_signature.beats_per_measure * 2
    if step_len <= 0 or steps_per_measure <= 0:
        return []
    events: list[NoteEvent] = []

    time = 0.0
    pattern_index = 0
    while time < duration:
        pattern = ARPEGGIO_PATTERNS[pattern_index % len(ARPEGGIO_PATTERNS)]
        for i in range(steps_per_measure):
            if time >= duration:
                break
            events.append(
                _note(
                    time,
                    step_len * 0.8,
                    root_midi,
                    scale,
                    pattern[i % len(pattern)],
                    octave_shift,
                    velocity + rng.next() * 0.1 - 0.05,
                )
            )
            time += step_len
        pattern_index += 1

    return events


def generate_chord_pad(
    rng: SeededRng,
    root_midi: int,
    scale: Sequence[int],
    tempo: float,
    time_signature: TimeSignature,
    duration: float,
    octave_shift: int,
    velocity: float,
) -> list[NoteEvent]:
    """Sustained triads, two measures each, from one randomly chosen progression."""
    chord_len = measure_duration(tempo, time_signature) * 2
    progression = rng.pick(CHORD_PROGRESSIONS)
    events: list[NoteEvent] = []

    time = 0.0
    chord_index = 0
    while time < duration:
        chord = progression[chord_index % len(progression)]
        span = min(chord_len, duration - time)
        if span < MIN_CHORD_SECONDS:
            break

        for degree in chord:
            events.append(
                _note(
                    time,
                    span * 0.95,
                    root_midi,
                    scale,
                    degree,
                    octave_shift,
                    velocity * (0.8 + rng.next() * 0.2),
                )
            )

        time += span
        chord_index += 1

    return events


def generate_bass_line(
    rng: SeededRng,
    root_midi: int,
    scale: Sequence[int],
    tempo: float,
    time_signature: TimeSignature,
    duration: float,
    velocity: float,
) -> list[NoteEvent]:
    """Root and fifth on alternating beats over I-IV-V-I, two measures per chord."""
    _ = rng
    beat = beat_duration(tempo)
    chord_len = measure_duration(tempo, time_signature) * 2
    events: list[NoteEvent] = []

    time = 0.0
    chord_index = 0
    while time < duration:
        root = BASS_ROOT_DEGREES[chord_index % len(BASS_ROOT_DEGREES)]
        span = min(chord_len, duration - time)
        beats_in_chord = int(span / beat)
        if beats_in_chord <= 0:
            break

        for b in range(beats_in_chord):
            if time >= duration:
                break
            degree = root if b % 2 == 0 else root + 4
            events.append(
                _note(
                    time,
                    beat * 0.8,
                    root_midi,
                    scale,
                    degree,
                    BASS_OCTAVE,
                    velocity * (1.0 if b == 0 else 0.7),
                )
            )
            time += beat
        chord_index += 1

    return events


def generate_percussion(
    rng: SeededRng,
    tempo: float,
    time_signature: TimeSignature,
    duration: float,
    base_frequency: float,
    velocity: float,
    density: float,
) -> list[NoteEvent]:
    """Probabilistic hits on a half-beat grid; offbeats fire half as often and softer."""
    step_len = beat_duration(tempo, 0.5)
    steps_per_measure = time_signature.beats_per_measure * 2
    if step_len <= 0 or steps_per_measure <= 0:
        return []
    events: list[NoteEvent] = []

    time = 0.0
    while time < duration:
        for step in range(steps_per_measure):
            if time >= duration:
                break
            downbeat = step % 2 == 0
            chance = density if downbeat else density * 0.5
            if rng.next() < chance:
                jitter = 1.0 + (rng.next() * 0.2 - 0.1)
                events.append(
                    NoteEvent(
                        time=time,
                        duration=step_len * 0.4,
                        frequency=base_frequency * jitter,
                        velocity=velocity * (1.0 if downbeat else 0.6),
                    )
                )
            time += step_len

    return events


def generate_drone(
    root_midi: int,
    scale: Sequence[int],
    duration: float,
    octave_shift: int,
    velocity: float,
) -> list[NoteEvent]:
    """One tonic note held for the whole duration."""
    return [_note(0.0, duration, root_midi, scale, 0, octave_shift, velocity)]
