"""Stem composer: track + stem description -> rendered, encoded stem."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Literal

import numpy as np

from .audio import SAMPLE_RATE, FloatArray, encode_wav
from .config import InstrumentConfig, ReverbSend, StemSpec, TrackSpec
from .instruments import resolve_instrument
from .patterns import (
    NoteEvent,
    generate_arpeggio,
    generate_bass_line,
    generate_chord_pad,
    generate_drone,
    generate_melody,
    generate_percussion,
)
from .rng import SeededRng
from .synth import apply_fades, apply_reverb, normalize, render_note_into, soft_limit
from .theory import TimeSignature, midi_to_freq, parse_key, parse_time_signature, scale_note

_LOGGER = logging.getLogger("stemforge.composer")

Role = Literal["rhythm", "bass", "melody", "arpeggio", "drone", "choir", "chords", "accent"]

# Extra render room so release tails are not cut before trimming
RELEASE_TAIL_SECONDS = 3.0
# Tail kept after the nominal duration
STEM_TAIL_SECONDS = 1.0
STEM_PEAK = 0.8
STEM_FADE_IN_SECONDS = 0.5
STEM_FADE_OUT_SECONDS = 1.0

PERCUSSION_BASE_HZ = 100.0
PERCUSSION_DENSITY = 0.7

COLD_MOODS = ("cold", "austere")
AIRY_MOODS = ("ethereal", "transcendent")
MAX_AIRY_WET = 0.7


@dataclass(frozen=True)
class RoleRule:
    role: Role
    keywords: tuple[str, ...]
    excludes: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if any(word in text for word in self.excludes):
            return False
        return any(word in text for word in self.keywords)


# First match wins; order matters.
ROLE_RULES: tuple[RoleRule, ...] = (
    RoleRule("rhythm", ("rhythm", "percussion", "drum", "snare", "timpani")),
    RoleRule("bass", ("bass",), excludes=("clarinet",)),
    RoleRule("melody", ("melody", "solo", "theme")),
    RoleRule("arpeggio", ("arpeggi", "broken chord", "fingerpick")),
    RoleRule("drone", ("drone", "sustain", "pad", "harmonic")),
    RoleRule("choir", ("choir", "voice", "vocal", "singing", "humming")),
    RoleRule("chords", ("chord", "support", "harmoni", "foundation", "bed")),
    RoleRule("accent", ("sparkle", "chime", "bell", "drip")),
)
DEFAULT_ROLE: Role = "melody"


def classify_role(description: str, instruments: str) -> Role:
    """Infer what a stem does musically from its free-text description."""
    text = f"{description} {instruments}".lower()
    for rule in ROLE_RULES:
        if rule.matches(text):
            return rule.role
    return DEFAULT_ROLE


def apply_mood_tweaks(instrument: InstrumentConfig, mood: str) -> InstrumentConfig:
    """Return a copy with vibrato and reverb adjusted for the track mood."""
    tweaked = instrument
    if mood in COLD_MOODS:
        if tweaked.vibrato is not None and tweaked.vibrato.depth_cents:
            vibrato = tweaked.vibrato.model_copy(
                update={"depth_cents": tweaked.vibrato.depth_cents * 0.5}
            )
            tweaked = tweaked.model_copy(update={"vibrato": vibrato})
        if tweaked.reverb is not None and tweaked.reverb.wet:
            reverb = tweaked.reverb.model_copy(update={"wet": tweaked.reverb.wet * 0.7})
            tweaked = tweaked.model_copy(update={"reverb": reverb})
    if mood in AIRY_MOODS:
        current = tweaked.reverb or ReverbSend(wet=0.3)
        wet = min(MAX_AIRY_WET, (current.wet or 0.3) * 1.5)
        tweaked = tweaked.model_copy(update={"reverb": current.model_copy(update={"wet": wet})})
    return tweaked


def octave_for_layer(layer: int) -> int:
    """Layer 3 sits an octave down; the others stay at the key's octave."""
    return -1 if layer == 3 else 0


def _accent_notes(
    rng: SeededRng, root_midi: int, scale: tuple[int, ...], duration: float
) -> list[NoteEvent]:
    """Sparse, quiet single notes an octave up at irregular 1.5-5.5s gaps."""
    notes: list[NoteEvent] = []
    time = rng.next() * 2
    while time < duration:
        degree = rng.next_int(0, len(scale) - 1)
        midi = scale_note(root_midi, scale, degree, 1)
        notes.append(
            NoteEvent(
                time=time,
                duration=0.5 + rng.next() * 1.5,
                frequency=midi_to_freq(midi),
                velocity=0.2 + rng.next() * 0.2,
            )
        )
        time += 1.5 + rng.next() * 4
    return notes


def _compose_notes(
    role: Role,
    rng: SeededRng,
    track: TrackSpec,
    time_signature: TimeSignature,
    root_midi: int,
    scale: tuple[int, ...],
    octave_shift: int,
) -> list[NoteEvent]:
    tempo = track.tempo
    duration = track.duration_sec
    match role:
        case "arpeggio":
            return generate_arpeggio(
                rng, root_midi, scale, tempo, time_signature, duration, octave_shift, 0.5
            )
        case "chords":
            return generate_chord_pad(
                rng, root_midi, scale, tempo, time_signature, duration, octave_shift, 0.4
            )
        case "bass":
            return generate_bass_line(rng, root_midi, scale, tempo, time_signature, duration, 0.6)
        case "rhythm":
            return generate_percussion(
                rng, tempo, time_signature, duration, PERCUSSION_BASE_HZ, 0.5, PERCUSSION_DENSITY
            )
        case "drone":
            return generate_drone(root_midi, scale, duration, -1, 0.4)
        case "choir":
            return generate_chord_pad(
                rng, root_midi, scale, tempo, time_signature, duration, 0, 0.35
            )
        case "accent":
            return _accent_notes(rng, root_midi, scale, duration)
        case _:
            return generate_melody(
                rng, root_midi, scale, tempo, time_signature, duration, track.mood, octave_shift
            )


def render_notes(
    notes: list[NoteEvent],
    instrument: InstrumentConfig,
    total_samples: int,
    rng: np.random.Generator | None = None,
) -> FloatArray:
    """Accumulate every note into a fresh buffer of ``total_samples``."""
    buffer = np.zeros(total_samples)
    for note in notes:
        if note.duration <= 0:
            continue
        offset = math.floor(note.time * SAMPLE_RATE)
        render_note_into(buffer, offset, note, instrument, SAMPLE_RATE, rng)
    return buffer


def compose_stem_samples(track: TrackSpec, stem: StemSpec) -> FloatArray:
    """Render one stem to post-processed float samples."""
    key = parse_key(track.key)
    time_signature = parse_time_signature(track.time_signature)
    rng = SeededRng(f"{track.id}-{stem.layer}")
    instrument = apply_mood_tweaks(resolve_instrument(stem.instruments), track.mood)
    role = classify_role(stem.description, stem.instruments)

    _LOGGER.info("Layer %d: %s [%s]", stem.layer, role, stem.instruments[:40])

    notes = _compose_notes(
        role,
        rng,
        track,
        time_signature,
        key.root_midi,
        key.scale,
        octave_for_layer(stem.layer),
    )
    _LOGGER.debug("%s layer %d: %d notes", track.id, stem.layer, len(notes))

    duration = track.duration_sec
    buffer = render_notes(
        notes,
        instrument,
        math.ceil((duration + RELEASE_TAIL_SECONDS) * SAMPLE_RATE),
        rng.numpy,
    )
    trimmed = buffer[: math.ceil((duration + STEM_TAIL_SECONDS) * SAMPLE_RATE)]

    processed = soft_limit(trimmed)
    reverb = instrument.reverb
    if reverb is not None and instrument.reverb_wet > 0:
        processed = apply_reverb(processed, reverb.room_size, instrument.reverb_wet)
    processed = normalize(processed, STEM_PEAK)
    # normalize hands silence back unchanged; fade a copy so inputs stay untouched
    processed = np.array(processed, dtype=np.float64)
    apply_fades(processed, STEM_FADE_IN_SECONDS, STEM_FADE_OUT_SECONDS)
    return processed


def compose_stem(track: TrackSpec, stem: StemSpec) -> bytes:
    """Render one stem and encode it as 16-bit mono WAV bytes."""
    return encode_wav(compose_stem_samples(track, stem))


def compose_track(track: TrackSpec, max_workers: int | None = None) -> dict[int, bytes]:
    """Render every stem of a track concurrently, keyed by layer number."""
    _LOGGER.info(
        "[%s] %d bpm %s %s, %d stem(s)",
        track.id,
        track.tempo,
        track.key,
        track.mood,
        len(track.stems),
    )
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {stem.layer: executor.submit(compose_stem, track, stem) for stem in track.stems}
        return {layer: future.result() for layer, future in futures.items()}
