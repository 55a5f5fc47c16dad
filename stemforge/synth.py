# pyright: reportUnknownVariableType=false
# pyright: reportUnknownMemberType=false
# pyright: reportUnknownArgumentType=false

"""
Architecture:

1. Oscillators and envelopes (scalar reference forms plus vectorised forms)
2. Filters and effects: one-pole low-pass, Schroeder reverb, limiter, normalizer, fades
3. Note renderer: accumulate one timed note into a shared buffer
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np
from scipy.signal import lfilter  # type: ignore[import]

from .audio import SAMPLE_RATE, FloatArray
from .config import Adsr, InstrumentConfig, WaveformType

if TYPE_CHECKING:
    from .patterns import NoteEvent

TWO_PI = 2.0 * math.pi

# Envelope level below which a sample is skipped entirely
AUDIBLE_THRESHOLD = 0.001

# Buffers longer than this use the two-tap delay instead of the full reverb
REVERB_FALLBACK_SECONDS = 30.0

COMB_DELAYS = (1557, 1617, 1491, 1422)
ALLPASS_DELAYS = (225, 556)
ALLPASS_FEEDBACK = 0.5


# =============================================================================
# PART 1: OSCILLATORS & ENVELOPES
# =============================================================================


def oscillator(
    phase: float,
    kind: WaveformType,
    pulse_width: float = 0.5,
    rng: np.random.Generator | None = None,
) -> float:
    """One waveform sample for a phase in cycles (wrapped into [0, 1))."""
    p = phase % 1.0
    match kind:
        case "sine":
            return math.sin(p * TWO_PI)
        case "triangle":
            return 4.0 * abs(p - 0.5) - 1.0
        case "sawtooth":
            return 2.0 * p - 1.0
        case "square":
            return 1.0 if p < 0.5 else -1.0
        case "pulse":
            return 1.0 if p < pulse_width else -1.0
        case "noise":
            generator = rng or np.random.default_rng()
            return float(generator.uniform(-1.0, 1.0))
    raise ValueError(f"Unknown waveform: {kind!r}")


def oscillator_array(
    phases: FloatArray,
    kind: WaveformType,
    pulse_width: float = 0.5,
    rng: np.random.Generator | None = None,
) -> FloatArray:
    """Vectorised ``oscillator``; noise is drawn fresh per sample."""
    p = np.mod(phases, 1.0)
    match kind:
        case "sine":
            return np.sin(p * TWO_PI)
        case "triangle":
            return 4.0 * np.abs(p - 0.5) - 1.0
        case "sawtooth":
            return 2.0 * p - 1.0
        case "square":
            return np.where(p < 0.5, 1.0, -1.0)
        case "pulse":
            return np.where(p < pulse_width, 1.0, -1.0)
        case "noise":
            generator = rng or np.random.default_rng()
            return generator.uniform(-1.0, 1.0, p.shape)
    raise ValueError(f"Unknown waveform: {kind!r}")


def adsr_at(t: float, duration: float, adsr: Adsr) -> float:
    """Envelope level at ``t`` seconds into a note lasting ``duration`` seconds.

    ``duration`` already includes whatever release the caller wants to hear;
    the release ramp ends exactly at ``duration``.
    """
    release_start = duration - adsr.release

    if t < 0:
        return 0.0
    if t < adsr.attack:
        return t / adsr.attack
    if t < adsr.attack + adsr.decay:
        progress = (t - adsr.attack) / adsr.decay
        return 1.0 - (1.0 - adsr.sustain) * progress
    if t < release_start:
        return adsr.sustain
    if t < duration:
        progress = (t - release_start) / adsr.release
        return adsr.sustain * (1.0 - progress)
    return 0.0


def adsr_curve(t: FloatArray, duration: float, adsr: Adsr) -> FloatArray:
    """Vectorised ``adsr_at`` over an array of times."""
    attack, decay, sustain, release = adsr.attack, adsr.decay, adsr.sustain, adsr.release
    release_start = duration - release

    # Zero-length segments are never selected, so 1.0 only avoids dividing by zero.
    conditions = (
        t < 0,
        t < attack,
        t < attack + decay,
        t < release_start,
        t < duration,
    )
    choices = (
        np.zeros_like(t),
        t / (attack or 1.0),
        1.0 - (1.0 - sustain) * (t - attack) / (decay or 1.0),
        np.full_like(t, sustain),
        sustain * (1.0 - (t - release_start) / (release or 1.0)),
    )
    return np.select(conditions, choices, default=0.0)


# =============================================================================
# PART 2: FILTERS & EFFECTS
# =============================================================================


class LowPassFilter:
    """One-pole IIR low-pass: ``y[n] = y[n-1] + alpha * (x[n] - y[n-1])``.

    State carries across ``process`` calls until ``reset``.
    """

    def __init__(self, cutoff: float, sample_rate: int = SAMPLE_RATE) -> None:
        dt = 1.0 / sample_rate
        rc = 1.0 / (TWO_PI * cutoff)
        self.alpha = dt / (rc + dt)
        self._b = np.array([self.alpha])
        self._a = np.array([1.0, self.alpha - 1.0])
        self._zi = np.zeros(1)

    def process(self, signal: FloatArray) -> FloatArray:
        if signal.size == 0:
            return np.zeros(0)
        filtered, self._zi = lfilter(self._b, self._a, signal, zi=self._zi)
        return np.asarray(filtered, dtype=np.float64)

    def reset(self) -> None:
        self._zi = np.zeros(1)


def _feedback_delay_line(
    history: FloatArray, signal: FloatArray, delay: int, feedback: float
) -> FloatArray:
    """Run ``w[n] = x[n] + feedback * w[n - delay]`` one delay-length block at a time.

    The returned line is ``history`` (the previous ``delay`` values of w)
    followed by the new values, so ``line[i]`` is w delayed by ``delay``.
    """
    line = np.concatenate((history, np.asarray(signal, dtype=np.float64)))
    total = line.size
    for start in range(delay, total, delay):
        end = min(start + delay, total)
        line[start:end] += feedback * line[start - delay : end - delay]
    return line


class CombFilter:
    """Feedback comb filter with its own delay line."""

    def __init__(self, delay_samples: int, feedback: float) -> None:
        self.delay = delay_samples
        self.feedback = feedback
        self._history = np.zeros(delay_samples)

    def process(self, signal: FloatArray) -> FloatArray:
        line = _feedback_delay_line(self._history, signal, self.delay, self.feedback)
        self._history = line[-self.delay :].copy()
        return line[: signal.size].copy()


class AllPassFilter:
    """Schroeder all-pass stage with its own delay line."""

    def __init__(self, delay_samples: int, feedback: float) -> None:
        self.delay = delay_samples
        self.feedback = feedback
        self._history = np.zeros(delay_samples)

    def process(self, signal: FloatArray) -> FloatArray:
        line = _feedback_delay_line(self._history, signal, self.delay, self.feedback)
        self._history = line[-self.delay :].copy()
        return line[: signal.size] - signal


class ReverbEffect:
    """Four parallel combs averaged, then two all-passes in series."""

    def __init__(self, room_size: float = 0.5, wet: float = 0.3) -> None:
        feedback = 0.6 + room_size * 0.29
        self.combs = tuple(CombFilter(delay, feedback) for delay in COMB_DELAYS)
        self.allpasses = tuple(AllPassFilter(delay, ALLPASS_FEEDBACK) for delay in ALLPASS_DELAYS)
        self.wet = wet

    def process(self, signal: FloatArray) -> FloatArray:
        summed = np.zeros(signal.size)
        for comb in self.combs:
            summed += comb.process(signal)
        summed /= len(self.combs)
        for allpass in self.allpasses:
            summed = allpass.process(summed)
        return signal * (1.0 - self.wet) + summed * self.wet


def _apply_simple_delay(
    buffer: FloatArray, room_size: float, wet: float, sample_rate: int = SAMPLE_RATE
) -> FloatArray:
    """Two feedback taps (~30ms and ~70ms, stretched by room size)."""
    delay1 = int(0.03 * sample_rate * (1.0 + room_size))
    delay2 = int(0.07 * sample_rate * (1.0 + room_size))
    feedback = 0.3 + room_size * 0.2

    tap1 = CombFilter(delay1, feedback).process(buffer)
    tap2 = CombFilter(delay2, feedback).process(buffer)
    wet_signal = (tap1 + tap2) * 0.5
    return buffer * (1.0 - wet) + wet_signal * wet


def apply_reverb(
    buffer: FloatArray,
    room_size: float = 0.5,
    wet: float = 0.3,
    sample_rate: int = SAMPLE_RATE,
) -> FloatArray:
    """Reverberate a whole buffer; long buffers get the cheap delay instead."""
    if buffer.size > sample_rate * REVERB_FALLBACK_SECONDS:
        return _apply_simple_delay(buffer, room_size, wet, sample_rate)
    return ReverbEffect(room_size, wet).process(buffer)


def soft_limit(buffer: FloatArray) -> FloatArray:
    """Tame transients with ``tanh(1.5x) / 1.5``."""
    return np.tanh(buffer * 1.5) / 1.5


def normalize(buffer: FloatArray, target_peak: float = 0.85) -> FloatArray:
    """Scale so the loudest sample sits at ``target_peak``; silence passes through."""
    peak = float(np.max(np.abs(buffer))) if buffer.size else 0.0
    if peak == 0.0:
        return buffer
    return buffer * (target_peak / peak)


def apply_fades(
    buffer: FloatArray,
    fade_in_sec: float,
    fade_out_sec: float,
    sample_rate: int = SAMPLE_RATE,
) -> None:
    """Linear fade-in and fade-out, in place."""
    size = buffer.size
    fade_in = min(int(fade_in_sec * sample_rate), size)
    fade_out = min(int(fade_out_sec * sample_rate), size)
    if fade_in > 0:
        buffer[:fade_in] *= np.arange(fade_in) / fade_in
    if fade_out > 0:
        buffer[size - fade_out :] *= (np.arange(fade_out) / fade_out)[::-1]


def crossfade_loop(buffer: FloatArray, seconds: float, sample_rate: int = SAMPLE_RATE) -> None:
    """Blend the buffer's tail into its head so playback can wrap around, in place."""
    count = min(int(seconds * sample_rate), buffer.size)
    if count <= 0:
        return
    fade = np.arange(count) / count
    buffer[:count] = buffer[:count] * fade + buffer[buffer.size - count :] * (1.0 - fade)


# =============================================================================
# PART 3: NOTE RENDERING
# =============================================================================


def render_note_into(
    dest: FloatArray,
    offset_samples: int,
    note: NoteEvent,
    config: InstrumentConfig,
    sample_rate: int = SAMPLE_RATE,
    rng: np.random.Generator | None = None,
) -> None:
    """Add one note into ``dest`` starting at ``offset_samples``.

    Always accumulates, so overlapping notes mix. Samples that would land
    outside ``dest`` are dropped, and so are samples whose envelope is
    inaudible; the low-pass filter only ever sees the samples that are kept.
    """
    total = math.ceil((note.duration + config.adsr.release) * sample_rate)
    start = max(0, -offset_samples)
    end = min(total, dest.size - offset_samples)
    if end <= start:
        return

    index = np.arange(start, end)
    t = index / sample_rate
    envelope = adsr_curve(t, note.duration, config.adsr)
    audible = envelope >= AUDIBLE_THRESHOLD
    if not audible.any():
        return
    index, t, envelope = index[audible], t[audible], envelope[audible]

    freq: float | FloatArray = note.frequency
    if config.vibrato is not None:
        cents = np.sin(TWO_PI * config.vibrato.rate_hz * t) * config.vibrato.depth_cents
        freq = note.frequency * 2.0 ** (cents / 1200.0)

    sample = np.zeros(t.size)
    for harmonic, amplitude in enumerate(config.harmonic_amplitudes):
        if amplitude == 0:
            continue
        phases = freq * (harmonic + 1) * t
        sample += oscillator_array(phases, config.waveform, config.pulse_width, rng) * amplitude

    # Chorus
    if config.detune_cents:
        detuned = note.frequency * 2.0 ** (config.detune_cents / 1200.0)
        chorus = oscillator_array(detuned * t, config.waveform, config.pulse_width, rng)
        sample = (sample + chorus) * 0.5

    if config.tremolo is not None:
        sweep = 0.5 + 0.5 * np.sin(TWO_PI * config.tremolo.rate_hz * t)
        sample *= 1.0 - config.tremolo.depth * sweep

    if config.filter_cutoff:
        sample = LowPassFilter(config.filter_cutoff, sample_rate).process(sample)

    dest[offset_samples + index] += sample * envelope * (config.gain * note.velocity)


def render_note(
    note: NoteEvent,
    config: InstrumentConfig,
    sample_rate: int = SAMPLE_RATE,
    rng: np.random.Generator | None = None,
) -> FloatArray:
    """Render a note into its own buffer sized to duration plus release."""
    total = math.ceil((note.duration + config.adsr.release) * sample_rate)
    output = np.zeros(total)
    render_note_into(output, 0, note, config, sample_rate, rng)
    return output


def mix_into(dest: FloatArray, source: FloatArray, offset_samples: int) -> None:
    """Add ``source`` into ``dest`` at an offset, dropping what falls outside."""
    start = max(0, -offset_samples)
    end = min(source.size, dest.size - offset_samples)
    if end <= start:
        return
    dest[offset_samples + start : offset_samples + end] += source[start:end]
