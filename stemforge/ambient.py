"""Biome soundscapes: procedural nature textures mixed into a seamless loop.

Every texture has the signature ``(buffer, rng, duration, volume, **params)``
and adds into ``buffer`` without clearing it. Event textures (chirps, drips,
croaks) walk a time cursor with the LCG stream and render each event as one
vectorised burst; continuous textures (wind, water, hum) cover the whole
buffer at once. Noise is drawn from ``rng.numpy`` so the loop is fully
determined by the asset id.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import numpy as np
from scipy.signal import lfilter  # type: ignore[import]

from .audio import SAMPLE_RATE, FloatArray, encode_wav
from .config import AmbientSpec, Biome
from .rng import SeededRng
from .synth import TWO_PI, LowPassFilter, apply_fades, crossfade_loop, normalize, soft_limit

_LOGGER = logging.getLogger("stemforge.ambient")

AMBIENT_LOOP_SECONDS = 30.0
AMBIENT_PEAK = 0.7
LOOP_CROSSFADE_SECONDS = 2.0
AMBIENT_FADE_SECONDS = 0.3

Texture = Callable[..., None]


def _local_times(buffer: FloatArray, start: int, samples: int) -> FloatArray:
    """Seconds since ``start`` for up to ``samples`` samples, clipped to the buffer end."""
    count = min(samples, buffer.size - start)
    if count <= 0:
        return np.zeros(0)
    return np.arange(count) / SAMPLE_RATE


def _burst(buffer: FloatArray, start_time: float, length_sec: float) -> tuple[int, FloatArray]:
    """Start sample and local times of an event, clipped to the buffer end."""
    start = math.floor(start_time * SAMPLE_RATE)
    return start, _local_times(buffer, start, math.floor(length_sec * SAMPLE_RATE))


def _add(buffer: FloatArray, start: int, values: FloatArray) -> None:
    if values.size:
        buffer[start : start + values.size] += values


def _timeline(buffer: FloatArray) -> FloatArray:
    return np.arange(buffer.size) / SAMPLE_RATE


def _one_pole(signal: FloatArray, alpha: float) -> FloatArray:
    return np.asarray(lfilter([alpha], [1.0, alpha - 1.0], signal), dtype=np.float64)


# =============================================================================
# CONTINUOUS TEXTURES
# =============================================================================


def add_wind(
    buffer: FloatArray,
    rng: SeededRng,
    duration: float,
    volume: float,
    cutoff_hz: float = 2000.0,
) -> None:
    """Low-passed noise swelling on a ten-second cycle."""
    _ = duration
    t = _timeline(buffer)
    swell = 0.5 + 0.5 * np.sin(0.2 * math.pi * t + rng.uniforms(buffer.size) * 0.01)
    raw = rng.noise(buffer.size) * swell * volume
    buffer += LowPassFilter(cutoff_hz).process(raw)


def add_insects(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    """Two slightly detuned hums with a slow amplitude wobble."""
    _ = duration
    buzz = 120 + rng.next() * 80
    t = _timeline(buffer)
    wobble = 0.3 + 0.7 * (0.5 + 0.5 * np.sin(0.5 * math.pi * t))
    hum = np.sin(TWO_PI * buzz * t) * 0.3 + np.sin(TWO_PI * buzz * 1.01 * t) * 0.2
    buffer += hum * wobble * volume * 0.15


def add_water_flow(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    """Noise through two gentle one-pole stages, slowly modulated."""
    _ = duration
    t = _timeline(buffer)
    mod = 0.6 + 0.4 * np.sin(0.15 * math.pi * t)
    flow = _one_pole(_one_pole(rng.noise(buffer.size), 0.01), 0.02)
    buffer += flow * mod * volume * 3


def add_low_rumble(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    _ = (rng, duration)
    t = _timeline(buffer)
    mod = 0.3 + 0.7 * (0.5 + 0.5 * np.sin(0.05 * math.pi * t))
    rumble = (
        np.sin(TWO_PI * 30 * t) * 0.5
        + np.sin(TWO_PI * 45 * t) * 0.3
        + np.sin(TWO_PI * 60 * t) * 0.2
    )
    buffer += rumble * mod * volume * 0.3


# =============================================================================
# EVENT TEXTURES
# =============================================================================


def _chirp(
    buffer: FloatArray,
    start: int,
    length: float,
    base: float,
    carrier: float,
    mod_hz: float,
    amplitude: float,
) -> None:
    st = _local_times(buffer, start, math.floor(length * SAMPLE_RATE))
    env = np.sin(math.pi * st / length)
    freq = carrier + np.sin(TWO_PI * mod_hz * st) * base * 0.3
    _add(buffer, start, np.sin(TWO_PI * freq * st) * env * amplitude)


def add_birds(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    """FM chirps, each repeated up to twice a little higher."""
    time = rng.next() * 2
    while time < duration:
        length = 0.05 + rng.next() * 0.15
        base = 2000 + rng.next() * 3000
        mod_hz = 10 + rng.next() * 30
        start = math.floor(time * SAMPLE_RATE)
        _chirp(buffer, start, length, base, base, mod_hz, volume * 0.3)

        for repeat in range(1, rng.next_int(1, 3)):
            offset = start + math.floor((length + 0.05) * repeat * SAMPLE_RATE)
            _chirp(buffer, offset, length, base, base * 1.1, mod_hz, volume * 0.25)

        time += 1.5 + rng.next() * 5


def add_water_splash(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    time = rng.next() * 3
    while time < duration:
        length = 0.1 + rng.next() * 0.2
        start, st = _burst(buffer, time, length)
        env = np.exp(-st / (length * 0.3))
        _add(buffer, start, rng.noise(st.size) * env * volume * 0.2)
        time += 2 + rng.next() * 6


def add_water_drips(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    time = rng.next()
    while time < duration:
        freq = 800 + rng.next() * 2000
        length = 0.03 + rng.next() * 0.06
        start, st = _burst(buffer, time, length)
        env = np.exp(-st / (length * 0.2))
        _add(buffer, start, np.sin(TWO_PI * freq * st) * env * volume * 0.3)
        time += 0.5 + rng.next() * 3


def _croak(
    buffer: FloatArray,
    start_time: float,
    length: float,
    freq: float,
    amplitude: float,
    wobble: bool,
) -> None:
    start = math.floor(start_time * SAMPLE_RATE)
    st = _local_times(buffer, start, math.floor(length * SAMPLE_RATE))
    env = np.sin(math.pi * st / length)
    pitch = freq * (1 + 0.1 * np.sin(TWO_PI * 30 * st)) if wobble else freq
    square = np.where(np.sin(TWO_PI * pitch * st) > 0, 1.0, -1.0)
    _add(buffer, start, square * env * amplitude)


def add_frog_chorus(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    """Three to six frogs croaking square-wave bursts, often in pairs."""
    for _ in range(3 + math.floor(rng.next() * 4)):
        base = 200 + rng.next() * 400
        time = rng.next() * 2
        while time < duration:
            length = 0.1 + rng.next() * 0.15
            _croak(buffer, time, length, base, volume * 0.1, wobble=True)

            if rng.next() < 0.6:
                gap = 0.1 + rng.next() * 0.1
                time += length + gap
                _croak(buffer, time, length, base * 1.2, volume * 0.08, wobble=False)

            time += 0.5 + rng.next() * 4


def add_cave_echo(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    """Sparse decaying tones between 200 and 500 Hz."""
    time = rng.next() * 3
    while time < duration:
        freq = 200 + rng.next() * 300
        length = 0.5 + rng.next() * 1.5
        start, st = _burst(buffer, time, length)
        env = np.exp(-st / (length * 0.4))
        _add(buffer, start, np.sin(TWO_PI * freq * st) * env * volume * 0.15)
        time += 3 + rng.next() * 8


def add_woodpecker(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    """Runs of three to seven noise taps, 80ms apart."""
    time = rng.next() * 5
    while time < duration:
        for tap in range(3 + math.floor(rng.next() * 5)):
            start, st = _burst(buffer, time + tap * 0.08, 0.015)
            env = np.exp(-st / 0.003)
            _add(buffer, start, rng.noise(st.size) * env * volume * 0.3)
        time += 4 + rng.next() * 10


def add_scratch(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    time = rng.next() * 2
    while time < duration:
        length = 0.3 + rng.next() * 0.5
        start, st = _burst(buffer, time, length)
        env = np.sin(math.pi * st / length) * 0.5
        _add(buffer, start, rng.noise(st.size) * env * volume * 0.05)
        time += 1.5 + rng.next() * 4


def _partials(
    st: FloatArray, freq: float, ratios: tuple[float, ...], weights: tuple[float, ...]
) -> FloatArray:
    tone = np.zeros(st.size)
    for ratio, weight in zip(ratios, weights):
        tone += np.sin(TWO_PI * freq * ratio * st) * weight
    return tone


CHIME_RATIOS = (1.0, 2.32, 4.17, 6.85)
CHIME_WEIGHTS = (0.5, 0.25, 0.15, 0.1)
CRYSTAL_RATIOS = (1.0, 2.756, 5.404)
CRYSTAL_WEIGHTS = (0.5, 0.3, 0.2)


def add_random_chimes(
    buffer: FloatArray,
    rng: SeededRng,
    duration: float,
    volume: float,
    min_hz: float = 1500.0,
    max_hz: float = 4000.0,
) -> None:
    """Metal chimes with inharmonic partials at random pitches in a band."""
    time = rng.next() * 1.5
    while time < duration:
        freq = min_hz + rng.next() * (max_hz - min_hz)
        length = 0.4 + rng.next() * 0.8
        start, st = _burst(buffer, time, length)
        env = np.exp(-st / (length * 0.25))
        tone = _partials(st, freq, CHIME_RATIOS, CHIME_WEIGHTS)
        _add(buffer, start, tone * env * volume * 0.2)
        time += 1 + rng.next() * 4


def add_crystal_tinkle(buffer: FloatArray, rng: SeededRng, duration: float, volume: float) -> None:
    time = rng.next()
    while time < duration:
        freq = 3000 + rng.next() * 5000
        length = 0.3 + rng.next() * 1.0
        start, st = _burst(buffer, time, length)
        env = np.exp(-st / (length * 0.3))
        tone = _partials(st, freq, CRYSTAL_RATIOS, CRYSTAL_WEIGHTS)
        _add(buffer, start, tone * env * volume * 0.15)
        time += 1 + rng.next() * 3


# =============================================================================
# BIOME PALETTES
# =============================================================================


@dataclass(frozen=True)
class TextureLayer:
    texture: Texture
    volume: float
    params: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))

    def apply(self, buffer: FloatArray, rng: SeededRng, duration: float) -> None:
        self.texture(buffer, rng, duration, self.volume, **self.params)


def _layer(texture: Texture, volume: float, **params: float) -> TextureLayer:
    return TextureLayer(texture, volume, MappingProxyType(params))


# Layer order is part of the sound: every layer draws from the same stream.
BIOME_PALETTES: Mapping[Biome, tuple[TextureLayer, ...]] = MappingProxyType(
    {
        "village": (
            _layer(add_birds, 0.3),
            _layer(add_wind, 0.1, cutoff_hz=2000),
            _layer(add_random_chimes, 0.08, min_hz=1500, max_hz=4000),
        ),
        "grassland": (
            _layer(add_wind, 0.25, cutoff_hz=1500),
            _layer(add_insects, 0.15),
            _layer(add_birds, 0.1),
        ),
        "forest": (
            _layer(add_wind, 0.2, cutoff_hz=2500),
            _layer(add_birds, 0.2),
            _layer(add_woodpecker, 0.15),
        ),
        "mountain": (
            _layer(add_wind, 0.35, cutoff_hz=800),
            _layer(add_low_rumble, 0.15),
            _layer(add_birds, 0.05),
        ),
        "riverside": (
            _layer(add_water_flow, 0.35),
            _layer(add_water_splash, 0.15),
            _layer(add_birds, 0.08),
        ),
        "wetland": (
            _layer(add_frog_chorus, 0.25),
            _layer(add_water_drips, 0.2),
            _layer(add_insects, 0.15),
        ),
        "plains": (
            _layer(add_wind, 0.3, cutoff_hz=1200),
            _layer(add_low_rumble, 0.05),
        ),
        "dungeon": (
            _layer(add_water_drips, 0.25),
            _layer(add_low_rumble, 0.2),
            _layer(add_cave_echo, 0.15),
        ),
        "sketch": (_layer(add_scratch, 0.08),),
        "stagnation": (
            _layer(add_crystal_tinkle, 0.2),
            _layer(add_wind, 0.15, cutoff_hz=600),
        ),
    }
)


def compose_ambient_samples(spec: AmbientSpec) -> FloatArray:
    """Render a biome's palette into a post-processed 30 second loop."""
    rng = SeededRng(spec.id)
    duration = AMBIENT_LOOP_SECONDS
    buffer = np.zeros(math.ceil(duration * SAMPLE_RATE))

    _LOGGER.info("Composing ambient: %s (%s)", spec.name or spec.id, spec.biome)
    for layer in BIOME_PALETTES.get(spec.biome, ()):
        _LOGGER.debug("%s: %s @ %.2f", spec.id, layer.texture.__name__, layer.volume)
        layer.apply(buffer, rng, duration)

    processed = normalize(soft_limit(buffer), AMBIENT_PEAK)
    processed = np.array(processed, dtype=np.float64)
    crossfade_loop(processed, LOOP_CROSSFADE_SECONDS)
    apply_fades(processed, AMBIENT_FADE_SECONDS, AMBIENT_FADE_SECONDS)
    return processed


def compose_ambient_loop(spec: AmbientSpec) -> bytes:
    """Render a biome loop and encode it as 16-bit mono WAV bytes."""
    return encode_wav(compose_ambient_samples(spec))
