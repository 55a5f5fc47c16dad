from __future__ import annotations

from .ambient import (
    AMBIENT_LOOP_SECONDS,
    BIOME_PALETTES,
    compose_ambient_loop,
    compose_ambient_samples,
)
from .audio import SAMPLE_RATE, decode_wav, encode_wav
from .composer import classify_role, compose_stem, compose_stem_samples, compose_track
from .config import (
    Adsr,
    AmbientSpec,
    Biome,
    InstrumentConfig,
    ReverbSend,
    StemSpec,
    TrackSpec,
    Tremolo,
    Vibrato,
    WaveformType,
    parse_ambient_spec,
    parse_track_spec,
)
from .descriptors import SYNTH_VERSION, ambient_descriptor, descriptor_hash, stem_descriptor
from .errors import InvalidSpecError, StemforgeError, UnknownPresetError
from .instruments import INSTRUMENT_PRESETS, get_preset, resolve_instrument
from .logging_utils import configure_logging as _configure_logging
from .patterns import NoteEvent
from .rng import SeededRng

__all__ = [
    "AMBIENT_LOOP_SECONDS",
    "BIOME_PALETTES",
    "INSTRUMENT_PRESETS",
    "SAMPLE_RATE",
    "SYNTH_VERSION",
    "Adsr",
    "AmbientSpec",
    "Biome",
    "InstrumentConfig",
    "InvalidSpecError",
    "NoteEvent",
    "ReverbSend",
    "SeededRng",
    "StemSpec",
    "StemforgeError",
    "TrackSpec",
    "Tremolo",
    "UnknownPresetError",
    "Vibrato",
    "WaveformType",
    "ambient_descriptor",
    "classify_role",
    "compose_ambient_loop",
    "compose_ambient_samples",
    "compose_stem",
    "compose_stem_samples",
    "compose_track",
    "decode_wav",
    "descriptor_hash",
    "encode_wav",
    "get_preset",
    "parse_ambient_spec",
    "parse_track_spec",
    "resolve_instrument",
    "stem_descriptor",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
