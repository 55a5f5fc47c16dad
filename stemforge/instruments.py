"""Instrument presets and free-text instrument resolution.

The preset table is read-only. Every lookup hands back a deep copy so that
mood tweaks applied to one stem can never leak into another render.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .config import Adsr, InstrumentConfig, ReverbSend, Tremolo, Vibrato, WaveformType
from .errors import UnknownPresetError

DEFAULT_PRESET = "pad"


def _preset(
    waveform: WaveformType,
    adsr: tuple[float, float, float, float],
    *,
    cutoff: float | None = None,
    vibrato: tuple[float, float] | None = None,
    tremolo: tuple[float, float] | None = None,
    detune: float | None = None,
    harmonics: tuple[float, ...] | None = None,
    gain: float = 0.5,
    wet: float | None = None,
) -> InstrumentConfig:
    attack, decay, sustain, release = adsr
    return InstrumentConfig(
        waveform=waveform,
        adsr=Adsr(attack=attack, decay=decay, sustain=sustain, release=release),
        filter_cutoff=cutoff,
        vibrato=Vibrato(rate_hz=vibrato[0], depth_cents=vibrato[1]) if vibrato else None,
        tremolo=Tremolo(rate_hz=tremolo[0], depth=tremolo[1]) if tremolo else None,
        detune_cents=detune,
        harmonics=harmonics,
        gain=gain,
        reverb=ReverbSend(wet=wet) if wet is not None else None,
    )


INSTRUMENT_PRESETS: Mapping[str, InstrumentConfig] = MappingProxyType(
    {
        # Strings
        "violin": _preset(
            "sawtooth",
            (0.08, 0.2, 0.7, 0.4),
            cutoff=4000,
            vibrato=(5, 15),
            harmonics=(1, 0.5, 0.3, 0.2),
            gain=0.4,
            wet=0.3,
        ),
        "viola": _preset(
            "sawtooth",
            (0.1, 0.2, 0.7, 0.4),
            cutoff=3000,
            vibrato=(4.5, 12),
            harmonics=(1, 0.6, 0.3),
            gain=0.35,
            wet=0.3,
        ),
        "cello": _preset(
            "sawtooth",
            (0.15, 0.3, 0.75, 0.5),
            cutoff=2500,
            vibrato=(4, 10),
            harmonics=(1, 0.7, 0.4, 0.2),
            gain=0.45,
            wet=0.35,
        ),
        "contrabass": _preset(
            "sawtooth",
            (0.2, 0.3, 0.7, 0.6),
            cutoff=1500,
            vibrato=(3, 8),
            harmonics=(1, 0.8, 0.5, 0.3),
            gain=0.5,
            wet=0.4,
        ),
        "strings": _preset(
            "sawtooth",
            (0.3, 0.4, 0.65, 0.8),
            cutoff=3500,
            detune=8,
            harmonics=(1, 0.6, 0.3, 0.15),
            gain=0.35,
            wet=0.4,
        ),
        "strings-pizzicato": _preset(
            "triangle",
            (0.005, 0.15, 0.0, 0.1),
            cutoff=5000,
            gain=0.4,
            wet=0.25,
        ),
        # Woodwinds
        "flute": _preset(
            "sine",
            (0.05, 0.1, 0.8, 0.2),
            cutoff=6000,
            vibrato=(5, 10),
            harmonics=(1, 0.1, 0.05),
            gain=0.4,
            wet=0.3,
        ),
        "clarinet": _preset(
            "square",
            (0.04, 0.15, 0.75, 0.25),
            cutoff=3000,
            vibrato=(4, 8),
            gain=0.3,
            wet=0.25,
        ),
        "oboe": _preset(
            "sawtooth",
            (0.03, 0.1, 0.8, 0.15),
            cutoff=4000,
            vibrato=(5.5, 12),
            harmonics=(1, 0.8, 0.6, 0.4),
            gain=0.3,
            wet=0.25,
        ),
        "bassoon": _preset(
            "sawtooth",
            (0.06, 0.2, 0.7, 0.3),
            cutoff=2000,
            vibrato=(4, 8),
            harmonics=(1, 0.9, 0.7, 0.4),
            gain=0.35,
            wet=0.3,
        ),
        "pan-pipes": _preset(
            "sine",
            (0.1, 0.15, 0.6, 0.5),
            cutoff=3000,
            harmonics=(1, 0.3, 0.1),
            gain=0.35,
            wet=0.45,
        ),
        "duduk": _preset(
            "sawtooth",
            (0.15, 0.3, 0.7, 0.5),
            cutoff=2500,
            vibrato=(3.5, 20),
            harmonics=(1, 0.9, 0.7, 0.5, 0.3),
            gain=0.35,
            wet=0.4,
        ),
        # Brass
        "horn": _preset(
            "sawtooth",
            (0.08, 0.2, 0.7, 0.3),
            cutoff=3000,
            vibrato=(4, 8),
            harmonics=(1, 0.7, 0.5, 0.3),
            gain=0.4,
            wet=0.35,
        ),
        "trumpet": _preset(
            "square",
            (0.04, 0.1, 0.8, 0.2),
            cutoff=5000,
            vibrato=(5, 10),
            harmonics=(1, 0.6, 0.4, 0.3),
            gain=0.4,
            wet=0.3,
        ),
        "trombone": _preset(
            "sawtooth",
            (0.06, 0.15, 0.75, 0.3),
            cutoff=2500,
            vibrato=(3.5, 8),
            harmonics=(1, 0.7, 0.5),
            gain=0.4,
            wet=0.3,
        ),
        "brass": _preset(
            "sawtooth",
            (0.06, 0.15, 0.75, 0.3),
            cutoff=3500,
            harmonics=(1, 0.6, 0.4, 0.2),
            gain=0.4,
            wet=0.35,
        ),
        "low-brass": _preset(
            "sawtooth",
            (0.1, 0.2, 0.7, 0.4),
            cutoff=2000,
            harmonics=(1, 0.8, 0.5, 0.3),
            gain=0.4,
            wet=0.4,
        ),
        # Keys & mallet
        "piano": _preset(
            "triangle",
            (0.005, 0.8, 0.2, 1.0),
            cutoff=5000,
            harmonics=(1, 0.5, 0.25, 0.12),
            gain=0.4,
            wet=0.3,
        ),
        "harp": _preset(
            "triangle",
            (0.005, 1.2, 0.1, 0.8),
            cutoff=5000,
            harmonics=(1, 0.3, 0.1),
            gain=0.35,
            wet=0.35,
        ),
        "celesta": _preset(
            "sine",
            (0.003, 0.8, 0.1, 0.5),
            cutoff=8000,
            harmonics=(1, 0.3, 0.5),
            gain=0.3,
            wet=0.4,
        ),
        "music-box": _preset(
            "sine",
            (0.002, 1.5, 0.05, 0.5),
            cutoff=8000,
            harmonics=(1, 0.1, 0.4),
            gain=0.3,
            wet=0.3,
        ),
        "glockenspiel": _preset(
            "sine",
            (0.002, 1.0, 0.05, 0.3),
            cutoff=10000,
            harmonics=(1, 0.05, 0.3),
            gain=0.25,
            wet=0.35,
        ),
        "vibraphone": _preset(
            "sine",
            (0.005, 2.0, 0.15, 1.0),
            cutoff=5000,
            tremolo=(5, 0.15),
            harmonics=(1, 0.1, 0.2),
            gain=0.3,
            wet=0.4,
        ),
        # Plucked & folk
        "guitar": _preset(
            "triangle",
            (0.003, 0.6, 0.15, 0.4),
            cutoff=4000,
            harmonics=(1, 0.5, 0.3, 0.15),
            gain=0.4,
            wet=0.2,
        ),
        "fiddle": _preset(
            "sawtooth",
            (0.03, 0.15, 0.7, 0.2),
            cutoff=5000,
            vibrato=(5.5, 18),
            harmonics=(1, 0.6, 0.3),
            gain=0.4,
            wet=0.2,
        ),
        "accordion": _preset(
            "square",
            (0.05, 0.1, 0.8, 0.2),
            cutoff=3000,
            detune=6,
            harmonics=(1, 0.4, 0.2),
            gain=0.3,
            wet=0.2,
        ),
        # Percussion
        "timpani": _preset(
            "sine",
            (0.005, 1.0, 0.1, 0.5),
            cutoff=800,
            harmonics=(1, 0.6, 0.3),
            gain=0.5,
            wet=0.4,
        ),
        "bass-drum": _preset("sine", (0.003, 0.3, 0.0, 0.2), cutoff=400, gain=0.5, wet=0.3),
        "snare": _preset("noise", (0.002, 0.15, 0.0, 0.1), cutoff=6000, gain=0.35, wet=0.2),
        "cymbal": _preset("noise", (0.005, 1.5, 0.0, 0.5), cutoff=10000, gain=0.2, wet=0.3),
        "hand-drum": _preset("noise", (0.003, 0.2, 0.0, 0.1), cutoff=3000, gain=0.3, wet=0.15),
        "triangle-perc": _preset(
            "sine",
            (0.001, 1.5, 0.0, 0.5),
            cutoff=12000,
            harmonics=(1, 0, 0.3, 0, 0.15),
            gain=0.2,
            wet=0.35,
        ),
        "tam-tam": _preset("noise", (0.3, 3.0, 0.2, 2.0), cutoff=2000, gain=0.25, wet=0.5),
        "bell": _preset(
            "sine",
            (0.002, 2.0, 0.05, 1.0),
            cutoff=8000,
            harmonics=(1, 0.3, 0.6, 0.2, 0.4),
            gain=0.25,
            wet=0.45,
        ),
        "wind-chime": _preset(
            "sine",
            (0.001, 1.2, 0.0, 0.8),
            cutoff=10000,
            harmonics=(1, 0.1, 0.5, 0.05, 0.25),
            gain=0.15,
            wet=0.5,
        ),
        "shaker": _preset("noise", (0.002, 0.1, 0.0, 0.05), cutoff=8000, gain=0.2, wet=0.1),
        # Voices
        "choir": _preset(
            "sine",
            (0.5, 0.5, 0.7, 1.0),
            cutoff=3000,
            detune=12,
            vibrato=(4, 12),
            harmonics=(1, 0.6, 0.3, 0.15),
            gain=0.35,
            wet=0.5,
        ),
        "soprano": _preset(
            "sine",
            (0.3, 0.4, 0.75, 0.8),
            cutoff=5000,
            vibrato=(5, 15),
            harmonics=(1, 0.3, 0.15),
            gain=0.35,
            wet=0.45,
        ),
        "humming": _preset(
            "sine",
            (0.4, 0.3, 0.6, 0.6),
            cutoff=1500,
            vibrato=(3, 8),
            harmonics=(1, 0.5, 0.2),
            gain=0.25,
            wet=0.4,
        ),
        # Synth & special
        "pad": _preset(
            "sawtooth",
            (1.0, 0.5, 0.6, 2.0),
            cutoff=2000,
            detune=10,
            gain=0.25,
            wet=0.5,
        ),
        "glass-harmonica": _preset(
            "sine",
            (0.3, 1.0, 0.5, 1.5),
            cutoff=6000,
            harmonics=(1, 0.05, 0.3, 0.02, 0.15),
            gain=0.25,
            wet=0.55,
        ),
        "singing-bowl": _preset(
            "sine",
            (0.5, 3.0, 0.4, 3.0),
            cutoff=4000,
            harmonics=(1, 0.2, 0.5, 0.1, 0.3),
            gain=0.3,
            wet=0.6,
        ),
        "drone": _preset(
            "sawtooth",
            (2.0, 1.0, 0.8, 3.0),
            cutoff=1000,
            detune=5,
            gain=0.3,
            wet=0.5,
        ),
        "tin-whistle": _preset(
            "sine",
            (0.02, 0.08, 0.85, 0.12),
            cutoff=8000,
            vibrato=(6, 12),
            harmonics=(1, 0.15, 0.05),
            gain=0.35,
            wet=0.2,
        ),
        "electric-bass": _preset(
            "sawtooth",
            (0.005, 0.3, 0.5, 0.2),
            cutoff=2000,
            gain=0.45,
            wet=0.1,
        ),
    }
)


@dataclass(frozen=True)
class InstrumentRule:
    """Resolve to ``preset`` when any keyword appears and no exclude does."""

    keywords: tuple[str, ...]
    preset: str
    excludes: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if any(word in text for word in self.excludes):
            return False
        return any(word in text for word in self.keywords)


# First match wins; order matters.
INSTRUMENT_RULES: tuple[InstrumentRule, ...] = (
    InstrumentRule(("violin", "solo violin"), "violin"),
    InstrumentRule(("fiddle",), "fiddle"),
    InstrumentRule(("viola",), "viola"),
    InstrumentRule(("cello",), "cello"),
    InstrumentRule(("contrabass", "double bass"), "contrabass"),
    InstrumentRule(("pizzicato", "pizz"), "strings-pizzicato"),
    InstrumentRule(("string",), "strings"),
    InstrumentRule(("flute", "recorder"), "flute"),
    InstrumentRule(("clarinet",), "clarinet"),
    InstrumentRule(("oboe",), "oboe"),
    InstrumentRule(("bassoon",), "bassoon"),
    InstrumentRule(("pan pipe",), "pan-pipes"),
    InstrumentRule(("duduk",), "duduk"),
    InstrumentRule(("tin whistle", "whistle"), "tin-whistle"),
    InstrumentRule(("french horn", "horn"), "horn"),
    InstrumentRule(("trumpet",), "trumpet"),
    InstrumentRule(("trombone",), "trombone"),
    InstrumentRule(("low brass",), "low-brass"),
    InstrumentRule(("brass",), "brass"),
    InstrumentRule(("piano",), "piano"),
    InstrumentRule(("harp",), "harp"),
    InstrumentRule(("celesta", "celestia"), "celesta"),
    InstrumentRule(("music box",), "music-box"),
    InstrumentRule(("glockenspiel",), "glockenspiel"),
    InstrumentRule(("vibraphone",), "vibraphone"),
    InstrumentRule(("guitar", "nylon"), "guitar"),
    InstrumentRule(("accordion",), "accordion"),
    InstrumentRule(("timpani",), "timpani"),
    InstrumentRule(("bass drum",), "bass-drum"),
    InstrumentRule(("snare",), "snare"),
    InstrumentRule(("cymbal",), "cymbal"),
    InstrumentRule(("tam-tam", "tamtam"), "tam-tam"),
    InstrumentRule(("triangle",), "triangle-perc", excludes=("waveform",)),
    InstrumentRule(("wind chime",), "wind-chime"),
    InstrumentRule(("hand drum", "bodhran"), "hand-drum"),
    InstrumentRule(("shaker",), "shaker"),
    InstrumentRule(("bell",), "bell"),
    InstrumentRule(("choir", "voices", "vocal"), "choir"),
    InstrumentRule(("soprano",), "soprano"),
    InstrumentRule(("humming",), "humming"),
    InstrumentRule(("glass harmonica", "glass armonica"), "glass-harmonica"),
    InstrumentRule(("singing bowl",), "singing-bowl"),
    InstrumentRule(("drone",), "drone"),
    InstrumentRule(("pad", "synth"), "pad"),
    InstrumentRule(("electric bass", "bass guitar"), "electric-bass"),
)


def get_preset(name: str) -> InstrumentConfig:
    """Return an independent copy of a named preset."""
    try:
        preset = INSTRUMENT_PRESETS[name]
    except KeyError as exc:
        raise UnknownPresetError(f"Unknown instrument preset: {name!r}") from exc
    return preset.model_copy(deep=True)


def resolve_instrument(description: str) -> InstrumentConfig:
    """Map free text such as "solo violin with light vibrato" to a preset."""
    text = description.lower()

    for name, preset in INSTRUMENT_PRESETS.items():
        if name.replace("-", " ") in text:
            return preset.model_copy(deep=True)

    for rule in INSTRUMENT_RULES:
        if rule.matches(text):
            return get_preset(rule.preset)

    return get_preset(DEFAULT_PRESET)
