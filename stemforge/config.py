from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import InvalidSpecError

_LOGGER = logging.getLogger("stemforge.config")

WaveformType = Literal["sine", "triangle", "sawtooth", "square", "pulse", "noise"]
Biome = Literal[
    "village",
    "grassland",
    "forest",
    "mountain",
    "riverside",
    "wetland",
    "plains",
    "dungeon",
    "sketch",
    "stagnation",
]


# -----------------------------------------------------------------------------
# Instrument configuration
# -----------------------------------------------------------------------------


class Adsr(BaseModel):
    """Attack/decay/release in seconds, sustain as a 0..1 level."""

    attack: float = Field(ge=0.0)
    decay: float = Field(ge=0.0)
    sustain: float = Field(ge=0.0, le=1.0)
    release: float = Field(ge=0.0)

    model_config = ConfigDict(frozen=True)


class Vibrato(BaseModel):
    rate_hz: float = Field(gt=0.0)
    depth_cents: float = Field(ge=0.0)

    model_config = ConfigDict(frozen=True)


class Tremolo(BaseModel):
    rate_hz: float = Field(gt=0.0)
    depth: float = Field(ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)


class ReverbSend(BaseModel):
    wet: float = Field(ge=0.0, le=1.0)
    room_size: float = Field(default=0.5, ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)


class InstrumentConfig(BaseModel):
    """A synthesis voice: oscillator, envelope, filter and modulation settings.

    Instances are immutable; tweaks go through ``model_copy(update=...)`` so a
    preset shared across renders is never changed underneath another caller.
    """

    waveform: WaveformType
    adsr: Adsr
    filter_cutoff: float | None = Field(default=None, gt=0.0)
    detune_cents: float | None = None
    harmonics: tuple[float, ...] | None = None
    vibrato: Vibrato | None = None
    tremolo: Tremolo | None = None
    gain: float = Field(default=0.5, ge=0.0)
    reverb: ReverbSend | None = None
    pulse_width: float = Field(default=0.5, gt=0.0, lt=1.0)

    model_config = ConfigDict(frozen=True)

    @property
    def harmonic_amplitudes(self) -> tuple[float, ...]:
        return self.harmonics if self.harmonics else (1.0,)

    @property
    def reverb_wet(self) -> float:
        return self.reverb.wet if self.reverb is not None else 0.0


# -----------------------------------------------------------------------------
# Input contract handed over by the build layer
# -----------------------------------------------------------------------------


class StemSpec(BaseModel):
    """One layer of a track: which instruments play it and what it does."""

    layer: int = Field(ge=1, le=4)
    instruments: str
    description: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")


class TrackSpec(BaseModel):
    """Background track description (camelCase keys accepted)."""

    id: str
    tempo: int = Field(gt=0)
    key: str
    time_signature: str = Field(default="4/4", alias="timeSignature")
    mood: str = ""
    duration_sec: float = Field(gt=0.0, alias="durationSec")
    stems: tuple[StemSpec, ...] = Field(min_length=1, max_length=4)

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @model_validator(mode="after")
    def _layers_unique(self) -> TrackSpec:
        layers = [stem.layer for stem in self.stems]
        if len(set(layers)) != len(layers):
            raise ValueError(f"duplicate stem layers: {layers}")
        return self


class AmbientSpec(BaseModel):
    id: str
    biome: Biome
    name: str = ""
    description: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")


def parse_track_spec(payload: Mapping[str, Any]) -> TrackSpec:
    """Validate a track payload, raising InvalidSpecError on failure."""

    try:
        return TrackSpec.model_validate(payload)
    except ValidationError as exc:
        _LOGGER.warning("Failed to parse track spec: %s", exc)
        raise InvalidSpecError(str(exc)) from exc


def parse_ambient_spec(payload: Mapping[str, Any]) -> AmbientSpec:
    """Validate an ambient payload, raising InvalidSpecError on failure."""

    try:
        return AmbientSpec.model_validate(payload)
    except ValidationError as exc:
        _LOGGER.warning("Failed to parse ambient spec: %s", exc)
        raise InvalidSpecError(str(exc)) from exc
