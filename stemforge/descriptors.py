"""Canonical descriptors for rendered assets, hashed for cache invalidation."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from .config import AmbientSpec, TrackSpec

# Bump to invalidate every previously rendered asset.
SYNTH_VERSION = "1.0.0"

DESCRIPTOR_HASH_LENGTH = 16


def _json_number(value: float) -> int | float:
    # Integral seconds serialise without a fraction: 60, not 60.0.
    return int(value) if value.is_integer() else value


def _dumps(payload: dict[str, Any]) -> str:
    # Insertion order is kept so the string matches the field order below.
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def stem_descriptor(track: TrackSpec, layer_index: int) -> str:
    """Return the JSON descriptor of ``track.stems[layer_index]``."""
    stem = track.stems[layer_index]
    return _dumps(
        {
            "id": track.id,
            "layer": stem.layer,
            "tempo": track.tempo,
            "key": track.key,
            "timeSignature": track.time_signature,
            "mood": track.mood,
            "durationSec": _json_number(track.duration_sec),
            "instruments": stem.instruments,
            "description": stem.description,
            "synthVersion": SYNTH_VERSION,
        }
    )


def ambient_descriptor(spec: AmbientSpec) -> str:
    return _dumps(
        {
            "id": spec.id,
            "biome": spec.biome,
            "description": spec.description,
            "synthVersion": SYNTH_VERSION,
        }
    )


def descriptor_hash(descriptor: str) -> str:
    """Return a short, stable hash of a descriptor string."""
    digest = hashlib.sha256(descriptor.encode("utf-8")).hexdigest()
    return digest[:DESCRIPTOR_HASH_LENGTH]
