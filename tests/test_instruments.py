import pytest

from stemforge.errors import UnknownPresetError
from stemforge.instruments import (
    INSTRUMENT_PRESETS,
    INSTRUMENT_RULES,
    get_preset,
    resolve_instrument,
)


def test_registry_has_the_full_palette() -> None:
    assert len(INSTRUMENT_PRESETS) == 45
    assert {"violin", "pad", "triangle-perc", "electric-bass", "singing-bowl"} <= set(
        INSTRUMENT_PRESETS
    )


def test_every_rule_points_at_a_preset() -> None:
    for rule in INSTRUMENT_RULES:
        assert rule.preset in INSTRUMENT_PRESETS


def test_get_preset_returns_independent_copy() -> None:
    first = get_preset("violin")
    second = get_preset("violin")
    assert first == INSTRUMENT_PRESETS["violin"]
    assert first is not INSTRUMENT_PRESETS["violin"]
    assert first is not second


def test_get_preset_unknown_name() -> None:
    with pytest.raises(UnknownPresetError):
        get_preset("theremin")
    with pytest.raises(KeyError):
        get_preset("theremin")


@pytest.mark.parametrize(
    ("description", "expected"),
    [
        ("solo violin with light vibrato", "violin"),
        ("Music Box melody", "music-box"),
        ("low pan pipes", "pan-pipes"),
        ("bass drum hits", "bass-drum"),
        ("double bass pizzicato", "contrabass"),
        ("warm french horn", "horn"),
        ("nylon fingerpicking", "guitar"),
        ("deep ambient synth", "pad"),
        ("choral voices", "choir"),
    ],
)
def test_resolve_instrument(description: str, expected: str) -> None:
    assert resolve_instrument(description) == INSTRUMENT_PRESETS[expected]


def test_triangle_waveform_is_not_percussion() -> None:
    assert resolve_instrument("triangle waveform lead") != INSTRUMENT_PRESETS["triangle-perc"]
    assert resolve_instrument("orchestral triangle") == INSTRUMENT_PRESETS["triangle-perc"]


def test_unmatched_text_falls_back_to_pad() -> None:
    assert resolve_instrument("kazoo ensemble") == INSTRUMENT_PRESETS["pad"]
    assert resolve_instrument("") == INSTRUMENT_PRESETS["pad"]


def test_resolved_instrument_does_not_alias_registry() -> None:
    resolved = resolve_instrument("piano")
    tweaked = resolved.model_copy(update={"gain": 0.01})
    assert tweaked.gain == 0.01
    assert INSTRUMENT_PRESETS["piano"].gain != 0.01
