import math

import numpy as np
import pytest

from stemforge.audio import SAMPLE_RATE
from stemforge.config import Adsr, InstrumentConfig, ReverbSend, Tremolo, Vibrato
from stemforge.patterns import NoteEvent
from stemforge.synth import (
    AllPassFilter,
    CombFilter,
    LowPassFilter,
    ReverbEffect,
    adsr_at,
    adsr_curve,
    apply_fades,
    apply_reverb,
    crossfade_loop,
    mix_into,
    normalize,
    oscillator,
    oscillator_array,
    render_note,
    render_note_into,
    soft_limit,
)

ADSR = Adsr(attack=0.1, decay=0.2, sustain=0.5, release=0.3)


def _sine(**overrides: object) -> InstrumentConfig:
    fields: dict[str, object] = {
        "waveform": "sine",
        "adsr": Adsr(attack=0.01, decay=0.05, sustain=0.8, release=0.1),
        "gain": 0.5,
    }
    fields.update(overrides)
    return InstrumentConfig.model_validate(fields)


class TestOscillator:
    def test_sine(self) -> None:
        assert oscillator(0.25, "sine") == pytest.approx(1.0)
        assert oscillator(1.75, "sine") == pytest.approx(-1.0)

    def test_triangle(self) -> None:
        assert oscillator(0.0, "triangle") == pytest.approx(1.0)
        assert oscillator(0.5, "triangle") == pytest.approx(-1.0)
        assert oscillator(0.25, "triangle") == pytest.approx(0.0)

    def test_sawtooth(self) -> None:
        assert oscillator(0.0, "sawtooth") == pytest.approx(-1.0)
        assert oscillator(0.75, "sawtooth") == pytest.approx(0.5)

    def test_square_and_pulse(self) -> None:
        assert oscillator(0.49, "square") == 1.0
        assert oscillator(0.5, "square") == -1.0
        assert oscillator(0.2, "pulse", pulse_width=0.25) == 1.0
        assert oscillator(0.3, "pulse", pulse_width=0.25) == -1.0

    def test_noise_is_bounded(self) -> None:
        rng = np.random.default_rng(0)
        values = [oscillator(0.0, "noise", rng=rng) for _ in range(200)]
        assert all(-1.0 <= value < 1.0 for value in values)

    def test_unknown_kind_raises(self) -> None:
        with pytest.raises(ValueError):
            oscillator(0.0, "organ")  # type: ignore[arg-type]

    @pytest.mark.parametrize("kind", ["sine", "triangle", "sawtooth", "square", "pulse"])
    def test_array_matches_scalar(self, kind: str) -> None:
        phases = np.linspace(-1.3, 2.7, 97)
        expected = [oscillator(float(p), kind, 0.3) for p in phases]  # type: ignore[arg-type]
        actual = oscillator_array(phases, kind, 0.3)  # type: ignore[arg-type]
        assert np.allclose(actual, expected)

    def test_seeded_noise_array_is_reproducible(self) -> None:
        phases = np.zeros(64)
        first = oscillator_array(phases, "noise", rng=np.random.default_rng(7))
        second = oscillator_array(phases, "noise", rng=np.random.default_rng(7))
        assert np.array_equal(first, second)


class TestAdsr:
    def test_boundaries(self) -> None:
        assert adsr_at(-0.01, 1.0, ADSR) == 0.0
        assert adsr_at(0.0, 1.0, ADSR) == 0.0
        assert adsr_at(0.05, 1.0, ADSR) == pytest.approx(0.5)
        assert adsr_at(0.1, 1.0, ADSR) == pytest.approx(1.0)
        assert adsr_at(0.2, 1.0, ADSR) == pytest.approx(0.75)
        assert adsr_at(0.5, 1.0, ADSR) == pytest.approx(0.5)
        assert adsr_at(0.85, 1.0, ADSR) == pytest.approx(0.25)
        assert adsr_at(1.0, 1.0, ADSR) == 0.0
        assert adsr_at(2.0, 1.0, ADSR) == 0.0

    def test_zero_attack_starts_at_full_level(self) -> None:
        adsr = Adsr(attack=0.0, decay=0.0, sustain=0.6, release=0.1)
        assert adsr_at(0.0, 1.0, adsr) == pytest.approx(0.6)

    def test_curve_matches_scalar(self) -> None:
        t = np.linspace(-0.1, 1.2, 301)
        expected = [adsr_at(float(x), 1.0, ADSR) for x in t]
        assert np.allclose(adsr_curve(t, 1.0, ADSR), expected)

    def test_never_exceeds_one(self) -> None:
        t = np.linspace(0, 2, 1000)
        assert adsr_curve(t, 2.0, ADSR).max() <= 1.0


class TestLowPassFilter:
    def test_alpha(self) -> None:
        lpf = LowPassFilter(1000.0)
        dt = 1.0 / SAMPLE_RATE
        rc = 1.0 / (2 * math.pi * 1000.0)
        assert lpf.alpha == pytest.approx(dt / (rc + dt))

    def test_converges_to_dc(self) -> None:
        out = LowPassFilter(500.0).process(np.ones(SAMPLE_RATE // 10))
        assert out[0] == pytest.approx(LowPassFilter(500.0).alpha)
        assert out[-1] == pytest.approx(1.0, abs=1e-6)

    def test_state_carries_across_chunks(self) -> None:
        signal = np.random.default_rng(3).uniform(-1, 1, 5000)
        whole = LowPassFilter(800.0).process(signal)
        lpf = LowPassFilter(800.0)
        chunked = np.concatenate([lpf.process(signal[:1234]), lpf.process(signal[1234:])])
        assert np.allclose(whole, chunked)

    def test_reset_clears_state(self) -> None:
        lpf = LowPassFilter(800.0)
        first = lpf.process(np.ones(100))
        lpf.reset()
        assert np.allclose(lpf.process(np.ones(100)), first)


class TestReverb:
    def test_comb_impulse_response(self) -> None:
        impulse = np.zeros(20)
        impulse[0] = 1.0
        out = CombFilter(5, 0.5).process(impulse)
        assert out[5] == pytest.approx(1.0)
        assert out[10] == pytest.approx(0.5)
        assert out[15] == pytest.approx(0.25)
        assert np.count_nonzero(out) == 3

    def test_allpass_impulse_response(self) -> None:
        impulse = np.zeros(12)
        impulse[0] = 1.0
        out = AllPassFilter(4, 0.5).process(impulse)
        assert out[0] == pytest.approx(-1.0)
        assert out[4] == pytest.approx(1.0)
        assert out[8] == pytest.approx(0.5)

    def test_state_carries_across_chunks(self) -> None:
        signal = np.random.default_rng(4).uniform(-1, 1, 6000)
        whole = ReverbEffect(0.6, 0.4).process(signal)
        reverb = ReverbEffect(0.6, 0.4)
        chunked = np.concatenate(
            [
                reverb.process(signal[:777]),
                reverb.process(signal[777:3001]),
                reverb.process(signal[3001:]),
            ]
        )
        assert np.allclose(whole, chunked)

    def test_zero_wet_is_dry(self) -> None:
        signal = np.random.default_rng(5).uniform(-1, 1, 3000)
        assert np.allclose(apply_reverb(signal, 0.5, 0.0), signal)

    def test_adds_a_tail(self) -> None:
        signal = np.zeros(SAMPLE_RATE // 2)
        signal[:100] = 1.0
        out = apply_reverb(signal, 0.5, 0.5)
        assert np.abs(out[5000:]).max() > 0.0

    def test_long_buffers_use_simple_delay(self) -> None:
        signal = np.zeros(SAMPLE_RATE * 31)
        signal[0] = 1.0
        out = apply_reverb(signal, 0.0, 1.0)
        # First tap lands ~30ms later instead of on the comb delays
        assert out[int(0.03 * SAMPLE_RATE)] == pytest.approx(0.5)
        assert out[1557] == 0.0


class TestDynamics:
    def test_soft_limit_bound(self) -> None:
        loud = np.linspace(-50, 50, 1001)
        limited = soft_limit(loud)
        assert np.abs(limited).max() < 1.0 / 1.5 + 1e-12
        assert soft_limit(np.zeros(3)).tolist() == [0.0, 0.0, 0.0]

    def test_normalize_hits_target(self) -> None:
        buffer = np.array([0.1, -0.4, 0.2])
        out = normalize(buffer, 0.8)
        assert np.abs(out).max() == pytest.approx(0.8)
        assert out[0] == pytest.approx(0.2)

    def test_normalize_passes_silence_through(self) -> None:
        silent = np.zeros(10)
        assert normalize(silent) is silent

    def test_fades(self) -> None:
        buffer = np.ones(SAMPLE_RATE)
        apply_fades(buffer, 0.1, 0.2)
        assert buffer[0] == 0.0
        assert buffer[int(0.05 * SAMPLE_RATE)] == pytest.approx(0.5)
        assert buffer[SAMPLE_RATE // 2] == 1.0
        assert buffer[-1] == 0.0

    def test_fades_longer_than_buffer(self) -> None:
        buffer = np.ones(10)
        apply_fades(buffer, 1.0, 1.0, sample_rate=100)
        assert buffer[0] == 0.0

    def test_crossfade_loop_blends_tail_into_head(self) -> None:
        buffer = np.concatenate([np.zeros(100), np.ones(100)])
        crossfade_loop(buffer, 0.5, sample_rate=100)
        # Head starts as the tail and ramps to itself
        assert buffer[0] == pytest.approx(1.0)
        assert buffer[25] == pytest.approx(0.5)
        assert buffer[-1] == 1.0


class TestRenderNote:
    note = NoteEvent(time=0.0, duration=0.2, frequency=440.0, velocity=0.8)

    def test_length_includes_release(self) -> None:
        config = _sine()
        out = render_note(self.note, config)
        assert out.size == math.ceil((0.2 + 0.1) * SAMPLE_RATE)

    def test_level_scales_with_gain_and_velocity(self) -> None:
        loud = render_note(self.note, _sine(gain=0.5))
        quiet = render_note(self.note, _sine(gain=0.25))
        assert np.allclose(quiet, loud * 0.5)
        assert np.abs(loud).max() <= 0.5 * 0.8 + 1e-9

    def test_accumulates(self) -> None:
        config = _sine()
        dest = np.zeros(SAMPLE_RATE)
        render_note_into(dest, 100, self.note, config)
        once = dest.copy()
        render_note_into(dest, 100, self.note, config)
        assert np.allclose(dest, once * 2)
        assert np.all(once[:100] == 0.0)

    def test_overlapping_notes_sum(self) -> None:
        config = _sine(waveform="triangle", filter_cutoff=3000.0)
        other = NoteEvent(time=0.0, duration=0.3, frequency=330.0, velocity=0.5)
        together = np.zeros(SAMPLE_RATE)
        render_note_into(together, 0, self.note, config)
        render_note_into(together, 2000, other, config)
        first = np.zeros(SAMPLE_RATE)
        second = np.zeros(SAMPLE_RATE)
        render_note_into(first, 0, self.note, config)
        render_note_into(second, 2000, other, config)
        assert np.allclose(together, first + second)

    def test_clips_to_destination(self) -> None:
        config = _sine()
        dest = np.zeros(1000)
        render_note_into(dest, 900, self.note, config)
        render_note_into(dest, -500, self.note, config)
        render_note_into(dest, 5000, self.note, config)
        assert np.abs(dest).max() > 0.0

    def test_envelope_ends_at_note_duration(self) -> None:
        out = render_note(self.note, _sine())
        assert np.all(out[int(0.2 * SAMPLE_RATE) + 1 :] == 0.0)

    def test_modulations_and_filter_render(self) -> None:
        config = _sine(
            waveform="sawtooth",
            filter_cutoff=1200.0,
            detune_cents=8.0,
            harmonics=(1.0, 0.5, 0.0, 0.25),
            vibrato=Vibrato(rate_hz=5.0, depth_cents=20.0),
            tremolo=Tremolo(rate_hz=4.0, depth=0.3),
            reverb=ReverbSend(wet=0.3),
        )
        out = render_note(self.note, config)
        assert np.isfinite(out).all()
        assert np.abs(out).max() > 0.0

    def test_noise_with_seeded_generator(self) -> None:
        config = _sine(waveform="noise")
        first = render_note(self.note, config, rng=np.random.default_rng(1))
        second = render_note(self.note, config, rng=np.random.default_rng(1))
        assert np.array_equal(first, second)


def test_mix_into_clips_both_ends() -> None:
    dest = np.zeros(5)
    mix_into(dest, np.ones(4), 3)
    mix_into(dest, np.ones(4), -2)
    assert dest.tolist() == [1.0, 1.0, 0.0, 1.0, 1.0]
