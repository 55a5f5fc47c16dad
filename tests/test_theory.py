import pytest

from stemforge.theory import (
    SCALE_INTERVALS,
    TimeSignature,
    beat_duration,
    measure_duration,
    measures_in,
    midi_to_freq,
    parse_key,
    parse_time_signature,
    scale_note,
)


class TestParseKey:
    def test_root_and_mode(self) -> None:
        key = parse_key("E minor")
        assert key.root_midi == 64
        assert key.scale == SCALE_INTERVALS["minor"]

    def test_mode_is_case_insensitive(self) -> None:
        assert parse_key("C Lydian").scale == SCALE_INTERVALS["lydian"]

    def test_flat_root(self) -> None:
        assert parse_key("Db major").root_midi == 61

    def test_minor_is_aeolian(self) -> None:
        assert parse_key("A minor").scale == parse_key("A aeolian").scale
        assert parse_key("C major").root_midi == 60

    def test_bare_root_defaults_to_major(self) -> None:
        key = parse_key("G")
        assert key.root_midi == 67
        assert key.scale == SCALE_INTERVALS["major"]

    def test_unknown_root_and_mode_fall_back(self) -> None:
        key = parse_key("H hypnotic")
        assert key.root_midi == 60
        assert key.scale == SCALE_INTERVALS["major"]

    @pytest.mark.parametrize("text", ["varies", "D to F"])
    def test_varies_sentinels_map_to_c_major(self, text: str) -> None:
        key = parse_key(text)
        assert key.root_midi == 60
        assert key.scale == SCALE_INTERVALS["major"]

    def test_free_maps_to_a_aeolian(self) -> None:
        key = parse_key("free")
        assert key.root_midi == 69
        assert key.scale == SCALE_INTERVALS["aeolian"]

    def test_empty_string(self) -> None:
        assert parse_key("").root_midi == 60


class TestScaleNote:
    major = SCALE_INTERVALS["major"]

    def test_degree_within_octave(self) -> None:
        assert scale_note(60, self.major, 2) == 64

    def test_degree_wraps_up(self) -> None:
        assert scale_note(60, self.major, 7) == 72
        assert scale_note(60, self.major, 9) == 76

    def test_negative_degree_wraps_down(self) -> None:
        assert scale_note(60, self.major, -1) == 59
        assert scale_note(60, self.major, -7) == 48

    def test_octave_shift(self) -> None:
        assert scale_note(60, self.major, 0, -2) == 36

    def test_pentatonic_wraps_on_five(self) -> None:
        assert scale_note(60, SCALE_INTERVALS["pentatonic"], 5) == 72


def test_midi_to_freq_reference_points() -> None:
    assert midi_to_freq(69) == pytest.approx(440.0)
    assert midi_to_freq(81) == pytest.approx(880.0)
    assert midi_to_freq(60) == pytest.approx(261.6256, rel=1e-6)


class TestTimeSignature:
    def test_parses_three_four(self) -> None:
        assert parse_time_signature("3/4") == TimeSignature(3, 4)

    def test_free_is_common_time(self) -> None:
        assert parse_time_signature("free") == TimeSignature(4, 4)

    @pytest.mark.parametrize("text", ["", "abc", "0/4", "-3/4", "x/y"])
    def test_malformed_falls_back_to_four(self, text: str) -> None:
        assert parse_time_signature(text).beats_per_measure == 4

    def test_missing_denominator(self) -> None:
        assert parse_time_signature("6") == TimeSignature(6, 4)


def test_beat_and_measure_durations() -> None:
    assert beat_duration(120) == pytest.approx(0.5)
    assert beat_duration(120, 0.5) == pytest.approx(0.25)
    assert measure_duration(120, TimeSignature(3, 4)) == pytest.approx(1.5)
    assert measures_in(8.0, 120, TimeSignature(4, 4)) == 4
    assert measures_in(8.1, 120, TimeSignature(4, 4)) == 5
