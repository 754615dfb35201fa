"""
Tests for sampling the synthesizer into a timed ECG strip.
"""
import pytest
import numpy as np
from ecg_lab.api_models import PathologyType, SynthesisConfig
from ecg_lab.rhythm_logic import WaveformSynthesizer, generate_ecg_strip, sample_position

class TestSamplePosition:
    """Test the time -> (phase, beat index) mapping."""

    @pytest.mark.unit
    @pytest.mark.parametrize("time_sec,heart_rate,expected_phase,expected_beat", [
        (0.0, 60, 0.0, 0),
        (0.5, 60, 0.5, 0),
        (1.25, 60, 0.25, 1),
        (3.0, 120, 0.0, 6),
        (1.0, 72, 0.2, 1),
    ])
    def test_phase_and_beat(self, time_sec, heart_rate, expected_phase, expected_beat):
        phase, beat_index = sample_position(time_sec, heart_rate)
        assert phase == pytest.approx(expected_phase, abs=1e-9)
        assert beat_index == expected_beat

class TestStripGeneration:
    """Test generate_ecg_strip output."""

    @pytest.mark.unit
    def test_strip_shape(self, normal_config):
        time_axis, signal, rhythm_desc = generate_ecg_strip(normal_config, duration_sec=4.0)
        assert len(time_axis) == len(signal) == 1000
        assert np.allclose(np.diff(time_axis), 1 / 250)
        assert time_axis[0] == 0.0

    @pytest.mark.unit
    def test_start_time_offsets_axis(self, normal_config):
        time_axis, _, _ = generate_ecg_strip(normal_config, duration_sec=1.0, start_time_sec=5.0)
        assert time_axis[0] == pytest.approx(5.0)
        assert time_axis[-1] < 6.0

    @pytest.mark.unit
    def test_strip_matches_single_samples(self, normal_config):
        synthesizer = WaveformSynthesizer()
        time_axis, signal, _ = generate_ecg_strip(normal_config, duration_sec=2.0, synthesizer=synthesizer)
        for i in range(0, len(time_axis), 37):
            phase, beat_index = sample_position(float(time_axis[i]), normal_config.heart_rate_bpm)
            assert signal[i] == synthesizer.synthesize(phase, normal_config, beat_index)

    @pytest.mark.unit
    def test_rhythm_description(self, default_config):
        _, _, rhythm_desc = generate_ecg_strip(default_config(PathologyType.ATRIAL_FLUTTER), duration_sec=1.0)
        assert rhythm_desc == "Atrial Flutter at 75 bpm"

    @pytest.mark.unit
    def test_beat_count_matches_heart_rate(self, noiseless_config):
        config = noiseless_config(PathologyType.NORMAL, heart_rate_bpm=90)
        _, signal, _ = generate_ecg_strip(config, duration_sec=10.0)
        r_onsets = np.flatnonzero((signal[1:] > 0.5) & (signal[:-1] <= 0.5))
        assert len(r_onsets) == 15

    @pytest.mark.unit
    def test_custom_sample_rate(self):
        config = SynthesisConfig(sample_rate=500)
        time_axis, signal, _ = generate_ecg_strip(config, duration_sec=2.0)
        assert len(signal) == 1000
