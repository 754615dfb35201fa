"""
Tests for AV conduction blocks.
Validates dropped-beat cadence, Wenckebach PR lengthening and AV dissociation.
"""
import pytest
import numpy as np
from ecg_lab.api_models import MorphologyParameters, PathologyType, SynthesisConfig
from ecg_lab.rhythm_logic import (
    dissociated_phases, dropped_beat_cycle_length, generate_ecg_strip, is_dropped_beat,
)
from ecg_lab.waveform_primitives import generate_p_wave, generate_ventricular_complex

POST_ATRIAL_PHASES = np.linspace(0.20, 0.999, 200)
R_PEAK_PHASE = 0.20 + 0.08 * 0.31

class TestDroppedBeats:
    """Test second-degree AV block dropped beats."""

    @pytest.mark.medical
    @pytest.mark.parametrize("dropped_beats,expected", [
        (0.25, 4),
        (0.33, 3),
        (0.4, 3),
        (0.5, 2),
        (1.0, 1),
        (0.0, None),
        (None, None),
    ])
    def test_cycle_length(self, dropped_beats, expected):
        assert dropped_beat_cycle_length(MorphologyParameters(dropped_beats=dropped_beats)) == expected

    @pytest.mark.medical
    def test_every_beat_dropped_is_ignored(self):
        # A cycle of one beat would block everything; it is treated as no block
        modifiers = MorphologyParameters(dropped_beats=1.0)
        assert not any(is_dropped_beat(b, modifiers) for b in range(20))

    @pytest.mark.medical
    def test_wenckebach_drops_every_fourth_beat(self, synthesizer, noiseless_config):
        config = noiseless_config(PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE1)
        for beat_index in range(40):
            samples = [synthesizer.synthesize(phase, config, beat_index) for phase in POST_ATRIAL_PHASES]
            if beat_index % 4 == 3:
                assert all(s == 0.0 for s in samples), f"Beat {beat_index} should be blocked"
            else:
                assert synthesizer.synthesize(R_PEAK_PHASE, config, beat_index) > 0.9

    @pytest.mark.medical
    def test_dropped_beat_keeps_p_wave(self, synthesizer, noiseless_config):
        config = noiseless_config(PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE1)
        assert synthesizer.synthesize(0.07, config, 3) == pytest.approx(0.15)

    @pytest.mark.medical
    def test_mobitz_ii_drops_every_third_beat(self, synthesizer, noiseless_config):
        config = noiseless_config(PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE2)
        conducted = [synthesizer.synthesize(R_PEAK_PHASE, config, b) > 0.9 for b in range(30)]
        assert conducted == [b % 3 != 2 for b in range(30)]

    @pytest.mark.medical
    def test_dropped_beats_in_strip(self, noiseless_config):
        config = noiseless_config(PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE1, heart_rate_bpm=60)
        time_axis, signal, rhythm_desc = generate_ecg_strip(config, duration_sec=8.0)

        # One beat per second: beats 3 and 7 are blocked
        for blocked_beat in (3, 7):
            window = (time_axis >= blocked_beat + 0.21) & (time_axis < blocked_beat + 1)
            assert np.all(signal[window] == 0.0)
        conducted = (time_axis >= 2.0) & (time_axis < 3.0)
        assert signal[conducted].max() > 0.9
        assert "wenckebach" in rhythm_desc.lower()

class TestAVDissociation:
    """Test complete heart block with independent atrial and ventricular rhythms."""

    @pytest.mark.medical
    def test_atrial_phase_follows_heart_rate_only(self):
        config = SynthesisConfig(pathology=PathologyType.THIRD_DEGREE_AV_BLOCK, heart_rate_bpm=70, noise=0.0)
        slow = MorphologyParameters(av_dissociation=True, ventricular_rate=25.0)
        fast = MorphologyParameters(av_dissociation=True, ventricular_rate=45.0)
        for beat_index in range(10):
            for phase in (0.0, 0.05, 0.3, 0.7):
                atrial_slow, ventricular_slow, _ = dissociated_phases(phase, config, beat_index, slow)
                atrial_fast, ventricular_fast, _ = dissociated_phases(phase, config, beat_index, fast)
                assert atrial_slow == atrial_fast
                drift = abs(atrial_slow - phase)
                assert min(drift, 1 - drift) < 1e-9

    @pytest.mark.medical
    def test_default_ventricular_rate(self):
        config = SynthesisConfig(pathology=PathologyType.THIRD_DEGREE_AV_BLOCK, heart_rate_bpm=100)
        modifiers = MorphologyParameters(av_dissociation=True)
        # 1 beat at 100 bpm = 0.6 s; escape at 40 bpm covers 0.4 of a cycle
        _, ventricular_phase, ventricular_beat = dissociated_phases(0.0, config, 1, modifiers)
        assert ventricular_phase == pytest.approx(0.4)
        assert ventricular_beat == 0

    @pytest.mark.medical
    def test_ventricular_rhythm_not_locked_to_p_waves(self, resolver):
        config = SynthesisConfig(pathology=PathologyType.THIRD_DEGREE_AV_BLOCK, heart_rate_bpm=70, noise=0.0)
        modifiers = resolver.resolve(PathologyType.THIRD_DEGREE_AV_BLOCK)
        ventricular_at_p_onset = {
            round(dissociated_phases(0.0, config, b, modifiers)[1], 3) for b in range(20)
        }
        assert len(ventricular_at_p_onset) > 5

    @pytest.mark.medical
    def test_sample_sums_atrial_and_ventricular_activity(self, synthesizer, resolver):
        config = SynthesisConfig(pathology=PathologyType.THIRD_DEGREE_AV_BLOCK, heart_rate_bpm=70, noise=0.0)
        modifiers = resolver.resolve(PathologyType.THIRD_DEGREE_AV_BLOCK)
        for beat_index in range(12):
            for phase in (0.03, 0.07, 0.25, 0.5, 0.9):
                atrial_phase, ventricular_phase, ventricular_beat = dissociated_phases(phase, config, beat_index, modifiers)
                expected = generate_p_wave(atrial_phase, modifiers)
                expected += generate_ventricular_complex(ventricular_phase, modifiers, ventricular_beat)
                assert synthesizer.synthesize(phase, config, beat_index) == pytest.approx(expected)

    @pytest.mark.medical
    def test_p_waves_march_through_escape_rhythm(self, noiseless_config):
        config = noiseless_config(PathologyType.THIRD_DEGREE_AV_BLOCK, heart_rate_bpm=60)
        time_axis, signal, _ = generate_ecg_strip(config, duration_sec=6.0)

        # 60 atrial beats/min against 40 ventricular: fewer R waves than P waves
        r_onsets = np.flatnonzero((signal[1:] > 0.5) & (signal[:-1] <= 0.5))
        assert 3 <= len(r_onsets) <= 5
