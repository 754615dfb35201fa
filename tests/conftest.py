"""
Pytest configuration and shared fixtures for ECG Lab tests.
"""
import pytest
from ecg_lab.api_models import PathologyType, SynthesisConfig
from ecg_lab.pathologies import ModifierResolver, get_pathology_config
from ecg_lab.rhythm_logic import WaveformSynthesizer

@pytest.fixture
def resolver():
    """Fresh resolver with an empty cache."""
    return ModifierResolver()

@pytest.fixture
def synthesizer(resolver):
    return WaveformSynthesizer(resolver)

@pytest.fixture
def normal_config():
    """Normal sinus rhythm with the default display noise."""
    return SynthesisConfig(pathology=PathologyType.NORMAL, heart_rate_bpm=72, amplitude=1.0, noise=0.02)

@pytest.fixture
def noiseless_config():
    """Builds a noise-free config for any pathology so morphology can be compared exactly."""
    def _make(pathology, heart_rate_bpm=72.0, amplitude=1.0):
        return SynthesisConfig(pathology=pathology, heart_rate_bpm=heart_rate_bpm, amplitude=amplitude, noise=0.0)
    return _make

@pytest.fixture
def default_config():
    """Table defaults for any pathology."""
    return get_pathology_config

@pytest.fixture
def tolerance_config():
    """Standard tolerance values for numerical comparisons."""
    return {
        'amplitude_tolerance': 1e-9,
        'frequency_tolerance': 0.02,  # Observed vs configured abnormality frequency
        'timing_tolerance_sec': 0.004,  # 1/250 Hz sampling
    }
