# ecg_lab/waveform_primitives.py
import numpy as np

from .api_models import MorphologyParameters
from .constants import (
    P_WAVE_START, P_WAVE_END, P_WAVE_PEAK,
    PR_SEGMENT_START, PR_SEGMENT_BASE_DURATION, DELTA_WAVE_PEAK,
    QRS_START, QRS_BASE_DURATION, QRS_TEMPLATES, QRS_JITTER_MODULUS, QRS_JITTER_FRACTION,
    ST_BASE_DURATION, T_WAVE_BASE_DURATION, T_WAVE_PEAK, T_WAVE_TENTED_PEAK,
    HASH_MULTIPLIER, HASH_INCREMENT, HASH_MODULUS, WENCKEBACH_CYCLE_BEATS,
    FLUTTER_WAVES_PER_CYCLE, FLUTTER_WAVE_PEAK, VFIB_AMPLITUDE, VFIB_SEED_OFFSET,
)

_NORMAL = MorphologyParameters()


# --- Deterministic Pseudo-random Helpers ---
def pseudo_random(seed) -> float:
    """
    Linear congruential hash of a seed, normalized to [0, 1).

    Not a statistical PRNG: the same seed always yields the same value, which
    keeps every "random" feature of the trace reproducible.
    """
    return ((seed * HASH_MULTIPLIER + HASH_INCREMENT) % HASH_MODULUS) / HASH_MODULUS


def phase_seed(normalized_phase: float) -> int:
    # Spread the [0, 1) phase over the full hash modulus
    return int(normalized_phase * HASH_MODULUS)


def qrs_amplitude_jitter(beat_index: int) -> float:
    """+-3% beat-to-beat QRS amplitude factor."""
    offset = (beat_index * HASH_MULTIPLIER + HASH_INCREMENT) % QRS_JITTER_MODULUS - 100
    return 1 + offset / 100 * QRS_JITTER_FRACTION


# --- Window Helpers ---
def effective_pr_interval(modifiers: MorphologyParameters, beat_index: int = 0) -> float:
    """PR multiplier for this beat, lengthening across a Wenckebach cycle."""
    if modifiers.pr_interval_variation > 0:
        position = beat_index % WENCKEBACH_CYCLE_BEATS
        return modifiers.pr_interval + modifiers.pr_interval_variation * position / (WENCKEBACH_CYCLE_BEATS - 1)
    return modifiers.pr_interval


def qrs_end(modifiers: MorphologyParameters) -> float:
    return QRS_START + QRS_BASE_DURATION * modifiers.qrs_width


def st_end(modifiers: MorphologyParameters) -> float:
    return qrs_end(modifiers) + ST_BASE_DURATION * modifiers.st_segment_duration


def t_wave_duration(modifiers: MorphologyParameters) -> float:
    # QT prolongation/shortening stretches the T wave
    return T_WAVE_BASE_DURATION * modifiers.t_wave_width * modifiers.qt_interval


# --- Segment Generators ---
def generate_p_wave(phase: float, modifiers: MorphologyParameters = _NORMAL) -> float:
    if not modifiers.p_wave_present or modifiers.p_wave_amplitude == 0:
        return 0.0
    if P_WAVE_START <= phase < P_WAVE_END:
        p_phase = (phase - P_WAVE_START) / (P_WAVE_END - P_WAVE_START)
        return float(np.sin(p_phase * np.pi)) * P_WAVE_PEAK * modifiers.p_wave_amplitude
    return 0.0


def generate_pr_segment(phase: float, modifiers: MorphologyParameters = _NORMAL, beat_index: int = 0) -> float:
    """
    PR segment contribution. Isoelectric except for the WPW delta wave, a
    slurred upstroke spanning the (shortened) PR window.
    """
    if not modifiers.delta_wave:
        return 0.0
    pr_duration = PR_SEGMENT_BASE_DURATION * effective_pr_interval(modifiers, beat_index)
    if pr_duration <= 1e-9:
        return 0.0
    if PR_SEGMENT_START <= phase < PR_SEGMENT_START + pr_duration:
        delta_phase = (phase - PR_SEGMENT_START) / pr_duration
        return float(np.sin(delta_phase * np.pi)) * DELTA_WAVE_PEAK
    return 0.0


def generate_qrs_complex(phase: float, modifiers: MorphologyParameters = _NORMAL, beat_index: int = 0) -> float:
    """
    Piecewise-linear QRS complex for the configured morphology.

    Args:
        phase: Normalized cycle phase
        modifiers: Morphology parameters (width, amplitude, morphology)
        beat_index: Seed for the per-beat amplitude jitter

    Returns:
        QRS amplitude at this phase, 0 outside the QRS window
    """
    qrs_duration = QRS_BASE_DURATION * modifiers.qrs_width
    if qrs_duration <= 1e-9:
        return 0.0
    if not (QRS_START <= phase < QRS_START + qrs_duration):
        return 0.0

    qrs_phase = (phase - QRS_START) / qrs_duration
    breakpoints, amplitudes = QRS_TEMPLATES[modifiers.qrs_morphology.value]
    value = float(np.interp(qrs_phase, breakpoints, amplitudes))
    return value * modifiers.qrs_amplitude * qrs_amplitude_jitter(beat_index)


def generate_st_segment(phase: float, modifiers: MorphologyParameters = _NORMAL) -> float:
    if not modifiers.st_segment_present:
        return 0.0
    st_start = qrs_end(modifiers)
    if st_start <= phase < st_end(modifiers):
        return modifiers.st_segment_elevation
    return 0.0


def generate_t_wave(phase: float, modifiers: MorphologyParameters = _NORMAL) -> float:
    t_start = st_end(modifiers)
    t_duration = t_wave_duration(modifiers)
    if t_duration <= 1e-9:
        return 0.0
    if t_start <= phase < t_start + t_duration:
        t_phase = (phase - t_start) / t_duration
        base_amplitude = T_WAVE_TENTED_PEAK if modifiers.t_wave_tented else T_WAVE_PEAK
        value = float(np.sin(t_phase * np.pi)) * base_amplitude * modifiers.t_wave_amplitude
        return -value if modifiers.t_wave_inverted else value
    return 0.0


def generate_ventricular_complex(phase: float, modifiers: MorphologyParameters, beat_index: int = 0) -> float:
    """Everything after the P wave: PR/delta, QRS, ST and T."""
    return (
        generate_pr_segment(phase, modifiers, beat_index)
        + generate_qrs_complex(phase, modifiers, beat_index)
        + generate_st_segment(phase, modifiers)
        + generate_t_wave(phase, modifiers)
    )


# --- Whole-cycle Replacement Waveforms ---
def generate_flutter_wave(phase: float) -> float:
    """Sawtooth flutter waves filling the pre-QRS part of the cycle."""
    if not (0.0 <= phase < QRS_START):
        return 0.0
    flutter_length = QRS_START / FLUTTER_WAVES_PER_CYCLE
    flutter_phase = (phase % flutter_length) / flutter_length
    ramp = flutter_phase if flutter_phase < 0.5 else 1 - flutter_phase
    return ramp * 2 * FLUTTER_WAVE_PEAK - FLUTTER_WAVE_PEAK


def generate_vfib_sample(normalized_phase: float, beat_index: int = 0) -> float:
    """Chaotic fibrillation sample with no discernible complexes."""
    seed = phase_seed(normalized_phase) + VFIB_SEED_OFFSET + beat_index
    return (pseudo_random(seed) - 0.5) * VFIB_AMPLITUDE
