# ecg_lab/rhythm_logic.py
import logging
import math
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from .api_models import (
    AbnormalityPattern, MorphologyParameters, PathologyType, QRSMorphology, SynthesisConfig,
)
from .constants import (
    QRS_START, PAC_COUPLING_FACTOR, PVC_COUPLING_FACTOR, DEFAULT_VENTRICULAR_RATE_FACTOR,
    ST_CHANGE_RETAINED_FRACTION, ST_CHANGE_JITTER_FRACTION,
    ST_CHANGE_SEED_MULTIPLIER, ST_CHANGE_SEED_INCREMENT,
    ST_RESIDUAL_JITTER_FRACTION, ST_RESIDUAL_SEED_MULTIPLIER, ST_RESIDUAL_SEED_INCREMENT,
)
from .pathologies import ModifierResolver, get_pathology_display_name
from .waveform_primitives import (
    pseudo_random, phase_seed,
    generate_p_wave, generate_pr_segment, generate_ventricular_complex,
    generate_flutter_wave, generate_vfib_sample,
)

logger = logging.getLogger(__name__)


# --- Intermittency ---
def should_show_abnormality(beat_index: int, modifiers: MorphologyParameters) -> bool:
    """
    Decide whether this beat shows the pathological morphology.

    Random occurrence uses the deterministic beat hash, so the same beat index
    always gets the same answer.
    """
    frequency = modifiers.abnormality_frequency
    if frequency is None or frequency >= 1:
        return True
    if frequency <= 0:
        return False

    cycle_length = modifiers.abnormality_cycle_length
    if modifiers.abnormality_pattern == AbnormalityPattern.PERIODIC:
        return beat_index % cycle_length == cycle_length - 1
    if modifiers.abnormality_pattern == AbnormalityPattern.CLUSTERED:
        return beat_index % cycle_length < math.ceil(cycle_length / 2)
    return pseudo_random(beat_index) < frequency


def dropped_beat_cycle_length(modifiers: MorphologyParameters) -> Optional[int]:
    if not modifiers.dropped_beats or modifiers.dropped_beats <= 0:
        return None
    # Round half up, e.g. 0.4 -> 1/0.4 = 2.5 -> 3 beats per cycle
    return int(math.floor(1 / modifiers.dropped_beats + 0.5))


def is_dropped_beat(beat_index: int, modifiers: MorphologyParameters) -> bool:
    cycle_length = dropped_beat_cycle_length(modifiers)
    if cycle_length is None or cycle_length <= 1:
        return False
    return beat_index % cycle_length == cycle_length - 1


# --- Hidden-abnormality Override Strategies ---
def _revert_preexcitation(modifiers: MorphologyParameters, beat_index: int) -> MorphologyParameters:
    return modifiers.model_copy(update={
        "delta_wave": False,
        "pr_interval": 1.0,
        "qrs_width": 1.0,
        "qrs_morphology": QRSMorphology.NORMAL,
    })


def _attenuate_st_change(modifiers: MorphologyParameters, beat_index: int) -> MorphologyParameters:
    # Keep 30% of the deviation, +-10% beat to beat
    jitter = (pseudo_random(beat_index * ST_CHANGE_SEED_MULTIPLIER + ST_CHANGE_SEED_INCREMENT) - 0.5) * 2 * ST_CHANGE_JITTER_FRACTION
    elevation = modifiers.st_segment_elevation * ST_CHANGE_RETAINED_FRACTION * (1 + jitter)
    return modifiers.model_copy(update={"st_segment_elevation": elevation})


def _normalize_q_waves(modifiers: MorphologyParameters, beat_index: int) -> MorphologyParameters:
    return modifiers.model_copy(update={"qrs_morphology": QRSMorphology.NORMAL})


def _normalize_conduction(modifiers: MorphologyParameters, beat_index: int) -> MorphologyParameters:
    return modifiers.model_copy(update={
        "qrs_width": 1.0,
        "qrs_morphology": QRSMorphology.NORMAL,
        "t_wave_inverted": False,
    })


def _keep_morphology(modifiers: MorphologyParameters, beat_index: int) -> MorphologyParameters:
    # Premature beats express their abnormality through phase compression only
    return modifiers


OverrideStrategy = Callable[[MorphologyParameters, int], MorphologyParameters]

HIDDEN_ABNORMALITY_OVERRIDES: Dict[PathologyType, OverrideStrategy] = {
    PathologyType.WOLFF_PARKINSON_WHITE: _revert_preexcitation,
    PathologyType.ATRIAL_PREMATURE_BEAT: _keep_morphology,
    PathologyType.VENTRICULAR_PREMATURE_BEAT: _keep_morphology,
    PathologyType.ST_ELEVATION_MI: _attenuate_st_change,
    PathologyType.ST_DEPRESSION_ISCHEMIA: _attenuate_st_change,
    PathologyType.PATHOLOGICAL_Q_WAVES: _normalize_q_waves,
    PathologyType.LEFT_BUNDLE_BRANCH_BLOCK: _normalize_conduction,
    PathologyType.RIGHT_BUNDLE_BRANCH_BLOCK: _normalize_conduction,
}

ST_CHANGE_PATHOLOGIES = {PathologyType.ST_ELEVATION_MI, PathologyType.ST_DEPRESSION_ISCHEMIA}

PREMATURE_BEAT_COUPLING: Dict[PathologyType, float] = {
    PathologyType.ATRIAL_PREMATURE_BEAT: PAC_COUPLING_FACTOR,
    PathologyType.VENTRICULAR_PREMATURE_BEAT: PVC_COUPLING_FACTOR,
}


def effective_modifiers(
    pathology: PathologyType,
    modifiers: MorphologyParameters,
    beat_index: int,
    show_abnormality: bool,
) -> MorphologyParameters:
    """Modifiers actually used for this beat once intermittency is applied."""
    if show_abnormality or pathology == PathologyType.NORMAL:
        return modifiers

    strategy = HIDDEN_ABNORMALITY_OVERRIDES.get(pathology)
    effective = strategy(modifiers, beat_index) if strategy else modifiers

    if pathology not in ST_CHANGE_PATHOLOGIES and effective.st_segment_elevation != 0:
        jitter = (pseudo_random(beat_index * ST_RESIDUAL_SEED_MULTIPLIER + ST_RESIDUAL_SEED_INCREMENT) - 0.5) * 2 * ST_RESIDUAL_JITTER_FRACTION
        effective = effective.model_copy(update={
            "st_segment_elevation": effective.st_segment_elevation * (1 + jitter),
        })
    return effective


# --- AV Dissociation ---
def dissociated_phases(
    normalized_phase: float,
    config: SynthesisConfig,
    beat_index: int,
    modifiers: MorphologyParameters,
) -> Tuple[float, float, int]:
    """
    Split one instant into independent atrial and ventricular phases.

    Elapsed time is reconstructed from the atrial (sinus) rate, so the atrial
    phase depends on heart_rate_bpm alone.

    Returns:
        (atrial_phase, ventricular_phase, ventricular_beat_index)
    """
    atrial_rate = config.heart_rate_bpm
    ventricular_rate = modifiers.ventricular_rate or atrial_rate * DEFAULT_VENTRICULAR_RATE_FACTOR

    elapsed_sec = (beat_index + normalized_phase) * 60.0 / atrial_rate
    atrial_phase = (elapsed_sec * atrial_rate / 60.0) % 1
    ventricular_cycles = elapsed_sec * ventricular_rate / 60.0
    return atrial_phase, ventricular_cycles % 1, int(math.floor(ventricular_cycles))


# --- Single-sample Synthesis ---
class WaveformSynthesizer:
    """
    Computes Lead II samples from (phase, config, beat index).

    Holds its own ModifierResolver; apart from that cache the synthesizer is
    stateless and can be shared between threads.
    """

    def __init__(self, resolver: Optional[ModifierResolver] = None):
        self.resolver = resolver or ModifierResolver()

    def resolve_modifiers(self, pathology) -> MorphologyParameters:
        return self.resolver.resolve(pathology)

    def synthesize(self, phase: float, config: SynthesisConfig, beat_index: int = 0) -> float:
        normalized_phase = phase % 1
        pathology = config.pathology
        modifiers = self.resolve_modifiers(pathology)

        show_abnormality = should_show_abnormality(beat_index, modifiers)
        beat_modifiers = effective_modifiers(pathology, modifiers, beat_index, show_abnormality)

        if is_dropped_beat(beat_index, beat_modifiers):
            # Blocked beat: atrial activity only
            value = generate_p_wave(normalized_phase, beat_modifiers)
            value += generate_pr_segment(normalized_phase, beat_modifiers, beat_index)
            return self._finish(value, normalized_phase, config, modifiers)

        if beat_modifiers.av_dissociation:
            atrial_phase, ventricular_phase, ventricular_beat = dissociated_phases(
                normalized_phase, config, beat_index, beat_modifiers
            )
            value = generate_p_wave(atrial_phase, beat_modifiers)
            value += generate_ventricular_complex(ventricular_phase, beat_modifiers, ventricular_beat)
            return self._finish(value, normalized_phase, config, modifiers)

        beat_phase = normalized_phase
        coupling = PREMATURE_BEAT_COUPLING.get(pathology)
        if coupling is not None and show_abnormality:
            beat_phase = normalized_phase * coupling
            if pathology == PathologyType.VENTRICULAR_PREMATURE_BEAT:
                beat_modifiers = beat_modifiers.model_copy(update={"p_wave_present": False})

        value = generate_p_wave(beat_phase, beat_modifiers)
        value += generate_ventricular_complex(beat_phase, beat_modifiers, beat_index)

        if pathology == PathologyType.ATRIAL_FLUTTER and normalized_phase < QRS_START:
            value = generate_flutter_wave(normalized_phase)
            value += generate_ventricular_complex(normalized_phase, beat_modifiers, beat_index)
        elif pathology == PathologyType.VENTRICULAR_FIBRILLATION:
            value = generate_vfib_sample(normalized_phase, beat_index)

        return self._finish(value, normalized_phase, config, modifiers)

    @staticmethod
    def _finish(value: float, normalized_phase: float, config: SynthesisConfig, modifiers: MorphologyParameters) -> float:
        total_noise = config.noise + modifiers.baseline_noise
        if total_noise > 0:
            value += (pseudo_random(phase_seed(normalized_phase)) - 0.5) * total_noise
        return value * config.amplitude


# --- Strip Generation ---
def sample_position(time_sec: float, heart_rate_bpm: float) -> Tuple[float, int]:
    """Map elapsed time onto (phase, beat_index) for a fixed heart rate."""
    seconds_per_beat = 60.0 / heart_rate_bpm
    beat_index = int(math.floor(time_sec / seconds_per_beat))
    phase = (time_sec % seconds_per_beat) / seconds_per_beat
    return phase, beat_index


def generate_ecg_strip(
    config: SynthesisConfig,
    duration_sec: float,
    start_time_sec: float = 0.0,
    synthesizer: Optional[WaveformSynthesizer] = None,
):
    """
    Sample the synthesizer over a time window at config.sample_rate.

    Returns:
        (time_axis, ecg_signal, rhythm_description)
    """
    synthesizer = synthesizer or WaveformSynthesizer()
    num_samples = int(duration_sec * config.sample_rate)
    time_axis = start_time_sec + np.arange(num_samples) / config.sample_rate
    ecg_signal = np.zeros(num_samples)

    for i, t in enumerate(time_axis):
        phase, beat_index = sample_position(float(t), config.heart_rate_bpm)
        ecg_signal[i] = synthesizer.synthesize(phase, config, beat_index)

    rhythm_description = f"{get_pathology_display_name(config.pathology)} at {config.heart_rate_bpm:g} bpm"
    logger.debug("Generated %d samples: %s", num_samples, rhythm_description)
    return time_axis, ecg_signal, rhythm_description
