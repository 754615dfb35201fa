# ecg_lab/pathologies.py
import logging
import math
import threading
from typing import Any, Dict, Optional, Union

from .api_models import (
    AbnormalityPattern, MorphologyParameters, PathologyType, QRSMorphology, SynthesisConfig,
)
from .constants import (
    FS, MIN_HEART_RATE_BPM, MAX_HEART_RATE_BPM, DEFAULT_HEART_RATE_BPM,
    DEFAULT_AMPLITUDE, DEFAULT_NOISE, FALLBACK_AMPLITUDE,
)

logger = logging.getLogger(__name__)

# --- Pathology Morphology Definitions ---
# Only non-default fields are listed; anything missing falls back to the
# MorphologyParameters default (a normal sinus beat).
PATHOLOGY_MODIFIERS: Dict[PathologyType, Dict[str, Any]] = {
    PathologyType.NORMAL: {},
    PathologyType.SINUS_TACHYCARDIA: {},
    PathologyType.SINUS_BRADYCARDIA: {},
    PathologyType.SINUS_ARRHYTHMIA: {
        "irregularity": 0.15,  # RR variation >10%
    },
    PathologyType.ATRIAL_FIBRILLATION: {
        "p_wave_present": False,
        "baseline_noise": 0.15,  # Fibrillatory baseline
        "irregularity": 0.8,
    },
    PathologyType.ATRIAL_FLUTTER: {
        "p_wave_present": False,  # Replaced by flutter waves
        "baseline_noise": 0.05,
    },
    PathologyType.ATRIAL_PREMATURE_BEAT: {
        "p_wave_amplitude": 0.7,
        "p_wave_width": 0.8,
        "irregularity": 0.3,
        "abnormality_frequency": 0.15,  # ~15% of beats are premature
        "abnormality_pattern": AbnormalityPattern.RANDOM,
    },
    PathologyType.VENTRICULAR_TACHYCARDIA: {
        "p_wave_present": False,
        "qrs_width": 1.8,
        "qrs_amplitude": 1.2,
        "st_segment_present": False,
        "t_wave_amplitude": 0.3,
    },
    PathologyType.VENTRICULAR_FIBRILLATION: {
        "p_wave_present": False,
        "qrs_width": 0.0,
        "st_segment_present": False,
        "baseline_noise": 0.5,
        "irregularity": 1.0,
    },
    PathologyType.VENTRICULAR_PREMATURE_BEAT: {
        "p_wave_present": False,
        "qrs_width": 1.5,
        "qrs_amplitude": 1.3,
        "st_segment_present": True,
        "t_wave_inverted": True,
        "abnormality_frequency": 0.12,  # ~12% of beats are premature
        "abnormality_pattern": AbnormalityPattern.RANDOM,
    },
    PathologyType.FIRST_DEGREE_AV_BLOCK: {
        "pr_interval": 1.5,  # PR >0.20s
    },
    PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE1: {
        # Wenckebach: progressive PR lengthening, then a dropped QRS
        "pr_interval": 1.2,
        "pr_interval_variation": 0.3,
        "dropped_beats": 0.25,  # Every 4th beat
    },
    PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE2: {
        "pr_interval": 1.0,
        "dropped_beats": 0.33,  # Every 3rd beat
    },
    PathologyType.THIRD_DEGREE_AV_BLOCK: {
        "av_dissociation": True,
        "ventricular_rate": 40.0,  # Ventricular escape rhythm (30-50 bpm)
    },
    PathologyType.LEFT_BUNDLE_BRANCH_BLOCK: {
        "qrs_width": 1.5,  # QRS >0.12s
        "qrs_morphology": QRSMorphology.LBBB,
        "st_segment_present": True,
        "t_wave_inverted": True,  # Discordant T wave
        "abnormality_frequency": 0.95,  # Rarely intermittent
        "abnormality_pattern": AbnormalityPattern.RANDOM,
    },
    PathologyType.RIGHT_BUNDLE_BRANCH_BLOCK: {
        "qrs_width": 1.5,
        "qrs_morphology": QRSMorphology.RBBB,
        "st_segment_present": True,
        "t_wave_inverted": True,
        "abnormality_frequency": 0.95,
        "abnormality_pattern": AbnormalityPattern.RANDOM,
    },
    PathologyType.WOLFF_PARKINSON_WHITE: {
        # Intermittent preexcitation, roughly every 3-5 beats
        "pr_interval": 0.7,  # Short PR <0.12s
        "delta_wave": True,
        "qrs_width": 1.2,
        "abnormality_frequency": 0.22,
        "abnormality_pattern": AbnormalityPattern.RANDOM,
    },
    PathologyType.LEFT_VENTRICULAR_HYPERTROPHY: {
        "qrs_amplitude": 1.5,  # Increased QRS voltage
        "qrs_width": 1.1,
        "st_segment_elevation": -0.15,  # Strain pattern ST depression
        "t_wave_inverted": True,
    },
    PathologyType.RIGHT_VENTRICULAR_HYPERTROPHY: {
        "qrs_amplitude": 1.2,
        "qrs_width": 1.1,
        "st_segment_elevation": -0.1,
        "t_wave_inverted": True,
    },
    PathologyType.ST_ELEVATION_MI: {
        "st_segment_elevation": 0.25,  # >1mm
        "st_segment_duration": 1.2,
        "t_wave_inverted": True,
        "qrs_morphology": QRSMorphology.PATHOLOGICAL_Q,
        "abnormality_frequency": 0.85,
        "abnormality_pattern": AbnormalityPattern.RANDOM,
    },
    PathologyType.ST_DEPRESSION_ISCHEMIA: {
        "st_segment_elevation": -0.15,  # >0.5mm depression
        "st_segment_duration": 1.1,
        "t_wave_inverted": True,
        "abnormality_frequency": 0.75,
        "abnormality_pattern": AbnormalityPattern.RANDOM,
    },
    PathologyType.PATHOLOGICAL_Q_WAVES: {
        "qrs_morphology": QRSMorphology.PATHOLOGICAL_Q,
        "qrs_width": 1.2,
        "st_segment_elevation": -0.1,
        "t_wave_inverted": True,
        "abnormality_frequency": 0.9,
        "abnormality_pattern": AbnormalityPattern.RANDOM,
    },
    PathologyType.LONG_QT_SYNDROME: {
        "qt_interval": 1.4,  # QTc normally ~0.42s
        "t_wave_amplitude": 1.2,
        "t_wave_width": 1.3,
    },
    PathologyType.HYPERKALAEMIA: {
        "p_wave_amplitude": 0.3,  # Flattened P waves
        "p_wave_present": True,
        "qrs_width": 1.5,
        "st_segment_present": False,
        "t_wave_amplitude": 1.8,  # Tall, tented T waves
        "t_wave_width": 1.2,
        "t_wave_tented": True,
    },
    PathologyType.RIGHT_ATRIAL_HYPERTROPHY: {
        "p_wave_amplitude": 1.5,  # P pulmonale >2.5mm
        "p_wave_width": 1.0,
        "p_wave_present": True,
    },
    PathologyType.LEFT_ATRIAL_HYPERTROPHY: {
        "p_wave_amplitude": 1.0,
        "p_wave_width": 1.4,  # P mitrale >0.11s
        "p_wave_present": True,
    },
}

# --- Pathology Display Defaults ---
PATHOLOGY_DEFAULTS: Dict[PathologyType, Dict[str, float]] = {
    PathologyType.NORMAL: {"heart_rate_bpm": 72, "amplitude": 1.0, "noise": 0.02},
    PathologyType.SINUS_TACHYCARDIA: {"heart_rate_bpm": 120, "amplitude": 1.0, "noise": 0.03},
    PathologyType.SINUS_BRADYCARDIA: {"heart_rate_bpm": 50, "amplitude": 1.0, "noise": 0.02},
    PathologyType.SINUS_ARRHYTHMIA: {"heart_rate_bpm": 70, "amplitude": 1.0, "noise": 0.02},
    PathologyType.ATRIAL_FIBRILLATION: {"heart_rate_bpm": 100, "amplitude": 0.8, "noise": 0.15},
    PathologyType.ATRIAL_FLUTTER: {"heart_rate_bpm": 75, "amplitude": 0.9, "noise": 0.05},
    PathologyType.ATRIAL_PREMATURE_BEAT: {"heart_rate_bpm": 75, "amplitude": 1.0, "noise": 0.03},
    PathologyType.VENTRICULAR_TACHYCARDIA: {"heart_rate_bpm": 180, "amplitude": 1.5, "noise": 0.1},
    PathologyType.VENTRICULAR_FIBRILLATION: {"heart_rate_bpm": 300, "amplitude": 0.5, "noise": 0.3},
    PathologyType.VENTRICULAR_PREMATURE_BEAT: {"heart_rate_bpm": 75, "amplitude": 1.2, "noise": 0.05},
    PathologyType.FIRST_DEGREE_AV_BLOCK: {"heart_rate_bpm": 70, "amplitude": 1.0, "noise": 0.02},
    PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE1: {"heart_rate_bpm": 70, "amplitude": 1.0, "noise": 0.02},
    PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE2: {"heart_rate_bpm": 70, "amplitude": 1.0, "noise": 0.02},
    PathologyType.THIRD_DEGREE_AV_BLOCK: {"heart_rate_bpm": 70, "amplitude": 1.0, "noise": 0.02},
    PathologyType.LEFT_BUNDLE_BRANCH_BLOCK: {"heart_rate_bpm": 72, "amplitude": 1.0, "noise": 0.02},
    PathologyType.RIGHT_BUNDLE_BRANCH_BLOCK: {"heart_rate_bpm": 72, "amplitude": 1.0, "noise": 0.02},
    PathologyType.WOLFF_PARKINSON_WHITE: {"heart_rate_bpm": 75, "amplitude": 1.0, "noise": 0.02},
    PathologyType.LEFT_VENTRICULAR_HYPERTROPHY: {"heart_rate_bpm": 72, "amplitude": 1.0, "noise": 0.02},
    PathologyType.RIGHT_VENTRICULAR_HYPERTROPHY: {"heart_rate_bpm": 72, "amplitude": 1.0, "noise": 0.02},
    PathologyType.ST_ELEVATION_MI: {"heart_rate_bpm": 75, "amplitude": 1.0, "noise": 0.03},
    PathologyType.ST_DEPRESSION_ISCHEMIA: {"heart_rate_bpm": 75, "amplitude": 1.0, "noise": 0.03},
    PathologyType.PATHOLOGICAL_Q_WAVES: {"heart_rate_bpm": 72, "amplitude": 1.0, "noise": 0.02},
    PathologyType.LONG_QT_SYNDROME: {"heart_rate_bpm": 70, "amplitude": 1.0, "noise": 0.02},
    PathologyType.HYPERKALAEMIA: {"heart_rate_bpm": 70, "amplitude": 1.0, "noise": 0.03},
    PathologyType.RIGHT_ATRIAL_HYPERTROPHY: {"heart_rate_bpm": 72, "amplitude": 1.0, "noise": 0.02},
    PathologyType.LEFT_ATRIAL_HYPERTROPHY: {"heart_rate_bpm": 72, "amplitude": 1.0, "noise": 0.02},
}

PATHOLOGY_DISPLAY_NAMES: Dict[PathologyType, str] = {
    PathologyType.NORMAL: "Normal Sinus Rhythm",
    PathologyType.SINUS_TACHYCARDIA: "Sinus Tachycardia",
    PathologyType.SINUS_BRADYCARDIA: "Sinus Bradycardia",
    PathologyType.SINUS_ARRHYTHMIA: "Sinus Arrhythmia",
    PathologyType.ATRIAL_FIBRILLATION: "Atrial Fibrillation",
    PathologyType.ATRIAL_FLUTTER: "Atrial Flutter",
    PathologyType.ATRIAL_PREMATURE_BEAT: "Atrial Premature Beat",
    PathologyType.VENTRICULAR_TACHYCARDIA: "Ventricular Tachycardia",
    PathologyType.VENTRICULAR_FIBRILLATION: "Ventricular Fibrillation",
    PathologyType.VENTRICULAR_PREMATURE_BEAT: "Ventricular Premature Beat",
    PathologyType.FIRST_DEGREE_AV_BLOCK: "First Degree AV Block",
    PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE1: "Second Degree AV Block (Type 1 - Wenckebach)",
    PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE2: "Second Degree AV Block (Type 2)",
    PathologyType.THIRD_DEGREE_AV_BLOCK: "Third Degree AV Block (Complete Heart Block)",
    PathologyType.LEFT_BUNDLE_BRANCH_BLOCK: "Left Bundle Branch Block (LBBB)",
    PathologyType.RIGHT_BUNDLE_BRANCH_BLOCK: "Right Bundle Branch Block (RBBB)",
    PathologyType.WOLFF_PARKINSON_WHITE: "Wolff-Parkinson-White Syndrome",
    PathologyType.LEFT_VENTRICULAR_HYPERTROPHY: "Left Ventricular Hypertrophy",
    PathologyType.RIGHT_VENTRICULAR_HYPERTROPHY: "Right Ventricular Hypertrophy",
    PathologyType.ST_ELEVATION_MI: "ST Elevation Myocardial Infarction",
    PathologyType.ST_DEPRESSION_ISCHEMIA: "ST Depression (Ischemia)",
    PathologyType.PATHOLOGICAL_Q_WAVES: "Pathological Q Waves",
    PathologyType.LONG_QT_SYNDROME: "Long QT Syndrome",
    PathologyType.HYPERKALAEMIA: "Hyperkalaemia",
    PathologyType.RIGHT_ATRIAL_HYPERTROPHY: "Right Atrial Hypertrophy",
    PathologyType.LEFT_ATRIAL_HYPERTROPHY: "Left Atrial Hypertrophy",
}

PATHOLOGIES = list(PathologyType)


def coerce_pathology(pathology: Union[PathologyType, str, None]) -> PathologyType:
    """Map any identifier onto the enumeration, silently falling back to normal."""
    if isinstance(pathology, PathologyType):
        return pathology
    try:
        return PathologyType(pathology)
    except ValueError:
        return PathologyType.NORMAL


class ModifierResolver:
    """
    Resolves a pathology to its MorphologyParameters and memoizes the result.

    The cache is filled at most once per key under a lock and never
    invalidated, so concurrent callers always observe the same instance.
    """

    def __init__(self, table: Optional[Dict[PathologyType, Dict[str, Any]]] = None):
        self._table = PATHOLOGY_MODIFIERS if table is None else table
        self._cache: Dict[PathologyType, MorphologyParameters] = {}
        self._lock = threading.Lock()

    def compute(self, pathology: Union[PathologyType, str]) -> MorphologyParameters:
        """Build the parameters for a pathology without touching the cache."""
        key = coerce_pathology(pathology)
        return MorphologyParameters(**self._table.get(key, {}))

    def resolve(self, pathology: Union[PathologyType, str]) -> MorphologyParameters:
        key = coerce_pathology(pathology)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        computed = self.compute(key)
        with self._lock:
            return self._cache.setdefault(key, computed)

    def cached_pathologies(self):
        return set(self._cache)


# --- Caller-side Validation ---
def validate_pathology(pathology: Optional[str]) -> PathologyType:
    validated = coerce_pathology(pathology)
    if validated is PathologyType.NORMAL and pathology and pathology != PathologyType.NORMAL:
        logger.warning('Invalid pathology "%s", using "normal" instead', pathology)
    return validated


def validate_heart_rate(rate: float) -> float:
    if math.isnan(rate):
        logger.warning("Heart rate is not a number, using %s bpm", DEFAULT_HEART_RATE_BPM)
        return DEFAULT_HEART_RATE_BPM
    if rate < MIN_HEART_RATE_BPM:
        logger.warning("Heart rate %s is too low, clamping to %s bpm", rate, MIN_HEART_RATE_BPM)
        return MIN_HEART_RATE_BPM
    if rate > MAX_HEART_RATE_BPM:
        logger.warning("Heart rate %s is too high, clamping to %s bpm", rate, MAX_HEART_RATE_BPM)
        return MAX_HEART_RATE_BPM
    return float(rate)


def validate_amplitude(amplitude: float) -> float:
    if not math.isfinite(amplitude) or amplitude <= 0:
        logger.warning("Amplitude must be a finite value greater than 0, using %s", FALLBACK_AMPLITUDE)
        return FALLBACK_AMPLITUDE
    return float(amplitude)


def validate_noise(noise: float) -> float:
    if not math.isfinite(noise) or noise < 0:
        logger.warning("Noise must be finite and non-negative, using 0")
        return 0.0
    return float(noise)


def get_pathology_display_name(pathology: Union[PathologyType, str]) -> str:
    try:
        return PATHOLOGY_DISPLAY_NAMES[PathologyType(pathology)]
    except ValueError:
        return str(pathology)


def get_pathology_config(pathology: Union[PathologyType, str]) -> SynthesisConfig:
    """Default SynthesisConfig for a pathology; unknown identifiers use the normal entry."""
    key = coerce_pathology(pathology)
    defaults = PATHOLOGY_DEFAULTS.get(key, PATHOLOGY_DEFAULTS[PathologyType.NORMAL])
    return SynthesisConfig(
        pathology=key,
        heart_rate_bpm=defaults.get("heart_rate_bpm", DEFAULT_HEART_RATE_BPM),
        amplitude=defaults.get("amplitude", DEFAULT_AMPLITUDE),
        noise=defaults.get("noise", DEFAULT_NOISE),
        sample_rate=FS,
    )


def build_synthesis_config(
    pathology: Optional[str],
    heart_rate_bpm: Optional[float] = None,
    amplitude: Optional[float] = None,
    noise: Optional[float] = None,
) -> SynthesisConfig:
    """
    Merge user overrides with the pathology defaults and clamp them into the
    engine's input domain.
    """
    validated = validate_pathology(pathology)
    base = get_pathology_config(validated)
    return SynthesisConfig(
        pathology=validated,
        heart_rate_bpm=validate_heart_rate(base.heart_rate_bpm if heart_rate_bpm is None else heart_rate_bpm),
        amplitude=validate_amplitude(base.amplitude if amplitude is None else amplitude),
        noise=validate_noise(base.noise if noise is None else noise),
        sample_rate=base.sample_rate,
    )
