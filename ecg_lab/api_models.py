# ecg_lab/api_models.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    FS, DEFAULT_HEART_RATE_BPM, DEFAULT_AMPLITUDE, DEFAULT_NOISE,
    DEFAULT_ABNORMALITY_CYCLE_LENGTH,
)


class PathologyType(str, Enum):
    NORMAL = "normal"
    SINUS_TACHYCARDIA = "sinus-tachycardia"
    SINUS_BRADYCARDIA = "sinus-bradycardia"
    SINUS_ARRHYTHMIA = "sinus-arrhythmia"
    ATRIAL_FIBRILLATION = "atrial-fibrillation"
    ATRIAL_FLUTTER = "atrial-flutter"
    ATRIAL_PREMATURE_BEAT = "atrial-premature-beat"
    VENTRICULAR_TACHYCARDIA = "ventricular-tachycardia"
    VENTRICULAR_FIBRILLATION = "ventricular-fibrillation"
    VENTRICULAR_PREMATURE_BEAT = "ventricular-premature-beat"
    FIRST_DEGREE_AV_BLOCK = "first-degree-av-block"
    SECOND_DEGREE_AV_BLOCK_TYPE1 = "second-degree-av-block-type1"
    SECOND_DEGREE_AV_BLOCK_TYPE2 = "second-degree-av-block-type2"
    THIRD_DEGREE_AV_BLOCK = "third-degree-av-block"
    LEFT_BUNDLE_BRANCH_BLOCK = "left-bundle-branch-block"
    RIGHT_BUNDLE_BRANCH_BLOCK = "right-bundle-branch-block"
    WOLFF_PARKINSON_WHITE = "wolff-parkinson-white"
    LEFT_VENTRICULAR_HYPERTROPHY = "left-ventricular-hypertrophy"
    RIGHT_VENTRICULAR_HYPERTROPHY = "right-ventricular-hypertrophy"
    ST_ELEVATION_MI = "st-elevation-mi"
    ST_DEPRESSION_ISCHEMIA = "st-depression-ischemia"
    PATHOLOGICAL_Q_WAVES = "pathological-q-waves"
    LONG_QT_SYNDROME = "long-qt-syndrome"
    HYPERKALAEMIA = "hyperkalaemia"
    RIGHT_ATRIAL_HYPERTROPHY = "right-atrial-hypertrophy"
    LEFT_ATRIAL_HYPERTROPHY = "left-atrial-hypertrophy"


class QRSMorphology(str, Enum):
    NORMAL = "normal"
    LBBB = "lbbb"
    RBBB = "rbbb"
    PATHOLOGICAL_Q = "pathological-q"


class AbnormalityPattern(str, Enum):
    RANDOM = "random"
    PERIODIC = "periodic"
    CLUSTERED = "clustered"


class MorphologyParameters(BaseModel):
    """
    Per-pathology waveform modifiers. Every field is optional; an empty
    instance describes a normal sinus beat.
    """
    model_config = ConfigDict(frozen=True)

    # P wave
    p_wave_amplitude: float = 1.0
    p_wave_width: float = 1.0  # Informational, the P window is fixed
    p_wave_present: bool = True

    # PR segment
    pr_interval: float = 1.0
    pr_interval_variation: float = Field(0.0, ge=0, description="Progressive PR lengthening across a Wenckebach cycle.")

    # QRS complex
    qrs_width: float = Field(1.0, ge=0)
    qrs_amplitude: float = 1.0
    qrs_morphology: QRSMorphology = QRSMorphology.NORMAL

    # ST segment
    st_segment_present: bool = True
    st_segment_elevation: float = 0.0
    st_segment_duration: float = Field(1.0, ge=0)

    # T wave
    t_wave_amplitude: float = 1.0
    t_wave_width: float = Field(1.0, ge=0)
    t_wave_tented: bool = False
    t_wave_inverted: bool = False
    qt_interval: float = Field(1.0, gt=0, description="QT multiplier applied to the T-wave width.")

    baseline_noise: float = Field(0.0, ge=0)
    irregularity: float = Field(0.0, ge=0, description="Informational RR irregularity; not used by the engine.")

    # Conduction
    dropped_beats: Optional[float] = Field(None, ge=0, le=1, description="Fraction of beats whose QRS is blocked.")
    av_dissociation: bool = False
    ventricular_rate: Optional[float] = Field(None, gt=0)
    delta_wave: bool = False

    # Intermittency
    abnormality_frequency: float = Field(1.0, ge=0, le=1)
    abnormality_pattern: AbnormalityPattern = AbnormalityPattern.RANDOM
    abnormality_cycle_length: int = Field(DEFAULT_ABNORMALITY_CYCLE_LENGTH, ge=1)


class SynthesisConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    pathology: PathologyType = PathologyType.NORMAL
    heart_rate_bpm: float = Field(DEFAULT_HEART_RATE_BPM, gt=0)
    amplitude: float = Field(DEFAULT_AMPLITUDE, gt=0)
    noise: float = Field(DEFAULT_NOISE, ge=0)
    sample_rate: int = Field(FS, gt=0)


class ECGStripRequest(BaseModel):
    # Raw user input; unknown pathologies and out-of-range values are
    # clamped by build_synthesis_config rather than rejected. Non-finite
    # numbers cannot be clamped meaningfully and fail validation.
    pathology: str = Field(PathologyType.NORMAL.value, description="Pathology identifier, e.g. 'atrial-flutter'.")
    heart_rate_bpm: Optional[float] = Field(None, allow_inf_nan=False, description="Overrides the pathology default; clamped to 30-300 bpm.")
    amplitude: Optional[float] = Field(None, allow_inf_nan=False, description="Overrides the pathology default; non-positive values become 0.1.")
    noise: Optional[float] = Field(None, allow_inf_nan=False, description="Overrides the pathology default; negative values become 0.")
    duration_sec: float = Field(10.0, gt=0, le=120, allow_inf_nan=False)
    start_time_sec: float = Field(0.0, ge=0, allow_inf_nan=False)


class SampleRequest(BaseModel):
    phase: float = Field(..., allow_inf_nan=False)
    beat_index: int = 0
    pathology: str = Field(PathologyType.NORMAL.value)
    heart_rate_bpm: Optional[float] = Field(None, allow_inf_nan=False)
    amplitude: Optional[float] = Field(None, allow_inf_nan=False)
    noise: Optional[float] = Field(None, allow_inf_nan=False)


class PathologySummary(BaseModel):
    id: PathologyType
    display_name: str
    heart_rate_bpm: float
    amplitude: float
    noise: float
    sample_rate: int


class ECGStripResponse(BaseModel):
    time_axis: List[float]
    ecg_signal: List[float]
    rhythm_generated: str
    pathology: PathologyType
    heart_rate_bpm: float
    sample_rate: int
