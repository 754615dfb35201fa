# ecg_lab/constants.py
# --- ECG Generation Constants ---
FS = 250

# --- Caller-side Parameter Bounds ---
MIN_HEART_RATE_BPM = 30.0
MAX_HEART_RATE_BPM = 300.0
DEFAULT_HEART_RATE_BPM = 72.0
FALLBACK_AMPLITUDE = 0.1  # Substituted for non-positive amplitudes
DEFAULT_AMPLITUDE = 1.0
DEFAULT_NOISE = 0.02

# --- Cardiac Cycle Phase Windows ---
# All windows are fractions of one cardiac cycle (phase 0-1).
P_WAVE_START = 0.0
P_WAVE_END = 0.14
PR_SEGMENT_START = 0.14
PR_SEGMENT_BASE_DURATION = 0.06  # Scaled by the effective PR interval
QRS_START = 0.20
QRS_BASE_DURATION = 0.08         # Scaled by qrs_width
ST_BASE_DURATION = 0.12          # Scaled by st_segment_duration
T_WAVE_BASE_DURATION = 0.20      # Scaled by t_wave_width * qt_interval

# --- Wave Amplitudes (unscaled) ---
P_WAVE_PEAK = 0.15
DELTA_WAVE_PEAK = 0.05
T_WAVE_PEAK = 0.25
T_WAVE_TENTED_PEAK = 0.4

# --- QRS Templates ---
# Piecewise-linear (fraction of QRS window, amplitude) breakpoints per morphology.
QRS_TEMPLATES = {
    "normal": (
        (0.0, 0.12, 0.31, 0.50, 0.75, 1.0),
        (0.0, -0.10, 1.0, 0.0, -0.10, 0.0),
    ),
    "lbbb": (  # M pattern: small initial dip, R, notch, shorter R'
        (0.0, 0.15, 0.40, 0.55, 0.80, 1.0),
        (0.0, -0.05, 0.90, 0.45, 0.75, 0.0),
    ),
    "rbbb": (  # rSR' pattern
        (0.0, 0.20, 0.45, 0.70, 1.0),
        (0.0, 0.50, -0.25, 0.80, 0.0),
    ),
    "pathological-q": (  # Deep, wide Q followed by a reduced R
        (0.0, 0.25, 0.375, 0.50, 0.75, 1.0),
        (0.0, -0.30, 0.80, 0.0, -0.10, 0.0),
    ),
}
QRS_JITTER_MODULUS = 200
QRS_JITTER_FRACTION = 0.03  # +-3% beat-to-beat QRS amplitude variation

# --- Deterministic Pseudo-random Hash ---
# h = (seed * 9301 + 49297) mod 233280, normalized to [0, 1)
HASH_MULTIPLIER = 9301
HASH_INCREMENT = 49297
HASH_MODULUS = 233280

# --- Intermittency ---
DEFAULT_ABNORMALITY_CYCLE_LENGTH = 4
WENCKEBACH_CYCLE_BEATS = 4  # Three conducted beats with lengthening PR, then a drop

# Hidden-abnormality ST behaviour
ST_CHANGE_RETAINED_FRACTION = 0.30
ST_CHANGE_JITTER_FRACTION = 0.10
ST_CHANGE_SEED_MULTIPLIER = 7301
ST_CHANGE_SEED_INCREMENT = 29347
ST_RESIDUAL_JITTER_FRACTION = 0.025
ST_RESIDUAL_SEED_MULTIPLIER = 5301
ST_RESIDUAL_SEED_INCREMENT = 19347

# --- Ectopic Beat Configuration Constants ---
PAC_COUPLING_FACTOR = 0.70
PVC_COUPLING_FACTOR = 0.60

# --- AV Dissociation ---
DEFAULT_VENTRICULAR_RATE_FACTOR = 0.4  # Escape rate relative to the atrial rate

# --- Atrial Flutter Parameters ---
FLUTTER_WAVES_PER_CYCLE = 3
FLUTTER_WAVE_PEAK = 0.2

# --- VFib Parameters ---
VFIB_AMPLITUDE = 1.2
VFIB_SEED_OFFSET = 7919  # Linear hash: the trace stays a constant shift (mod 1) of the baseline noise
