"""Enumerations and clinical/physiological constants for the plan engine.

Thresholds cite their published source where one exists; the remaining values
are program constants tuned on the exercise catalog.
"""

from enum import Enum, IntEnum


class Section(str, Enum):
    """Session sections in execution order."""

    WARMUP = "warmup"
    MAIN = "main"
    COOLDOWN = "cooldown"


class LoadLevel(IntEnum):
    """Impact / knee / spine / shoulder load levels, ordered by severity."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @classmethod
    def parse(cls, value: object, default: "LoadLevel | None" = None) -> "LoadLevel | None":
        """Parse a case-insensitive level name, returning *default* if absent."""
        if value is None or str(value).strip() == "":
            return default
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            return default


class ConditioningStyle(str, Enum):
    NONE = "none"
    INTERVAL = "interval"
    AMRAP = "amrap"
    STEADY_STATE = "steady_state"


class TolerancePattern(str, Enum):
    """Directional spine tolerance derived from trigger/relief movements."""

    FLEXION_INTOLERANT = "flexion_intolerant"
    EXTENSION_INTOLERANT = "extension_intolerant"
    NEUTRAL = "neutral"


class ExperienceTier(str, Enum):
    NONE = "none"
    OCCASIONAL = "occasional"
    REGULAR = "regular"
    ADVANCED = "advanced"

    @classmethod
    def parse(cls, value: object) -> "ExperienceTier":
        try:
            return cls(str(value or "none").strip().lower())
        except ValueError:
            return cls.NONE

    @property
    def is_beginner(self) -> bool:
        return self in (ExperienceTier.NONE, ExperienceTier.OCCASIONAL)


class RejectionReason(str, Enum):
    """Fixed diagnostic codes returned by the clinical safety filter."""

    BLACKLISTED = "blacklisted"
    MISSING_EQUIPMENT = "missing_equipment"
    TOO_HARD = "too_hard_calculated"
    PHYSICAL_RESTRICTION = "physical_restriction"
    DIAGNOSIS_CONTRAINDICATION = "diagnosis_contraindication"
    BIOMECHANICS_MISMATCH = "biomechanics_mismatch"
    SEVERITY_FILTER = "severity_filter"
    RULE_ERROR = "rule_error"


class CatalogError(str, Enum):
    """Structural validation failures for raw exercise rows."""

    MISSING_ID = "missing_id"
    MISSING_IMPACT_LEVEL = "missing_impact_level"
    MISSING_POSITION = "missing_position"
    MISSING_FOOT_LOADING = "missing_foot_loading"
    INCONSISTENT_IMPACT_PROFILE = "inconsistent_impact_profile"
    INVALID_INTERVAL_OBJECT = "invalid_interval_object"
    INVALID_INTERVAL_WORK = "invalid_interval_work"
    INVALID_INTERVAL_REST = "invalid_interval_rest"


class PainStatus(str, Enum):
    """Traffic-light pain response (Silbernagel pain-monitoring model)."""

    GREEN = "green"
    AMBER = "amber"
    RED = "red"


class RpeTrendLabel(str, Enum):
    STANDARD = "standard"
    DECAY = "decay"
    PROTECTION = "protection"
    CHRONIC_DELOAD = "chronic_deload"
    ACUTE_RECOVERY = "acute_recovery"
    PROGRESSIVE_BOOST = "progressive_boost"
    PROGRESSIVE = "progressive"
    MAINTENANCE = "maintenance"


class FatigueState(str, Enum):
    """Day-to-day readiness used by the load factor."""

    FRESH = "fresh"
    FATIGUED = "fatigued"


class PhaseId(str, Enum):
    """Macro-cycle phases. DELOAD and REHAB double as safety overrides."""

    CONTROL = "control"
    MOBILITY = "mobility"
    CAPACITY = "capacity"
    STRENGTH = "strength"
    METABOLIC = "metabolic"
    DELOAD = "deload"
    REHAB = "rehab"


# ---------------------------------------------------------------------------
# Clinical context constants
# ---------------------------------------------------------------------------
# Severity score = mean(pain NPRS, daily impact), amplified for neuropathic-like
# pain descriptors (sharp / burning / radiating)
SEVERITY_SHARP_MULTIPLIER = 1.2
SEVERE_THRESHOLD = 6.5
SHARP_MODERATE_THRESHOLD = 4.0

DIFFICULTY_CAP_BY_EXPERIENCE = {
    ExperienceTier.NONE: 1,
    ExperienceTier.OCCASIONAL: 2,
    ExperienceTier.REGULAR: 3,
    ExperienceTier.ADVANCED: 4,
}
DEFAULT_DIFFICULTY_CAP = 2
SEVERE_DIFFICULTY_CAP = 2
SHARP_DIFFICULTY_CAP = 3

KNOWN_POSITIONS = frozenset({
    "standing", "sitting", "kneeling", "half_kneeling",
    "quadruped", "supine", "prone", "side_lying",
})

# Equipment entries meaning "no equipment needed"
EQUIPMENT_IGNORABLE = frozenset({
    "none", "brak", "", "brak sprzętu", "masa własna", "bodyweight",
})

KNEE_LOAD_EXCLUDED_DIAGNOSES = frozenset({
    "chondromalacia", "meniscus_tear", "acl_rehab", "mcl_rehab", "lcl_rehab", "knee_oa",
})
SPINE_LOAD_EXCLUDED_DIAGNOSES = frozenset({"disc_herniation", "spondylolisthesis"})

# Knee flexion safety limits in degrees, closed vs open kinetic chain
# Powers et al. (2014), patellofemoral joint stress vs knee angle
KNEE_FLEXION_CKC_SEVERE = 45
KNEE_FLEXION_CKC_MODERATE = 60
KNEE_FLEXION_OKC = 90
KNEE_FLEXION_MAX_DEG = 150

THERAPEUTIC_CATEGORIES = frozenset({
    "core_anti_extension", "core_anti_rotation", "core_stability",
    "glute_activation", "scapular_stability", "nerve_flossing",
    "breathing", "breathing_control", "hip_mobility", "spine_mobility",
})

SPINE_MOTION_PROFILES = frozenset({
    "neutral", "lumbar_flexion_loaded", "lumbar_extension_loaded",
    "lumbar_rotation_loaded", "lumbar_lateral_flexion_loaded", "thoracic_rotation_loaded",
})

# ---------------------------------------------------------------------------
# Fatigue bucket (Banister impulse-response) + Foster monotony/strain
# ---------------------------------------------------------------------------
# Banister et al. (1975): fitness-fatigue impulse response; 24h fatigue half-life
FATIGUE_HALF_LIFE_HOURS = 24
MAX_BUCKET_CAPACITY = 120
HISTORY_WINDOW_DAYS = 56
MIN_SESSIONS_FOR_CALIBRATION = 10
# 60 min @ RPE 5 = 300 AU should land at ~40 bucket points (40 / 300)
LOAD_SCALE = 0.1333
DEFAULT_SECONDS_PER_REP = 6
FALLBACK_MINUTES_PER_EXERCISE = 4.0
MAX_TIMESTAMP_DURATION_HOURS = 6

# Static (uncalibrated) thresholds
DEFAULT_THRESHOLD_ENTER = 80
DEFAULT_THRESHOLD_EXIT = 60
DEFAULT_THRESHOLD_FILTER = 70
DEFAULT_P85_STRAIN = 9999
DEFAULT_P85_FATIGUE = 80

# Foster (1998): monotony = mean/SD of daily load; SD floored to avoid blow-up
MONOTONY_SD_FLOOR = 1.0
MONOTONY_SPIKE_THRESHOLD = 2.0
MONOTONY_RELEVANT_WEEK_LOAD = 1400

# Foster et al. (2001): session RPE from the ternary post-session rating
FEEDBACK_TO_RPE = {-1: 7, 0: 5, 1: 3}
DEFAULT_SESSION_RPE = 5

# ---------------------------------------------------------------------------
# RPE trend
# ---------------------------------------------------------------------------
RPE_TREND_WINDOW = 3
RPE_TREND_DECAY_DAYS = 5

# ---------------------------------------------------------------------------
# Pain monitoring: Silbernagel et al. (2007), pain-monitoring model
# ---------------------------------------------------------------------------
PAIN_MONITORING_SCHEMA_VERSION = 1
PAIN_DURING_GREEN_MAX = 5
PAIN_DURING_AMBER_MAX = 7
PAIN_DELTA_GREEN_MAX = 1
PAIN_DELTA_AMBER_MAX = 3
RED_REQUIRES_CONSECUTIVE_SESSIONS = 2
PAIN_MODIFIERS = {
    PainStatus.GREEN: 1.0,
    PainStatus.AMBER: 0.9,
    PainStatus.RED: 0.75,
}
PAIN_NOTE_MAX_CHARS = 200

# ---------------------------------------------------------------------------
# Selection & prescription
# ---------------------------------------------------------------------------
CATEGORY_WEIGHT_FLOOR = 0.05
MIN_SAFE_CANDIDATES = 5
MIN_MAIN_EXERCISES = 2
MAX_SETS_SAFE = 5
MAX_SETS_MOBILITY = 3
MAX_SETS_UNILATERAL = 3
GLOBAL_MAX_REPS = 25
DEFAULT_TARGET_MINUTES = 30
DEFAULT_SCHEDULE_PATTERN = (1, 3, 5)  # Mon / Wed / Fri (0 = Sunday)
MAX_TRAINING_STREAK = 14

ANCHOR_TARGET_EXPOSURE = 2
ANCHOR_TARGET_EXPOSURE_STRENGTH = 3
MAX_ANCHOR_FAMILIES = 2
ALTERNATIVE_SCORE_RATIO = 0.95

LOAD_FACTOR_MIN = 0.45
LOAD_FACTOR_MAX = 1.35
INTERVAL_TARGET_SECONDS = 480

# Daily undulating periodization: Rhea et al. (2002)
UNDULATION_WAVE = (1.0, 0.85, 1.15, 0.9, 0.8, 1.2, 1.0)

# Time budget solver
EXPAND_TARGET_RATIO = 0.95
EXPAND_MAX_ITERATIONS = 30
HARD_LIMIT_TOLERANCE_SEC = 30
HARD_LIMIT_MAX_ITERATIONS = 200
SHRINK_STEP = 0.9
SESSION_BASE_SECONDS = 5
UNILATERAL_TRANSITION_SEC = 12
BILATERAL_TRANSITION_SEC = 5

# Energy cost of getting into a position (floor → standing)
POSITION_ENERGY_RANK = {
    "supine": 0,
    "prone": 0,
    "side_lying": 0,
    "sitting": 1,
    "quadruped": 2,
    "kneeling": 2,
    "half_kneeling": 3,
    "standing": 4,
}

# ---------------------------------------------------------------------------
# Phase progression
# ---------------------------------------------------------------------------
DETRAINING_GAP_DAYS = 21
DETRAINING_RETENTION = 0.5
PHASE_HISTORY_MAX_ITEMS = 50
SPIRAL_CYCLE_INCREMENT = 0.1
SPIRAL_MAX_BIAS = 0.6
SOFT_PROGRESSION_FACTOR = 0.8

# Knee ROM progression: Escamilla (2001), tibiofemoral loading across flexion
ROM_KNEE_START_DEG = 60
ROM_KNEE_MAX_DEG = 135
ROM_KNEE_STEP_DEG = 15
ROM_KNEE_FLOOR_DEG = 45
ROM_REQUIRED_CLEAN_SESSIONS = 3
ROM_CONSTRAINT_BELOW_DEG = 130
