"""
Paeds Resus: Data Dictionary
============================
Every record that flows between the bedside UI and the escalation engines.
Reference data (ladders, assessment steps, questions) is frozen. Session
data (assessment state, fluid session) is caller-owned and updated
copy-on-write: the engines return new snapshots and never keep one.

NO LOGIC beyond boundary validation is implemented here.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple, Union
from datetime import datetime
from constants import (
    VERSION, ShockType, TherapyLine, Interpretation, Urgency, Phase,
    AirwayPatency, PerfusionStatus, BolusType, BolusOutcome,
    ReassessmentResponse, AccessType, FluidRecommendation, TimerUrgency,
    AccessState,
)

class InvalidInputError(ValueError):
    """Raised when a weight, age or elapsed time is outside its valid domain."""
    pass

class DataTypeError(TypeError):
    """Raised when inputs are wrong python types (str instead of float)."""
    pass

class UnknownConditionError(LookupError):
    """Raised when no escalation ladder exists for the requested condition."""
    pass

class DrugNotFoundError(LookupError):
    """Raised when a drug has no dilution entry."""
    pass

class UnknownFindingError(LookupError):
    """Raised for an assessment step, option or history question that does not exist."""
    pass

class BolusNotPermittedError(RuntimeError):
    """Raised when a bolus is requested after overload or before reassessment."""
    pass

def require_positive_weight(weight_kg) -> float:
    if isinstance(weight_kg, bool) or not isinstance(weight_kg, (int, float)):
        raise DataTypeError(f"Weight must be a number, got {type(weight_kg).__name__}")
    if weight_kg <= 0:
        raise InvalidInputError(f"Weight must be positive, got {weight_kg} kg")
    return float(weight_kg)

def require_non_negative(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DataTypeError(f"{name} must be a number, got {type(value).__name__}")
    if value < 0:
        raise InvalidInputError(f"{name} cannot be negative, got {value}")
    return float(value)

def require_bool(value, name: str, optional: bool = False) -> None:
    # "false" is truthy: only real booleans are accepted for yes/no findings
    if value is None and optional:
        return
    if not isinstance(value, bool):
        raise DataTypeError(f"{name} must be true or false, got {type(value).__name__}")

def require_optional_number(value, name: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DataTypeError(f"{name} must be a number, got {type(value).__name__}")

@dataclass
class AuditLog:
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    action: str = "shock_assessment"
    inputs_hash: int = 0
    model_version: str = VERSION

# --- 1. THERAPY LADDERS ---

@dataclass(frozen=True)
class TherapyStep:
    """One rung of an escalation ladder. Steps sharing a line are concurrent options."""
    line: TherapyLine
    drug: str
    dose: str
    route: str
    frequency: str
    max_dose: str
    escalation_trigger: str     # Advisory text, shown to the provider
    dilution: Optional[str] = None
    administration_time: Optional[str] = None
    monitoring: Tuple[str, ...] = ()
    contraindications: Tuple[str, ...] = ()
    side_effects: Tuple[str, ...] = ()
    deescalation_criteria: Optional[str] = None
    drug_class: Optional[str] = None

# --- 2. SHOCK DIFFERENTIAL ---

@dataclass(frozen=True)
class AssessmentOption:
    value: str
    label: str
    interpretation: str
    shock_types: Tuple[ShockType, ...] = ()
    is_normal: bool = False

@dataclass(frozen=True)
class AbnormalFinding:
    finding: str
    interpretation: str
    shock_types: Tuple[ShockType, ...]

@dataclass(frozen=True)
class ShockAssessmentStep:
    id: str
    order: int
    parameter: str
    question: str
    method: str
    normal_finding: str
    options: Tuple[AssessmentOption, ...]
    clinical_tip: str = ""

    @property
    def abnormal_findings(self) -> Tuple[AbnormalFinding, ...]:
        return tuple(
            AbnormalFinding(finding=o.label, interpretation=o.interpretation,
                            shock_types=o.shock_types)
            for o in self.options if not o.is_normal
        )

    def option(self, value: str) -> AssessmentOption:
        for opt in self.options:
            if opt.value == value:
                return opt
        raise UnknownFindingError(f"'{value}' is not an option for step '{self.id}'")

@dataclass(frozen=True)
class HistoryQuestion:
    id: str
    question: str
    shock_type: ShockType
    evidence: str
    yes_interpretation: str = ""
    follow_up: str = ""

@dataclass(frozen=True)
class AssessmentFinding:
    parameter: str
    value: Union[str, int, float, bool]
    interpretation: Interpretation
    clinical_significance: str = ""

@dataclass(frozen=True)
class AssessmentState:
    """
    Snapshot of a shock assessment in progress.
    Findings are keyed by step id; a newer finding for the same step replaces
    the older one. Never mutate the dicts: use with_finding / with_history_answer.
    """
    findings: Dict[str, AssessmentFinding] = field(default_factory=dict)
    history_answers: Dict[str, bool] = field(default_factory=dict)

    def with_finding(self, finding: AssessmentFinding) -> 'AssessmentState':
        findings = dict(self.findings)
        findings[finding.parameter] = finding
        return replace(self, findings=findings)

    def with_history_answer(self, question_id: str, answer: bool) -> 'AssessmentState':
        answers = dict(self.history_answers)
        answers[question_id] = answer
        return replace(self, history_answers=answers)

@dataclass(frozen=True)
class ShockScore:
    type: ShockType
    score: int
    evidence: Tuple[str, ...] = ()

@dataclass
class ShockDifferential:
    """Standardized result of a completed shock assessment."""
    identified_type: ShockType
    scores: Tuple[ShockScore, ...]
    confidence: float               # 0-100
    evidence: Tuple[str, ...]
    referral_reason: str
    audit_log: Optional[AuditLog] = None

# --- 3. ACCESS & FLUIDS ---

@dataclass(frozen=True)
class AccessAttempt:
    access_type: AccessType
    site: str
    start_time: datetime
    end_time: Optional[datetime] = None
    success: bool = False

    def __post_init__(self):
        object.__setattr__(self, "access_type", AccessType(self.access_type))

    @property
    def is_failed_iv(self) -> bool:
        return self.access_type == AccessType.IV and not self.success

@dataclass(frozen=True)
class AccessStatus:
    state: AccessState
    urgency: TimerUrgency
    failed_iv_attempts: int
    escalate_to_io: bool
    io_needle: Optional[str] = None

@dataclass(frozen=True)
class ReassessmentPrompt:
    """A checklist line asked after every bolus."""
    parameter: str
    question: str
    improved_sign: str
    worsened_sign: str
    is_overload_sign: bool = False

@dataclass(frozen=True)
class ShockReassessmentItem:
    parameter: str
    response: ReassessmentResponse = ReassessmentResponse.SAME
    overload_sign: bool = False
    pre_bolus_value: Optional[str] = None
    post_bolus_value: Optional[str] = None

    @property
    def improved(self) -> bool:
        return self.response == ReassessmentResponse.IMPROVED

@dataclass(frozen=True)
class FluidBolus:
    bolus_number: int
    volume_ml_kg: float
    volume_ml: int
    total_given_ml_kg: float        # Running total including this bolus
    time_given: datetime
    reassessment: Tuple[ShockReassessmentItem, ...] = ()
    outcome: BolusOutcome = BolusOutcome.PENDING

@dataclass(frozen=True)
class FluidSession:
    """Append-only bolus history for one resuscitation."""
    weight_kg: float
    bolus_type: BolusType = BolusType.STANDARD
    boluses: Tuple[FluidBolus, ...] = ()

    def __post_init__(self):
        require_positive_weight(self.weight_kg)
        object.__setattr__(self, "bolus_type", BolusType(self.bolus_type))

    @property
    def total_given_ml_kg(self) -> float:
        return self.boluses[-1].total_given_ml_kg if self.boluses else 0.0

    @property
    def last_bolus(self) -> Optional[FluidBolus]:
        return self.boluses[-1] if self.boluses else None

@dataclass
class FluidStatus:
    recommendation: FluidRecommendation
    total_given_ml_kg: float
    total_given_ml: int
    max_total_ml_kg: float
    near_max: bool
    overloaded: bool
    message: str
    immediate_actions: Tuple[str, ...] = ()

# --- 4. ABCDE SEQUENCING ---

@dataclass(frozen=True)
class Dosing:
    weight_kg: float
    calculation: str
    dose: str
    route: str

@dataclass(frozen=True)
class Action:
    id: str
    sequence: int
    title: str
    description: str
    rationale: str
    expected_outcome: str
    urgency: Urgency
    phase: Phase
    timeframe: str
    monitoring: Tuple[str, ...]
    dosing: Optional[Dosing] = None
    prerequisites: Tuple[str, ...] = ()
    contraindications: Tuple[str, ...] = ()

@dataclass(frozen=True)
class AirwayFindings:
    airway_patency: Optional[AirwayPatency] = None
    secretions: bool = False

    def __post_init__(self):
        require_bool(self.secretions, "Secretions")
        if self.airway_patency is not None:
            object.__setattr__(self, "airway_patency", AirwayPatency(self.airway_patency))

@dataclass(frozen=True)
class BreathingFindings:
    oxygen_applied: bool = False
    spo2: Optional[float] = None
    breathing_adequate: Optional[bool] = None

    def __post_init__(self):
        require_bool(self.oxygen_applied, "Oxygen applied")
        require_bool(self.breathing_adequate, "Breathing adequate", optional=True)
        require_optional_number(self.spo2, "SpO2")
        if self.spo2 is not None and not 0 <= self.spo2 <= 100:
            raise InvalidInputError(f"SpO2 must be 0-100%, got {self.spo2}")

@dataclass(frozen=True)
class CirculationFindings:
    iv_access: bool = False
    perfusion_status: Optional[PerfusionStatus] = None

    def __post_init__(self):
        require_bool(self.iv_access, "IV access")
        if self.perfusion_status is not None:
            object.__setattr__(self, "perfusion_status", PerfusionStatus(self.perfusion_status))

@dataclass(frozen=True)
class DisabilityFindings:
    glucose_mg_dl: Optional[float] = None

    def __post_init__(self):
        if self.glucose_mg_dl is not None:
            require_non_negative(self.glucose_mg_dl, "Glucose")

@dataclass(frozen=True)
class ExposureFindings:
    temperature_celsius: Optional[float] = None

    def __post_init__(self):
        require_optional_number(self.temperature_celsius, "Temperature")

PhaseFindings = Union[AirwayFindings, BreathingFindings, CirculationFindings,
                      DisabilityFindings, ExposureFindings]

PHASE_FINDINGS_SCHEMA = {
    Phase.AIRWAY: AirwayFindings,
    Phase.BREATHING: BreathingFindings,
    Phase.CIRCULATION: CirculationFindings,
    Phase.DISABILITY: DisabilityFindings,
    Phase.EXPOSURE: ExposureFindings,
}

@dataclass(frozen=True)
class PhaseAssessment:
    phase: Phase
    findings: PhaseFindings
    weight_kg: float
    age_years: float
    age_months: int = 0

    def __post_init__(self):
        # Accept "airway" as well as Phase.AIRWAY
        object.__setattr__(self, "phase", Phase(self.phase))
        require_positive_weight(self.weight_kg)
        require_non_negative(self.age_years, "Age")
        require_non_negative(self.age_months, "Age (months)")

        expected = PHASE_FINDINGS_SCHEMA[self.phase]
        if not isinstance(self.findings, expected):
            raise InvalidInputError(
                f"{self.phase.value} phase expects {expected.__name__}, "
                f"got {type(self.findings).__name__}"
            )
