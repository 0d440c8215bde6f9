from enum import Enum
from dataclasses import dataclass
from typing import Optional
VERSION = "1.0.0"

class ShockType(Enum):
    # Declaration order is the tie-break order for equal scores
    HYPOVOLEMIC = "hypovolemic"
    CARDIOGENIC = "cardiogenic"
    SEPTIC = "septic"
    ANAPHYLACTIC = "anaphylactic"
    OBSTRUCTIVE = "obstructive"
    UNDIFFERENTIATED = "undifferentiated"

class TherapyLine(Enum):
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"
    FOURTH = "fourth"
    FIFTH = "fifth"

# Ordinal order of the ladder. Index + 1 is the successor line.
LINE_ORDER = [TherapyLine.FIRST, TherapyLine.SECOND, TherapyLine.THIRD,
              TherapyLine.FOURTH, TherapyLine.FIFTH]

class Condition(Enum):
    ASTHMA = "asthma"
    SHOCK = "shock"
    PPH = "pph"                 # Postpartum hemorrhage
    ECLAMPSIA = "eclampsia"

class Interpretation(Enum):
    NORMAL = "normal"
    ABNORMAL = "abnormal"
    CRITICAL = "critical"

class Urgency(Enum):
    ROUTINE = "routine"
    URGENT = "urgent"
    CRITICAL = "critical"

class Phase(Enum):
    AIRWAY = "airway"
    BREATHING = "breathing"
    CIRCULATION = "circulation"
    DISABILITY = "disability"
    EXPOSURE = "exposure"

class AirwayPatency(Enum):
    PATENT = "patent"
    AT_RISK = "at-risk"
    OBSTRUCTED = "obstructed"

class PerfusionStatus(Enum):
    NORMAL = "normal"
    COMPENSATED = "compensated"
    SHOCK = "shock"

class BolusType(Enum):
    STANDARD = "standard"
    CARDIOGENIC = "cardiogenic"     # Poor myocardial reserve: smaller, slower

class BolusOutcome(Enum):
    IMPROVED = "improved"
    NO_CHANGE = "no_change"
    WORSENED = "worsened"
    OVERLOADED = "overloaded"
    PENDING = "pending"

class ReassessmentResponse(Enum):
    IMPROVED = "improved"
    SAME = "same"
    WORSENED = "worsened"

class AccessType(Enum):
    IV = "iv"
    IO = "io"

class AccessState(Enum):
    IDLE = "idle"
    IV_ATTEMPT = "iv_attempt"
    IO_ESCALATED = "io_escalated"
    OBTAINED = "obtained"

class TimerUrgency(Enum):
    NORMAL = "normal"
    URGENT = "urgent"       # >= 60 s
    CRITICAL = "critical"   # >= 90 s, go to IO

class ShockCharacter(Enum):
    COLD = "cold"   # Vasoconstricted: cool peripheries, slow CRT
    WARM = "warm"   # Vasodilated: bounding pulses, flash CRT
    UNKNOWN = "unknown"

class FluidRecommendation(Enum):
    GIVE_BOLUS = "give_bolus"
    REASSESS = "reassess"
    CONSIDER_INOTROPE = "consider_inotrope"
    ESCALATE_TO_INOTROPE = "escalate_to_inotrope"
    STOP_FLUIDS = "stop_fluids"
    SHOCK_RESOLVED = "shock_resolved"

class AlertType(Enum):
    TIMER_WARNING = "timer_warning"
    TIMER_EXPIRED = "timer_expired"
    CRITICAL_ACTION = "critical_action"
    MEDICATION_DUE = "medication_due"
    REASSESSMENT_DUE = "reassessment_due"
    SUCCESS = "success"
    ERROR = "error"

class HapticPattern(Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"
    URGENT = "urgent"

class SCORING_CONSTANTS:
    PHYSICAL_FINDING_WEIGHT = 2
    HISTORY_ANSWER_WEIGHT = 3
    # Interpretation text containing either marker raises a critical alert
    CRITICAL_MARKERS = ("CRITICAL", "IMMEDIATE")
    # Top score that maps to 100% confidence
    CONFIDENCE_FULL_SCALE = 10.0
    CRITICAL_HISTORY_QUESTIONS = ("allergy",)

class ACCESS_CONSTANTS:
    IO_ESCALATION_SECONDS = 90
    MAX_FAILED_IV_ATTEMPTS = 2
    URGENT_WARNING_SECONDS = 60
    COUNTDOWN_START_SECONDS = 80

    # Weight (kg) upper bound -> IO needle length
    IO_NEEDLE_SIZES = [(3.0, "15 mm (pink)"), (40.0, "25 mm (blue)")]
    IO_NEEDLE_LARGE = "45 mm (yellow)"

class FLUID_CONSTANTS:
    REASSESS_EVERY_ML_KG = 10
    INOTROPE_CONSIDERATION_ML_KG = 40
    NEAR_MAX_FRACTION = 0.7
    OVERLOAD_PARAMETERS = frozenset({"hepatomegaly", "crackles", "jvd", "spo2"})

    # Bolus outcome thresholds (count of reassessment items)
    IMPROVED_MIN_ITEMS = 4
    RESOLVED_MIN_ITEMS = 6
    WORSENED_MIN_ITEMS = 3

class TIMING_CONSTANTS:
    BOLUS_WINDOW_MINUTES = 15
    TXA_ALERT_MINUTES = 20          # TXA should be given within 20 min of PPH diagnosis
    TXA_WINDOW_HOURS = 3
    SALBUTAMOL_REASSESS_MINUTES = 20
    MGSO4_REASSESS_MINUTES = 30

class DOSING_CONSTANTS:
    DEXTROSE_ML_KG_D25 = 2.0        # 0.5 g/kg of 25% dextrose
    EPINEPHRINE_IM_MG_KG = 0.01
    EPINEPHRINE_IM_MAX_MG = 0.5
    BVM_TIDAL_ML_KG = (6, 8)

@dataclass(frozen=True)
class BolusProtocol:
    name: str
    volume_ml_kg: float
    fluid: str
    rate: str
    max_total_ml_kg: float
    warning: Optional[str] = None

class BOLUS_LIBRARY:
    """
    Fluid bolus protocols. Cardiogenic shock gets half the volume, given
    slower, with a hard cap at 20 mL/kg.
    """
    SPECS = {
        BolusType.STANDARD: BolusProtocol(
            name="Standard Bolus",
            volume_ml_kg=10,
            fluid="Normal Saline 0.9% or Ringer's Lactate",
            rate="Over 5-10 minutes (push-pull with 50 mL syringes if needed)",
            max_total_ml_kg=60,
        ),
        BolusType.CARDIOGENIC: BolusProtocol(
            name="Cardiogenic Shock Bolus",
            volume_ml_kg=5,
            fluid="Normal Saline 0.9%",
            rate="Over 10-15 minutes",
            max_total_ml_kg=20,
            warning="CAUTION: Risk of fluid overload. Reassess after each 5 mL/kg.",
        ),
    }

    @staticmethod
    def get(bolus_type: BolusType) -> BolusProtocol:
        return BOLUS_LIBRARY.SPECS[bolus_type]

@dataclass(frozen=True)
class InotropeProperties:
    name: str
    indication: str
    mg_per_kg_in_100ml: float       # Amount added to 100 mL D5W
    rate_note: str
    mcg_kg_min_per_ml_hr: float     # Dose delivered by 1 mL/hr
    start_dose: float
    max_dose: float
    titration_step: float
    unit: str = "mcg/kg/min"
    monitoring: str = ""

class INOTROPE_LIBRARY:
    """
    Rule-of-6 style dilutions. Epinephrine and norepinephrine use 0.6 mg/kg
    so that 1 mL/hr delivers 0.1 mcg/kg/min; dopamine and dobutamine use
    6 mg/kg so that 1 mL/hr delivers 1 mcg/kg/min.
    """
    SPECS = {
        "epinephrine": InotropeProperties(
            name="Epinephrine (Adrenaline)",
            indication="Cold shock (vasoconstricted, cool peripheries)",
            mg_per_kg_in_100ml=0.6,
            rate_note="1 mL/hr = 0.1 mcg/kg/min",
            mcg_kg_min_per_ml_hr=0.1,
            start_dose=0.1, max_dose=1.0, titration_step=0.05,
            monitoring="Continuous ECG, BP every 5 min, perfusion",
        ),
        "norepinephrine": InotropeProperties(
            name="Norepinephrine (Noradrenaline)",
            indication="Warm shock (vasodilated, bounding pulses)",
            mg_per_kg_in_100ml=0.6,
            rate_note="1 mL/hr = 0.1 mcg/kg/min",
            mcg_kg_min_per_ml_hr=0.1,
            start_dose=0.1, max_dose=2.0, titration_step=0.05,
            monitoring="Continuous ECG, BP every 5 min, urine output",
        ),
        "dopamine": InotropeProperties(
            name="Dopamine",
            indication="Second line if epinephrine or norepinephrine unavailable",
            mg_per_kg_in_100ml=6.0,
            rate_note="1 mL/hr = 1 mcg/kg/min",
            mcg_kg_min_per_ml_hr=1.0,
            start_dose=5.0, max_dose=20.0, titration_step=2.5,
            monitoring="Continuous ECG, BP, urine output",
        ),
        "dobutamine": InotropeProperties(
            name="Dobutamine",
            indication="Cardiogenic shock with adequate BP",
            mg_per_kg_in_100ml=6.0,
            rate_note="1 mL/hr = 1 mcg/kg/min",
            mcg_kg_min_per_ml_hr=1.0,
            start_dose=5.0, max_dose=20.0, titration_step=2.5,
            monitoring="Continuous ECG, BP (may cause hypotension)",
        ),
    }

    @staticmethod
    def get(drug: str) -> Optional[InotropeProperties]:
        return INOTROPE_LIBRARY.SPECS.get(drug.strip().lower())
