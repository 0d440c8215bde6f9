"""
Paeds Resus: Shock Differential Engine
======================================
Bedside shock typing by weighted evidence. Each abnormal examination finding
adds 2 points to every shock type it is tagged with; each "yes" to a history
question adds 3 points to its single shock type. The highest score wins,
ties resolved by ShockType declaration order.

Scoring is pure over a caller-owned AssessmentState. Audible/haptic alerts
for critical findings go through an injected AlertSink and never influence
the scores.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from constants import (
    ShockType, Interpretation, AlertType, HapticPattern, ShockCharacter, SCORING_CONSTANTS,
)
from models import (
    AssessmentOption as Opt, ShockAssessmentStep, HistoryQuestion, AssessmentFinding,
    AssessmentState, ShockScore, ShockDifferential, AuditLog, UnknownFindingError,
)

logger = logging.getLogger(__name__)

HYPO = ShockType.HYPOVOLEMIC
CARDIO = ShockType.CARDIOGENIC
SEPTIC = ShockType.SEPTIC
ANAPH = ShockType.ANAPHYLACTIC
OBSTR = ShockType.OBSTRUCTIVE
UNDIFF = ShockType.UNDIFFERENTIATED

# --- 1. PHYSICAL ASSESSMENT (ordered) ---

SHOCK_ASSESSMENT_STEPS: Tuple[ShockAssessmentStep, ...] = (
    ShockAssessmentStep(
        id="pulses", order=1, parameter="Central vs Peripheral Pulses",
        question="Compare central (carotid/femoral) and peripheral (radial/dorsalis pedis) pulses:",
        method="Palpate carotid/femoral (central) and radial/dorsalis pedis (peripheral) simultaneously",
        normal_finding="Both strong and equal",
        options=(
            Opt("both_strong", "Both strong and equal", "Normal perfusion", is_normal=True),
            Opt("weak_peripheral", "Weak peripheral, strong central",
                "Compensated shock - peripheral vasoconstriction", (HYPO, SEPTIC, CARDIO)),
            Opt("both_weak", "Both weak", "Decompensated shock - CRITICAL",
                (HYPO, SEPTIC, CARDIO, OBSTR)),
            Opt("bounding", "Bounding peripheral pulses",
                "Warm/distributive shock (early sepsis, anaphylaxis)", (SEPTIC, ANAPH)),
            Opt("unequal", "Unequal (arm vs arm or arm vs leg)", "Consider aortic pathology", (OBSTR,)),
        ),
        clinical_tip="In infants, use brachial pulse instead of radial",
    ),
    ShockAssessmentStep(
        id="pallor", order=2, parameter="Palmar Pallor",
        question="Open the child's palm and compare to your palm or inner conjunctiva:",
        method="Open palm, compare to your palm or inner conjunctiva",
        normal_finding="Pink palm creases",
        options=(
            Opt("pink", "Pink palm creases", "Normal", is_normal=True),
            Opt("pale", "Pale palm creases", "Moderate anemia or poor perfusion", (HYPO,)),
            Opt("severe_pallor", "Severe pallor (white)", "Severe anemia or hemorrhagic shock", (HYPO,)),
        ),
        clinical_tip="Pallor + tachycardia + history of bleeding = hemorrhagic shock until proven otherwise",
    ),
    ShockAssessmentStep(
        id="cyanosis", order=3, parameter="Cyanosis",
        question="Inspect nail beds, lips, and earlobes:",
        method="Inspect nail beds, lips, earlobes",
        normal_finding="Pink",
        options=(
            Opt("pink", "Pink throughout", "Normal oxygenation and perfusion", is_normal=True),
            Opt("peripheral", "Blue nail beds only", "Poor peripheral perfusion", (HYPO, CARDIO)),
            Opt("central", "Blue lips and tongue",
                "Hypoxemia - check SpO2, consider cardiac cause", (CARDIO, OBSTR)),
            Opt("mottled", "Mottled skin", "Severe shock with microcirculatory failure", (SEPTIC, CARDIO)),
        ),
        clinical_tip="Central cyanosis not improving with oxygen = cardiac shunt or severe lung disease",
    ),
    ShockAssessmentStep(
        id="crt", order=4, parameter="Capillary Refill Time",
        question="Press sternum for 5 seconds, release, count seconds to pink:",
        method="Press sternum or fingertip for 5 seconds, release, count seconds to pink",
        normal_finding="<2 seconds",
        options=(
            Opt("normal", "< 2 seconds", "Normal", is_normal=True),
            Opt("mild", "2-3 seconds", "Mild-moderate perfusion deficit", (HYPO, SEPTIC, CARDIO)),
            Opt("moderate", "3-5 seconds", "Moderate-severe shock", (HYPO, SEPTIC, CARDIO)),
            Opt("severe", "> 5 seconds", "Severe shock - IMMEDIATE intervention needed",
                (HYPO, SEPTIC, CARDIO, OBSTR)),
            Opt("flash", "Flash refill (< 1 second)", "Vasodilation - warm shock", (SEPTIC, ANAPH)),
        ),
        clinical_tip="Test on sternum in cold environments as extremities may be falsely prolonged",
    ),
    ShockAssessmentStep(
        id="temperature", order=5, parameter="Temperature Gradient",
        question="Run back of hand from foot up leg. Note where temperature changes from cool to warm:",
        method="Run back of hand from foot up leg, note where temperature changes from cool to warm",
        normal_finding="Warm throughout or cool only at toes",
        options=(
            Opt("toes", "Cool only at toes", "Normal", is_normal=True),
            # Warm peripheries in a shocked child point to distributive shock
            Opt("warm", "Warm throughout", "Normal or warm shock", (SEPTIC, ANAPH)),
            Opt("ankle", "Cool to ankle", "Mild peripheral shutdown", (HYPO, CARDIO)),
            Opt("calf", "Cool to mid-calf", "Moderate shock", (HYPO, SEPTIC, CARDIO)),
            Opt("knee", "Cool to knee", "Severe shock", (HYPO, SEPTIC, CARDIO)),
            Opt("thigh", "Cool to mid-thigh or higher", "Profound shock - CRITICAL",
                (HYPO, SEPTIC, CARDIO, OBSTR)),
        ),
        clinical_tip='Document the level (e.g., "cool to knee") for trending response to treatment',
    ),
    ShockAssessmentStep(
        id="bp", order=6, parameter="Blood Pressure",
        question="Measure BP with appropriate cuff size (width 40% of arm circumference):",
        method="Use appropriate cuff size (width 40% of arm circumference)",
        normal_finding="Systolic: 70 + (2 x age in years) for children 1-10 years",
        options=(
            Opt("normal", "Normal for age", "May still be in compensated shock", is_normal=True),
            Opt("low", "Systolic < 70 + (2 x age)", "Hypotensive shock - decompensated",
                (HYPO, SEPTIC, CARDIO, OBSTR)),
            Opt("wide_pp", "Wide pulse pressure", "Early septic shock or aortic regurgitation", (SEPTIC,)),
            Opt("narrow_pp", "Narrow pulse pressure", "Cardiogenic or late septic shock", (CARDIO, SEPTIC)),
            Opt("pulsus_paradoxus", "Pulsus paradoxus > 10 mmHg",
                "Cardiac tamponade or severe asthma", (OBSTR,)),
        ),
        clinical_tip="Hypotension is a LATE sign in children - treat shock before BP drops",
    ),
    ShockAssessmentStep(
        id="heart_sounds", order=7, parameter="Heart Sounds",
        question="Auscultate at apex, left sternal border, and base:",
        method="Listen at apex, left sternal border, and base",
        normal_finding="S1 S2 clear, no murmurs or added sounds",
        options=(
            Opt("normal", "S1 S2 clear, no murmurs", "Normal", is_normal=True),
            Opt("gallop", "Gallop rhythm (S3)", "Volume overload or heart failure", (CARDIO,)),
            Opt("murmur", "New murmur", "Valve dysfunction, VSD, endocarditis", (CARDIO, SEPTIC)),
            Opt("muffled", "Muffled heart sounds", "Pericardial effusion/tamponade", (OBSTR,)),
            Opt("rub", "Pericardial rub", "Pericarditis", (OBSTR,)),
        ),
        clinical_tip="Known heart disease + shock = cardiogenic until proven otherwise",
    ),
    ShockAssessmentStep(
        id="ecg", order=8, parameter="ECG Rhythm",
        question="Attach 3 or 5 lead ECG and assess:",
        method="Attach leads, assess rate, rhythm, QRS width",
        normal_finding="Sinus rhythm, age-appropriate rate, narrow QRS",
        options=(
            Opt("sinus_tachy", "Sinus tachycardia", "Compensatory - treat underlying cause",
                (HYPO, SEPTIC, ANAPH)),
            Opt("svt", "SVT (rate >220 infant, >180 child)", "May be cause of cardiogenic shock", (CARDIO,)),
            Opt("wide_complex", "Wide complex tachycardia", "VT until proven otherwise", (CARDIO,)),
            Opt("bradycardia", "Bradycardia with hypotension", "Pre-arrest - prepare for CPR",
                (CARDIO, OBSTR)),
            Opt("peaked_t", "Peaked T waves, wide QRS", "Hyperkalemia - give calcium NOW", (UNDIFF,)),
            Opt("low_voltage", "Low voltage, electrical alternans", "Pericardial effusion", (OBSTR,)),
            Opt("normal", "Normal sinus rhythm", "Normal", is_normal=True),
        ),
        clinical_tip="Arrhythmia in shock may be due to electrolyte disturbance - check K+, Ca2+, Mg2+",
    ),
    ShockAssessmentStep(
        id="jvd", order=9, parameter="Jugular Venous Distension",
        question="Position at 45 degrees, look for pulsation above clavicle:",
        method="Position at 45 degrees, look for pulsation above clavicle",
        normal_finding="Not visible above clavicle at 45 degrees",
        options=(
            Opt("flat", "Flat JVP even when supine", "Hypovolemia", (HYPO,)),
            Opt("normal", "Not visible above clavicle at 45 degrees", "Normal", is_normal=True),
            Opt("elevated", "JVD present", "Elevated right heart pressure", (CARDIO, OBSTR)),
        ),
        clinical_tip="JVD + hypotension + muffled heart sounds = Beck's triad (tamponade)",
    ),
    ShockAssessmentStep(
        id="hepatomegaly", order=10, parameter="Hepatomegaly",
        question="Palpate from right iliac fossa upward:",
        method="Palpate from right iliac fossa upward, percuss liver span",
        normal_finding="Liver edge at or just below costal margin",
        options=(
            Opt("normal", "Liver at or just below costal margin", "Normal", is_normal=True),
            Opt("enlarged", "Liver > 2 cm below costal margin",
                "Right heart failure or fluid overload", (CARDIO,)),
            Opt("tender", "Tender hepatomegaly", "Acute congestion", (CARDIO,)),
            Opt("increasing", "Increasing hepatomegaly during resuscitation",
                "STOP FLUIDS - fluid overload", (CARDIO,)),
        ),
        clinical_tip="Mark liver edge with pen before fluids - recheck after each bolus",
    ),
    ShockAssessmentStep(
        id="edema", order=11, parameter="Edema",
        question="Check for periorbital edema and press over tibia for 5 seconds:",
        method="Inspect around eyes; press over tibial bone for 5 seconds, check for pitting",
        normal_finding="No edema",
        options=(
            Opt("none", "No edema", "Normal", is_normal=True),
            Opt("periorbital", "Periorbital edema", "Fluid overload or nephrotic", (CARDIO,)),
            Opt("pedal", "Pedal pitting edema", "Fluid overload", (CARDIO,)),
            Opt("both", "Both periorbital and pedal",
                "Significant fluid overload - cautious with boluses", (CARDIO,)),
        ),
        clinical_tip="If present before fluid resuscitation, be cautious with boluses",
    ),
    ShockAssessmentStep(
        id="urine", order=12, parameter="Urine Output",
        question="Ask mother: How many wet diapers/urinations in last 6-12 hours?",
        method="Ask about diaper changes or urination frequency in last 6-12 hours",
        normal_finding=">1 mL/kg/hr (6+ wet diapers/day in infant)",
        options=(
            Opt("normal", "6+ wet diapers or normal frequency", "Adequate renal perfusion", is_normal=True),
            Opt("decreased", "< 4 wet diapers or decreased frequency",
                "Oliguria - poor renal perfusion", (HYPO, SEPTIC, CARDIO)),
            Opt("polyuria", "Increased urination with dehydration", "Consider DKA", (HYPO,)),
            Opt("none", "No urine for > 6 hours", "Severe shock or AKI", (HYPO, SEPTIC, CARDIO)),
        ),
        clinical_tip="Insert urinary catheter early in severe shock to monitor output hourly",
    ),
)

# --- 2. HISTORY ---

HISTORY_QUESTIONS: Tuple[HistoryQuestion, ...] = (
    HistoryQuestion("diarrhea", "Has the child had diarrhea and/or vomiting?", HYPO,
                    "GI losses suggest hypovolemic shock",
                    "Hypovolemic shock likely - calculate fluid deficit",
                    "How many episodes? Any blood in stool? How long?"),
    HistoryQuestion("polyuria", "Has the child been urinating more than usual (polyuria)?", HYPO,
                    "Polyuria with dehydration suggests DKA",
                    "Consider DKA - check glucose and ketones",
                    "Any excessive thirst? Weight loss? Known diabetic?"),
    HistoryQuestion("bleeding", "Has there been any bleeding?", HYPO,
                    "Hemorrhage - prepare blood products",
                    "Hemorrhagic shock - type and crossmatch, prepare blood",
                    "Where is the bleeding? Trauma? Melena? Hematemesis?"),
    HistoryQuestion("heart_disease", "Does the child have known heart disease?", CARDIO,
                    "Known cardiac condition - cautious fluids",
                    "Cardiogenic shock likely - cautious fluids, early inotropes",
                    "What heart condition? On any cardiac medications? Recent surgery?"),
    HistoryQuestion("fever", "Has the child had fever at home?", SEPTIC,
                    "Fever suggests infection - give antibiotics within 1 hour",
                    "Septic shock likely - antibiotics within 1 hour",
                    "How high? How long? Any source identified? Immunocompromised?"),
    HistoryQuestion("allergy", "Any new food, insect sting, or hives?", ANAPH,
                    "Allergic trigger - give epinephrine IM immediately",
                    "Anaphylactic shock - give epinephrine IM immediately",
                    "What was the trigger? Any swelling of face/tongue? Difficulty breathing?"),
    HistoryQuestion("sudden", "Was the onset sudden?", OBSTR,
                    "Sudden onset suggests PE, arrhythmia, or tamponade",
                    "Sudden onset suggests anaphylaxis, PE, arrhythmia, or tamponade",
                    "What was child doing when it started? Any chest pain?"),
    HistoryQuestion("trauma", "Any recent trauma or surgery?", OBSTR,
                    "Consider hemorrhage, pneumothorax, or tamponade",
                    "Consider hemorrhage, tension pneumothorax, or tamponade",
                    "Mechanism of injury? Chest trauma? Abdominal trauma?"),
)

def _validate_steps(steps: Sequence[ShockAssessmentStep]) -> None:
    orders = [s.order for s in steps]
    if orders != sorted(set(orders)):
        raise ValueError(f"Assessment step orders must be unique and increasing: {orders}")

_validate_steps(SHOCK_ASSESSMENT_STEPS)

_STEPS_BY_ID = {s.id: s for s in SHOCK_ASSESSMENT_STEPS}
_QUESTIONS_BY_ID = {q.id: q for q in HISTORY_QUESTIONS}

# --- 3. PORTS ---

class AlertSink:
    """Audible/haptic alert port. The base sink is silent."""

    def trigger_alert(self, alert_type: AlertType) -> None:
        pass

    def trigger_haptic(self, pattern: HapticPattern) -> None:
        pass

@dataclass
class ShockCollaborators:
    """UI callbacks fired when an assessment completes."""
    on_shock_type_identified: Optional[Callable[[ShockType, List[ShockScore]], None]] = None
    on_access_timer_start: Optional[Callable[[], None]] = None
    on_referral_requested: Optional[Callable[[str], None]] = None

def _notify_critical(sink: Optional[AlertSink]) -> None:
    if sink is None:
        return
    # Alerts must never interrupt the assessment
    try:
        sink.trigger_alert(AlertType.CRITICAL_ACTION)
        sink.trigger_haptic(HapticPattern.URGENT)
    except Exception:
        logger.exception("Alert sink failed while signalling a critical finding")

# --- 4. ENGINE ---

class ShockDifferentialEngine:

    @staticmethod
    def get_step(step_id: str) -> ShockAssessmentStep:
        step = _STEPS_BY_ID.get(step_id)
        if step is None:
            raise UnknownFindingError(f"Unknown assessment step '{step_id}'")
        return step

    @staticmethod
    def get_question(question_id: str) -> HistoryQuestion:
        question = _QUESTIONS_BY_ID.get(question_id)
        if question is None:
            raise UnknownFindingError(f"Unknown history question '{question_id}'")
        return question

    @staticmethod
    def is_critical_option(option: Opt) -> bool:
        return not option.is_normal and any(
            marker in option.interpretation for marker in SCORING_CONSTANTS.CRITICAL_MARKERS
        )

    @staticmethod
    def interpret(step_id: str, value: str) -> AssessmentFinding:
        step = ShockDifferentialEngine.get_step(step_id)
        option = step.option(value)

        if option.is_normal:
            interpretation = Interpretation.NORMAL
        elif ShockDifferentialEngine.is_critical_option(option):
            interpretation = Interpretation.CRITICAL
        else:
            interpretation = Interpretation.ABNORMAL

        return AssessmentFinding(
            parameter=step.id, value=option.value,
            interpretation=interpretation, clinical_significance=option.interpretation,
        )

    @staticmethod
    def record_finding(state: AssessmentState, step_id: str, value: str,
                       alert_sink: Optional[AlertSink] = None) -> AssessmentState:
        """Returns a new state with the selection applied. Critical selections raise an alert."""
        finding = ShockDifferentialEngine.interpret(step_id, value)
        if finding.interpretation == Interpretation.CRITICAL:
            logger.info("Critical finding: %s = %s", step_id, value)
            _notify_critical(alert_sink)
        return state.with_finding(finding)

    @staticmethod
    def record_history_answer(state: AssessmentState, question_id: str, answer: bool,
                              alert_sink: Optional[AlertSink] = None) -> AssessmentState:
        ShockDifferentialEngine.get_question(question_id)
        if answer and question_id in SCORING_CONSTANTS.CRITICAL_HISTORY_QUESTIONS:
            logger.info("Critical history answer: %s", question_id)
            _notify_critical(alert_sink)
        return state.with_history_answer(question_id, bool(answer))

    @staticmethod
    def calculate_shock_scores(state: AssessmentState) -> List[ShockScore]:
        """
        Full score vector over every ShockType, highest first.
        Pure: the same state always yields the same list.
        """
        unknown_steps = set(state.findings) - set(_STEPS_BY_ID)
        if unknown_steps:
            raise UnknownFindingError(f"Unknown assessment steps: {sorted(unknown_steps)}")
        unknown = set(state.history_answers) - set(_QUESTIONS_BY_ID)
        if unknown:
            raise UnknownFindingError(f"Unknown history questions: {sorted(unknown)}")

        scores = {t: 0 for t in ShockType}
        evidence = {t: [] for t in ShockType}

        for step in SHOCK_ASSESSMENT_STEPS:
            finding = state.findings.get(step.id)
            if finding is None:
                continue
            option = step.option(str(finding.value))
            if option.is_normal:
                continue
            for shock_type in option.shock_types:
                scores[shock_type] += SCORING_CONSTANTS.PHYSICAL_FINDING_WEIGHT
                evidence[shock_type].append(f"{step.parameter}: {option.label}")

        for question in HISTORY_QUESTIONS:
            if state.history_answers.get(question.id) is True:
                scores[question.shock_type] += SCORING_CONSTANTS.HISTORY_ANSWER_WEIGHT
                evidence[question.shock_type].append(question.evidence)

        ranked = [ShockScore(type=t, score=scores[t], evidence=tuple(evidence[t])) for t in ShockType]
        # sorted() is stable, so equal scores keep ShockType order
        return sorted(ranked, key=lambda s: s.score, reverse=True)

    @staticmethod
    def identify(scores: Sequence[ShockScore]) -> ShockType:
        if scores and scores[0].score > 0:
            return scores[0].type
        return ShockType.UNDIFFERENTIATED

    @staticmethod
    def confidence(scores: Sequence[ShockScore]) -> float:
        top = scores[0].score if scores else 0
        return min(top / SCORING_CONSTANTS.CONFIDENCE_FULL_SCALE * 100.0, 100.0)

    @staticmethod
    def referral_reason(shock_type: ShockType) -> str:
        return f"{shock_type.value} shock identified"

    @staticmethod
    def complete_assessment(state: AssessmentState,
                            collaborators: Optional[ShockCollaborators] = None) -> ShockDifferential:
        scores = ShockDifferentialEngine.calculate_shock_scores(state)
        identified = ShockDifferentialEngine.identify(scores)
        # Peaked T waves score undifferentiated on their own merit and keep their evidence
        top_evidence = scores[0].evidence if scores[0].score > 0 else ()

        inputs = tuple(sorted((k, str(f.value)) for k, f in state.findings.items()))
        answers = tuple(sorted(state.history_answers.items()))

        result = ShockDifferential(
            identified_type=identified,
            scores=tuple(scores),
            confidence=ShockDifferentialEngine.confidence(scores),
            evidence=top_evidence,
            referral_reason=ShockDifferentialEngine.referral_reason(identified),
            audit_log=AuditLog(inputs_hash=hash((inputs, answers))),
        )
        logger.info("Shock assessment complete: %s (score %d)", identified.value, scores[0].score)

        if collaborators is not None:
            if collaborators.on_shock_type_identified is not None:
                collaborators.on_shock_type_identified(identified, list(scores))
            if collaborators.on_access_timer_start is not None:
                collaborators.on_access_timer_start()
        return result

    @staticmethod
    def request_referral(result: ShockDifferential, collaborators: ShockCollaborators) -> str:
        if collaborators.on_referral_requested is not None:
            collaborators.on_referral_requested(result.referral_reason)
        return result.referral_reason

    @staticmethod
    def progress(state: AssessmentState) -> Tuple[int, int]:
        completed = sum(1 for s in SHOCK_ASSESSMENT_STEPS if s.id in state.findings)
        return completed, len(SHOCK_ASSESSMENT_STEPS)

    @staticmethod
    def infer_character(state: AssessmentState) -> ShockCharacter:
        """Warm vs cold picture from pulses, CRT and temperature gradient."""
        values = {k: str(f.value) for k, f in state.findings.items()}
        if values.get("temperature") in ("ankle", "calf", "knee", "thigh") \
                or values.get("crt") in ("moderate", "severe") \
                or values.get("pulses") in ("weak_peripheral", "both_weak"):
            return ShockCharacter.COLD
        if values.get("pulses") == "bounding" or values.get("crt") == "flash" \
                or values.get("temperature") == "warm" or values.get("bp") == "wide_pp":
            return ShockCharacter.WARM
        return ShockCharacter.UNKNOWN
