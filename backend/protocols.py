# protocols.py
"""
Paeds Resus: Therapy Escalation Ladders
=======================================
Ordered, read-only therapy ladders per condition. Each step carries a line
(first..fifth); steps sharing a line are concurrent options. Escalation
only ever moves forward one line. De-escalation is advisory text.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

from constants import (
    Condition, TherapyLine, LINE_ORDER, ShockType, ShockCharacter,
    TIMING_CONSTANTS,
)
from models import TherapyStep, UnknownConditionError, InvalidInputError, require_non_negative

logger = logging.getLogger(__name__)

# --- 1. ASTHMA ---

ASTHMA_LADDER: Tuple[TherapyStep, ...] = (
    TherapyStep(
        line=TherapyLine.FIRST, drug="Salbutamol", drug_class="bronchodilator",
        dose="2.5 mg (<20 kg) or 5 mg (>=20 kg)", route="Nebulized",
        frequency="Every 20 minutes x 3, then hourly", max_dose="15 mg in first hour",
        monitoring=("Heart rate", "SpO2", "Respiratory rate", "Work of breathing", "Wheeze intensity"),
        contraindications=("Known hypersensitivity",),
        side_effects=("Tachycardia", "Tremor", "Hypokalemia"),
        escalation_trigger="No improvement after 3 doses OR SpO2 <92% OR severe distress persists",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Ipratropium bromide", drug_class="bronchodilator",
        dose="250 mcg (<20 kg) or 500 mcg (>=20 kg)", route="Nebulized with salbutamol",
        frequency="Every 20 minutes x 3", max_dose="1500 mcg in first hour",
        monitoring=("Heart rate", "Respiratory rate"),
        contraindications=("Glaucoma", "Urinary retention"),
        side_effects=("Dry mouth", "Urinary retention"),
        escalation_trigger="Combined with salbutamol - escalate if no improvement",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Prednisolone", drug_class="steroid",
        dose="1-2 mg/kg", route="PO", frequency="Once daily", max_dose="60 mg",
        monitoring=("Blood glucose", "Blood pressure"),
        contraindications=("Active varicella", "Systemic fungal infection"),
        side_effects=("Hyperglycemia", "Mood changes", "Increased appetite"),
        escalation_trigger="If unable to take PO, switch to IV steroid",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Dexamethasone", drug_class="steroid",
        dose="0.6 mg/kg", route="PO/IV/IM", frequency="Once daily x 1-2 days", max_dose="16 mg",
        monitoring=("Blood glucose",),
        contraindications=("Active infection without antibiotics",),
        side_effects=("Hyperglycemia", "Insomnia"),
        escalation_trigger="Alternative to prednisolone - same escalation criteria",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Methylprednisolone", drug_class="steroid",
        dose="1-2 mg/kg", route="IV", frequency="Every 6 hours", max_dose="60 mg/dose",
        monitoring=("Blood glucose", "Blood pressure"),
        contraindications=("Active varicella",),
        side_effects=("Hyperglycemia", "Hypertension"),
        escalation_trigger="For severe cases requiring IV steroid",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Hydrocortisone", drug_class="steroid",
        dose="4-5 mg/kg", route="IV", frequency="Every 6 hours", max_dose="100 mg/dose",
        monitoring=("Blood glucose", "Blood pressure", "Electrolytes"),
        contraindications=("Active systemic infection without antibiotics",),
        side_effects=("Hyperglycemia", "Fluid retention"),
        escalation_trigger="Alternative IV steroid option",
    ),
    TherapyStep(
        line=TherapyLine.SECOND, drug="Magnesium Sulfate", drug_class="bronchodilator",
        dose="25-50 mg/kg", route="IV infusion",
        frequency="Single dose over 20-30 minutes", max_dose="2 g",
        dilution="Dilute in NS to make 20 mg/mL concentration",
        administration_time="20-30 minutes (faster if life-threatening)",
        monitoring=("Blood pressure every 5 minutes during infusion", "Heart rate",
                    "Deep tendon reflexes", "Respiratory rate", "SpO2"),
        contraindications=("Heart block", "Myasthenia gravis",
                           "Severe renal impairment (reduce dose by 50%)"),
        side_effects=("Hypotension (slow infusion if occurs)", "Flushing", "Muscle weakness",
                      "Respiratory depression (rare at these doses)"),
        escalation_trigger="No improvement within 30 minutes of completion -> escalate to continuous salbutamol",
    ),
    TherapyStep(
        line=TherapyLine.THIRD, drug="Salbutamol IV", drug_class="bronchodilator",
        dose="Loading: 5-15 mcg/kg over 10 min, then 1-5 mcg/kg/min",
        route="IV continuous infusion", frequency="Continuous - titrate to effect",
        max_dose="20 mcg/kg/min",
        dilution="Add 5 mg (5 mL of 1 mg/mL) to 45 mL NS = 100 mcg/mL",
        monitoring=("Continuous cardiac monitoring (ECG)", "Heart rate (target <200)",
                    "Blood pressure", "Serum potassium every 4-6 hours", "Serum lactate",
                    "Blood glucose"),
        contraindications=("Uncontrolled arrhythmia",
                           "Severe hypokalemia (<3.0 mmol/L) - correct first"),
        side_effects=("Severe tachycardia", "Hypokalemia", "Lactic acidosis", "Tremor", "Arrhythmias"),
        escalation_trigger="No improvement at max dose OR cardiac instability -> add aminophylline",
        deescalation_criteria="Wean by 1 mcg/kg/min every 30-60 min when improving",
    ),
    TherapyStep(
        line=TherapyLine.THIRD, drug="Aminophylline", drug_class="bronchodilator",
        dose="Loading: 5-6 mg/kg over 20-30 min (omit if on oral theophylline), then 0.5-1 mg/kg/hr",
        route="IV infusion", frequency="Continuous", max_dose="1.2 mg/kg/hr",
        dilution="Dilute loading dose in 50-100 mL NS",
        monitoring=("Serum theophylline level (target 10-15 mcg/mL)", "Heart rate",
                    "Blood pressure", "Nausea/vomiting", "Seizure activity"),
        contraindications=("Active seizure disorder", "Severe cardiac arrhythmia",
                           "Concurrent erythromycin/ciprofloxacin (reduce dose 50%)"),
        side_effects=("Nausea/vomiting", "Tachycardia", "Seizures (at toxic levels)", "Arrhythmias"),
        escalation_trigger="No improvement OR toxicity -> consider ketamine",
    ),
    TherapyStep(
        line=TherapyLine.FOURTH, drug="Ketamine", drug_class="bronchodilator",
        dose="Bolus: 1-2 mg/kg, then 0.5-2 mg/kg/hr infusion",
        route="IV", frequency="Continuous infusion", max_dose="3 mg/kg/hr",
        dilution="Add 200 mg to 200 mL NS = 1 mg/mL",
        monitoring=("Level of sedation", "Blood pressure", "Heart rate", "Secretions",
                    "Emergence reactions"),
        contraindications=("Severe hypertension", "Raised intracranial pressure",
                           "Psychosis history", "Thyrotoxicosis"),
        side_effects=("Increased secretions (have suction ready)",
                      "Emergence reactions (give midazolam 0.05 mg/kg)", "Hypertension",
                      "Laryngospasm (rare)"),
        escalation_trigger="Respiratory failure despite ketamine -> intubation and mechanical ventilation",
    ),
    TherapyStep(
        line=TherapyLine.FIFTH, drug="Mechanical Ventilation", drug_class="ventilation",
        dose="See ventilator settings", route="ETT", frequency="Continuous", max_dose="N/A",
        monitoring=("Peak inspiratory pressure (keep <35 cmH2O)",
                    "Plateau pressure (keep <30 cmH2O)", "Auto-PEEP", "SpO2", "ETCO2",
                    "Blood gas every 2-4 hours"),
        side_effects=("Barotrauma", "Pneumothorax", "Hypotension from air trapping"),
        escalation_trigger="ECMO consideration if refractory hypoxemia",
    ),
)

ASTHMA_VENTILATOR_SETTINGS: Dict[str, str] = {
    "mode": "Volume Control or Pressure Control",
    "tidal_volume": "6-8 mL/kg ideal body weight",
    "respiratory_rate": "8-12 breaths/min (allow permissive hypercapnia)",
    "inspiratory_time": "0.8-1.2 seconds",
    "ie_ratio": "1:3 to 1:5 (prolonged expiration)",
    "peep": "0-5 cmH2O (low PEEP to prevent air trapping)",
    "fio2": "Start 100%, wean to SpO2 92-96%",
    "target_plateau": "<30 cmH2O",
    "target_peak": "<35 cmH2O",
    "permissive_hypercapnia": "Accept pH >7.20, PaCO2 up to 80-90 mmHg",
    "sedation": "Deep sedation required - propofol + fentanyl or ketamine",
    "paralysis": "Consider rocuronium 0.6-1.2 mg/kg if severe air trapping",
}

# --- 2. SHOCK (INOTROPES / VASOPRESSORS) ---

SHOCK_LADDER: Tuple[TherapyStep, ...] = (
    TherapyStep(
        line=TherapyLine.FIRST, drug="Epinephrine", drug_class="inotrope",
        dose="0.05-0.3 mcg/kg/min (start 0.1)", route="IV/IO infusion",
        frequency="Continuous - increase by 0.05 mcg/kg/min every 5-10 minutes",
        max_dose="1 mcg/kg/min",
        dilution="Add 0.6 mg x weight(kg) to 100 mL D5W. Run at 1 mL/hr = 0.1 mcg/kg/min",
        monitoring=("Heart rate", "Blood pressure", "Lactate", "Glucose", "Extremity perfusion"),
        side_effects=("Tachycardia", "Arrhythmias", "Hyperglycemia", "Tissue necrosis if extravasates"),
        escalation_trigger="Cold shock persists at 0.3 mcg/kg/min -> add second line",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Norepinephrine", drug_class="vasopressor",
        dose="0.05-0.3 mcg/kg/min (start 0.1)", route="IV/IO infusion",
        frequency="Continuous - increase by 0.05 mcg/kg/min every 5-10 minutes",
        max_dose="2 mcg/kg/min",
        dilution="Add 0.6 mg x weight(kg) to 100 mL D5W. Run at 1 mL/hr = 0.1 mcg/kg/min",
        monitoring=("Blood pressure", "Heart rate", "Urine output", "Lactate"),
        side_effects=("Severe vasoconstriction", "Tissue ischemia", "Arrhythmias"),
        escalation_trigger="Warm shock persists at target MAP titration -> add second line",
    ),
    TherapyStep(
        line=TherapyLine.SECOND, drug="Dopamine", drug_class="inotrope",
        dose="5-20 mcg/kg/min (start 5)", route="IV/IO infusion",
        frequency="Continuous - increase by 2.5 mcg/kg/min every 5-10 minutes",
        max_dose="20 mcg/kg/min",
        dilution="Add 6 mg x weight(kg) to 100 mL D5W. Run at 1 mL/hr = 1 mcg/kg/min",
        monitoring=("Heart rate", "Blood pressure", "Urine output", "Arrhythmias"),
        side_effects=("Tachycardia", "Arrhythmias", "Tissue necrosis"),
        escalation_trigger="Catecholamine-resistant shock -> vasopressin or hydrocortisone",
    ),
    TherapyStep(
        line=TherapyLine.SECOND, drug="Dobutamine", drug_class="inotrope",
        dose="5-20 mcg/kg/min (start 5)", route="IV/IO infusion",
        frequency="Continuous - increase by 2.5 mcg/kg/min every 10-15 minutes",
        max_dose="20 mcg/kg/min",
        dilution="Add 6 mg x weight(kg) to 100 mL D5W. Run at 1 mL/hr = 1 mcg/kg/min",
        monitoring=("Heart rate", "Blood pressure (may drop)", "Cardiac output"),
        side_effects=("Hypotension (vasodilation)", "Tachycardia", "Arrhythmias"),
        escalation_trigger="May cause hypotension - often combined with norepinephrine",
    ),
    TherapyStep(
        line=TherapyLine.THIRD, drug="Vasopressin", drug_class="vasopressor",
        dose="0.0003-0.002 units/kg/min (start 0.0005)", route="IV infusion",
        frequency="Continuous", max_dose="0.002 units/kg/min",
        dilution="Add 0.1 units x weight(kg) to 100 mL D5W. Run at 0.5 mL/hr = 0.0005 units/kg/min",
        monitoring=("Blood pressure", "Urine output", "Sodium", "Skin perfusion"),
        side_effects=("Severe vasoconstriction", "Skin necrosis", "Hyponatremia", "Mesenteric ischemia"),
        escalation_trigger="Refractory shock despite 60 mL/kg fluid + vasopressors -> refer for PICU/ECMO",
    ),
    TherapyStep(
        line=TherapyLine.THIRD, drug="Hydrocortisone", drug_class="steroid",
        dose="1-2 mg/kg bolus, then 50-100 mg/m2/day divided q6h", route="IV",
        frequency="Every 6 hours", max_dose="100 mg/dose",
        monitoring=("Blood pressure response", "Glucose"),
        side_effects=("Hyperglycemia", "Immunosuppression"),
        escalation_trigger="Draw cortisol level before giving if possible, but do not delay treatment",
    ),
)

# --- 3. POSTPARTUM HEMORRHAGE ---

PPH_LADDER: Tuple[TherapyStep, ...] = (
    TherapyStep(
        line=TherapyLine.FIRST, drug="Oxytocin", drug_class="uterotonic",
        dose="10 units IM (preferred) OR 20-40 units in 1 L crystalloid", route="IM or IV infusion",
        frequency="IV infusion at 150-200 mL/hr", max_dose="40 units in 1 L",
        contraindications=("IV bolus (causes hypotension, cardiac arrest)",),
        monitoring=("Uterine tone", "Blood loss", "Blood pressure"),
        escalation_trigger="Uterus remains atonic or bleeding continues",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Tranexamic Acid", drug_class="antifibrinolytic",
        dose="1 g", route="IV", frequency="Repeat 1 g after 30 min if bleeding continues",
        max_dose="2 g", administration_time="Over 10 minutes, within 3 hours of delivery",
        monitoring=("Blood loss",),
        escalation_trigger="Give within 20 minutes of diagnosis alongside uterotonics",
    ),
    TherapyStep(
        line=TherapyLine.SECOND, drug="Misoprostol", drug_class="uterotonic",
        dose="800 mcg (4 tablets of 200 mcg)", route="Sublingual", frequency="Single dose",
        max_dose="800 mcg", side_effects=("Fever", "Shivering"),
        escalation_trigger="Bleeding continues after oxytocin and misoprostol",
    ),
    TherapyStep(
        line=TherapyLine.THIRD, drug="Ergometrine", drug_class="uterotonic",
        dose="0.2 mg", route="IM", frequency="Repeat after 15 min", max_dose="5 doses (1 mg)",
        contraindications=("Hypertension", "Preeclampsia", "Cardiac disease"),
        monitoring=("Blood pressure",),
        escalation_trigger="Bleeding continues despite three uterotonics -> advanced interventions",
    ),
    TherapyStep(
        line=TherapyLine.FOURTH, drug="Bimanual Uterine Compression", drug_class="mechanical",
        dose="Fist in anterior fornix, other hand compressing uterus posteriorly",
        route="Manual", frequency="Until bleeding controlled", max_dose="N/A",
        escalation_trigger="Bleeding continues -> balloon tamponade",
    ),
    TherapyStep(
        line=TherapyLine.FOURTH, drug="Intrauterine Balloon Tamponade", drug_class="mechanical",
        dose="Fill with 300-500 mL saline until bleeding stops", route="Intrauterine",
        frequency="Single placement", max_dose="500 mL",
        escalation_trigger="Bleeding continues -> surgical management",
    ),
    TherapyStep(
        line=TherapyLine.FOURTH, drug="Non-Pneumatic Anti-Shock Garment", drug_class="mechanical",
        dose="Apply from ankles to abdomen", route="External", frequency="During transfer",
        max_dose="N/A", escalation_trigger="Stabilise for transfer to surgical centre",
    ),
    TherapyStep(
        line=TherapyLine.FIFTH, drug="Surgical Management", drug_class="surgical",
        dose="Compression sutures, uterine artery ligation, internal iliac ligation, hysterectomy",
        route="Laparotomy", frequency="Once", max_dose="N/A",
        escalation_trigger="Hysterectomy is the last resort",
    ),
)

# --- 4. ECLAMPSIA ---

ECLAMPSIA_LADDER: Tuple[TherapyStep, ...] = (
    TherapyStep(
        line=TherapyLine.FIRST, drug="Magnesium Sulfate (loading)", drug_class="anticonvulsant",
        dose="4 g (20 mL of 20%)", route="IV", frequency="Once, then maintenance",
        max_dose="4 g", administration_time="Over 15-20 minutes",
        dilution="Maintenance 1 g/hr: 40 g in 1000 mL NS at 25 mL/hr for 24 hours postpartum",
        monitoring=("Deep tendon reflexes every 15 min", "Respiratory rate >12/min",
                    "Urine output >25 mL/hr"),
        side_effects=("Flushing", "Loss of reflexes", "Respiratory depression"),
        escalation_trigger="Recurrent seizure on magnesium",
        deescalation_criteria="Toxicity: stop infusion, give calcium gluconate 1 g IV over 3 min",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Labetalol", drug_class="antihypertensive",
        dose="20 mg, then 40 mg, then 80 mg", route="IV", frequency="Every 10 minutes",
        max_dose="300 mg", contraindications=("Asthma", "Heart failure"),
        monitoring=("Blood pressure every 5 min (target 140-150/90-100)",),
        escalation_trigger="BP remains >=160/110 at maximum dose",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Hydralazine", drug_class="antihypertensive",
        dose="5-10 mg", route="IV", frequency="Every 20 minutes", max_dose="30 mg",
        monitoring=("Blood pressure every 5 min (target 140-150/90-100)",),
        escalation_trigger="BP remains >=160/110 at maximum dose",
    ),
    TherapyStep(
        line=TherapyLine.FIRST, drug="Nifedipine", drug_class="antihypertensive",
        dose="10-20 mg", route="PO", frequency="Every 30 minutes", max_dose="50 mg in first hour",
        monitoring=("Blood pressure every 5 min (target 140-150/90-100)",),
        escalation_trigger="BP remains >=160/110 at maximum dose",
    ),
    TherapyStep(
        line=TherapyLine.SECOND, drug="Magnesium Sulfate (repeat bolus)", drug_class="anticonvulsant",
        dose="2 g", route="IV", frequency="Once", max_dose="2 g",
        administration_time="Over 3-5 minutes",
        monitoring=("Deep tendon reflexes", "Respiratory rate"),
        escalation_trigger="Seizure persists after repeat magnesium",
    ),
    TherapyStep(
        line=TherapyLine.THIRD, drug="Lorazepam", drug_class="anticonvulsant",
        dose="2-4 mg", route="IV", frequency="Once, may repeat", max_dose="8 mg",
        side_effects=("Respiratory depression",),
        escalation_trigger="Refractory seizure -> secure airway",
    ),
    TherapyStep(
        line=TherapyLine.THIRD, drug="Diazepam", drug_class="anticonvulsant",
        dose="5-10 mg", route="IV", frequency="Once, may repeat", max_dose="20 mg",
        side_effects=("Respiratory depression",),
        escalation_trigger="Refractory seizure -> secure airway",
    ),
    TherapyStep(
        line=TherapyLine.FOURTH, drug="Intubation & Ventilation", drug_class="ventilation",
        dose="Rapid sequence induction", route="ETT", frequency="Continuous", max_dose="N/A",
        escalation_trigger="Expedite delivery once stabilised",
    ),
)

# --- 5. REFERENCE LISTS ---

REFERRAL_TRIGGERS: Dict[str, Tuple[str, ...]] = {
    "immediate": (
        "Refractory shock despite 60 mL/kg fluid + vasopressors",
        "Refractory arrhythmia despite 2 cardioversion attempts",
        "Need for mechanical ventilation without local capability",
        "Suspected surgical emergency (appendicitis, intussusception, etc.)",
        "Refractory status epilepticus (>60 minutes)",
        "Suspected raised ICP with herniation signs",
        "Need for ECMO consideration",
        "Suspected congenital heart disease with decompensation",
    ),
    "urgent": (
        "Shock requiring >2 vasopressors",
        "DKA not responding to standard protocol",
        "Severe electrolyte disturbance not correcting",
        "Need for subspecialty input (cardiology, nephrology, etc.)",
        "Suspected metabolic disorder",
        "Need for advanced imaging (CT, MRI)",
    ),
}

SHOCK_LAB_WORKUP: Tuple[Tuple[str, str], ...] = (
    ("Blood glucose", "STAT"),
    ("Blood gas (VBG or ABG)", "STAT"),
    ("Lactate", "STAT"),
    ("Electrolytes (Na, K, Cl, HCO3)", "STAT"),
    ("Calcium (ionized)", "STAT"),
    ("Magnesium", "Urgent"),
    ("Complete blood count", "Urgent"),
    ("Blood type and crossmatch", "STAT if hemorrhage"),
    ("Coagulation (PT, PTT, INR)", "Urgent"),
    ("Blood culture", "Before antibiotics"),
    ("Urinalysis", "Urgent"),
    ("Chest X-ray", "Urgent"),
    ("ECG", "STAT"),
)

LADDERS: Dict[Condition, Tuple[TherapyStep, ...]] = {
    Condition.ASTHMA: ASTHMA_LADDER,
    Condition.SHOCK: SHOCK_LADDER,
    Condition.PPH: PPH_LADDER,
    Condition.ECLAMPSIA: ECLAMPSIA_LADDER,
}

def validate_ladder(steps: Sequence[TherapyStep]) -> None:
    """Lines must never move backwards in list order."""
    last = 0
    for step in steps:
        idx = LINE_ORDER.index(step.line)
        if idx < last:
            raise ValueError(f"Ladder step '{step.drug}' ({step.line.value}) is out of order")
        last = idx

for _steps in LADDERS.values():
    validate_ladder(_steps)

class EscalationLadder:

    @staticmethod
    def resolve_condition(condition: Union[str, Condition]) -> Condition:
        if isinstance(condition, Condition):
            return condition
        try:
            return Condition(str(condition).strip().lower())
        except ValueError:
            raise UnknownConditionError(f"No escalation ladder for condition '{condition}'")

    @staticmethod
    def get_ladder(condition: Union[str, Condition]) -> Tuple[TherapyStep, ...]:
        return LADDERS[EscalationLadder.resolve_condition(condition)]

    @staticmethod
    def get_line_options(condition: Union[str, Condition], line: TherapyLine,
                         drug_class: Optional[str] = None) -> List[TherapyStep]:
        """Concurrent options on one line, optionally narrowed to one drug class."""
        return [
            step for step in EscalationLadder.get_ladder(condition)
            if step.line == TherapyLine(line) and (drug_class is None or step.drug_class == drug_class)
        ]

    @staticmethod
    def get_next_escalation_step(current_line: Union[str, TherapyLine],
                                 condition: Union[str, Condition]) -> Optional[TherapyStep]:
        """
        First step on the line after current_line, or None when the ladder is
        exhausted. Unknown conditions raise UnknownConditionError.
        """
        ladder = EscalationLadder.get_ladder(condition)
        line = TherapyLine(current_line)

        next_idx = LINE_ORDER.index(line) + 1
        if next_idx >= len(LINE_ORDER):
            return None

        next_line = LINE_ORDER[next_idx]
        for step in ladder:
            if step.line == next_line:
                logger.debug("Escalating %s from %s to %s", condition, line.value, step.drug)
                return step
        return None

# --- 6. SELECTORS & TIMED PROMPTS ---

class InotropeSelector:
    @staticmethod
    def recommend(shock_type: ShockType, character: ShockCharacter = ShockCharacter.UNKNOWN) -> str:
        """First-line infusion for the clinical picture (key into INOTROPE_LIBRARY)."""
        if character == ShockCharacter.COLD:
            return "epinephrine"
        if character == ShockCharacter.WARM:
            return "norepinephrine"
        if shock_type == ShockType.CARDIOGENIC:
            return "dobutamine"
        return "epinephrine"

class TimedPrompts:

    @staticmethod
    def asthma_reassessment_minutes(drug: str) -> Optional[int]:
        drug = drug.strip().lower()
        if drug.startswith("salbutamol"):
            return TIMING_CONSTANTS.SALBUTAMOL_REASSESS_MINUTES
        if drug.startswith("magnesium"):
            return TIMING_CONSTANTS.MGSO4_REASSESS_MINUTES
        return None

    @staticmethod
    def should_escalate_asthma(response: str) -> bool:
        # Same or worse after the reassessment window means move up a line
        return response.strip().lower() in ("same", "worse", "worsened")

    @staticmethod
    def tranexamic_acid_overdue(minutes_since_diagnosis: float, given: bool) -> bool:
        minutes = require_non_negative(minutes_since_diagnosis, "Minutes since diagnosis")
        return not given and minutes >= TIMING_CONSTANTS.TXA_ALERT_MINUTES

    @staticmethod
    def tranexamic_acid_window_open(hours_since_delivery: float) -> bool:
        hours = require_non_negative(hours_since_delivery, "Hours since delivery")
        return hours < TIMING_CONSTANTS.TXA_WINDOW_HOURS

    @staticmethod
    def bolus_overrunning(minutes_since_start: float) -> bool:
        """A shock bolus still running after 15 minutes is too slow: push-pull or add a second line."""
        minutes = require_non_negative(minutes_since_start, "Minutes since bolus start")
        return minutes > TIMING_CONSTANTS.BOLUS_WINDOW_MINUTES

    @staticmethod
    def classify_blood_loss(estimated_ml: float) -> str:
        ebl = require_non_negative(estimated_ml, "Estimated blood loss")
        if ebl < 500:
            return "normal"
        if ebl < 1000:
            return "pph"
        if ebl <= 1500:
            return "severe_pph"
        return "life_threatening"

    @staticmethod
    def massive_transfusion_indicated(estimated_ml: float) -> bool:
        return TimedPrompts.classify_blood_loss(estimated_ml) == "life_threatening"

    @staticmethod
    def severe_hypertension(systolic: float, diastolic: float) -> bool:
        if systolic <= 0 or diastolic <= 0:
            raise InvalidInputError(f"Blood pressure must be positive, got {systolic}/{diastolic}")
        return systolic >= 160 or diastolic >= 110
