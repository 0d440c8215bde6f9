"""
Paeds Resus: ABCDE Action Sequencer
===================================
One action at a time. Each phase generator turns the phase findings into an
ordered list of actions; the UI shows the first one not yet confirmed.
Sequence numbers are always 1..n without gaps, whatever subset of actions
the findings trigger.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from constants import Phase, Urgency, AirwayPatency, PerfusionStatus
from models import Action, Dosing, PhaseAssessment, InvalidInputError
from dosing import DosingCalculator

logger = logging.getLogger(__name__)

SPO2_TARGET = 94
HYPOGLYCEMIA_MG_DL = 70
HYPOTHERMIA_CELSIUS = 36.0

def _numbered(drafts: List[dict]) -> List[Action]:
    return [Action(sequence=i, **draft) for i, draft in enumerate(drafts, start=1)]

class ActionSequencer:

    @staticmethod
    def generate_airway_actions(assessment: PhaseAssessment) -> List[Action]:
        f = assessment.findings
        age = assessment.age_years
        drafts = []

        # Unknown patency is treated as not patent
        if f.airway_patency == AirwayPatency.PATENT:
            return []

        drafts.append(dict(
            id="airway-1-position", phase=Phase.AIRWAY,
            title="Position for Airway Access",
            description="Place child in sniffing position (head extension, neck flexion for infants; "
                        "neutral for older children). Remove any foreign objects.",
            rationale="Optimal positioning maximizes airway diameter and allows visualization for intervention.",
            expected_outcome="Airway more patent, easier visualization and intervention",
            urgency=Urgency.CRITICAL if f.airway_patency == AirwayPatency.OBSTRUCTED else Urgency.URGENT,
            timeframe="Immediate",
            monitoring=("Stridor presence", "Drooling", "Ability to swallow", "Respiratory effort"),
        ))

        if f.secretions:
            drafts.append(dict(
                id="airway-2-suction", phase=Phase.AIRWAY,
                title="Suction Airway",
                description="Gently suction mouth and pharynx to clear secretions. Use appropriate catheter size.",
                rationale="Secretions obstruct airway. Suctioning clears visualization and improves patency.",
                expected_outcome="Airway cleared of secretions, improved patency",
                urgency=Urgency.URGENT, timeframe="30 seconds",
                monitoring=("Airway patency", "Oxygen saturation", "Respiratory effort"),
                dosing=Dosing(
                    weight_kg=assessment.weight_kg,
                    calculation="Suction catheter size = age/4 + 4 Fr",
                    dose=f"{DosingCalculator.suction_catheter_fr(age)} Fr",
                    route="Oropharyngeal/nasopharyngeal",
                ),
            ))

        if f.airway_patency == AirwayPatency.AT_RISK:
            drafts.append(dict(
                id="airway-3-adjunct", phase=Phase.AIRWAY,
                title="Insert Airway Adjunct",
                description="Insert oropharyngeal or nasopharyngeal airway to maintain patency.",
                rationale="Airway adjuncts prevent collapse and maintain patent airway without intubation.",
                expected_outcome="Airway maintained patent, improved air exchange",
                urgency=Urgency.URGENT, timeframe="1-2 minutes",
                monitoring=("Airway patency", "Oxygen saturation", "Respiratory effort", "Gag reflex"),
                dosing=Dosing(
                    weight_kg=assessment.weight_kg,
                    calculation="OPA size = age/2 + 4 cm; NPA size = age/4 + 4 Fr",
                    dose=f"OPA {DosingCalculator.opa_size_cm(age)} cm or "
                         f"NPA {DosingCalculator.npa_size_fr(age)} Fr",
                    route="Oropharyngeal or nasopharyngeal",
                ),
                prerequisites=("Airway positioned", "Secretions cleared", "Appropriate size adjunct available"),
            ))

        return _numbered(drafts)

    @staticmethod
    def generate_breathing_actions(assessment: PhaseAssessment) -> List[Action]:
        f = assessment.findings
        drafts = []

        hypoxic = f.spo2 is not None and f.spo2 < SPO2_TARGET
        if not f.oxygen_applied or hypoxic:
            drafts.append(dict(
                id="breathing-1-oxygen", phase=Phase.BREATHING,
                title="Apply High-Flow Oxygen",
                description="Apply high-flow oxygen via non-rebreather mask (10-15 L/min) to achieve SpO2 >94%.",
                rationale="Hypoxemia is immediately life-threatening. High-flow oxygen is first-line intervention.",
                expected_outcome="SpO2 >94%, improved oxygenation and perfusion",
                urgency=Urgency.CRITICAL, timeframe="Immediate",
                monitoring=("SpO2 (target >94%)", "Respiratory rate", "Work of breathing", "Color"),
                prerequisites=("Airway patent",),
                contraindications=("None - oxygen always first-line in emergency",),
            ))

        if f.breathing_adequate is False:
            drafts.append(dict(
                id="breathing-2-assess", phase=Phase.BREATHING,
                title="Assess Breathing Adequacy",
                description="Check: respiratory rate, work of breathing, air movement, breath sounds, chest rise.",
                rationale="Determines if breathing is adequate or inadequate, guiding need for ventilation support.",
                expected_outcome="Clear assessment of breathing status and need for intervention",
                urgency=Urgency.URGENT, timeframe="30 seconds",
                monitoring=("Respiratory rate (normal: <1yr 30-40, 1-5yr 25-30, >5yr 20-25)",
                            "Work of breathing (retractions, nasal flare, grunting)",
                            "Air movement (bilateral, equal)", "Breath sounds (clear, equal)"),
            ))

            age = assessment.age_years + assessment.age_months / 12.0
            bvm = DosingCalculator.bag_valve_mask(assessment.weight_kg, age)
            low, high = bvm.tidal_volume_ml
            drafts.append(dict(
                id="breathing-3-bvm", phase=Phase.BREATHING,
                title="Provide Bag-Valve-Mask Ventilation",
                description=f"Use {bvm.mask_size.lower()} mask with {bvm.bag_volume} bag. "
                            f"Ventilate at 20 breaths/min with 100% oxygen.",
                rationale="Inadequate breathing requires ventilation support to prevent hypoxemia and hypercarbia.",
                expected_outcome="Adequate ventilation, SpO2 >94%, improved respiratory status",
                urgency=Urgency.CRITICAL, timeframe="1-2 minutes",
                monitoring=("Chest rise (adequate tidal volume)", "SpO2 (target >94%)", "Respiratory rate",
                            "Breath sounds (bilateral, equal)", "Gastric distension"),
                dosing=Dosing(
                    weight_kg=assessment.weight_kg,
                    calculation=f"Mask size: {bvm.mask_size}, Bag: {bvm.bag_volume}, Rate: 20/min, "
                                f"Tidal volume: 6-8 mL/kg",
                    dose=f"{low:.0f}-{high:.0f} mL per breath",
                    route="Bag-valve-mask",
                ),
                prerequisites=("Airway patent", "High-flow oxygen applied",
                               "Appropriate mask and bag size", "Assistant available"),
            ))

        return _numbered(drafts)

    @staticmethod
    def generate_circulation_actions(assessment: PhaseAssessment) -> List[Action]:
        f = assessment.findings
        in_shock = f.perfusion_status == PerfusionStatus.SHOCK

        drafts = [dict(
            id="circulation-1-assess", phase=Phase.CIRCULATION,
            title="Assess Perfusion Status",
            description="Check: heart rate, blood pressure, capillary refill, temperature gradient, "
                        "urine output, lactate.",
            rationale="Perfusion assessment determines if child is in shock and guides fluid/medication strategy.",
            expected_outcome="Clear classification of perfusion status (compensated, decompensated, or shock)",
            urgency=Urgency.URGENT, timeframe="1 minute",
            monitoring=("Heart rate (age-appropriate)", "Capillary refill (<2 sec = adequate)",
                        "Temperature gradient (central-peripheral)", "Urine output (0.5-1 mL/kg/hr)",
                        "Lactate (normal <2 mmol/L)"),
        )]

        if not f.iv_access:
            drafts.append(dict(
                id="circulation-2-iv", phase=Phase.CIRCULATION,
                title="Establish IV Access",
                description="Insert peripheral IV (2 large-bore if possible). "
                            "If failed after 2 attempts or 90 seconds, use IO.",
                rationale="IV access required for fluid and medication administration.",
                expected_outcome="Secure IV or IO access for resuscitation",
                urgency=Urgency.CRITICAL if in_shock else Urgency.URGENT,
                timeframe="2-3 minutes",
                monitoring=("IV patency", "Infiltration", "Blood return"),
                dosing=Dosing(
                    weight_kg=assessment.weight_kg,
                    calculation="Peripheral IV: 18-20G; IO needle by weight",
                    dose=f"Largest available IV; IO {DosingCalculator.io_needle_size(assessment.weight_kg)}",
                    route="Peripheral IV or intraosseous",
                ),
                prerequisites=("Airway patent", "Breathing adequate"),
            ))

        if in_shock:
            bolus = DosingCalculator.calculate_fluid_bolus(assessment.weight_kg)
            drafts.append(dict(
                id="circulation-3-fluid", phase=Phase.CIRCULATION,
                title="Administer Fluid Bolus",
                description=f"Give RL (or NS if RL unavailable) 10 mL/kg IV {bolus.rate[0].lower()}"
                            f"{bolus.rate[1:]}. Reassess after each 10 mL/kg.",
                rationale="Fluid resuscitation restores circulating volume and improves perfusion in shock.",
                expected_outcome="Improved perfusion: HR normalizes, CRT <2 sec, BP adequate, urine output increases",
                urgency=Urgency.CRITICAL, timeframe="5-10 minutes",
                monitoring=("Heart rate (should decrease)", "Capillary refill (should improve)",
                            "Blood pressure (should improve)", "Urine output (should increase)",
                            "Signs of fluid overload (crackles, hepatomegaly, JVD)"),
                dosing=Dosing(
                    weight_kg=assessment.weight_kg,
                    calculation="10 mL/kg bolus",
                    dose=f"{bolus.volume_ml} mL RL (or NS)",
                    route="IV or IO",
                ),
                prerequisites=("IV or IO access established", "Airway patent", "Breathing adequate"),
            ))

        return _numbered(drafts)

    @staticmethod
    def generate_disability_actions(assessment: PhaseAssessment) -> List[Action]:
        glucose = assessment.findings.glucose_mg_dl
        hypoglycemic = glucose is not None and glucose < HYPOGLYCEMIA_MG_DL

        drafts = [dict(
            id="disability-1-glucose", phase=Phase.DISABILITY,
            title="Check Blood Glucose",
            description="Measure glucose immediately (point-of-care test or lab).",
            rationale="Hypoglycemia can cause altered mental status, seizures, and shock. Must be corrected first.",
            expected_outcome="Glucose level known; if <70 mg/dL, corrected immediately",
            urgency=Urgency.CRITICAL if hypoglycemic else Urgency.ROUTINE,
            timeframe="1 minute",
            monitoring=("Glucose level", "Mental status after correction"),
        )]

        if hypoglycemic:
            volume = DosingCalculator.dextrose_bolus_ml(assessment.weight_kg)
            drafts.append(dict(
                id="disability-2-glucose-correction", phase=Phase.DISABILITY,
                title="Correct Hypoglycemia",
                description="Give IV dextrose 0.5 g/kg (2 mL/kg of 25% dextrose or 5 mL/kg of 10% dextrose).",
                rationale="Hypoglycemia causes altered mental status and shock. "
                          "Immediate correction prevents deterioration.",
                expected_outcome="Glucose >70 mg/dL, improved mental status",
                urgency=Urgency.CRITICAL, timeframe="Immediate",
                monitoring=("Glucose level (repeat in 5 min)", "Mental status", "Seizure activity"),
                dosing=Dosing(
                    weight_kg=assessment.weight_kg,
                    calculation="0.5 g/kg = 2 mL/kg of 25% dextrose or 5 mL/kg of 10%",
                    dose=f"{volume:.0f} mL of 25% dextrose IV",
                    route="IV or IO",
                ),
                prerequisites=("IV or IO access established",),
            ))

        drafts.append(dict(
            id="disability-3-avpu", phase=Phase.DISABILITY,
            title="Assess Level of Consciousness (AVPU)",
            description="Alert, Verbal, Pain, Unresponsive. Document baseline and any changes.",
            rationale="Determines if child needs airway protection and guides need for imaging/investigation.",
            expected_outcome="Clear assessment of consciousness level",
            urgency=Urgency.ROUTINE, timeframe="1 minute",
            monitoring=("AVPU status", "Pupil size and reactivity", "Seizure activity"),
        ))
        return _numbered(drafts)

    @staticmethod
    def generate_exposure_actions(assessment: PhaseAssessment) -> List[Action]:
        temperature = assessment.findings.temperature_celsius
        drafts = [dict(
            id="exposure-1-examine", phase=Phase.EXPOSURE,
            title="Perform Full Exposure Examination",
            description="Remove clothing, examine entire body for rashes, injuries, signs of abuse. "
                        "Maintain temperature.",
            rationale="Identifies hidden injuries, infections, or abuse. Prevents hypothermia with blankets.",
            expected_outcome="All injuries/findings identified, child kept warm",
            urgency=Urgency.ROUTINE, timeframe="2-3 minutes",
            monitoring=("Temperature", "Rashes", "Injuries", "Signs of abuse"),
        )]

        if temperature is not None and temperature < HYPOTHERMIA_CELSIUS:
            drafts.append(dict(
                id="exposure-2-warming", phase=Phase.EXPOSURE,
                title="Actively Rewarm",
                description="Dry the child, cover with warm blankets, use skin-to-skin or radiant warmer. "
                            "Warm IV fluids if available.",
                rationale="Hypothermia worsens acidosis and coagulopathy and masks shock signs.",
                expected_outcome="Core temperature rising toward 36.5-37.5 C",
                urgency=Urgency.URGENT, timeframe="Immediate",
                monitoring=("Temperature every 15 minutes", "Glucose"),
            ))
        return _numbered(drafts)

    @staticmethod
    def get_phase_actions(assessment: PhaseAssessment) -> List[Action]:
        generator = _GENERATORS.get(assessment.phase)
        if generator is None:
            raise InvalidInputError(f"No action generator for phase '{assessment.phase}'")
        actions = generator(assessment)
        logger.debug("%s phase: %d actions", assessment.phase.value, len(actions))
        return actions

    @staticmethod
    def get_next_action(actions: Iterable[Action], completed_ids: Iterable[str]) -> Optional[Action]:
        completed = set(completed_ids)
        for action in actions:
            if action.id not in completed:
                return action
        return None

_GENERATORS: Dict[Phase, Callable[[PhaseAssessment], List[Action]]] = {
    Phase.AIRWAY: ActionSequencer.generate_airway_actions,
    Phase.BREATHING: ActionSequencer.generate_breathing_actions,
    Phase.CIRCULATION: ActionSequencer.generate_circulation_actions,
    Phase.DISABILITY: ActionSequencer.generate_disability_actions,
    Phase.EXPOSURE: ActionSequencer.generate_exposure_actions,
}
