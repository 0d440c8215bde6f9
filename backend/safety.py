# safety.py
"""
Access and fluid safety rules. Everything here is a pure function of the
snapshot the caller passes in; timers live in the UI, which supplies the
elapsed seconds.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union

from constants import (
    AccessType, AccessState, TimerUrgency, BolusOutcome, BolusType, ReassessmentResponse,
    FluidRecommendation, BOLUS_LIBRARY, ACCESS_CONSTANTS, FLUID_CONSTANTS,
)
from models import (
    AccessAttempt, AccessStatus, ReassessmentPrompt, ShockReassessmentItem, FluidBolus,
    FluidSession, FluidStatus, BolusNotPermittedError, UnknownFindingError, InvalidInputError,
    require_non_negative,
)
from dosing import DosingCalculator

logger = logging.getLogger(__name__)

REASSESSMENT_CHECKLIST: Tuple[ReassessmentPrompt, ...] = (
    ReassessmentPrompt("Heart Rate", "Is heart rate decreasing toward normal?",
                       "Decreasing toward normal", "Increasing or unchanged"),
    ReassessmentPrompt("Capillary Refill", "Is capillary refill < 2 seconds?",
                       "<2 seconds", "Still >3 seconds"),
    ReassessmentPrompt("Mental Status", "Is the child more alert?",
                       "More alert, interactive", "Same or more lethargic"),
    ReassessmentPrompt("Peripheral Pulses", "Are peripheral pulses stronger?",
                       "Stronger, easier to feel", "Still weak or weaker"),
    ReassessmentPrompt("Blood Pressure", "Is blood pressure improving?",
                       "Increasing toward normal", "Still hypotensive"),
    ReassessmentPrompt("Hepatomegaly", "Has the liver edge moved down from the pen mark?",
                       "No change from baseline", "Increasing liver size", is_overload_sign=True),
    ReassessmentPrompt("Crackles", "Any new crackles on auscultation?",
                       "None", "New crackles heard", is_overload_sign=True),
    ReassessmentPrompt("JVD", "Is there new or increasing JVD?",
                       "Not elevated", "New or increasing JVD", is_overload_sign=True),
    ReassessmentPrompt("SpO2", "Is SpO2 dropping?",
                       "Stable or improving", "Dropping", is_overload_sign=True),
)

OVERLOAD_ACTIONS: Tuple[str, ...] = (
    "STOP all fluid boluses",
    "Sit patient upright",
    "Give oxygen",
    "Prepare furosemide 1 mg/kg IV",
    "Start inotrope (see escalation pathway)",
)

_PROMPTS_BY_KEY = {p.parameter.lower(): p for p in REASSESSMENT_CHECKLIST}

class AccessSupervisor:
    """IV first, IO at 90 seconds or after two failed IV attempts."""

    @staticmethod
    def count_failed_iv(attempts: Iterable[AccessAttempt]) -> int:
        return sum(1 for a in attempts if a.is_failed_iv)

    @staticmethod
    def should_escalate_to_io(iv_attempts: Union[int, Sequence[AccessAttempt]],
                              elapsed_seconds: float) -> bool:
        elapsed = require_non_negative(elapsed_seconds, "Elapsed seconds")
        if isinstance(iv_attempts, int):
            failed = int(require_non_negative(iv_attempts, "Failed IV attempts"))
        else:
            failed = AccessSupervisor.count_failed_iv(iv_attempts)

        return (failed >= ACCESS_CONSTANTS.MAX_FAILED_IV_ATTEMPTS
                or elapsed >= ACCESS_CONSTANTS.IO_ESCALATION_SECONDS)

    @staticmethod
    def timer_urgency(elapsed_seconds: float) -> TimerUrgency:
        elapsed = require_non_negative(elapsed_seconds, "Elapsed seconds")
        if elapsed >= ACCESS_CONSTANTS.IO_ESCALATION_SECONDS:
            return TimerUrgency.CRITICAL
        if elapsed >= ACCESS_CONSTANTS.URGENT_WARNING_SECONDS:
            return TimerUrgency.URGENT
        return TimerUrgency.NORMAL

    @staticmethod
    def countdown_active(elapsed_seconds: float) -> bool:
        """Final ten seconds before the IO deadline get an audible countdown."""
        elapsed = require_non_negative(elapsed_seconds, "Elapsed seconds")
        return ACCESS_CONSTANTS.COUNTDOWN_START_SECONDS <= elapsed < ACCESS_CONSTANTS.IO_ESCALATION_SECONDS

    @staticmethod
    def access_status(attempts: Sequence[AccessAttempt], elapsed_seconds: float,
                      weight_kg: Optional[float] = None) -> AccessStatus:
        failed = AccessSupervisor.count_failed_iv(attempts)
        escalate = AccessSupervisor.should_escalate_to_io(failed, elapsed_seconds)

        if any(a.success for a in attempts):
            state = AccessState.OBTAINED
        elif escalate or any(a.access_type == AccessType.IO for a in attempts):
            state = AccessState.IO_ESCALATED
        elif attempts:
            state = AccessState.IV_ATTEMPT
        else:
            state = AccessState.IDLE

        needle = None
        if state == AccessState.IO_ESCALATED and weight_kg is not None:
            needle = DosingCalculator.io_needle_size(weight_kg)

        return AccessStatus(
            state=state,
            urgency=AccessSupervisor.timer_urgency(elapsed_seconds),
            failed_iv_attempts=failed,
            escalate_to_io=escalate and state != AccessState.OBTAINED,
            io_needle=needle,
        )

class FluidSafetySupervisor:
    """
    Bolus-by-bolus resuscitation with a mandatory reassessment after each
    bolus. Overload is a hard stop: no further boluses are permitted.
    """

    @staticmethod
    def is_fluid_overloaded(items: Iterable[ShockReassessmentItem]) -> bool:
        return any(
            item.overload_sign and item.parameter.strip().lower() in FLUID_CONSTANTS.OVERLOAD_PARAMETERS
            for item in items
        )

    @staticmethod
    def build_reassessment(responses: Mapping[str, Union[str, ReassessmentResponse]],
                           values: Optional[Mapping[str, Tuple[str, str]]] = None
                           ) -> Tuple[ShockReassessmentItem, ...]:
        """
        Turns checklist answers into reassessment items. Keys are checklist
        parameters (case-insensitive); values map a parameter to its
        (pre, post) bolus readings.
        """
        if not responses:
            raise InvalidInputError("Reassessment needs at least one checklist answer")
        values = {k.lower(): v for k, v in (values or {}).items()}

        items = []
        for key, raw in responses.items():
            prompt = _PROMPTS_BY_KEY.get(key.strip().lower())
            if prompt is None:
                raise UnknownFindingError(f"'{key}' is not on the reassessment checklist")
            response = ReassessmentResponse(raw)
            pre, post = values.get(prompt.parameter.lower(), (None, None))
            items.append(ShockReassessmentItem(
                parameter=prompt.parameter,
                response=response,
                overload_sign=prompt.is_overload_sign and response == ReassessmentResponse.WORSENED,
                pre_bolus_value=pre,
                post_bolus_value=post,
            ))
        return tuple(items)

    @staticmethod
    def classify_outcome(items: Sequence[ShockReassessmentItem]) -> BolusOutcome:
        if FluidSafetySupervisor.is_fluid_overloaded(items):
            return BolusOutcome.OVERLOADED

        improved = sum(1 for i in items if i.improved)
        if improved >= FLUID_CONSTANTS.IMPROVED_MIN_ITEMS:
            return BolusOutcome.IMPROVED

        worsened = sum(
            1 for i in items
            if i.response == ReassessmentResponse.WORSENED
            and i.parameter.lower() not in FLUID_CONSTANTS.OVERLOAD_PARAMETERS
        )
        if worsened >= FLUID_CONSTANTS.WORSENED_MIN_ITEMS:
            return BolusOutcome.WORSENED
        return BolusOutcome.NO_CHANGE

    @staticmethod
    def is_shock_resolved(bolus: FluidBolus) -> bool:
        if bolus.outcome != BolusOutcome.IMPROVED:
            return False
        return sum(1 for i in bolus.reassessment if i.improved) >= FLUID_CONSTANTS.RESOLVED_MIN_ITEMS

    @staticmethod
    def administer_bolus(session: FluidSession, time_given: Optional[datetime] = None) -> FluidSession:
        """Appends the next bolus. Refuses after overload, at the cap, or before reassessment."""
        protocol = BOLUS_LIBRARY.get(session.bolus_type)
        last = session.last_bolus

        if last is not None and last.outcome == BolusOutcome.OVERLOADED:
            raise BolusNotPermittedError("Fluid overload detected: STOP FLUIDS and start inotrope")
        if last is not None and last.outcome == BolusOutcome.PENDING:
            raise BolusNotPermittedError(
                f"Reassess after bolus {last.bolus_number} before giving another")

        total = session.total_given_ml_kg + protocol.volume_ml_kg
        if total > protocol.max_total_ml_kg:
            raise BolusNotPermittedError(
                f"{protocol.max_total_ml_kg:g} mL/kg given: fluid-refractory shock, escalate to inotropes")

        bolus = FluidBolus(
            bolus_number=len(session.boluses) + 1,
            volume_ml_kg=protocol.volume_ml_kg,
            volume_ml=DosingCalculator.calculate_fluid_bolus(session.weight_kg, session.bolus_type).volume_ml,
            total_given_ml_kg=total,
            time_given=time_given or datetime.now(),
        )
        logger.info("Bolus %d: %d mL (%g mL/kg total)", bolus.bolus_number, bolus.volume_ml, total)
        return replace(session, boluses=session.boluses + (bolus,))

    @staticmethod
    def record_reassessment(session: FluidSession,
                            responses: Mapping[str, Union[str, ReassessmentResponse]],
                            values: Optional[Mapping[str, Tuple[str, str]]] = None) -> FluidSession:
        last = session.last_bolus
        if last is None or last.outcome != BolusOutcome.PENDING:
            raise BolusNotPermittedError("No bolus is awaiting reassessment")

        items = FluidSafetySupervisor.build_reassessment(responses, values)
        outcome = FluidSafetySupervisor.classify_outcome(items)
        if outcome == BolusOutcome.OVERLOADED:
            logger.warning("Fluid overload after bolus %d", last.bolus_number)

        updated = replace(last, reassessment=items, outcome=outcome)
        return replace(session, boluses=session.boluses[:-1] + (updated,))

    @staticmethod
    def evaluate(session: FluidSession) -> FluidStatus:
        protocol = BOLUS_LIBRARY.get(session.bolus_type)
        total = session.total_given_ml_kg
        last = session.last_bolus
        overloaded = last is not None and last.outcome == BolusOutcome.OVERLOADED
        actions: Tuple[str, ...] = ()

        if overloaded:
            rec = FluidRecommendation.STOP_FLUIDS
            message = "Fluid overload during resuscitation: STOP FLUIDS"
            actions = OVERLOAD_ACTIONS
        elif last is not None and last.outcome == BolusOutcome.PENDING:
            rec = FluidRecommendation.REASSESS
            message = f"Reassess all parameters after bolus {last.bolus_number}"
        elif last is not None and FluidSafetySupervisor.is_shock_resolved(last):
            rec = FluidRecommendation.SHOCK_RESOLVED
            message = "Shock resolved: stop boluses and start maintenance fluids"
        elif total + protocol.volume_ml_kg > protocol.max_total_ml_kg:
            rec = FluidRecommendation.ESCALATE_TO_INOTROPE
            message = f"Fluid-refractory shock after {total:g} mL/kg: start inotrope"
        elif (session.bolus_type == BolusType.STANDARD
              and total >= FLUID_CONSTANTS.INOTROPE_CONSIDERATION_ML_KG
              and last.outcome != BolusOutcome.IMPROVED):
            rec = FluidRecommendation.CONSIDER_INOTROPE
            message = f"{total:g} mL/kg given without improvement: consider inotrope"
        else:
            rec = FluidRecommendation.GIVE_BOLUS
            message = f"Give {protocol.volume_ml_kg:g} mL/kg {protocol.rate.lower()}"

        return FluidStatus(
            recommendation=rec,
            total_given_ml_kg=total,
            total_given_ml=round(total * session.weight_kg),
            max_total_ml_kg=protocol.max_total_ml_kg,
            near_max=total >= protocol.max_total_ml_kg * FLUID_CONSTANTS.NEAR_MAX_FRACTION,
            overloaded=overloaded,
            message=message,
            immediate_actions=actions,
        )
