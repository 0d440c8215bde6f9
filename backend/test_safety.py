import unittest
from datetime import datetime
from constants import (
    AccessType, AccessState, TimerUrgency, BolusType, BolusOutcome,
    FluidRecommendation, ReassessmentResponse,
)
from models import (
    AccessAttempt, ShockReassessmentItem, FluidSession,
    BolusNotPermittedError, UnknownFindingError, InvalidInputError,
)
from safety import AccessSupervisor, FluidSafetySupervisor, REASSESSMENT_CHECKLIST, OVERLOAD_ACTIONS

T0 = datetime(2026, 1, 1, 12, 0, 0)

NO_CHANGE = {"Heart Rate": "same", "Capillary Refill": "same", "Mental Status": "same"}
ALL_IMPROVED = {
    "Heart Rate": "improved", "Capillary Refill": "improved", "Mental Status": "improved",
    "Peripheral Pulses": "improved", "Blood Pressure": "improved", "SpO2": "improved",
}
OVERLOAD = {"Heart Rate": "improved", "Crackles": "worsened"}

def iv(success=False):
    return AccessAttempt(access_type=AccessType.IV, site="left hand", start_time=T0, success=success)

def give_and_reassess(session, responses, rounds=1):
    for _ in range(rounds):
        session = FluidSafetySupervisor.administer_bolus(session, time_given=T0)
        session = FluidSafetySupervisor.record_reassessment(session, responses)
    return session

class TestAccessSupervisor(unittest.TestCase):

    def test_01_io_escalation_boundaries(self):
        """IO after 2 failed IV attempts or 90 seconds, whichever comes first."""
        cases = [((0, 90), True), ((0, 89), False), ((2, 0), True), ((1, 89), False), ((1, 89.9), False)]
        for (failed, elapsed), expected in cases:
            with self.subTest(failed=failed, elapsed=elapsed):
                self.assertEqual(AccessSupervisor.should_escalate_to_io(failed, elapsed), expected)

    def test_02_counts_only_failed_iv_attempts(self):
        self.assertTrue(AccessSupervisor.should_escalate_to_io([iv(), iv()], 10))
        self.assertFalse(AccessSupervisor.should_escalate_to_io([iv(), iv(success=True)], 10))

        io = AccessAttempt(access_type="io", site="proximal tibia", start_time=T0)
        self.assertEqual(AccessSupervisor.count_failed_iv([iv(), io]), 1)

    def test_03_rejects_negative_inputs(self):
        with self.assertRaises(InvalidInputError):
            AccessSupervisor.should_escalate_to_io(0, -5)
        with self.assertRaises(InvalidInputError):
            AccessSupervisor.should_escalate_to_io(-1, 0)

    def test_04_timer_urgency_and_countdown(self):
        self.assertEqual(AccessSupervisor.timer_urgency(59), TimerUrgency.NORMAL)
        self.assertEqual(AccessSupervisor.timer_urgency(60), TimerUrgency.URGENT)
        self.assertEqual(AccessSupervisor.timer_urgency(90), TimerUrgency.CRITICAL)

        self.assertFalse(AccessSupervisor.countdown_active(79))
        self.assertTrue(AccessSupervisor.countdown_active(80))
        self.assertFalse(AccessSupervisor.countdown_active(90))

    def test_05_access_status(self):
        idle = AccessSupervisor.access_status([], 10)
        self.assertEqual(idle.state, AccessState.IDLE)
        self.assertFalse(idle.escalate_to_io)

        escalated = AccessSupervisor.access_status([iv(), iv()], 45, weight_kg=18)
        self.assertEqual(escalated.state, AccessState.IO_ESCALATED)
        self.assertTrue(escalated.escalate_to_io)
        self.assertEqual(escalated.io_needle, "25 mm (blue)")

        obtained = AccessSupervisor.access_status([iv(), iv(success=True)], 95)
        self.assertEqual(obtained.state, AccessState.OBTAINED)
        self.assertFalse(obtained.escalate_to_io)

class TestFluidOverload(unittest.TestCase):

    def test_01_empty_reassessment_is_not_overload(self):
        self.assertFalse(FluidSafetySupervisor.is_fluid_overloaded([]))

    def test_02_overload_parameters_match_case_insensitively(self):
        for name in ["hepatomegaly", "Hepatomegaly", "HEPATOMEGALY", "Crackles", "jvd", "SpO2", " spo2 "]:
            with self.subTest(parameter=name):
                item = ShockReassessmentItem(parameter=name, overload_sign=True)
                self.assertTrue(FluidSafetySupervisor.is_fluid_overloaded([item]))

    def test_03_needs_both_parameter_and_sign(self):
        self.assertFalse(FluidSafetySupervisor.is_fluid_overloaded(
            [ShockReassessmentItem(parameter="Heart Rate", overload_sign=True)]))
        self.assertFalse(FluidSafetySupervisor.is_fluid_overloaded(
            [ShockReassessmentItem(parameter="JVD", overload_sign=False)]))

    def test_04_checklist_flags_overload_signs(self):
        overload = {p.parameter for p in REASSESSMENT_CHECKLIST if p.is_overload_sign}
        self.assertEqual(overload, {"Hepatomegaly", "Crackles", "JVD", "SpO2"})

        items = FluidSafetySupervisor.build_reassessment({"crackles": "worsened", "heart rate": "improved"})
        self.assertEqual([i.parameter for i in items], ["Crackles", "Heart Rate"])
        self.assertTrue(items[0].overload_sign)
        self.assertFalse(items[1].overload_sign)

    def test_05_outcome_classification(self):
        build = FluidSafetySupervisor.build_reassessment
        classify = FluidSafetySupervisor.classify_outcome
        self.assertEqual(classify(build(ALL_IMPROVED)), BolusOutcome.IMPROVED)
        self.assertEqual(classify(build(dict(ALL_IMPROVED, JVD="worsened"))), BolusOutcome.OVERLOADED)
        self.assertEqual(classify(build({"Heart Rate": "worsened", "Mental Status": "worsened",
                                         "Blood Pressure": "worsened"})), BolusOutcome.WORSENED)
        self.assertEqual(classify(build(NO_CHANGE)), BolusOutcome.NO_CHANGE)

    def test_06_bad_checklist_answers(self):
        with self.assertRaises(UnknownFindingError):
            FluidSafetySupervisor.build_reassessment({"Lactate": "improved"})
        with self.assertRaises(ValueError):
            FluidSafetySupervisor.build_reassessment({"Heart Rate": "better"})
        with self.assertRaises(InvalidInputError):
            FluidSafetySupervisor.build_reassessment({})

class TestFluidSession(unittest.TestCase):

    def test_01_bolus_then_mandatory_reassessment(self):
        print("\n💧 TEST: Bolus-by-Bolus Resuscitation (10 kg)")
        session = FluidSession(weight_kg=10)
        self.assertEqual(FluidSafetySupervisor.evaluate(session).recommendation, FluidRecommendation.GIVE_BOLUS)

        session = FluidSafetySupervisor.administer_bolus(session, time_given=T0)
        bolus = session.last_bolus
        self.assertEqual(bolus.bolus_number, 1)
        self.assertEqual(bolus.volume_ml, 100)
        self.assertEqual(bolus.total_given_ml_kg, 10)
        self.assertEqual(bolus.outcome, BolusOutcome.PENDING)
        self.assertEqual(FluidSafetySupervisor.evaluate(session).recommendation, FluidRecommendation.REASSESS)

        with self.assertRaises(BolusNotPermittedError):
            FluidSafetySupervisor.administer_bolus(session)

        session = FluidSafetySupervisor.record_reassessment(session, NO_CHANGE)
        self.assertEqual(session.last_bolus.outcome, BolusOutcome.NO_CHANGE)
        status = FluidSafetySupervisor.evaluate(session)
        self.assertEqual(status.recommendation, FluidRecommendation.GIVE_BOLUS)
        self.assertEqual(status.total_given_ml, 100)
        print(f"   {status.message}")

    def test_02_overload_is_a_hard_stop(self):
        print("\n🛑 TEST: Fluid Overload")
        session = give_and_reassess(FluidSession(weight_kg=15), OVERLOAD)
        status = FluidSafetySupervisor.evaluate(session)

        self.assertEqual(status.recommendation, FluidRecommendation.STOP_FLUIDS)
        self.assertTrue(status.overloaded)
        self.assertEqual(status.immediate_actions, OVERLOAD_ACTIONS)
        with self.assertRaises(BolusNotPermittedError):
            FluidSafetySupervisor.administer_bolus(session)
        print(f"   Blocked: {status.message}")

    def test_03_forty_ml_kg_without_improvement(self):
        session = give_and_reassess(FluidSession(weight_kg=20), NO_CHANGE, rounds=4)
        status = FluidSafetySupervisor.evaluate(session)
        self.assertEqual(status.total_given_ml_kg, 40)
        self.assertEqual(status.recommendation, FluidRecommendation.CONSIDER_INOTROPE)
        self.assertFalse(status.near_max)   # 70% of 60 is 42

    def test_04_sixty_ml_kg_is_the_cap(self):
        session = give_and_reassess(FluidSession(weight_kg=20), NO_CHANGE, rounds=6)
        status = FluidSafetySupervisor.evaluate(session)
        self.assertEqual(status.total_given_ml_kg, 60)
        self.assertEqual(status.recommendation, FluidRecommendation.ESCALATE_TO_INOTROPE)
        with self.assertRaises(BolusNotPermittedError):
            FluidSafetySupervisor.administer_bolus(session)

    def test_05_cardiogenic_protocol(self):
        session = give_and_reassess(FluidSession(weight_kg=10, bolus_type="cardiogenic"), NO_CHANGE, rounds=3)
        self.assertEqual(session.bolus_type, BolusType.CARDIOGENIC)
        self.assertEqual(session.last_bolus.volume_ml, 50)
        status = FluidSafetySupervisor.evaluate(session)
        self.assertEqual(status.total_given_ml_kg, 15)
        self.assertTrue(status.near_max)
        self.assertEqual(status.recommendation, FluidRecommendation.GIVE_BOLUS)

        session = give_and_reassess(session, NO_CHANGE)
        self.assertEqual(FluidSafetySupervisor.evaluate(session).recommendation,
                         FluidRecommendation.ESCALATE_TO_INOTROPE)

    def test_06_resolved_shock(self):
        session = give_and_reassess(FluidSession(weight_kg=12), ALL_IMPROVED)
        self.assertTrue(FluidSafetySupervisor.is_shock_resolved(session.last_bolus))
        self.assertEqual(FluidSafetySupervisor.evaluate(session).recommendation,
                         FluidRecommendation.SHOCK_RESOLVED)

    def test_07_reassessment_needs_a_pending_bolus(self):
        with self.assertRaises(BolusNotPermittedError):
            FluidSafetySupervisor.record_reassessment(FluidSession(weight_kg=10), NO_CHANGE)

    def test_08_sessions_are_not_mutated(self):
        original = FluidSession(weight_kg=10)
        updated = FluidSafetySupervisor.administer_bolus(original, time_given=T0)
        self.assertEqual(original.boluses, ())
        self.assertEqual(len(updated.boluses), 1)

    def test_09_pre_and_post_values_are_kept(self):
        session = FluidSafetySupervisor.administer_bolus(FluidSession(weight_kg=10), time_given=T0)
        session = FluidSafetySupervisor.record_reassessment(
            session, {"Heart Rate": ReassessmentResponse.IMPROVED}, values={"heart rate": ("180", "150")})
        item = session.last_bolus.reassessment[0]
        self.assertEqual((item.pre_bolus_value, item.post_bolus_value), ("180", "150"))

if __name__ == '__main__':
    unittest.main()
