import unittest
from constants import Condition, TherapyLine, LINE_ORDER, ShockType, ShockCharacter
from models import TherapyStep, UnknownConditionError, InvalidInputError
from protocols import (
    EscalationLadder, InotropeSelector, TimedPrompts, LADDERS, validate_ladder,
    ASTHMA_VENTILATOR_SETTINGS, REFERRAL_TRIGGERS, SHOCK_LAB_WORKUP,
)

class TestEscalationLadder(unittest.TestCase):

    def test_01_asthma_first_line_escalates_to_magnesium(self):
        print("\n🫁 TEST: Asthma Escalation")
        step = EscalationLadder.get_next_escalation_step(TherapyLine.FIRST, "asthma")
        self.assertEqual(step.drug, "Magnesium Sulfate")
        self.assertEqual(step.line, TherapyLine.SECOND)
        print(f"   First line failed -> {step.drug} ({step.dose})")

    def test_02_asthma_walks_the_whole_ladder(self):
        expected = {
            TherapyLine.SECOND: "Salbutamol IV",
            TherapyLine.THIRD: "Ketamine",
            TherapyLine.FOURTH: "Mechanical Ventilation",
        }
        for current, drug in expected.items():
            with self.subTest(line=current):
                step = EscalationLadder.get_next_escalation_step(current, Condition.ASTHMA)
                self.assertEqual(step.drug, drug)

    def test_03_fifth_line_is_terminal(self):
        for condition in Condition:
            with self.subTest(condition=condition):
                self.assertIsNone(EscalationLadder.get_next_escalation_step("fifth", condition))

    def test_04_missing_next_line_is_terminal(self):
        """Shock tops out at third line: there is nothing to escalate to."""
        self.assertIsNone(EscalationLadder.get_next_escalation_step(TherapyLine.THIRD, "shock"))
        self.assertIsNone(EscalationLadder.get_next_escalation_step(TherapyLine.FOURTH, "eclampsia"))

    def test_05_unknown_condition_raises(self):
        with self.assertRaises(UnknownConditionError):
            EscalationLadder.get_next_escalation_step(TherapyLine.FIRST, "croup")
        with self.assertRaises(LookupError):
            EscalationLadder.get_ladder("")

    def test_06_condition_names_are_case_insensitive(self):
        self.assertIs(EscalationLadder.get_ladder(" Asthma "), LADDERS[Condition.ASTHMA])
        self.assertIs(EscalationLadder.get_ladder("PPH"), LADDERS[Condition.PPH])

    def test_07_every_ladder_is_monotonic(self):
        for condition, ladder in LADDERS.items():
            with self.subTest(condition=condition):
                indices = [LINE_ORDER.index(step.line) for step in ladder]
                self.assertEqual(indices, sorted(indices))
                self.assertEqual(ladder[0].line, TherapyLine.FIRST)

    def test_08_escalation_only_moves_forward(self):
        for condition in Condition:
            line = TherapyLine.FIRST
            while True:
                step = EscalationLadder.get_next_escalation_step(line, condition)
                if step is None:
                    break
                self.assertGreater(LINE_ORDER.index(step.line), LINE_ORDER.index(line))
                line = step.line

    def test_09_validate_ladder_rejects_backwards_steps(self):
        backwards = (
            TherapyStep(line=TherapyLine.SECOND, drug="B", dose="-", route="-",
                        frequency="-", max_dose="-", escalation_trigger="-"),
            TherapyStep(line=TherapyLine.FIRST, drug="A", dose="-", route="-",
                        frequency="-", max_dose="-", escalation_trigger="-"),
        )
        with self.assertRaises(ValueError):
            validate_ladder(backwards)

    def test_10_concurrent_options_by_drug_class(self):
        steroids = EscalationLadder.get_line_options("asthma", TherapyLine.FIRST, drug_class="steroid")
        self.assertEqual([s.drug for s in steroids],
                         ["Prednisolone", "Dexamethasone", "Methylprednisolone", "Hydrocortisone"])

        first_pph = EscalationLadder.get_line_options("pph", "first")
        self.assertEqual({s.drug for s in first_pph}, {"Oxytocin", "Tranexamic Acid"})

    def test_11_reference_lists(self):
        self.assertEqual(len(REFERRAL_TRIGGERS["immediate"]), 8)
        self.assertIn(("Blood culture", "Before antibiotics"), SHOCK_LAB_WORKUP)
        self.assertEqual(ASTHMA_VENTILATOR_SETTINGS["tidal_volume"], "6-8 mL/kg ideal body weight")

class TestInotropeSelector(unittest.TestCase):

    def test_01_character_drives_choice(self):
        self.assertEqual(InotropeSelector.recommend(ShockType.SEPTIC, ShockCharacter.COLD), "epinephrine")
        self.assertEqual(InotropeSelector.recommend(ShockType.SEPTIC, ShockCharacter.WARM), "norepinephrine")

    def test_02_unknown_character_falls_back_on_type(self):
        self.assertEqual(InotropeSelector.recommend(ShockType.CARDIOGENIC), "dobutamine")
        self.assertEqual(InotropeSelector.recommend(ShockType.UNDIFFERENTIATED), "epinephrine")

class TestTimedPrompts(unittest.TestCase):

    def test_01_asthma_reassessment_windows(self):
        self.assertEqual(TimedPrompts.asthma_reassessment_minutes("Salbutamol"), 20)
        self.assertEqual(TimedPrompts.asthma_reassessment_minutes("Magnesium Sulfate"), 30)
        self.assertIsNone(TimedPrompts.asthma_reassessment_minutes("Prednisolone"))

        self.assertTrue(TimedPrompts.should_escalate_asthma("Same"))
        self.assertTrue(TimedPrompts.should_escalate_asthma("worse"))
        self.assertFalse(TimedPrompts.should_escalate_asthma("better"))

    def test_02_tranexamic_acid_alert_at_20_minutes(self):
        self.assertFalse(TimedPrompts.tranexamic_acid_overdue(19, given=False))
        self.assertTrue(TimedPrompts.tranexamic_acid_overdue(20, given=False))
        self.assertFalse(TimedPrompts.tranexamic_acid_overdue(45, given=True))
        with self.assertRaises(InvalidInputError):
            TimedPrompts.tranexamic_acid_overdue(-1, given=False)

        self.assertTrue(TimedPrompts.tranexamic_acid_window_open(2.5))
        self.assertFalse(TimedPrompts.tranexamic_acid_window_open(3))

    def test_05_bolus_window(self):
        self.assertFalse(TimedPrompts.bolus_overrunning(15))
        self.assertTrue(TimedPrompts.bolus_overrunning(16))

    def test_03_blood_loss_bands(self):
        self.assertEqual(TimedPrompts.classify_blood_loss(499), "normal")
        self.assertEqual(TimedPrompts.classify_blood_loss(500), "pph")
        self.assertEqual(TimedPrompts.classify_blood_loss(1200), "severe_pph")
        self.assertEqual(TimedPrompts.classify_blood_loss(1501), "life_threatening")
        self.assertTrue(TimedPrompts.massive_transfusion_indicated(2000))
        self.assertFalse(TimedPrompts.massive_transfusion_indicated(1500))

    def test_04_severe_hypertension(self):
        self.assertTrue(TimedPrompts.severe_hypertension(160, 100))
        self.assertTrue(TimedPrompts.severe_hypertension(150, 110))
        self.assertFalse(TimedPrompts.severe_hypertension(150, 100))
        with self.assertRaises(InvalidInputError):
            TimedPrompts.severe_hypertension(0, 80)

if __name__ == '__main__':
    unittest.main()
