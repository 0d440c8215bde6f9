import unittest
from constants import BolusType
from dosing import DosingCalculator
from models import InvalidInputError, DataTypeError, DrugNotFoundError

class TestDosingCalculator(unittest.TestCase):

    def test_01_standard_bolus_20kg(self):
        """A 20 kg child gets 200 mL pushed over 5-10 minutes."""
        dose = DosingCalculator.calculate_fluid_bolus(20, BolusType.STANDARD)
        self.assertEqual(dose.volume_ml, 200)
        self.assertTrue(dose.rate.startswith("Over 5-10 minutes"))

    def test_02_cardiogenic_bolus_is_half_and_slower(self):
        dose = DosingCalculator.calculate_fluid_bolus(20, "cardiogenic")
        self.assertEqual(dose.volume_ml, 100)
        self.assertTrue(dose.rate.startswith("Over 10-15 minutes"))

    def test_03_bolus_volume_rounds_half_up(self):
        """12.25 kg is 122.5 mL: the child gets 123, not 122."""
        cases = [
            (0.8, BolusType.STANDARD, 8), (7.3, BolusType.STANDARD, 73),
            (12.25, BolusType.STANDARD, 123), (18.6, BolusType.STANDARD, 186),
            (45.5, BolusType.STANDARD, 455), (12.5, BolusType.CARDIOGENIC, 63),
        ]
        for weight, bolus_type, expected in cases:
            with self.subTest(weight=weight, bolus_type=bolus_type):
                dose = DosingCalculator.calculate_fluid_bolus(weight, bolus_type)
                self.assertEqual(dose.volume_ml, expected)

    def test_04_rejects_non_positive_weight(self):
        for bad in [0, -1, -20.5]:
            with self.subTest(weight=bad):
                with self.assertRaises(InvalidInputError):
                    DosingCalculator.calculate_fluid_bolus(bad)
        with self.assertRaises(InvalidInputError):
            DosingCalculator.calculate_inotrope_dilution("epinephrine", 0)

    def test_05_rejects_wrong_types(self):
        with self.assertRaises(DataTypeError):
            DosingCalculator.calculate_fluid_bolus("20")
        with self.assertRaises(DataTypeError):
            DosingCalculator.calculate_fluid_bolus(True)

    def test_06_epinephrine_dilution(self):
        d = DosingCalculator.calculate_inotrope_dilution("epinephrine", 10)
        self.assertAlmostEqual(d.amount_mg, 6.0)
        self.assertEqual(d.dilution, "Add 6.0 mg to 100 mL D5W")
        self.assertEqual(d.rate, "1 mL/hr = 0.1 mcg/kg/min")

    def test_07_dopamine_dilution_and_case_insensitive_lookup(self):
        d = DosingCalculator.calculate_inotrope_dilution(" Dopamine ", 10)
        self.assertEqual(d.drug, "dopamine")
        self.assertAlmostEqual(d.amount_mg, 60.0)
        self.assertEqual(d.dilution, "Add 60.0 mg to 100 mL D5W")
        self.assertEqual(d.rate, "1 mL/hr = 1 mcg/kg/min")

        norepi = DosingCalculator.calculate_inotrope_dilution("NOREPINEPHRINE", 15)
        self.assertAlmostEqual(norepi.amount_mg, 9.0)

    def test_08_unknown_drug_is_typed_error(self):
        with self.assertRaises(DrugNotFoundError):
            DosingCalculator.calculate_inotrope_dilution("milrinone", 10)
        # Callers can treat it as a plain lookup failure
        with self.assertRaises(LookupError):
            DosingCalculator.calculate_inotrope_dilution("", 10)

    def test_09_infusion_rate_and_titration(self):
        self.assertAlmostEqual(DosingCalculator.infusion_rate_ml_hr("epinephrine", 0.3), 3.0)
        self.assertAlmostEqual(DosingCalculator.infusion_rate_ml_hr("dobutamine", 7.5), 7.5)

        self.assertAlmostEqual(DosingCalculator.titrate_inotrope("epinephrine", 0.1), 0.15)
        self.assertAlmostEqual(DosingCalculator.titrate_inotrope("epinephrine", 1.0), 1.0)
        self.assertAlmostEqual(DosingCalculator.titrate_inotrope("dopamine", 0.0, increase=False), 0.0)
        self.assertAlmostEqual(DosingCalculator.titrate_inotrope("dopamine", 20.0, increase=False), 17.5)

    def test_10_airway_equipment_sizes(self):
        self.assertEqual(DosingCalculator.suction_catheter_fr(5), 5)     # 5.25
        self.assertEqual(DosingCalculator.suction_catheter_fr(2), 5)     # 4.5 rounds up
        self.assertEqual(DosingCalculator.npa_size_fr(8), 6)
        self.assertEqual(DosingCalculator.opa_size_cm(4), 6)
        self.assertEqual(DosingCalculator.ett_size_mm(4), 5.0)
        self.assertEqual(DosingCalculator.ett_size_mm(4, cuffed=True), 4.5)
        with self.assertRaises(InvalidInputError):
            DosingCalculator.opa_size_cm(-1)

    def test_11_bag_valve_mask_by_age(self):
        infant = DosingCalculator.bag_valve_mask(8, 0.5)
        self.assertEqual(infant.bag_volume, "450 mL")
        self.assertEqual(infant.tidal_volume_ml, (48, 64))

        toddler = DosingCalculator.bag_valve_mask(12, 3)
        self.assertEqual(toddler.mask_size, "Pediatric")

        child = DosingCalculator.bag_valve_mask(25, 8)
        self.assertEqual(child.bag_volume, "1000-1500 mL")

    def test_12_emergency_drugs(self):
        self.assertAlmostEqual(DosingCalculator.dextrose_bolus_ml(12), 24.0)
        self.assertAlmostEqual(DosingCalculator.epinephrine_im_mg(10), 0.1)
        self.assertAlmostEqual(DosingCalculator.epinephrine_im_mg(60), 0.5)

    def test_13_io_needle_by_weight(self):
        self.assertEqual(DosingCalculator.io_needle_size(2.5), "15 mm (pink)")
        self.assertEqual(DosingCalculator.io_needle_size(20), "25 mm (blue)")
        self.assertEqual(DosingCalculator.io_needle_size(39.9), "25 mm (blue)")
        self.assertEqual(DosingCalculator.io_needle_size(40), "45 mm (yellow)")

    def test_14_holliday_segar(self):
        self.assertAlmostEqual(DosingCalculator.maintenance_fluid_ml_hr(8), 32)
        self.assertAlmostEqual(DosingCalculator.maintenance_fluid_ml_hr(15), 50)
        self.assertAlmostEqual(DosingCalculator.maintenance_fluid_ml_hr(25), 65)

    def test_15_asthma_dose_sheet(self):
        small = DosingCalculator.asthma_doses(10)
        self.assertEqual(small["salbutamol_neb"], "2.5 mg nebulised")
        self.assertEqual(small["ipratropium"], "250 mcg nebulised")
        self.assertTrue(small["magnesium_sulfate"].startswith("500 mg IV (1.0 mL of 50%)"))
        self.assertEqual(small["salbutamol_mdi"], "4 puffs via spacer")

        big = DosingCalculator.asthma_doses(50)
        self.assertEqual(big["salbutamol_neb"], "5.0 mg nebulised")
        self.assertEqual(big["ipratropium"], "500 mcg nebulised")
        self.assertTrue(big["magnesium_sulfate"].startswith("2000 mg IV"))
        self.assertEqual(big["prednisolone"], "60 mg PO")
        self.assertEqual(big["hydrocortisone"], "100 mg IV")

if __name__ == '__main__':
    unittest.main()
