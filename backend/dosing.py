"""
Paeds Resus: Dosing Calculator
==============================
Pure weight/age based formulas. Every dose shown anywhere in the app is
computed here so the same child never gets two different numbers.
"""

import math
from dataclasses import dataclass
from typing import Dict, Tuple

from constants import (
    BolusType, BOLUS_LIBRARY, INOTROPE_LIBRARY, ACCESS_CONSTANTS, DOSING_CONSTANTS,
)
from models import (
    DrugNotFoundError, InvalidInputError, require_positive_weight, require_non_negative,
)

@dataclass(frozen=True)
class BolusDose:
    volume_ml: int
    rate: str

@dataclass(frozen=True)
class InotropeDilution:
    drug: str
    amount_mg: float
    dilution: str
    rate: str

@dataclass(frozen=True)
class BagValveMask:
    mask_size: str
    bag_volume: str
    tidal_volume_ml: Tuple[float, float]

def _round_half_up(value: float) -> int:
    # .5 rounds upwards (a 2 year old gets a 5 Fr catheter, 12.25 kg gets 123 mL)
    return int(math.floor(value + 0.5))

class DosingCalculator:

    # --- 1. CIRCULATION ---

    @staticmethod
    def calculate_fluid_bolus(weight_kg: float, bolus_type: BolusType = BolusType.STANDARD) -> BolusDose:
        weight = require_positive_weight(weight_kg)
        protocol = BOLUS_LIBRARY.get(BolusType(bolus_type))
        return BolusDose(volume_ml=_round_half_up(weight * protocol.volume_ml_kg), rate=protocol.rate)

    @staticmethod
    def calculate_inotrope_dilution(drug: str, weight_kg: float) -> InotropeDilution:
        weight = require_positive_weight(weight_kg)
        spec = INOTROPE_LIBRARY.get(drug)
        if spec is None:
            raise DrugNotFoundError(f"No dilution defined for '{drug}'")

        amount = spec.mg_per_kg_in_100ml * weight
        return InotropeDilution(
            drug=drug.strip().lower(),
            amount_mg=amount,
            dilution=f"Add {amount:.1f} mg to 100 mL D5W",
            rate=spec.rate_note,
        )

    @staticmethod
    def infusion_rate_ml_hr(drug: str, dose_mcg_kg_min: float) -> float:
        """Pump rate (mL/hr) for a target dose using the standard dilution."""
        spec = INOTROPE_LIBRARY.get(drug)
        if spec is None:
            raise DrugNotFoundError(f"No dilution defined for '{drug}'")
        dose = require_non_negative(dose_mcg_kg_min, "Dose")
        return round(dose / spec.mcg_kg_min_per_ml_hr, 2)

    @staticmethod
    def titrate_inotrope(drug: str, current_dose: float, increase: bool = True) -> float:
        """One titration step up or down, clamped to [0, max dose]."""
        spec = INOTROPE_LIBRARY.get(drug)
        if spec is None:
            raise DrugNotFoundError(f"No dilution defined for '{drug}'")
        step = spec.titration_step if increase else -spec.titration_step
        new_dose = require_non_negative(current_dose, "Dose") + step
        return round(min(max(new_dose, 0.0), spec.max_dose), 3)

    @staticmethod
    def maintenance_fluid_ml_hr(weight_kg: float) -> float:
        """Holliday-Segar 4-2-1 rule."""
        weight = require_positive_weight(weight_kg)
        if weight <= 10:
            return weight * 4
        if weight <= 20:
            return 40 + (weight - 10) * 2
        return 60 + (weight - 20)

    # --- 2. AIRWAY & BREATHING EQUIPMENT ---

    @staticmethod
    def suction_catheter_fr(age_years: float) -> int:
        age = require_non_negative(age_years, "Age")
        return _round_half_up(age / 4 + 4)

    @staticmethod
    def npa_size_fr(age_years: float) -> int:
        # Same formula as the suction catheter
        return DosingCalculator.suction_catheter_fr(age_years)

    @staticmethod
    def opa_size_cm(age_years: float) -> int:
        age = require_non_negative(age_years, "Age")
        return _round_half_up(age / 2 + 4)

    @staticmethod
    def ett_size_mm(age_years: float, cuffed: bool = False) -> float:
        age = require_non_negative(age_years, "Age")
        size = age / 4 + (3.5 if cuffed else 4)
        return round(size * 2) / 2     # Tubes come in 0.5 mm steps

    @staticmethod
    def bag_valve_mask(weight_kg: float, age_years: float) -> BagValveMask:
        weight = require_positive_weight(weight_kg)
        age = require_non_negative(age_years, "Age")
        low, high = DOSING_CONSTANTS.BVM_TIDAL_ML_KG

        if age < 1:
            mask, bag = "Newborn/Infant", "450 mL"
        elif age < 5:
            mask, bag = "Pediatric", "500-700 mL"
        else:
            mask, bag = "Adult", "1000-1500 mL"
        return BagValveMask(mask_size=mask, bag_volume=bag,
                            tidal_volume_ml=(weight * low, weight * high))

    # --- 3. METABOLIC & EMERGENCY DRUGS ---

    @staticmethod
    def dextrose_bolus_ml(weight_kg: float) -> float:
        """25% dextrose volume (0.5 g/kg)."""
        return require_positive_weight(weight_kg) * DOSING_CONSTANTS.DEXTROSE_ML_KG_D25

    @staticmethod
    def epinephrine_im_mg(weight_kg: float) -> float:
        """1:1000 IM dose for anaphylaxis, capped at 0.5 mg."""
        weight = require_positive_weight(weight_kg)
        return round(min(weight * DOSING_CONSTANTS.EPINEPHRINE_IM_MG_KG,
                         DOSING_CONSTANTS.EPINEPHRINE_IM_MAX_MG), 3)

    @staticmethod
    def io_needle_size(weight_kg: float) -> str:
        weight = require_positive_weight(weight_kg)
        for upper_kg, needle in ACCESS_CONSTANTS.IO_NEEDLE_SIZES:
            if weight < upper_kg:
                return needle
        return ACCESS_CONSTANTS.IO_NEEDLE_LARGE

    # --- 4. ASTHMA DOSE SHEET ---

    @staticmethod
    def asthma_doses(weight_kg: float) -> Dict[str, str]:
        """
        Weight based doses for every rung of the asthma ladder, keyed by drug.
        Rendered next to the ladder so the provider never does mental maths.
        """
        w = require_positive_weight(weight_kg)
        if w > 150:
            raise InvalidInputError(f"Weight {w} kg is outside the paediatric range")

        salbutamol_neb = min(max(w * 0.15, 2.5), 5.0)
        puffs = min(max(_round_half_up(w / 3), 4), 10)
        magnesium_mg = min(2000, _round_half_up(w * 50))

        return {
            "salbutamol_neb": f"{salbutamol_neb:.1f} mg nebulised",
            "salbutamol_mdi": f"{puffs} puffs via spacer",
            "salbutamol_continuous": f"{min(15.0, w * 0.5):.1f} mg/hr",
            "salbutamol_iv_load": f"{w * 15 / 1000:.2f} mg over 10 min",
            "ipratropium": f"{250 if w < 20 else 500} mcg nebulised",
            "prednisolone": f"{min(60, _round_half_up(w * 2))} mg PO",
            "methylprednisolone": f"{min(60, _round_half_up(w * 2))} mg IV",
            "dexamethasone": f"{min(16.0, w * 0.6):.1f} mg PO/IV",
            "hydrocortisone": f"{min(100, _round_half_up(w * 5))} mg IV",
            "magnesium_sulfate": f"{magnesium_mg} mg IV ({magnesium_mg / 500:.1f} mL of 50%) over 20 min",
            "aminophylline": f"{_round_half_up(w * 5)} mg load, then {w * 0.9:.1f} mg/hr",
            "ketamine": f"{w:.1f} mg bolus, then {w * 0.5:.1f}-{w * 2:.1f} mg/hr",
            "adrenaline_im": f"{min(0.5, w * 0.01):.2f} mg IM (1:1000)",
            "adrenaline_neb": f"{min(max(w * 0.1, 2.0), 5.0):.1f} mL of 1:1000 nebulised",
        }
