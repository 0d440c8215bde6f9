# main.py

import logging
from typing import Any, Dict, List, Optional
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Import Data Models & Logic
from constants import (
    VERSION, BolusType, Condition, TherapyLine, Phase, ReassessmentResponse,
)
from models import (
    AssessmentState, FluidSession, PhaseAssessment, ShockReassessmentItem,
    PHASE_FINDINGS_SCHEMA, BolusNotPermittedError, InvalidInputError,
)
from dosing import DosingCalculator
from protocols import (
    EscalationLadder, InotropeSelector, ASTHMA_VENTILATOR_SETTINGS, REFERRAL_TRIGGERS, SHOCK_LAB_WORKUP,
)
from shock_engine import ShockDifferentialEngine, SHOCK_ASSESSMENT_STEPS, HISTORY_QUESTIONS
from safety import AccessSupervisor, FluidSafetySupervisor
from sequencing import ActionSequencer

# --- 1. CONFIGURATION & LOGGING ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("paeds-resus-api")

app = FastAPI(
    title="Paeds Resus Escalation API",
    version=VERSION,
    description="Pediatric emergency decision trees: dosing, escalation ladders, shock "
                "differentiation, fluid/access safety and ABCDE sequencing. \n\n"
                "**WARNING**: Decision Support Tool Only. Not for autonomous clinical use.",
    contact={"name": "Clinical Validation Team"},
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def _client_error(e: Exception) -> HTTPException:
    """Maps engine exceptions to HTTP status codes."""
    if isinstance(e, BolusNotPermittedError):
        status = 409
    elif isinstance(e, LookupError):
        status = 404
    else:
        status = 422
    logger.warning(f"Clinical Validation Error: {str(e)}")
    return HTTPException(status_code=status, detail=f"Clinical Validation Error: {str(e)}")

def _server_error(e: Exception) -> HTTPException:
    logger.error(f"Internal Engine Failure: {str(e)}", exc_info=True)
    return HTTPException(status_code=500, detail="Internal Escalation Engine Error")

@app.get("/")
def read_root():
    return {"status": "active", "message": "Paeds Resus API is running successfully!"}

@app.get("/health")
def health_check():
    return {"status": "active", "version": VERSION, "module": "paeds-resus-escalation-engine"}

# --- 2. INPUT SCHEMAS ---

class BolusRequest(BaseModel):
    weight_kg: float = Field(..., gt=0, le=150.0, description="Weight in kg")
    bolus_type: BolusType = Field(default=BolusType.STANDARD)

    class Config:
        json_schema_extra = {"example": {"weight_kg": 20.0, "bolus_type": "standard"}}

class BolusResponse(BaseModel):
    volume_ml: int
    rate: str

class DilutionRequest(BaseModel):
    drug: str = Field(..., min_length=1, description="epinephrine, norepinephrine, dopamine or dobutamine")
    weight_kg: float = Field(..., gt=0, le=150.0)

class EscalationRequest(BaseModel):
    condition: str = Field(..., description="asthma, shock, pph or eclampsia")
    current_line: TherapyLine

    class Config:
        json_schema_extra = {"example": {"condition": "asthma", "current_line": "first"}}

class ShockAssessmentRequest(BaseModel):
    # Step id -> selected option value, e.g. {"pulses": "bounding"}
    findings: Dict[str, str] = Field(default_factory=dict)
    history: Dict[str, bool] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {"findings": {"pulses": "bounding", "temperature": "warm"}, "history": {"fever": True}}
        }

class AccessCheckRequest(BaseModel):
    failed_iv_attempts: int = Field(..., ge=0, le=20)
    elapsed_seconds: float = Field(..., ge=0)
    weight_kg: Optional[float] = Field(None, gt=0, le=150.0)

class ReassessmentItemRequest(BaseModel):
    parameter: str
    overload_sign: bool = False

class OverloadCheckRequest(BaseModel):
    items: List[ReassessmentItemRequest] = Field(default_factory=list)

class FluidStatusRequest(BaseModel):
    weight_kg: float = Field(..., gt=0, le=150.0)
    bolus_type: BolusType = Field(default=BolusType.STANDARD)
    # One entry per bolus given; null for a bolus still awaiting reassessment
    reassessments: List[Optional[Dict[str, ReassessmentResponse]]] = Field(default_factory=list)

class SequenceRequest(BaseModel):
    phase: Phase
    weight_kg: float = Field(..., gt=0, le=150.0)
    age_years: float = Field(..., ge=0, le=18)
    age_months: int = Field(0, ge=0, le=11)
    findings: Dict[str, Any] = Field(default_factory=dict)
    completed_ids: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {"phase": "breathing", "weight_kg": 12.0, "age_years": 2,
                        "findings": {"oxygen_applied": False, "spo2": 90}}
        }

# --- 3. ENDPOINTS ---

@app.post("/dosing/fluid-bolus", response_model=BolusResponse)
def fluid_bolus(request: BolusRequest):
    try:
        return DosingCalculator.calculate_fluid_bolus(request.weight_kg, request.bolus_type)
    except (LookupError, ValueError) as e:
        raise _client_error(e)

@app.post("/dosing/inotrope-dilution")
def inotrope_dilution(request: DilutionRequest):
    try:
        return DosingCalculator.calculate_inotrope_dilution(request.drug, request.weight_kg)
    except (LookupError, ValueError) as e:
        raise _client_error(e)

@app.get("/escalation/{condition}")
def get_ladder(condition: str, weight_kg: Optional[float] = None):
    try:
        resolved = EscalationLadder.resolve_condition(condition)
        body = {"condition": resolved, "steps": EscalationLadder.get_ladder(resolved)}
        if resolved == Condition.ASTHMA:
            body["ventilator_settings"] = ASTHMA_VENTILATOR_SETTINGS
            if weight_kg is not None:
                body["doses"] = DosingCalculator.asthma_doses(weight_kg)
        return body
    except (LookupError, ValueError) as e:
        raise _client_error(e)

@app.post("/escalation/next")
def next_escalation(request: EscalationRequest):
    try:
        step = EscalationLadder.get_next_escalation_step(request.current_line, request.condition)
    except (LookupError, ValueError) as e:
        raise _client_error(e)
    return {"terminal": step is None, "step": step}

@app.get("/shock/protocol")
def shock_protocol():
    return {
        "steps": SHOCK_ASSESSMENT_STEPS,
        "history_questions": HISTORY_QUESTIONS,
        "lab_workup": [{"test": test, "priority": priority} for test, priority in SHOCK_LAB_WORKUP],
        "referral_triggers": REFERRAL_TRIGGERS,
    }

@app.post("/shock/assess")
def assess_shock(request: ShockAssessmentRequest):
    """
    Scores a complete set of bedside findings and returns the most likely
    shock type with its evidence and the first-line inotrope if fluids fail.
    """
    try:
        state = AssessmentState()
        for step_id, value in request.findings.items():
            state = ShockDifferentialEngine.record_finding(state, step_id, value)
        for question_id, answer in request.history.items():
            state = ShockDifferentialEngine.record_history_answer(state, question_id, answer)

        result = ShockDifferentialEngine.complete_assessment(state)
        character = ShockDifferentialEngine.infer_character(state)
        logger.info(f"Shock assessment: {result.identified_type.value} ({result.confidence:.0f}%)")
        return {
            "result": result,
            "character": character,
            "recommended_inotrope": InotropeSelector.recommend(result.identified_type, character),
        }
    except (LookupError, ValueError) as e:
        raise _client_error(e)
    except Exception as e:
        raise _server_error(e)

@app.post("/access/io-check")
def io_check(request: AccessCheckRequest):
    try:
        escalate = AccessSupervisor.should_escalate_to_io(request.failed_iv_attempts, request.elapsed_seconds)
        needle = DosingCalculator.io_needle_size(request.weight_kg) if escalate and request.weight_kg else None
        return {
            "escalate_to_io": escalate,
            "urgency": AccessSupervisor.timer_urgency(request.elapsed_seconds),
            "io_needle": needle,
        }
    except (LookupError, ValueError) as e:
        raise _client_error(e)

@app.post("/fluids/overload-check")
def overload_check(request: OverloadCheckRequest):
    items = [ShockReassessmentItem(parameter=i.parameter, overload_sign=i.overload_sign) for i in request.items]
    overloaded = FluidSafetySupervisor.is_fluid_overloaded(items)
    if overloaded:
        logger.warning("Fluid overload reported by caller")
    return {"overloaded": overloaded}

@app.post("/fluids/status")
def fluid_status(request: FluidStatusRequest):
    """Replays the bolus history and returns what to do next."""
    try:
        session = FluidSession(weight_kg=request.weight_kg, bolus_type=request.bolus_type)
        for responses in request.reassessments:
            session = FluidSafetySupervisor.administer_bolus(session)
            if responses is not None:
                session = FluidSafetySupervisor.record_reassessment(session, responses)
        return {"session": session, "status": FluidSafetySupervisor.evaluate(session)}
    except (LookupError, ValueError, BolusNotPermittedError) as e:
        raise _client_error(e)
    except Exception as e:
        raise _server_error(e)

@app.post("/sequence/actions")
def sequence_actions(request: SequenceRequest):
    try:
        schema = PHASE_FINDINGS_SCHEMA[request.phase]
        try:
            findings = schema(**request.findings)
        except TypeError as e:
            raise InvalidInputError(f"Invalid {request.phase.value} findings: {e}")

        assessment = PhaseAssessment(
            phase=request.phase, findings=findings, weight_kg=request.weight_kg,
            age_years=request.age_years, age_months=request.age_months,
        )
        actions = ActionSequencer.get_phase_actions(assessment)
        return {
            "actions": actions,
            "next_action": ActionSequencer.get_next_action(actions, request.completed_ids),
        }
    except (LookupError, ValueError) as e:
        raise _client_error(e)
    except Exception as e:
        raise _server_error(e)
