"""Ads Hub — Custom Formula API Routes."""

from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from adshub.database import get_session
from adshub.analyzer.aggregation import calculate_totals
from adshub.analyzer.derived_engine import execute_formula
from adshub.core.metric_registry import DEFAULT_PROFILE, get_metric
from adshub.formula.evaluator import evaluate_formula
from adshub.formula.parser import FormulaValidation, validate_formula
from adshub.models.formula_models import CustomFormula, FormulaCreate, FormulaUpdate
from adshub.models.record_models import DateRange
from adshub.services.formula_service import (
    FormulaNotFoundError,
    FormulaValidationError,
    create_formula,
    delete_formula,
    get_formula,
    list_formulas,
    update_formula,
)
from adshub.services.metric_store import load_records
from adshub.core.logging import get_logger

logger = get_logger("api.formulas")

router = APIRouter(prefix="/formulas", tags=["Formulas"])


# ── Request / Response Models ──


class ValidateRequest(BaseModel):
    formula: str


class ValidateResponse(FormulaValidation):
    unknown_metrics: List[str] = []
    """Names outside the known vocabulary. A warning; the formula stays valid."""


class EvaluateRequest(BaseModel):
    """Request body for POST /formulas/evaluate."""

    formula: str
    inputs: Dict[str, float]

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"formula": "spend / clicks", "inputs": {"spend": 100, "clicks": 200}}
            ]
        }
    }


class EvaluateResponse(BaseModel):
    value: Optional[float] = None
    """Null when the formula cannot be evaluated."""


class ExecuteResponse(BaseModel):
    formula_id: str
    output_metric: str
    value: Optional[float] = None
    record_count: int = 0


class MetricInfo(BaseModel):
    name: str
    metric_type: str
    unit: str
    description: str


class VocabularyResponse(BaseModel):
    functions: List[str]
    metrics: List[MetricInfo]


class FormulaListResponse(BaseModel):
    formulas: List[CustomFormula]
    count: int


# ── Endpoints ──


@router.get("/vocabulary", response_model=VocabularyResponse)
async def get_vocabulary():
    """Functions and metric names available to formulas."""
    metrics = []
    for name in sorted(DEFAULT_PROFILE.known_metrics):
        definition = get_metric(name)
        if definition is None:
            continue
        metrics.append(
            MetricInfo(
                name=definition.name,
                metric_type=definition.metric_type.value,
                unit=definition.unit,
                description=definition.description,
            )
        )
    return VocabularyResponse(
        functions=sorted(DEFAULT_PROFILE.functions), metrics=metrics
    )


@router.post("/validate", response_model=ValidateResponse)
async def post_validate(request: ValidateRequest):
    """Check syntax and list the metrics a formula uses."""
    result = validate_formula(request.formula)
    return ValidateResponse(
        **result.model_dump(),
        unknown_metrics=DEFAULT_PROFILE.unknown_inputs(result.inputs),
    )


@router.post("/evaluate", response_model=EvaluateResponse)
async def post_evaluate(request: EvaluateRequest):
    """Evaluate a formula against explicit values."""
    return EvaluateResponse(value=evaluate_formula(request.formula, request.inputs))


@router.get("", response_model=FormulaListResponse)
async def get_formulas(
    workspace_id: str = Query(..., min_length=1),
    active_only: bool = Query(False),
    session: Session = Depends(get_session),
):
    """List workspace formulas, newest first."""
    formulas = list_formulas(session, workspace_id, active_only)
    return FormulaListResponse(formulas=formulas, count=len(formulas))


@router.post("", response_model=CustomFormula, status_code=201)
async def post_formula(
    request: FormulaCreate,
    session: Session = Depends(get_session),
):
    """Validate and store a new formula."""
    try:
        return create_formula(session, request)
    except FormulaValidationError as e:
        logger.warning(
            f"Rejected formula for workspace {request.workspace_id}: {e}",
            extra={"workspace_id": request.workspace_id},
        )
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/{formula_id}", response_model=CustomFormula)
async def get_formula_by_id(
    formula_id: str,
    session: Session = Depends(get_session),
):
    try:
        return get_formula(session, formula_id)
    except FormulaNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{formula_id}", response_model=CustomFormula)
async def patch_formula(
    formula_id: str,
    request: FormulaUpdate,
    session: Session = Depends(get_session),
):
    """Update a formula; a changed expression is re-validated."""
    try:
        return update_formula(session, formula_id, request)
    except FormulaNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FormulaValidationError as e:
        logger.warning(
            f"Rejected update for formula {formula_id}: {e}",
            extra={"formula_id": formula_id},
        )
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/{formula_id}")
async def remove_formula(
    formula_id: str,
    session: Session = Depends(get_session),
):
    try:
        delete_formula(session, formula_id)
    except FormulaNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "success", "formula_id": formula_id}


@router.post("/{formula_id}/execute", response_model=ExecuteResponse)
async def execute_stored_formula(
    formula_id: str,
    provider_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    session: Session = Depends(get_session),
):
    """Evaluate a stored formula against aggregated totals of the stored records."""
    try:
        formula = get_formula(session, formula_id)
    except FormulaNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    date_range = None
    if start_date is not None and end_date is not None:
        date_range = DateRange(start=start_date, end=end_date)
    records = load_records(session, provider_id=provider_id, date_range=date_range)
    totals = calculate_totals(records)

    return ExecuteResponse(
        formula_id=formula.formula_id,
        output_metric=formula.output_metric,
        value=execute_formula(formula.formula, totals),
        record_count=totals.days,
    )
