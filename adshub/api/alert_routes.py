"""Ads Hub — Alert API Routes."""

from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from adshub.database import get_session
from adshub.analyzer.alert_engine import evaluate_rules
from adshub.models.alert_models import AlertEvaluationResult, AlertMetric, AlertRule
from adshub.models.record_models import DateRange
from adshub.services.formula_service import (
    FormulaNotFoundError,
    get_formula,
    list_formulas,
)
from adshub.services.metric_store import load_records
from adshub.core.logging import get_logger

logger = get_logger("api.alerts")

router = APIRouter(prefix="/alerts", tags=["Alerts"])


# ── Request / Response Models ──


class EvaluateAlertsRequest(BaseModel):
    """Request body for POST /alerts/evaluate."""

    rules: List[AlertRule]
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    workspace_id: Optional[str] = None
    """Restrict custom-formula lookups to this workspace's active formulas."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "rules": [
                        {
                            "id": "cpa-ceiling",
                            "name": "CPA ceiling",
                            "metric": "cpa",
                            "condition": {
                                "type": "threshold",
                                "operator": "gt",
                                "value": 50,
                            },
                            "severity": "critical",
                        }
                    ]
                }
            ]
        }
    }


def _resolve_formulas(
    session: Session, rules: List[AlertRule], workspace_id: Optional[str]
) -> Dict[str, str]:
    """Expressions for the formulas referenced by custom-formula rules.

    A rule whose formula cannot be found is left unresolved and evaluates
    as "cannot be evaluated".
    """
    wanted = {
        rule.formula_id
        for rule in rules
        if rule.metric == AlertMetric.CUSTOM_FORMULA and rule.formula_id
    }
    if not wanted:
        return {}

    if workspace_id:
        active = list_formulas(session, workspace_id, active_only=True)
        return {f.formula_id: f.formula for f in active if f.formula_id in wanted}

    formulas: Dict[str, str] = {}
    for formula_id in wanted:
        try:
            formulas[formula_id] = get_formula(session, formula_id).formula
        except FormulaNotFoundError:
            logger.warning(
                f"Alert rule references missing formula {formula_id}",
                extra={"formula_id": formula_id},
            )
    return formulas


# ── Endpoints ──


@router.post("/evaluate", response_model=AlertEvaluationResult)
async def post_evaluate_alerts(
    request: EvaluateAlertsRequest,
    session: Session = Depends(get_session),
):
    """Evaluate alert rules against the daily series of stored records.

    The latest day in range is the current value; earlier days are history.
    """
    for rule in request.rules:
        if rule.metric == AlertMetric.CUSTOM_FORMULA and not rule.formula_id:
            raise HTTPException(
                status_code=422,
                detail=f"Rule {rule.id} watches custom_formula without a formula_id",
            )

    date_range = None
    if request.start_date is not None and request.end_date is not None:
        if request.start_date > request.end_date:
            raise HTTPException(status_code=400, detail="start_date is after end_date")
        date_range = DateRange(start=request.start_date, end=request.end_date)

    records = load_records(session, date_range=date_range)
    formulas = _resolve_formulas(session, request.rules, request.workspace_id)
    return evaluate_rules(request.rules, records, formulas)
