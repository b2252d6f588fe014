"""Ads Hub — Custom Formula Store.

Validate-then-persist CRUD for workspace formulas. The validator decides
``inputs``; a formula that fails validation is never written.
"""

import random
import string
import time
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from adshub.config import settings
from adshub.formula.parser import FormulaValidation, validate_formula
from adshub.models.formula_models import CustomFormula, FormulaCreate, FormulaUpdate
from adshub.core.logging import get_logger

logger = get_logger("services.formula")


class FormulaValidationError(Exception):
    """Raised when a formula is rejected before persistence."""

    def __init__(self, message: str, code: str = ""):
        self.code = code
        super().__init__(message)


class FormulaNotFoundError(Exception):
    """Raised when no formula matches the id."""

    def __init__(self, formula_id: str):
        self.formula_id = formula_id
        super().__init__(f"Formula not found: {formula_id}")


def generate_formula_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"formula_{int(time.time() * 1000)}_{suffix}"


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def check_formula(formula: str) -> FormulaValidation:
    """Validate a formula for persistence. Raises FormulaValidationError."""
    if len(formula) > settings.formula_max_length:
        raise FormulaValidationError(
            f"Formula exceeds {settings.formula_max_length} characters",
            code="formula_too_long",
        )
    result = validate_formula(formula)
    if not result.valid:
        raise FormulaValidationError(
            result.message or "Invalid formula", code=result.error
        )
    if len(result.inputs) > settings.formula_max_inputs:
        raise FormulaValidationError(
            f"Formula references more than {settings.formula_max_inputs} metrics",
            code="too_many_inputs",
        )
    return result


def list_formulas(
    session: Session, workspace_id: str, active_only: bool = False
) -> List[CustomFormula]:
    """Workspace formulas, newest first."""
    query = select(CustomFormula).where(CustomFormula.workspace_id == workspace_id)
    if active_only:
        query = query.where(CustomFormula.is_active == True)  # noqa: E712
    query = query.order_by(CustomFormula.created_at.desc())  # type: ignore
    return list(session.exec(query).all())


def get_formula(session: Session, formula_id: str) -> CustomFormula:
    formula = session.get(CustomFormula, formula_id)
    if formula is None:
        raise FormulaNotFoundError(formula_id)
    return formula


def create_formula(session: Session, payload: FormulaCreate) -> CustomFormula:
    expression = payload.formula.strip()
    result = check_formula(expression)

    formula = CustomFormula(
        formula_id=generate_formula_id(),
        workspace_id=payload.workspace_id.strip(),
        name=payload.name.strip(),
        description=_clean_optional(payload.description),
        formula=expression,
        inputs=result.inputs,
        output_metric=payload.output_metric.strip(),
        is_active=True,
        created_by=_clean_optional(payload.created_by),
    )
    session.add(formula)
    session.commit()
    session.refresh(formula)
    logger.info(
        f"Created formula {formula.formula_id} ({formula.name})",
        extra={"workspace_id": formula.workspace_id, "formula_id": formula.formula_id},
    )
    return formula


def update_formula(
    session: Session, formula_id: str, payload: FormulaUpdate
) -> CustomFormula:
    """Apply a partial update; a changed expression is re-validated first."""
    formula = get_formula(session, formula_id)

    if payload.formula is not None:
        expression = payload.formula.strip()
        if expression != formula.formula:
            result = check_formula(expression)
            formula.formula = expression
            formula.inputs = result.inputs
    if payload.name is not None:
        formula.name = payload.name.strip()
    if "description" in payload.model_fields_set:
        formula.description = _clean_optional(payload.description)
    if payload.output_metric is not None:
        formula.output_metric = payload.output_metric.strip()
    if payload.is_active is not None:
        formula.is_active = payload.is_active

    formula.updated_at = datetime.now(timezone.utc)
    session.add(formula)
    session.commit()
    session.refresh(formula)
    logger.info(f"Updated formula {formula_id}", extra={"formula_id": formula_id})
    return formula


def delete_formula(session: Session, formula_id: str) -> None:
    formula = get_formula(session, formula_id)
    session.delete(formula)
    session.commit()
    logger.info(f"Deleted formula {formula_id}", extra={"formula_id": formula_id})
