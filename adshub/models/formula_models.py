"""Ads Hub — Custom Formula Models."""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field as SchemaField
from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class CustomFormula(SQLModel, table=True):
    """A workspace-defined metric expression, e.g. ``spend / clicks``.

    ``inputs`` is always derived from ``formula`` by the validator, never
    taken from the client.
    """

    __tablename__ = "custom_formulas"

    formula_id: str = Field(primary_key=True, description="formula_<ms>_<rand>")
    workspace_id: str = Field(index=True)
    name: str
    description: Optional[str] = None
    formula: str
    inputs: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    output_metric: str
    is_active: bool = Field(default=True, index=True)
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ─────────────────────────────────────────────
# REQUEST SCHEMAS
# ─────────────────────────────────────────────


class FormulaCreate(BaseModel):
    """Request body for POST /formulas."""

    workspace_id: str = SchemaField(min_length=1)
    name: str = SchemaField(min_length=1, max_length=200)
    description: Optional[str] = SchemaField(default=None, max_length=2000)
    formula: str = SchemaField(min_length=1)
    output_metric: str = SchemaField(min_length=1, max_length=60)
    created_by: Optional[str] = None


class FormulaUpdate(BaseModel):
    """Request body for PATCH /formulas/{formula_id}. Omitted fields are kept."""

    name: Optional[str] = SchemaField(default=None, min_length=1, max_length=200)
    description: Optional[str] = SchemaField(default=None, max_length=2000)
    formula: Optional[str] = SchemaField(default=None, min_length=1)
    output_metric: Optional[str] = SchemaField(
        default=None, min_length=1, max_length=60
    )
    is_active: Optional[bool] = None
