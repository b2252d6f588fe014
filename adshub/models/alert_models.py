"""Ads Hub — Alert Rule Models."""

from datetime import date
from enum import Enum
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field


class AlertMetric(str, Enum):
    """Metrics an alert rule can watch."""

    SPEND = "spend"
    IMPRESSIONS = "impressions"
    CLICKS = "clicks"
    CONVERSIONS = "conversions"
    REVENUE = "revenue"
    CTR = "ctr"
    CPC = "cpc"
    ROAS = "roas"
    CPA = "cpa"
    CUSTOM_FORMULA = "custom_formula"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ThresholdCondition(BaseModel):
    """Fires when the current value crosses a fixed value."""

    type: Literal["threshold"] = "threshold"
    operator: Literal["gt", "lt", "gte", "lte", "eq"]
    value: float


class AnomalyCondition(BaseModel):
    """Fires when the current value deviates from the baseline average."""

    type: Literal["anomaly"] = "anomaly"
    deviation_multiplier: float = Field(gt=0, description="e.g. 2 = 2x average")
    baseline_days: int = Field(default=7, ge=1, le=90)
    direction: Literal["above", "below", "both"] = "both"


class TrendCondition(BaseModel):
    """Fires after N consecutive day-over-day moves in one direction."""

    type: Literal["trend"] = "trend"
    direction: Literal["increasing", "decreasing"]
    consecutive_periods: int = Field(default=3, ge=2, le=30)
    min_change_percent: float = 0.0


AlertCondition = Union[ThresholdCondition, AnomalyCondition, TrendCondition]


class AlertRule(BaseModel):
    """A user-defined alert rule."""

    id: str
    name: str
    description: Optional[str] = None
    metric: AlertMetric
    condition: AlertCondition = Field(discriminator="type")
    severity: AlertSeverity = AlertSeverity.WARNING
    enabled: bool = True
    provider_id: Optional[str] = None
    formula_id: Optional[str] = None
    """Required when metric is custom_formula."""


class DailyMetricData(BaseModel):
    """One day's blended values for alert evaluation."""

    date: date
    spend: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    ctr: Optional[float] = None
    cpc: Optional[float] = None
    roas: Optional[float] = None
    cpa: Optional[float] = None


class AlertResult(BaseModel):
    """Outcome of evaluating one rule."""

    rule_id: str
    rule_name: str
    triggered: bool
    severity: AlertSeverity
    metric: AlertMetric
    message: str
    current_value: Optional[float] = None
    threshold: Optional[float] = None
    average: Optional[float] = None
    deviation_percent: Optional[float] = None
    trend_days: Optional[int] = None
    formula_id: Optional[str] = None
    timestamp: str = ""


class AlertEvaluationResult(BaseModel):
    evaluated: int = 0
    triggered: int = 0
    results: List[AlertResult] = []
    evaluated_at: str = ""
