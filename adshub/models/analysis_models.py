"""Ads Hub — Analysis Output Models (Versioned).

Every ratio is ``Optional[float]``: ``None`` means "cannot be computed"
(zero denominator, empty window) and must be displayed as a placeholder,
never as 0.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from pydantic import BaseModel
from sqlmodel import SQLModel, Field

from adshub.models.record_models import DateRange


# ─────────────────────────────────────────────
# DATABASE MODEL: Stores versioned derived-metric snapshots
# ─────────────────────────────────────────────


class DerivedSnapshot(SQLModel, table=True):
    """Versioned DerivedMetrics output stored in DB."""

    __tablename__ = "derived_snapshots"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    schema_version: str = Field(description="e.g. 1.0.0")
    provider_id: str = Field(
        default="", index=True, description="Empty for all providers"
    )
    date_range_start: str = Field(default="", description="Earliest record date")
    date_range_end: str = Field(default="", description="Latest record date")
    record_count: int = Field(default=0)
    result_json: str = Field(description="Full DerivedMetrics as JSON")


# ─────────────────────────────────────────────
# PYDANTIC SCHEMAS: Derived metrics
# ─────────────────────────────────────────────


class MetricTotals(BaseModel):
    """Elementwise sum of records plus the number of contributing records."""

    spend: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    days: int = 0


class MovingAverageResult(BaseModel):
    """Per-day averages over the most recent N records."""

    spend: Optional[float] = None
    impressions: Optional[float] = None
    clicks: Optional[float] = None
    conversions: Optional[float] = None
    revenue: Optional[float] = None
    ctr: Optional[float] = None
    cpc: Optional[float] = None
    roas: Optional[float] = None


class GrowthRateResult(BaseModel):
    """Fractional period-over-period change (0.1 = +10%)."""

    spend: Optional[float] = None
    impressions: Optional[float] = None
    clicks: Optional[float] = None
    conversions: Optional[float] = None
    revenue: Optional[float] = None


class CustomKPIs(BaseModel):
    """Standard KPIs over the full-period totals."""

    cpa: Optional[float] = None
    roas: Optional[float] = None
    ctr: Optional[float] = None
    cpc: Optional[float] = None
    cpm: Optional[float] = None
    conversion_rate: Optional[float] = None
    revenue_per_click: Optional[float] = None
    profit: Optional[float] = None
    profit_margin: Optional[float] = None


class DerivedMetrics(BaseModel):
    """Everything the dashboard derives from one collection of records."""

    moving_average_7d: MovingAverageResult = MovingAverageResult()
    moving_average_30d: MovingAverageResult = MovingAverageResult()
    growth_week_over_week: GrowthRateResult = GrowthRateResult()
    growth_month_over_month: GrowthRateResult = GrowthRateResult()
    kpis: CustomKPIs = CustomKPIs()
    totals: MetricTotals = MetricTotals()


# ─────────────────────────────────────────────
# PYDANTIC SCHEMAS: Comparisons
# ─────────────────────────────────────────────


class AggregatedMetrics(BaseModel):
    """Totals of a record subset plus their ratios."""

    spend: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    days: int = 0
    ctr: Optional[float] = None
    cpc: Optional[float] = None
    roas: Optional[float] = None
    cpa: Optional[float] = None


class MetricsDelta(BaseModel):
    """Per-field difference (or percent difference) between two aggregates."""

    spend: Optional[float] = None
    impressions: Optional[float] = None
    clicks: Optional[float] = None
    conversions: Optional[float] = None
    revenue: Optional[float] = None
    ctr: Optional[float] = None
    cpc: Optional[float] = None
    roas: Optional[float] = None
    cpa: Optional[float] = None


class PeriodComparison(BaseModel):
    """Current date range against the equal-length range before it."""

    current_range: DateRange
    previous_range: DateRange
    current: AggregatedMetrics
    previous: AggregatedMetrics
    delta: MetricsDelta
    delta_percent: MetricsDelta


class RangeComparison(BaseModel):
    """Two arbitrary date ranges; deltas are ``a - b``."""

    a: AggregatedMetrics
    b: AggregatedMetrics
    delta: MetricsDelta
    delta_percent: MetricsDelta


class ProviderComparison(BaseModel):
    """Two providers over the same records; deltas are ``a - b``."""

    provider_a: str
    provider_b: str
    a: AggregatedMetrics
    b: AggregatedMetrics
    delta: MetricsDelta
    delta_percent: MetricsDelta


class ProviderMetrics(BaseModel):
    """One provider's aggregate."""

    provider_id: str
    metrics: AggregatedMetrics


# ─────────────────────────────────────────────
# PYDANTIC SCHEMAS: Benchmarks
# ─────────────────────────────────────────────


class MetricBenchmark(BaseModel):
    """Benchmark value in ratio units (CTR as 0-1 fraction)."""

    metric: str
    value: float
    source: str  # "historical_median" | "fallback"


class PlatformBenchmark(BaseModel):
    """A provider's KPIs and their percent difference from the blended average."""

    provider_id: str
    metrics: Dict[str, Optional[float]] = {}
    vs_blended_average: Dict[str, Optional[float]] = {}


class IndustryRoasComparison(BaseModel):
    """Provider ROAS against a configured industry baseline."""

    provider_id: str
    roas: Optional[float] = None
    industry_roas: Optional[float] = None
    vs_industry_percent: Optional[float] = None


class BenchmarksSummary(BaseModel):
    benchmarks: List[MetricBenchmark] = []
    platform_benchmarks: List[PlatformBenchmark] = []
    roas_industry_comparisons: List[IndustryRoasComparison] = []
