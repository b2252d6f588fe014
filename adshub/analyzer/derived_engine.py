"""Ads Hub — Derived Metrics Engine.

Computes from a collection of daily records:
7/30-day moving averages, week-over-week and month-over-month growth,
standard KPIs (CPA, ROAS, CTR, CPC, CPM, conversion rate, profit).
Custom formulas execute against the aggregated totals and KPIs.
Pure functions of the input; recompute whenever the records change.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from adshub.core.metric_registry import DEFAULT_PROFILE, FormulaProfile
from adshub.formula.evaluator import evaluate_formula
from adshub.analyzer.aggregation import (
    calculate_totals,
    filter_by_provider,
    safe_div,
    sort_by_date_desc,
)
from adshub.models.analysis_models import (
    CustomKPIs,
    DerivedMetrics,
    GrowthRateResult,
    MetricTotals,
    MovingAverageResult,
)
from adshub.models.record_models import MetricRecord
from adshub.core.logging import get_logger

logger = get_logger("analyzer.derived")

SHORT_WINDOW_DAYS = 7
LONG_WINDOW_DAYS = 30


def moving_average(records: Sequence[MetricRecord], days: int) -> MovingAverageResult:
    """Average the most recent ``days`` records.

    Ratios use the window totals, not the per-day averages.
    """
    subset = sort_by_date_desc(records)[:days]
    if not subset:
        return MovingAverageResult()

    totals = calculate_totals(subset)
    count = len(subset)
    return MovingAverageResult(
        spend=totals.spend / count,
        impressions=totals.impressions / count,
        clicks=totals.clicks / count,
        conversions=totals.conversions / count,
        revenue=totals.revenue / count,
        ctr=safe_div(totals.clicks, totals.impressions),
        cpc=safe_div(totals.spend, totals.clicks),
        roas=safe_div(totals.revenue, totals.spend),
    )


def split_by_period(
    records: Sequence[MetricRecord], days: int
) -> Tuple[List[MetricRecord], List[MetricRecord]]:
    """(current, previous): the latest ``days`` records and the ``days`` before."""
    ordered = sort_by_date_desc(records)
    return ordered[:days], ordered[days : days * 2]


def calculate_growth(current: MetricTotals, previous: MetricTotals) -> GrowthRateResult:
    return GrowthRateResult(
        spend=safe_div(current.spend - previous.spend, previous.spend),
        impressions=safe_div(
            current.impressions - previous.impressions, previous.impressions
        ),
        clicks=safe_div(current.clicks - previous.clicks, previous.clicks),
        conversions=safe_div(
            current.conversions - previous.conversions, previous.conversions
        ),
        revenue=safe_div(current.revenue - previous.revenue, previous.revenue),
    )


def growth_rate(records: Sequence[MetricRecord], days: int) -> GrowthRateResult:
    """Period-over-period growth; all None when there is no previous period."""
    current, previous = split_by_period(records, days)
    if not previous:
        return GrowthRateResult()
    return calculate_growth(calculate_totals(current), calculate_totals(previous))


def calculate_kpis(totals: MetricTotals) -> CustomKPIs:
    profit = totals.revenue - totals.spend
    return CustomKPIs(
        cpa=safe_div(totals.spend, totals.conversions),
        roas=safe_div(totals.revenue, totals.spend),
        ctr=safe_div(totals.clicks, totals.impressions),
        cpc=safe_div(totals.spend, totals.clicks),
        cpm=safe_div(totals.spend * 1000, totals.impressions),
        conversion_rate=safe_div(totals.conversions, totals.clicks),
        revenue_per_click=safe_div(totals.revenue, totals.clicks),
        profit=profit,
        profit_margin=safe_div(profit, totals.revenue),
    )


def metric_inputs(totals: MetricTotals) -> Dict[str, float]:
    """Totals and KPIs as formula inputs. Undefined KPIs are left out."""
    kpis = calculate_kpis(totals)
    values: Dict[str, float] = totals.model_dump(exclude={"days"})
    values.update({k: v for k, v in kpis.model_dump().items() if v is not None})
    return values


def execute_formula(
    formula: str, totals: MetricTotals, profile: FormulaProfile = DEFAULT_PROFILE
) -> Optional[float]:
    """Evaluate a custom formula against aggregated totals."""
    return evaluate_formula(formula, metric_inputs(totals), profile)


def compute_derived_metrics(
    records: Sequence[MetricRecord], provider_id: Optional[str] = None
) -> DerivedMetrics:
    """Compute all derived metrics, optionally for a single provider."""
    filtered = filter_by_provider(records, provider_id)
    totals = calculate_totals(filtered)

    derived = DerivedMetrics(
        moving_average_7d=moving_average(filtered, SHORT_WINDOW_DAYS),
        moving_average_30d=moving_average(filtered, LONG_WINDOW_DAYS),
        growth_week_over_week=growth_rate(filtered, SHORT_WINDOW_DAYS),
        growth_month_over_month=growth_rate(filtered, LONG_WINDOW_DAYS),
        kpis=calculate_kpis(totals),
        totals=totals,
    )
    logger.debug(
        f"Derived metrics over {totals.days} records (provider={provider_id or 'all'})"
    )
    return derived
