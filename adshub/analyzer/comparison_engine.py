"""Ads Hub — Comparison Engine.

Aggregates records over date ranges or providers and computes deltas:
- current period vs the equal-length period before it
- two arbitrary date ranges
- two providers
"""

from datetime import timedelta
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from adshub.analyzer.aggregation import calculate_totals, filter_by_date_range, safe_div
from adshub.models.analysis_models import (
    AggregatedMetrics,
    MetricsDelta,
    PeriodComparison,
    ProviderComparison,
    RangeComparison,
)
from adshub.models.record_models import DateRange, MetricRecord
from adshub.core.logging import get_logger

logger = get_logger("analyzer.comparison")

RAW_FIELDS = ("spend", "impressions", "clicks", "conversions", "revenue")
RATIO_FIELDS = ("ctr", "cpc", "roas", "cpa")


def aggregate_metrics(records: Sequence[MetricRecord]) -> AggregatedMetrics:
    totals = calculate_totals(records)
    return AggregatedMetrics(
        **totals.model_dump(),
        ctr=safe_div(totals.clicks, totals.impressions),
        cpc=safe_div(totals.spend, totals.clicks),
        roas=safe_div(totals.revenue, totals.spend),
        cpa=safe_div(totals.spend, totals.conversions),
    )


def calculate_delta(current: float, previous: float) -> float:
    return current - previous


def calculate_delta_percent(current: float, previous: float) -> Optional[float]:
    """Percent change; None when the previous value is 0."""
    if previous == 0:
        return None
    return (current - previous) / previous * 100


def metrics_delta(
    current: AggregatedMetrics, previous: AggregatedMetrics
) -> MetricsDelta:
    values: Dict[str, Optional[float]] = {}
    for field in RAW_FIELDS:
        values[field] = calculate_delta(
            getattr(current, field), getattr(previous, field)
        )
    for field in RATIO_FIELDS:
        a, b = getattr(current, field), getattr(previous, field)
        values[field] = (
            calculate_delta(a, b) if a is not None and b is not None else None
        )
    return MetricsDelta(**values)


def metrics_delta_percent(
    current: AggregatedMetrics, previous: AggregatedMetrics
) -> MetricsDelta:
    values: Dict[str, Optional[float]] = {}
    for field in RAW_FIELDS:
        values[field] = calculate_delta_percent(
            getattr(current, field), getattr(previous, field)
        )
    for field in RATIO_FIELDS:
        a, b = getattr(current, field), getattr(previous, field)
        values[field] = (
            calculate_delta_percent(a, b) if a is not None and b is not None else None
        )
    return MetricsDelta(**values)


def previous_date_range(date_range: DateRange) -> DateRange:
    """The range ending the day before ``date_range`` starts.

    Both ranges cover the same number of inclusive days: Feb 8-14 maps to
    Feb 1-7, and a single day maps to the day before.
    """
    duration = date_range.end - date_range.start
    end = date_range.start - timedelta(days=1)
    return DateRange(start=end - duration, end=end)


def period_comparison(
    records: Sequence[MetricRecord], date_range: DateRange
) -> Optional[PeriodComparison]:
    """Compare a range with the one before it. None when the range has no records."""
    current_records = filter_by_date_range(records, date_range)
    if not current_records:
        return None

    prev_range = previous_date_range(date_range)
    current = aggregate_metrics(current_records)
    previous = aggregate_metrics(filter_by_date_range(records, prev_range))

    return PeriodComparison(
        current_range=date_range,
        previous_range=prev_range,
        current=current,
        previous=previous,
        delta=metrics_delta(current, previous),
        delta_percent=metrics_delta_percent(current, previous),
    )


def compare_date_ranges(
    records: Sequence[MetricRecord], range_a: DateRange, range_b: DateRange
) -> Optional[RangeComparison]:
    """Compare two ranges. None when neither has records."""
    records_a = filter_by_date_range(records, range_a)
    records_b = filter_by_date_range(records, range_b)
    if not records_a and not records_b:
        return None

    a = aggregate_metrics(records_a)
    b = aggregate_metrics(records_b)
    return RangeComparison(
        a=a,
        b=b,
        delta=metrics_delta(a, b),
        delta_percent=metrics_delta_percent(a, b),
    )


def provider_breakdown(
    records: Sequence[MetricRecord], date_range: Optional[DateRange] = None
) -> Dict[str, AggregatedMetrics]:
    """Aggregate per provider. The mapping carries no ordering guarantee."""
    if date_range is not None:
        records = filter_by_date_range(records, date_range)

    by_provider: Dict[str, List[MetricRecord]] = defaultdict(list)
    for r in records:
        by_provider[r.provider_id].append(r)

    breakdown = {pid: aggregate_metrics(rows) for pid, rows in by_provider.items()}
    logger.debug(f"Aggregated {len(breakdown)} providers")
    return breakdown


def compare_providers(
    records: Sequence[MetricRecord],
    provider_a: str,
    provider_b: str,
    date_range: Optional[DateRange] = None,
) -> Optional[ProviderComparison]:
    """Compare two providers. None when either has no records."""
    breakdown = provider_breakdown(records, date_range)
    a = breakdown.get(provider_a)
    b = breakdown.get(provider_b)
    if a is None or b is None:
        return None

    return ProviderComparison(
        provider_a=provider_a,
        provider_b=provider_b,
        a=a,
        b=b,
        delta=metrics_delta(a, b),
        delta_percent=metrics_delta_percent(a, b),
    )
