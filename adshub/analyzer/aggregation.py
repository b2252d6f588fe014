"""Ads Hub — Aggregation Primitives.

Shared by the derived-metrics, comparison, benchmark and alert engines.
Every division in those engines goes through ``safe_div``.
"""

import math
from typing import Dict, Iterable, List, Optional, Tuple

from adshub.models.analysis_models import MetricTotals
from adshub.models.record_models import DateRange, MetricRecord


def safe_div(numerator: float, denominator: float) -> Optional[float]:
    """Divide, returning None instead of NaN/Infinity."""
    if denominator == 0 or not math.isfinite(denominator):
        return None
    try:
        result = numerator / denominator
    except OverflowError:
        return None
    return result if math.isfinite(result) else None


def calculate_totals(records: Iterable[MetricRecord]) -> MetricTotals:
    """Sum raw counters; absent revenue counts as 0."""
    totals = MetricTotals()
    for r in records:
        totals.spend += r.spend
        totals.impressions += r.impressions
        totals.clicks += r.clicks
        totals.conversions += r.conversions
        totals.revenue += r.revenue or 0.0
        totals.days += 1
    return totals


def sort_by_date_desc(records: Iterable[MetricRecord]) -> List[MetricRecord]:
    """Most recent first; equal dates keep their input order."""
    return sorted(records, key=lambda r: r.date, reverse=True)


def filter_by_date_range(
    records: Iterable[MetricRecord], date_range: DateRange
) -> List[MetricRecord]:
    """Records with ``start <= date <= end``."""
    return [r for r in records if date_range.start <= r.date <= date_range.end]


def filter_by_provider(
    records: Iterable[MetricRecord], provider_id: Optional[str]
) -> List[MetricRecord]:
    if not provider_id:
        return list(records)
    return [r for r in records if r.provider_id == provider_id]


def dedupe_records(records: Iterable[MetricRecord]) -> List[MetricRecord]:
    """Keep one record per (provider, account, date).

    A later ``created_at`` replaces an earlier one, and a timestamped record
    replaces an untimestamped one. Otherwise the first seen is kept.
    """
    unique: Dict[Tuple[str, str, object], MetricRecord] = {}
    for r in records:
        key = (r.provider_id, r.account_id or "", r.date)
        existing = unique.get(key)
        if existing is None:
            unique[key] = r
        elif r.created_at and not existing.created_at:
            unique[key] = r
        elif r.created_at and existing.created_at:
            if r.created_at > existing.created_at:
                unique[key] = r
    return list(unique.values())
