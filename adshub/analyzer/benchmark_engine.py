"""Ads Hub — Benchmark Engine.

Produces the benchmarks shown next to each KPI:
- Historical: median of per-day blended KPIs, falling back to fixed values
- Cross-platform: each provider vs the blended (all-provider) average
- Industry: provider ROAS vs a per-provider industry baseline
"""

from collections import defaultdict
from statistics import median
from typing import Dict, List, Optional, Sequence

from adshub.analyzer.aggregation import calculate_totals, safe_div
from adshub.analyzer.comparison_engine import calculate_delta_percent
from adshub.models.analysis_models import (
    BenchmarksSummary,
    IndustryRoasComparison,
    MetricBenchmark,
    MetricTotals,
    PlatformBenchmark,
)
from adshub.models.record_models import MetricRecord
from adshub.core.logging import get_logger

logger = get_logger("analyzer.benchmark")

# Ratio units (CTR as a 0-1 fraction)
FALLBACK_BENCHMARKS: Dict[str, float] = {
    "cpa": 50.0,
    "roas": 3.0,
    "ctr": 0.02,
    "cpc": 2.0,
    "cpm": 10.0,
    "conversion_rate": 0.03,
    "profit_margin": 0.2,
}

# Conservative placeholders; adjust per vertical
INDUSTRY_ROAS_BY_PROVIDER: Dict[str, float] = {
    "google": 3.0,
    "meta": 2.5,
    "facebook": 2.5,
    "linkedin": 3.0,
    "tiktok": 2.0,
}

PLATFORM_METRICS = ("roas", "cpa", "ctr", "cpc")


def _benchmark_kpis(totals: MetricTotals) -> Dict[str, Optional[float]]:
    return {
        "cpa": safe_div(totals.spend, totals.conversions),
        "roas": safe_div(totals.revenue, totals.spend),
        "ctr": safe_div(totals.clicks, totals.impressions),
        "cpc": safe_div(totals.spend, totals.clicks),
        "cpm": safe_div(totals.spend * 1000, totals.impressions),
        "conversion_rate": safe_div(totals.conversions, totals.clicks),
        "profit_margin": safe_div(totals.revenue - totals.spend, totals.revenue),
    }


def _group(records: Sequence[MetricRecord], key: str) -> Dict[str, List[MetricRecord]]:
    grouped: Dict[str, List[MetricRecord]] = defaultdict(list)
    for r in records:
        grouped[str(getattr(r, key))].append(r)
    return grouped


def historical_benchmarks(records: Sequence[MetricRecord]) -> List[MetricBenchmark]:
    """Median of each KPI over per-day blended totals, else the fallback."""
    daily: Dict[str, List[float]] = defaultdict(list)
    for day_records in _group(records, "date").values():
        for metric, value in _benchmark_kpis(calculate_totals(day_records)).items():
            if value is not None:
                daily[metric].append(value)

    benchmarks: List[MetricBenchmark] = []
    for metric, fallback in FALLBACK_BENCHMARKS.items():
        values = daily.get(metric)
        value = median(values) if values else None
        if value is not None and value > 0:
            benchmarks.append(
                MetricBenchmark(metric=metric, value=value, source="historical_median")
            )
        else:
            benchmarks.append(
                MetricBenchmark(metric=metric, value=fallback, source="fallback")
            )
    return benchmarks


def calculate_platform_benchmarks(
    records: Sequence[MetricRecord],
) -> List[PlatformBenchmark]:
    """Each provider's KPIs and percent difference from the blended average."""
    if not records:
        return []

    blended = _benchmark_kpis(calculate_totals(records))
    results: List[PlatformBenchmark] = []
    for provider_id, provider_records in _group(records, "provider_id").items():
        kpis = _benchmark_kpis(calculate_totals(provider_records))
        metrics = {m: kpis[m] for m in PLATFORM_METRICS}
        vs_blended = {
            m: (
                calculate_delta_percent(kpis[m], blended[m])
                if kpis[m] is not None and blended[m] is not None
                else None
            )
            for m in PLATFORM_METRICS
        }
        results.append(
            PlatformBenchmark(
                provider_id=provider_id, metrics=metrics, vs_blended_average=vs_blended
            )
        )
    return results


def industry_roas_comparisons(
    records: Sequence[MetricRecord],
) -> List[IndustryRoasComparison]:
    comparisons: List[IndustryRoasComparison] = []
    for provider_id, provider_records in _group(records, "provider_id").items():
        totals = calculate_totals(provider_records)
        roas = safe_div(totals.revenue, totals.spend)
        industry = INDUSTRY_ROAS_BY_PROVIDER.get(provider_id)
        vs_industry = (
            calculate_delta_percent(roas, industry)
            if roas is not None and industry is not None
            else None
        )
        comparisons.append(
            IndustryRoasComparison(
                provider_id=provider_id,
                roas=roas,
                industry_roas=industry,
                vs_industry_percent=vs_industry,
            )
        )
    return comparisons


def calculate_benchmarks(records: Sequence[MetricRecord]) -> BenchmarksSummary:
    """Compute all benchmark views for a record collection."""
    summary = BenchmarksSummary(
        benchmarks=historical_benchmarks(records),
        platform_benchmarks=calculate_platform_benchmarks(records),
        roas_industry_comparisons=industry_roas_comparisons(records),
    )
    historical = sum(1 for b in summary.benchmarks if b.source == "historical_median")
    logger.info(
        f"Benchmarks: {historical}/{len(summary.benchmarks)} historical, "
        f"{len(summary.platform_benchmarks)} platforms"
    )
    return summary
