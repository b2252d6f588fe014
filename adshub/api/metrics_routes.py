"""Ads Hub — Metrics API Routes."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from adshub.database import get_session
from adshub.analyzer.benchmark_engine import calculate_benchmarks
from adshub.analyzer.comparison_engine import (
    compare_date_ranges,
    compare_providers,
    period_comparison,
    provider_breakdown,
)
from adshub.analyzer.derived_engine import compute_derived_metrics
from adshub.models.analysis_models import (
    BenchmarksSummary,
    DerivedMetrics,
    ProviderComparison,
    ProviderMetrics,
    RangeComparison,
    PeriodComparison,
)
from adshub.models.record_models import DateRange, MetricRecord
from adshub.services.metric_store import ingest_records, load_records
from adshub.core.logging import get_logger

logger = get_logger("api.metrics")

router = APIRouter(prefix="/metrics", tags=["Metrics"])


# ── Request / Response Models ──


class IngestRequest(BaseModel):
    """Request body for POST /metrics/records."""

    records: List[MetricRecord]

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "records": [
                        {
                            "id": "google-2026-02-01",
                            "provider_id": "google",
                            "date": "2026-02-01",
                            "spend": 120.5,
                            "impressions": 15000,
                            "clicks": 310,
                            "conversions": 12,
                            "revenue": 640.0,
                        }
                    ]
                }
            ]
        }
    }


class IngestResponse(BaseModel):
    status: str = "success"
    ingested: int


class RecordsResponse(BaseModel):
    status: str = "success"
    count: int
    records: List[MetricRecord]


class CompareRangesRequest(BaseModel):
    """Request body for POST /metrics/compare/ranges."""

    range_a: DateRange
    range_b: DateRange
    provider_id: Optional[str] = None


def _date_range(
    start_date: Optional[date], end_date: Optional[date]
) -> Optional[DateRange]:
    if start_date is None and end_date is None:
        return None
    if start_date is None or end_date is None:
        raise HTTPException(
            status_code=400, detail="start_date and end_date must be given together"
        )
    if start_date > end_date:
        logger.warning(f"Rejected date range {start_date} to {end_date}")
        raise HTTPException(status_code=400, detail="start_date is after end_date")
    return DateRange(start=start_date, end=end_date)


# ── Endpoints ──


@router.post("/records", response_model=IngestResponse)
async def post_records(
    request: IngestRequest,
    session: Session = Depends(get_session),
):
    """Store a batch of synced daily records."""
    count = ingest_records(session, request.records)
    return IngestResponse(ingested=count)


@router.get("/records", response_model=RecordsResponse)
async def get_records(
    provider_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    session: Session = Depends(get_session),
):
    """Deduplicated records, most recent first."""
    records = load_records(session, provider_id, _date_range(start_date, end_date))
    return RecordsResponse(count=len(records), records=records)


@router.get("/derived", response_model=DerivedMetrics)
async def get_derived_metrics(
    provider_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    session: Session = Depends(get_session),
):
    """Moving averages, growth rates and KPIs over the stored records."""
    records = load_records(session, date_range=_date_range(start_date, end_date))
    return compute_derived_metrics(records, provider_id=provider_id)


@router.get("/compare/period", response_model=Optional[PeriodComparison])
async def get_period_comparison(
    start_date: date = Query(..., description="YYYY-MM-DD"),
    end_date: date = Query(..., description="YYYY-MM-DD"),
    provider_id: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Current range vs the equal-length range before it.

    Returns null when the current range has no data.
    """
    date_range = _date_range(start_date, end_date)
    records = load_records(session, provider_id=provider_id)
    return period_comparison(records, date_range)


@router.post("/compare/ranges", response_model=Optional[RangeComparison])
async def post_compare_ranges(
    request: CompareRangesRequest,
    session: Session = Depends(get_session),
):
    """Compare two arbitrary date ranges. Null when neither has data."""
    records = load_records(session, provider_id=request.provider_id)
    return compare_date_ranges(records, request.range_a, request.range_b)


@router.get("/compare/providers", response_model=Optional[ProviderComparison])
async def get_provider_comparison(
    provider_a: str = Query(...),
    provider_b: str = Query(...),
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    session: Session = Depends(get_session),
):
    """Compare two providers. Null when either has no data."""
    records = load_records(session)
    return compare_providers(
        records, provider_a, provider_b, _date_range(start_date, end_date)
    )


@router.get("/providers", response_model=List[ProviderMetrics])
async def get_provider_breakdown(
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    session: Session = Depends(get_session),
):
    """Per-provider aggregates, sorted by spend for display."""
    breakdown = provider_breakdown(
        load_records(session), _date_range(start_date, end_date)
    )
    rows = [ProviderMetrics(provider_id=pid, metrics=m) for pid, m in breakdown.items()]
    return sorted(rows, key=lambda row: row.metrics.spend, reverse=True)


@router.get("/benchmarks", response_model=BenchmarksSummary)
async def get_benchmarks(
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    session: Session = Depends(get_session),
):
    """Historical, cross-platform and industry benchmarks."""
    records = load_records(session, date_range=_date_range(start_date, end_date))
    return calculate_benchmarks(records)
