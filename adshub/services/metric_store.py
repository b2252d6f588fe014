"""Ads Hub — Metric Record Store.

Rows are append-only: a re-synced day is a new row with a newer
``created_at``, resolved by deduplication when records are loaded.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlmodel import Session, select

from adshub.analyzer.aggregation import dedupe_records, sort_by_date_desc
from adshub.models.record_models import AdMetric, DateRange, MetricRecord
from adshub.core.logging import get_logger

logger = get_logger("services.metrics")


def ingest_records(session: Session, records: Sequence[MetricRecord]) -> int:
    """Store a synced batch. Records without ``created_at`` are stamped now."""
    synced_at = datetime.now(timezone.utc)
    for r in records:
        session.add(
            AdMetric(
                record_id=r.id,
                provider_id=r.provider_id,
                account_id=r.account_id,
                date=r.date,
                spend=r.spend,
                impressions=r.impressions,
                clicks=r.clicks,
                conversions=r.conversions,
                revenue=r.revenue,
                created_at=r.created_at or synced_at,
            )
        )
    session.commit()
    logger.info(
        f"Ingested {len(records)} metric records",
        extra={"record_count": len(records)},
    )
    return len(records)


def load_records(
    session: Session,
    provider_id: Optional[str] = None,
    date_range: Optional[DateRange] = None,
) -> List[MetricRecord]:
    """Deduplicated records, most recent date first."""
    query = select(AdMetric)
    if provider_id:
        query = query.where(AdMetric.provider_id == provider_id)
    if date_range is not None:
        query = query.where(
            AdMetric.date >= date_range.start,
            AdMetric.date <= date_range.end,
        )
    query = query.order_by(AdMetric.pk)  # type: ignore

    rows = session.exec(query).all()
    return sort_by_date_desc(dedupe_records(row.to_record() for row in rows))
