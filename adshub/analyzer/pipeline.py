"""Ads Hub — Snapshot Pipeline.

Runs the derived-metrics flow over stored records:
  load + dedupe records → compute DerivedMetrics → store versioned snapshot

One snapshot covers all providers; ``run_snapshots`` also stores one per
provider.
"""

from typing import List, Optional

from sqlmodel import Session, select

from adshub.config import settings
from adshub.analyzer.derived_engine import compute_derived_metrics
from adshub.models.analysis_models import DerivedSnapshot
from adshub.models.record_models import AdMetric
from adshub.services.metric_store import load_records
from adshub.core.logging import get_logger

logger = get_logger("analyzer.pipeline")

SNAPSHOT_SCHEMA_VERSION = settings.snapshot_schema_version


def build_snapshot(
    session: Session, provider_id: Optional[str] = None
) -> DerivedSnapshot:
    """Compute and store a DerivedMetrics snapshot."""
    records = load_records(session, provider_id=provider_id)
    derived = compute_derived_metrics(records)

    snapshot = DerivedSnapshot(
        schema_version=SNAPSHOT_SCHEMA_VERSION,
        provider_id=provider_id or "",
        date_range_start=records[-1].date.isoformat() if records else "",
        date_range_end=records[0].date.isoformat() if records else "",
        record_count=len(records),
        result_json=derived.model_dump_json(),
    )
    session.add(snapshot)
    session.commit()
    session.refresh(snapshot)

    logger.info(
        f"Snapshot {snapshot.id} stored for {provider_id or 'all providers'} "
        f"({len(records)} records)",
        extra={"provider_id": provider_id or "", "record_count": len(records)},
    )
    return snapshot


def run_snapshots(session: Session) -> List[DerivedSnapshot]:
    """Store the blended snapshot plus one per provider."""
    providers = session.exec(select(AdMetric.provider_id).distinct()).all()
    snapshots = [build_snapshot(session)]
    for provider_id in sorted(providers):
        snapshots.append(build_snapshot(session, provider_id))
    return snapshots


def latest_snapshot(
    session: Session, provider_id: Optional[str] = None
) -> Optional[DerivedSnapshot]:
    query = (
        select(DerivedSnapshot)
        .where(DerivedSnapshot.provider_id == (provider_id or ""))
        .order_by(DerivedSnapshot.id.desc())  # type: ignore
        .limit(1)
    )
    return session.exec(query).first()
