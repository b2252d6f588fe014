"""Ads Hub — Snapshot API Routes."""

import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from adshub.database import get_session
from adshub.analyzer.pipeline import latest_snapshot, run_snapshots
from adshub.core.logging import get_logger

logger = get_logger("api.snapshots")

router = APIRouter(prefix="/snapshots", tags=["Snapshots"])


@router.post("/run")
async def trigger_snapshots(session: Session = Depends(get_session)):
    """Store derived-metric snapshots now instead of waiting for the scheduler."""
    try:
        snapshots = run_snapshots(session)
    except Exception as e:
        logger.error(f"Snapshot run failed: {e}")
        raise HTTPException(status_code=500, detail=f"Snapshot run failed: {str(e)}")

    return {
        "status": "success",
        "count": len(snapshots),
        "snapshots": [
            {
                "id": s.id,
                "provider_id": s.provider_id or None,
                "record_count": s.record_count,
            }
            for s in snapshots
        ],
    }


@router.get("/latest")
async def get_latest_snapshot(
    provider_id: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Most recent snapshot, blended unless a provider is given."""
    snapshot = latest_snapshot(session, provider_id)
    if not snapshot:
        return {"status": "no_data", "message": "No snapshot has been stored yet."}

    return {
        "status": "success",
        "id": snapshot.id,
        "created_at": snapshot.created_at.isoformat(),
        "schema_version": snapshot.schema_version,
        "provider_id": snapshot.provider_id or None,
        "date_range": {
            "start": snapshot.date_range_start,
            "end": snapshot.date_range_end,
        },
        "record_count": snapshot.record_count,
        "derived": json.loads(snapshot.result_json),
    }
