"""Ads Hub — Daily Metric Record Models.

One record is one day of performance for one provider/account. Every
platform sync normalizes into this shape. Re-synced days are stored as new
rows and resolved at read time (see ``aggregation.dedupe_records``).
"""

import datetime as dt
from typing import Optional
from sqlmodel import SQLModel, Field


class MetricRecordBase(SQLModel):
    """Fields shared by the stored row and the in-memory record."""

    provider_id: str = Field(
        index=True, description="google | meta | linkedin | tiktok"
    )
    account_id: Optional[str] = Field(
        default=None, index=True, description="Ad account on the provider"
    )
    date: dt.date = Field(index=True, description="YYYY-MM-DD, one day")
    spend: float = Field(default=0.0, ge=0)
    impressions: float = Field(default=0.0, ge=0)
    clicks: float = Field(default=0.0, ge=0)
    conversions: float = Field(default=0.0, ge=0)
    revenue: Optional[float] = Field(
        default=None, ge=0, description="Absent means not tracked; aggregates as 0"
    )
    created_at: Optional[dt.datetime] = Field(
        default=None, description="When the row was synced; newest wins on duplicates"
    )


class MetricRecord(MetricRecordBase):
    """A daily metric record as consumed by the analyzer engines."""

    id: str


class AdMetric(MetricRecordBase, table=True):
    """Stored daily metric row."""

    __tablename__ = "ad_metrics"

    pk: Optional[int] = Field(default=None, primary_key=True)
    record_id: str = Field(index=True, description="Source record identifier")

    def to_record(self) -> MetricRecord:
        return MetricRecord(
            id=self.record_id,
            provider_id=self.provider_id,
            account_id=self.account_id,
            date=self.date,
            spend=self.spend,
            impressions=self.impressions,
            clicks=self.clicks,
            conversions=self.conversions,
            revenue=self.revenue,
            created_at=self.created_at,
        )


class DateRange(SQLModel):
    """Inclusive calendar date range."""

    start: dt.date
    end: dt.date
