"""Ads Hub — Unified Metric Registry.

Defines the canonical set of metrics, their classifications, and the
formula profiles custom metrics are validated and evaluated against.
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, List

from pydantic import BaseModel


class MetricType(str, Enum):
    """How a metric is categorised."""

    VOLUME = "volume"  # Raw counts: impressions, clicks, conversions
    COST = "cost"  # Monetary: spend
    REVENUE = "revenue"  # Income: revenue
    DERIVED = "derived"  # Computed by the engines: ctr, roas, cpa


class MetricDefinition:
    """Describes a single metric."""

    def __init__(
        self, name: str, metric_type: MetricType, unit: str = "", description: str = ""
    ):
        self.name = name
        self.metric_type = metric_type
        self.unit = unit
        self.description = description

    def __repr__(self) -> str:
        return f"<Metric {self.name} ({self.metric_type.value})>"


# ─────────────────────────────────────────────
# BASE METRICS: Synced from every ad platform
# ─────────────────────────────────────────────

BASE_METRICS: Dict[str, MetricDefinition] = {
    "spend": MetricDefinition(
        "spend", MetricType.COST, "currency", "Total amount spent"
    ),
    "impressions": MetricDefinition(
        "impressions", MetricType.VOLUME, "count", "Number of times ad was shown"
    ),
    "clicks": MetricDefinition("clicks", MetricType.VOLUME, "count", "Total clicks"),
    "conversions": MetricDefinition(
        "conversions", MetricType.VOLUME, "count", "Attributed conversions"
    ),
    "revenue": MetricDefinition(
        "revenue", MetricType.REVENUE, "currency", "Attributed conversion value"
    ),
}


# ─────────────────────────────────────────────
# DERIVED METRICS: Computed by analyzer engines
# ─────────────────────────────────────────────

DERIVED_METRICS: Dict[str, MetricDefinition] = {
    "ctr": MetricDefinition("ctr", MetricType.DERIVED, "ratio", "Clicks / Impressions"),
    "cpc": MetricDefinition("cpc", MetricType.DERIVED, "currency", "Cost per click"),
    "cpm": MetricDefinition(
        "cpm", MetricType.DERIVED, "currency", "Cost per 1000 impressions"
    ),
    "roas": MetricDefinition("roas", MetricType.DERIVED, "ratio", "Return on ad spend"),
    "cpa": MetricDefinition(
        "cpa", MetricType.DERIVED, "currency", "Cost per acquisition"
    ),
    "conversion_rate": MetricDefinition(
        "conversion_rate", MetricType.DERIVED, "ratio", "Conversions / Clicks"
    ),
    "revenue_per_click": MetricDefinition(
        "revenue_per_click", MetricType.DERIVED, "currency", "Revenue / Clicks"
    ),
    "profit": MetricDefinition(
        "profit", MetricType.DERIVED, "currency", "Revenue - Spend"
    ),
    "profit_margin": MetricDefinition(
        "profit_margin", MetricType.DERIVED, "ratio", "Profit / Revenue"
    ),
}


# ─────────────────────────────────────────────
# FORMULA PROFILES: Vocabulary for custom metrics
# ─────────────────────────────────────────────

SUPPORTED_FUNCTIONS = ("abs", "min", "max", "round", "floor", "ceil")

KNOWN_METRICS = (
    "spend",
    "impressions",
    "clicks",
    "conversions",
    "revenue",
    "ctr",
    "cpc",
    "cpm",
    "roas",
    "cpa",
)


class FormulaProfile(BaseModel):
    """Allowed functions and metric vocabulary for custom formulas.

    Passed into the validator and evaluator so several vocabularies
    (e.g. per tenant) can coexist.
    """

    functions: FrozenSet[str] = frozenset(SUPPORTED_FUNCTIONS)
    known_metrics: FrozenSet[str] = frozenset(KNOWN_METRICS)

    model_config = {"frozen": True}

    def is_function(self, name: str) -> bool:
        return name.lower() in self.functions

    def unknown_inputs(self, inputs: Iterable[str]) -> List[str]:
        """Names not in the known vocabulary. Advisory only."""
        return [name for name in inputs if name not in self.known_metrics]


DEFAULT_PROFILE = FormulaProfile()


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────

ALL_METRICS = {**BASE_METRICS, **DERIVED_METRICS}


def get_metric(name: str) -> MetricDefinition | None:
    """Look up a metric by name."""
    return ALL_METRICS.get(name)


def metrics_by_type(metric_type: MetricType) -> list[MetricDefinition]:
    """Return all metrics of a given type."""
    return [m for m in ALL_METRICS.values() if m.metric_type == metric_type]
