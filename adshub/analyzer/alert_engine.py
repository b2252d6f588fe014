"""Ads Hub — Alert Engine.

Evaluates alert rules against the daily metric series:
- Threshold: current value crosses a fixed value
- Anomaly: current value deviates from the N-day baseline average
- Trend: N consecutive day-over-day moves in one direction

Rules can watch a built-in metric or a custom formula. A value that
cannot be computed never triggers an alert.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from adshub.config import settings
from adshub.analyzer.aggregation import calculate_totals, safe_div
from adshub.formula.evaluator import evaluate_formula
from adshub.models.alert_models import (
    AlertEvaluationResult,
    AlertMetric,
    AlertResult,
    AlertRule,
    AnomalyCondition,
    DailyMetricData,
    ThresholdCondition,
    TrendCondition,
)
from adshub.models.record_models import MetricRecord
from adshub.core.logging import get_logger

logger = get_logger("analyzer.alert")

OPERATOR_TEXT = {
    "gt": "greater than",
    "lt": "less than",
    "gte": "greater than or equal to",
    "lte": "less than or equal to",
    "eq": "equal to",
}

CURRENCY_METRICS = {
    AlertMetric.SPEND,
    AlertMetric.REVENUE,
    AlertMetric.CPC,
    AlertMetric.CPA,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_daily_series(records: Sequence[MetricRecord]) -> List[DailyMetricData]:
    """Sum records per date, oldest first."""
    by_date: Dict[object, List[MetricRecord]] = defaultdict(list)
    for r in records:
        by_date[r.date].append(r)

    series: List[DailyMetricData] = []
    for day in sorted(by_date):
        totals = calculate_totals(by_date[day])
        series.append(
            DailyMetricData(
                date=day,
                spend=totals.spend,
                impressions=totals.impressions,
                clicks=totals.clicks,
                conversions=totals.conversions,
                revenue=totals.revenue,
                ctr=safe_div(totals.clicks, totals.impressions),
                cpc=safe_div(totals.spend, totals.clicks),
                roas=safe_div(totals.revenue, totals.spend),
                cpa=safe_div(totals.spend, totals.conversions),
            )
        )
    return series


def metric_value(
    data: DailyMetricData, rule: AlertRule, formula: Optional[str] = None
) -> Optional[float]:
    """The watched value for one day; None when it cannot be computed."""
    if rule.metric == AlertMetric.CUSTOM_FORMULA:
        if not formula:
            return None
        inputs = {
            k: v for k, v in data.model_dump(exclude={"date"}).items() if v is not None
        }
        return evaluate_formula(formula, inputs)
    return getattr(data, rule.metric.value)


def compare_values(value: float, operator: str, threshold: float) -> bool:
    if operator == "gt":
        return value > threshold
    if operator == "lt":
        return value < threshold
    if operator == "gte":
        return value >= threshold
    if operator == "lte":
        return value <= threshold
    if operator == "eq":
        return value == threshold
    return False


def format_metric_value(metric: AlertMetric, value: float) -> str:
    if metric in CURRENCY_METRICS:
        if settings.default_currency == "USD":
            return f"${value:.2f}"
        return f"{value:.2f} {settings.default_currency}"
    if metric in (AlertMetric.CTR, AlertMetric.ROAS, AlertMetric.CUSTOM_FORMULA):
        return f"{value:.2f}"
    return str(round(value))


def _label(rule: AlertRule) -> str:
    if rule.metric == AlertMetric.CUSTOM_FORMULA:
        return rule.name
    return rule.metric.value.upper()


def _result(rule: AlertRule, triggered: bool, message: str, **fields) -> AlertResult:
    return AlertResult(
        rule_id=rule.id,
        rule_name=rule.name,
        triggered=triggered,
        severity=rule.severity,
        metric=rule.metric,
        message=message,
        formula_id=rule.formula_id,
        timestamp=_now(),
        **fields,
    )


def evaluate_threshold_rule(
    rule: AlertRule, current: DailyMetricData, formula: Optional[str] = None
) -> AlertResult:
    condition: ThresholdCondition = rule.condition
    value = metric_value(current, rule, formula)
    if value is None:
        return _result(
            rule,
            False,
            f"{_label(rule)} cannot be evaluated for {current.date}",
            threshold=condition.value,
        )

    triggered = compare_values(value, condition.operator, condition.value)
    if triggered:
        message = (
            f"{_label(rule)} ({format_metric_value(rule.metric, value)}) is "
            f"{OPERATOR_TEXT[condition.operator]} "
            f"{format_metric_value(rule.metric, condition.value)}"
        )
    else:
        message = f"{_label(rule)} is within threshold"
    return _result(
        rule, triggered, message, current_value=value, threshold=condition.value
    )


def evaluate_anomaly_rule(
    rule: AlertRule,
    current: DailyMetricData,
    history: Sequence[DailyMetricData],
    formula: Optional[str] = None,
) -> AlertResult:
    condition: AnomalyCondition = rule.condition
    value = metric_value(current, rule, formula)
    if value is None:
        return _result(
            rule, False, f"{_label(rule)} cannot be evaluated for {current.date}"
        )

    window = history[-condition.baseline_days :]
    values = (metric_value(d, rule, formula) for d in window)
    baseline = [v for v in values if v is not None]
    average = sum(baseline) / len(baseline) if baseline else 0.0
    if average == 0:
        return _result(
            rule,
            False,
            "Insufficient baseline data for anomaly detection",
            current_value=value,
            average=0.0,
        )

    upper = average * condition.deviation_multiplier
    lower = average / condition.deviation_multiplier
    deviation = (value - average) / average * 100

    if condition.direction == "above":
        triggered = value > upper
    elif condition.direction == "below":
        triggered = value < lower
    else:
        triggered = value > upper or value < lower

    if triggered:
        message = (
            f"{_label(rule)} ({format_metric_value(rule.metric, value)}) is "
            f"{abs(deviation):.1f}% {'above' if deviation > 0 else 'below'} the "
            f"{condition.baseline_days}-day average "
            f"({format_metric_value(rule.metric, average)})"
        )
    else:
        message = f"{_label(rule)} is within normal range"
    return _result(
        rule,
        triggered,
        message,
        current_value=value,
        average=average,
        deviation_percent=deviation,
    )


def evaluate_trend_rule(
    rule: AlertRule, series: Sequence[DailyMetricData], formula: Optional[str] = None
) -> AlertResult:
    """``series`` is oldest first and ends with the current day."""
    condition: TrendCondition = rule.condition
    needed = condition.consecutive_periods + 1
    if len(series) < needed:
        current = metric_value(series[-1], rule, formula) if series else None
        return _result(
            rule,
            False,
            f"Insufficient data for trend detection (need {needed} days)",
            current_value=current,
        )

    recent = [metric_value(d, rule, formula) for d in series[-needed:]]
    consecutive = 0
    for prev, curr in zip(recent, recent[1:]):
        if prev is None or curr is None or prev == 0:
            continue
        change = (curr - prev) / prev * 100
        if condition.direction == "increasing":
            hit = change >= condition.min_change_percent
        else:
            hit = change <= -condition.min_change_percent
        consecutive = consecutive + 1 if hit else 0

    triggered = consecutive >= condition.consecutive_periods
    if triggered:
        message = (
            f"{_label(rule)} has been {condition.direction} "
            f"for {consecutive} consecutive days"
        )
    else:
        message = f"No significant {condition.direction} trend detected"
    return _result(
        rule, triggered, message, current_value=recent[-1], trend_days=consecutive
    )


def evaluate_rule(
    rule: AlertRule,
    current: DailyMetricData,
    history: Sequence[DailyMetricData],
    formula: Optional[str] = None,
) -> AlertResult:
    """Evaluate one rule; ``history`` is oldest first and excludes ``current``."""
    if isinstance(rule.condition, ThresholdCondition):
        return evaluate_threshold_rule(rule, current, formula)
    if isinstance(rule.condition, AnomalyCondition):
        return evaluate_anomaly_rule(rule, current, history, formula)
    return evaluate_trend_rule(rule, [*history, current], formula)


def evaluate_rules(
    rules: Sequence[AlertRule],
    records: Sequence[MetricRecord],
    formulas: Optional[Mapping[str, str]] = None,
) -> AlertEvaluationResult:
    """Evaluate enabled rules with the latest day as current.

    ``formulas`` maps formula id to expression for custom-formula rules.
    """
    formulas = formulas or {}
    results: List[AlertResult] = []

    for rule in rules:
        if not rule.enabled:
            continue
        scoped = [
            r
            for r in records
            if not rule.provider_id or r.provider_id == rule.provider_id
        ]
        series = build_daily_series(scoped)
        formula = formulas.get(rule.formula_id) if rule.formula_id else None

        if not series:
            results.append(_result(rule, False, "No metric data available"))
            continue
        results.append(evaluate_rule(rule, series[-1], series[:-1], formula))

    triggered = sum(1 for r in results if r.triggered)
    logger.info(f"Evaluated {len(results)} alert rules, {triggered} triggered")
    return AlertEvaluationResult(
        evaluated=len(results),
        triggered=triggered,
        results=results,
        evaluated_at=_now(),
    )
