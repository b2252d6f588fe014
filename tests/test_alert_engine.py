"""Tests for threshold, anomaly and trend alert rules."""

import pytest
from pydantic import ValidationError

from adshub.analyzer.alert_engine import (
    build_daily_series,
    compare_values,
    evaluate_anomaly_rule,
    evaluate_rules,
    evaluate_threshold_rule,
    evaluate_trend_rule,
    format_metric_value,
)
from adshub.models.alert_models import AlertMetric, AlertRule


def make_rule(metric="spend", condition=None, **fields):
    return AlertRule(
        id=fields.pop("id", "rule-1"),
        name=fields.pop("name", "Test rule"),
        metric=metric,
        condition=condition or {"type": "threshold", "operator": "gt", "value": 0},
        **fields,
    )


def spend_series(make_record, values, provider_id="google"):
    records = [
        make_record(i, provider_id, spend=v, impressions=1000, clicks=10)
        for i, v in enumerate(values)
    ]
    return build_daily_series(records)


class TestDailySeries:
    def test_sums_same_day_and_sorts_ascending(self, make_record):
        records = [
            make_record(1, "google", spend=30, conversions=1),
            make_record(0, "google", spend=10, clicks=5),
            make_record(1, "meta", spend=20, conversions=1),
        ]
        series = build_daily_series(records)
        assert [d.date.day for d in series] == [1, 2]
        assert series[1].spend == 50
        assert series[1].cpa == pytest.approx(25)
        assert series[0].cpc == pytest.approx(2)
        assert series[0].ctr is None


class TestCompareValues:
    @pytest.mark.parametrize(
        "operator,expected",
        [("gt", False), ("lt", False), ("gte", True), ("lte", True), ("eq", True)],
    )
    def test_operators(self, operator, expected):
        assert compare_values(5, operator, 5) is expected

    def test_format(self):
        assert format_metric_value(AlertMetric.SPEND, 12.5) == "$12.50"
        assert format_metric_value(AlertMetric.ROAS, 3) == "3.00"
        assert format_metric_value(AlertMetric.CLICKS, 41.6) == "42"


class TestThresholdRule:
    def test_triggers(self, make_record):
        series = build_daily_series([make_record(0, spend=600, conversions=10)])
        rule = make_rule("cpa", {"type": "threshold", "operator": "gt", "value": 50})
        result = evaluate_threshold_rule(rule, series[-1])
        assert result.triggered is True
        assert result.current_value == pytest.approx(60)
        assert result.threshold == 50
        assert result.message == "CPA ($60.00) is greater than $50.00"

    def test_within_threshold(self, make_record):
        series = spend_series(make_record, [40])
        rule = make_rule("spend", {"type": "threshold", "operator": "gt", "value": 50})
        result = evaluate_threshold_rule(rule, series[-1])
        assert result.triggered is False
        assert result.message == "SPEND is within threshold"

    def test_undefined_value_never_triggers(self, make_record):
        series = spend_series(make_record, [100])
        rule = make_rule("cpa", {"type": "threshold", "operator": "lt", "value": 50})
        result = evaluate_threshold_rule(rule, series[-1])
        assert result.triggered is False
        assert result.current_value is None
        assert "cannot be evaluated" in result.message

    def test_custom_formula(self, make_record):
        series = spend_series(make_record, [100])
        rule = make_rule(
            "custom_formula",
            {"type": "threshold", "operator": "gte", "value": 10},
            name="Spend per click",
            formula_id="formula_1",
        )
        result = evaluate_threshold_rule(rule, series[-1], "spend / clicks")
        assert result.triggered is True
        assert result.current_value == pytest.approx(10)
        assert result.formula_id == "formula_1"
        assert result.message.startswith("Spend per click (10.00)")

    def test_custom_formula_none_result(self, make_record):
        series = spend_series(make_record, [100])
        rule = make_rule(
            "custom_formula",
            {"type": "threshold", "operator": "lt", "value": 1},
            formula_id="formula_1",
        )
        assert evaluate_threshold_rule(rule, series[-1], "spend / 0").triggered is False
        assert evaluate_threshold_rule(rule, series[-1], None).triggered is False


class TestAnomalyRule:
    def anomaly(self, direction="both"):
        return make_rule(
            "spend",
            {
                "type": "anomaly",
                "deviation_multiplier": 2,
                "baseline_days": 7,
                "direction": direction,
            },
        )

    def test_spike_above(self, make_record):
        series = spend_series(make_record, [100] * 7 + [250])
        result = evaluate_anomaly_rule(self.anomaly(), series[-1], series[:-1])
        assert result.triggered is True
        assert result.average == pytest.approx(100)
        assert result.deviation_percent == pytest.approx(150)
        assert "150.0% above the 7-day average ($100.00)" in result.message

    def test_direction_filters(self, make_record):
        spike = spend_series(make_record, [100] * 7 + [250])
        drop = spend_series(make_record, [100] * 7 + [40])
        below, above = self.anomaly("below"), self.anomaly("above")
        assert not evaluate_anomaly_rule(below, spike[-1], spike[:-1]).triggered
        assert evaluate_anomaly_rule(below, drop[-1], drop[:-1]).triggered
        assert not evaluate_anomaly_rule(above, drop[-1], drop[:-1]).triggered

    def test_within_range(self, make_record):
        series = spend_series(make_record, [100] * 7 + [150])
        result = evaluate_anomaly_rule(self.anomaly(), series[-1], series[:-1])
        assert result.triggered is False

    def test_baseline_window(self, make_record):
        # Only the last 7 history days count
        series = spend_series(make_record, [1000] * 3 + [100] * 7 + [250])
        result = evaluate_anomaly_rule(self.anomaly(), series[-1], series[:-1])
        assert result.average == pytest.approx(100)

    def test_no_history(self, make_record):
        series = spend_series(make_record, [250])
        result = evaluate_anomaly_rule(self.anomaly(), series[-1], [])
        assert result.triggered is False
        assert result.message == "Insufficient baseline data for anomaly detection"


class TestTrendRule:
    def trend(self, direction="increasing", periods=3, min_change=0.0):
        return make_rule(
            "spend",
            {
                "type": "trend",
                "direction": direction,
                "consecutive_periods": periods,
                "min_change_percent": min_change,
            },
        )

    def test_increasing(self, make_record):
        series = spend_series(make_record, [100, 110, 121, 133.1])
        result = evaluate_trend_rule(self.trend(), series)
        assert result.triggered is True
        assert result.trend_days == 3
        assert result.message == "SPEND has been increasing for 3 consecutive days"

    def test_decreasing(self, make_record):
        series = spend_series(make_record, [100, 90, 80, 70])
        assert evaluate_trend_rule(self.trend("decreasing"), series).triggered is True
        assert evaluate_trend_rule(self.trend("increasing"), series).triggered is False

    def test_miss_resets_count(self, make_record):
        series = spend_series(make_record, [100, 110, 100, 110])
        result = evaluate_trend_rule(self.trend(), series)
        assert result.triggered is False
        assert result.trend_days == 1

    def test_min_change(self, make_record):
        series = spend_series(make_record, [100, 110, 121, 133.1])
        assert evaluate_trend_rule(self.trend(min_change=20), series).triggered is False

    def test_insufficient_data(self, make_record):
        series = spend_series(make_record, [100, 110, 121])
        result = evaluate_trend_rule(self.trend(), series)
        assert result.triggered is False
        assert result.message == "Insufficient data for trend detection (need 4 days)"

    def test_zero_baseline_skipped(self, make_record):
        series = spend_series(make_record, [0, 110, 121, 133.1])
        result = evaluate_trend_rule(self.trend(), series)
        assert result.trend_days == 2
        assert result.triggered is False


class TestEvaluateRules:
    def test_latest_day_is_current(self, make_record):
        records = [
            make_record(0, spend=10),
            make_record(1, spend=100),
        ]
        rule = make_rule("spend", {"type": "threshold", "operator": "gt", "value": 50})
        outcome = evaluate_rules([rule], records)
        assert outcome.evaluated == 1
        assert outcome.triggered == 1
        assert outcome.results[0].current_value == 100
        assert outcome.evaluated_at

    def test_disabled_rules_skipped(self, make_record):
        rule = make_rule(enabled=False)
        outcome = evaluate_rules([rule], [make_record(0, spend=10)])
        assert outcome.evaluated == 0
        assert outcome.results == []

    def test_provider_scope(self, make_record):
        records = [make_record(0, "google", spend=100)]
        rule = make_rule(provider_id="tiktok")
        result = evaluate_rules([rule], records).results[0]
        assert result.triggered is False
        assert result.message == "No metric data available"

    def test_formula_lookup(self, make_record):
        records = [make_record(0, spend=100, revenue=400)]
        rule = make_rule(
            "custom_formula",
            {"type": "threshold", "operator": "gt", "value": 3},
            formula_id="f1",
        )
        outcome = evaluate_rules([rule], records, {"f1": "revenue / spend"})
        assert outcome.results[0].triggered is True
        missing = evaluate_rules([rule], records, {})
        assert missing.results[0].triggered is False


class TestConditionBounds:
    @pytest.mark.parametrize("baseline_days", [0, 91])
    def test_baseline_days_out_of_range(self, baseline_days):
        with pytest.raises(ValidationError):
            make_rule(
                "spend",
                {
                    "type": "anomaly",
                    "deviation_multiplier": 2,
                    "baseline_days": baseline_days,
                },
            )

    @pytest.mark.parametrize("periods", [1, 31])
    def test_consecutive_periods_out_of_range(self, periods):
        with pytest.raises(ValidationError):
            make_rule(
                "spend",
                {
                    "type": "trend",
                    "direction": "increasing",
                    "consecutive_periods": periods,
                },
            )

    def test_bounds_inclusive(self):
        anomaly = make_rule(
            "spend",
            {"type": "anomaly", "deviation_multiplier": 2, "baseline_days": 90},
        )
        trend = make_rule(
            "spend",
            {"type": "trend", "direction": "decreasing", "consecutive_periods": 30},
        )
        assert anomaly.condition.baseline_days == 90
        assert trend.condition.consecutive_periods == 30
