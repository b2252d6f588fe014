"""API tests against an in-memory database."""

import pytest

RECORDS = [
    {
        "id": "g-1",
        "provider_id": "google",
        "date": "2026-02-01",
        "spend": 100,
        "impressions": 10000,
        "clicks": 200,
        "conversions": 10,
        "revenue": 500,
    },
    {
        "id": "m-1",
        "provider_id": "meta",
        "date": "2026-02-01",
        "spend": 300,
        "impressions": 20000,
        "clicks": 100,
        "conversions": 5,
        "revenue": 600,
    },
    {
        "id": "g-2",
        "provider_id": "google",
        "date": "2026-02-08",
        "spend": 200,
        "impressions": 10000,
        "clicks": 400,
        "conversions": 20,
        "revenue": 800,
    },
]


@pytest.fixture
def seeded(client):
    response = client.post("/metrics/records", json={"records": RECORDS})
    assert response.status_code == 200
    return client


def create_formula(client, formula="spend / clicks", **overrides):
    body = {
        "workspace_id": "ws-1",
        "name": "CPC",
        "formula": formula,
        "output_metric": "cpc_custom",
    }
    body.update(overrides)
    return client.post("/formulas", json=body)


class TestSystem:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "service": "adshub",
            "version": "1.0.0",
        }


class TestMetricsRoutes:
    def test_ingest_and_list(self, seeded):
        response = seeded.get("/metrics/records", params={"provider_id": "google"})
        body = response.json()
        assert body["count"] == 2
        assert [r["date"] for r in body["records"]] == ["2026-02-08", "2026-02-01"]

    def test_resync_replaces_day(self, seeded):
        resync = dict(RECORDS[0], spend=150, created_at="2099-01-01T00:00:00")
        seeded.post("/metrics/records", json={"records": [resync]})
        body = seeded.get(
            "/metrics/records",
            params={"start_date": "2026-02-01", "end_date": "2026-02-01"},
        ).json()
        spends = sorted(r["spend"] for r in body["records"])
        assert spends == [150, 300]

    def test_negative_values_rejected(self, client):
        bad = dict(RECORDS[0], spend=-1)
        response = client.post("/metrics/records", json={"records": [bad]})
        assert response.status_code == 422

    def test_half_open_date_range_rejected(self, seeded):
        response = seeded.get("/metrics/records", params={"start_date": "2026-02-01"})
        assert response.status_code == 400

    def test_derived(self, seeded):
        body = seeded.get("/metrics/derived", params={"provider_id": "google"}).json()
        assert body["totals"]["spend"] == 300
        assert body["kpis"]["cpa"] == pytest.approx(10)
        assert body["growth_week_over_week"]["spend"] is None

    def test_period_comparison(self, seeded):
        body = seeded.get(
            "/metrics/compare/period",
            params={"start_date": "2026-02-08", "end_date": "2026-02-14"},
        ).json()
        assert body["previous_range"] == {"start": "2026-02-01", "end": "2026-02-07"}
        assert body["delta"]["spend"] == -200
        assert body["delta_percent"]["spend"] == pytest.approx(-50)

    def test_period_comparison_without_data(self, seeded):
        response = seeded.get(
            "/metrics/compare/period",
            params={"start_date": "2026-03-01", "end_date": "2026-03-07"},
        )
        assert response.status_code == 200
        assert response.json() is None

    def test_period_comparison_reversed_range(self, seeded):
        response = seeded.get(
            "/metrics/compare/period",
            params={"start_date": "2026-02-14", "end_date": "2026-02-08"},
        )
        assert response.status_code == 400

    def test_compare_ranges(self, seeded):
        body = seeded.post(
            "/metrics/compare/ranges",
            json={
                "range_a": {"start": "2026-02-08", "end": "2026-02-08"},
                "range_b": {"start": "2026-02-01", "end": "2026-02-01"},
                "provider_id": "google",
            },
        ).json()
        assert body["delta"]["spend"] == 100
        assert body["delta_percent"]["spend"] == pytest.approx(100)

    def test_compare_providers(self, seeded):
        body = seeded.get(
            "/metrics/compare/providers",
            params={"provider_a": "google", "provider_b": "meta"},
        ).json()
        assert body["a"]["spend"] == 300
        assert body["b"]["spend"] == 300
        assert body["delta"]["roas"] == pytest.approx(1300 / 300 - 2)

    def test_compare_missing_provider(self, seeded):
        response = seeded.get(
            "/metrics/compare/providers",
            params={"provider_a": "google", "provider_b": "tiktok"},
        )
        assert response.json() is None

    def test_providers_sorted_by_spend(self, seeded):
        body = seeded.get(
            "/metrics/providers",
            params={"start_date": "2026-02-01", "end_date": "2026-02-01"},
        ).json()
        assert [p["provider_id"] for p in body] == ["meta", "google"]

    def test_benchmarks(self, seeded):
        body = seeded.get("/metrics/benchmarks").json()
        sources = {b["metric"]: b["source"] for b in body["benchmarks"]}
        assert sources["roas"] == "historical_median"
        providers = {c["provider_id"] for c in body["roas_industry_comparisons"]}
        assert providers == {"google", "meta"}


class TestFormulaRoutes:
    def test_validate(self, client):
        body = client.post(
            "/formulas/validate", json={"formula": "cost_2 / spend"}
        ).json()
        assert body["valid"] is True
        assert body["inputs"] == ["cost_2", "spend"]
        assert body["unknown_metrics"] == ["cost_2"]

    def test_validate_error(self, client):
        body = client.post("/formulas/validate", json={"formula": "(spend"}).json()
        assert body["valid"] is False
        assert body["error"] == "unbalanced_parentheses"

    def test_evaluate(self, client):
        ok = client.post(
            "/formulas/evaluate",
            json={
                "formula": "round(spend / clicks)",
                "inputs": {"spend": 5, "clicks": 2},
            },
        ).json()
        assert ok["value"] == 3
        zero = client.post(
            "/formulas/evaluate",
            json={"formula": "spend / clicks", "inputs": {"spend": 5, "clicks": 0}},
        ).json()
        assert zero["value"] is None

    def test_vocabulary(self, client):
        body = client.get("/formulas/vocabulary").json()
        assert "round" in body["functions"]
        assert {m["name"] for m in body["metrics"]} >= {"spend", "roas", "cpm"}

    def test_crud(self, client):
        created = create_formula(client)
        assert created.status_code == 201
        formula = created.json()
        formula_id = formula["formula_id"]
        assert formula["inputs"] == ["spend", "clicks"]

        listed = client.get("/formulas", params={"workspace_id": "ws-1"}).json()
        assert listed["count"] == 1

        patched = client.patch(
            f"/formulas/{formula_id}", json={"formula": "revenue / spend"}
        ).json()
        assert patched["inputs"] == ["revenue", "spend"]

        assert client.get(f"/formulas/{formula_id}").status_code == 200
        deleted = client.delete(f"/formulas/{formula_id}").json()
        assert deleted == {"status": "success", "formula_id": formula_id}
        assert client.get(f"/formulas/{formula_id}").status_code == 404

    def test_invalid_formula_rejected(self, client):
        response = create_formula(client, formula="100 * 2")
        assert response.status_code == 422
        listed = client.get("/formulas", params={"workspace_id": "ws-1"}).json()
        assert listed["count"] == 0

    def test_invalid_patch_rejected(self, client):
        formula_id = create_formula(client).json()["formula_id"]
        response = client.patch(f"/formulas/{formula_id}", json={"formula": "spend;"})
        assert response.status_code == 422

    def test_missing_formula(self, client):
        assert client.patch("/formulas/nope", json={"name": "x"}).status_code == 404
        assert client.delete("/formulas/nope").status_code == 404
        assert client.post("/formulas/nope/execute").status_code == 404

    def test_execute(self, seeded):
        created = create_formula(seeded, formula="profit / spend").json()
        formula_id = created["formula_id"]
        body = seeded.post(
            f"/formulas/{formula_id}/execute", params={"provider_id": "google"}
        ).json()
        assert body["value"] == pytest.approx(1000 / 300)
        assert body["record_count"] == 2
        assert body["output_metric"] == "cpc_custom"

    def test_execute_deeply_nested_formula(self, seeded):
        nested = "(" * 300 + "spend" + ")" * 300
        created = create_formula(seeded, formula=nested)
        assert created.status_code == 201
        formula_id = created.json()["formula_id"]
        response = seeded.post(f"/formulas/{formula_id}/execute")
        assert response.status_code == 200
        assert response.json()["value"] is None

        evaluated = seeded.post(
            "/formulas/evaluate", json={"formula": nested, "inputs": {"spend": 1}}
        )
        assert evaluated.status_code == 200
        assert evaluated.json()["value"] is None


class TestAlertRoutes:
    def test_threshold(self, seeded):
        body = seeded.post(
            "/alerts/evaluate",
            json={
                "rules": [
                    {
                        "id": "cpa-ceiling",
                        "name": "CPA ceiling",
                        "metric": "cpa",
                        "condition": {
                            "type": "threshold",
                            "operator": "gt",
                            "value": 5,
                        },
                    }
                ]
            },
        ).json()
        assert body["evaluated"] == 1
        assert body["triggered"] == 1
        assert body["results"][0]["current_value"] == pytest.approx(10)

    def test_custom_formula_rule(self, seeded):
        created = create_formula(seeded, formula="revenue / spend").json()
        formula_id = created["formula_id"]
        rule = {
            "id": "roas-floor",
            "name": "ROAS floor",
            "metric": "custom_formula",
            "formula_id": formula_id,
            "condition": {"type": "threshold", "operator": "lt", "value": 5},
        }
        body = seeded.post("/alerts/evaluate", json={"rules": [rule]}).json()
        assert body["results"][0]["triggered"] is True
        assert body["results"][0]["current_value"] == pytest.approx(4)

        scoped = seeded.post(
            "/alerts/evaluate", json={"rules": [rule], "workspace_id": "ws-other"}
        ).json()
        assert scoped["results"][0]["triggered"] is False

    def test_custom_formula_rule_needs_formula_id(self, seeded):
        rule = {
            "id": "r",
            "name": "r",
            "metric": "custom_formula",
            "condition": {"type": "threshold", "operator": "lt", "value": 5},
        }
        response = seeded.post("/alerts/evaluate", json={"rules": [rule]})
        assert response.status_code == 422

    def test_bad_condition_rejected(self, client):
        rule = {
            "id": "r",
            "name": "r",
            "metric": "spend",
            "condition": {"type": "threshold", "operator": "between", "value": 5},
        }
        response = client.post("/alerts/evaluate", json={"rules": [rule]})
        assert response.status_code == 422


class TestSnapshotRoutes:
    def test_latest_without_snapshots(self, client):
        assert client.get("/snapshots/latest").json()["status"] == "no_data"

    def test_run_and_fetch(self, seeded):
        run = seeded.post("/snapshots/run").json()
        assert run["count"] == 3

        latest = seeded.get("/snapshots/latest").json()
        assert latest["status"] == "success"
        assert latest["record_count"] == 3
        assert latest["derived"]["totals"]["spend"] == 600

        meta = seeded.get("/snapshots/latest", params={"provider_id": "meta"}).json()
        assert meta["provider_id"] == "meta"
        assert meta["record_count"] == 1
