# tests/test_api.py
"""HTTP surface tests — routers, error mapping, and response shapes."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient
from crowd_balance.database import get_db
from crowd_balance.main import app
from crowd_balance.services.errors import PersistenceError

API = "/api/v1"


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)   # no context manager → startup (create_tables, sweep loop) not run
    app.dependency_overrides.clear()


@pytest.fixture
def location_id(client):
    resp = client.post(f"{API}/locations", json={"name": "Main Gate", "capacity": 200})
    assert resp.status_code == 201
    return resp.json()["id"]


class TestLocations:
    def test_create_trims_name(self, client):
        resp = client.post(f"{API}/locations", json={"name": "  Food Court ", "capacity": 120})
        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == "Food Court"
        assert body["is_active"] is True

    def test_duplicate_name_is_400(self, client, location_id):
        resp = client.post(f"{API}/locations", json={"name": "Main Gate", "capacity": 10})
        assert resp.status_code == 400
        assert "already exists" in resp.json()["detail"]

    def test_non_positive_capacity_is_400(self, client):
        resp = client.post(f"{API}/locations", json={"name": "Tent", "capacity": 0})
        assert resp.status_code == 400

    @pytest.mark.parametrize("capacity", ["NaN", "Infinity", 1e30])
    def test_out_of_range_capacity_is_400(self, client, capacity):
        resp = client.post(f"{API}/locations", json={"name": "Tent", "capacity": capacity})
        assert resp.status_code == 400
        assert client.get(f"{API}/locations").json() == []

    def test_listing_carries_both_score_sets(self, client, location_id):
        client.patch(f"{API}/locations/{location_id}/crowd", json={"crowd_level": "moderate"})
        resp = client.get(f"{API}/locations")
        assert resp.status_code == 200
        [loc] = resp.json()
        assert loc["scores"]["counts"]["moderate"] == 1
        assert loc["last_hour_scores"]["total"] == 1
        assert loc["latest_event"]["crowd_level"] == "moderate"

    def test_update_location(self, client, location_id):
        resp = client.put(f"{API}/locations/{location_id}", json={"capacity": 350})
        assert resp.status_code == 200
        assert resp.json()["capacity"] == 350

    def test_soft_delete(self, client, location_id):
        assert client.delete(f"{API}/locations/{location_id}").status_code == 200
        assert client.get(f"{API}/locations").json() == []
        # Still readable by id, but no longer accepts reports
        assert client.get(f"{API}/locations/{location_id}").json()["is_active"] is False
        resp = client.patch(f"{API}/locations/{location_id}/crowd", json={"crowd_level": "max"})
        assert resp.status_code == 404

    def test_unknown_location_is_404(self, client):
        assert client.get(f"{API}/locations/9999").status_code == 404


class TestCrowdReports:
    def test_report_returns_fresh_scores(self, client, location_id):
        resp = client.patch(f"{API}/locations/{location_id}/crowd", json={"crowd_level": "max"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["counts"] == {"min": 0, "moderate": 0, "max": 1}
        assert body["total"] == 1
        assert body["dominant_level"] == "max"
        assert body["percentage"] == 100

        resp = client.patch(f"{API}/locations/{location_id}/crowd", json={"crowd_level": "min"})
        assert resp.json()["dominant_level"] == "max"
        assert resp.json()["percentage"] == 50

    def test_unknown_level_is_400(self, client, location_id):
        resp = client.patch(f"{API}/locations/{location_id}/crowd", json={"crowd_level": "crowded"})
        assert resp.status_code == 400
        assert client.get(f"{API}/locations/{location_id}/scores").json()["total"] == 0

    def test_empty_scores(self, client, location_id):
        body = client.get(f"{API}/locations/{location_id}/scores").json()
        assert body["dominant_level"] == "no data"
        assert body["percentage"] == 0

    def test_window_minutes_must_be_positive(self, client, location_id):
        resp = client.get(f"{API}/locations/{location_id}/scores", params={"window_minutes": 0})
        assert resp.status_code == 422

    def test_huge_window_minutes_is_capped(self, client, location_id):
        client.patch(f"{API}/locations/{location_id}/crowd", json={"crowd_level": "max"})
        resp = client.get(f"{API}/locations/{location_id}/scores",
                          params={"window_minutes": 10_000_000_000_000})
        assert resp.status_code == 200
        assert resp.json()["total"] == 1
        resp = client.get(f"{API}/locations/{location_id}/activities",
                          params={"window_minutes": 10_000_000_000_000})
        assert resp.status_code == 200

    def test_far_future_timestamp_is_400(self, client, location_id):
        resp = client.patch(f"{API}/locations/{location_id}/crowd",
                            json={"crowd_level": "max", "timestamp": "2099-01-01T00:00:00"})
        assert resp.status_code == 400
        assert "future" in resp.json()["detail"]
        assert client.get(f"{API}/locations/{location_id}/scores").json()["total"] == 0

    def test_activities_newest_first(self, client, location_id):
        for level in ("min", "moderate", "max"):
            client.patch(f"{API}/locations/{location_id}/crowd",
                         json={"crowd_level": level, "reporter_id": f"org-{level}"})
        body = client.get(f"{API}/locations/{location_id}/activities").json()
        assert body["location_name"] == "Main Gate"
        assert [a["crowd_level"] for a in body["activities"]] == ["max", "moderate", "min"]
        assert body["activities"][0]["reporter_id"] == "org-max"
        assert body["scores"]["total"] == 3

    def test_storage_failure_is_503(self, client, location_id):
        with patch("crowd_balance.services.location_store.append_event",
                   side_effect=PersistenceError("Failed to record report")):
            resp = client.patch(f"{API}/locations/{location_id}/crowd", json={"crowd_level": "max"})
        assert resp.status_code == 503
        assert "not saved" in resp.json()["detail"]


class TestMaintenance:
    def test_manual_sweep(self, client, location_id):
        client.patch(f"{API}/locations/{location_id}/crowd", json={"crowd_level": "max"})
        body = client.post(f"{API}/maintenance/sweep").json()
        assert body["status"] == "ok"
        assert body["total_removed"] == 0
        assert body["failed"] == 0

    def test_sweep_retention_above_window_is_422(self, client):
        resp = client.post(f"{API}/maintenance/sweep", params={"retention_minutes": 10_000_000_000_000})
        assert resp.status_code == 422

    def test_health(self, client):
        body = client.get(f"{API}/health").json()
        assert body["database"] == "ok"
        assert body["sweep"]["retention_minutes"] == 60
