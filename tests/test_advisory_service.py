from datetime import datetime, timezone

import pytest

from farm_advisory import schemas
from farm_advisory.advisory_service import AdvisoryService
from farm_advisory.recommenders import SeasonalRecommender


NOW = datetime(2024, 2, 15, 9, 0, tzinfo=timezone.utc)


class FailingWrites:
    """Store whose writes always fail."""

    def __init__(self, inner):
        self._inner = inner

    def get(self, key):
        return self._inner.get(key)

    def set(self, key, value):
        raise RuntimeError("store unavailable")


def mk_request() -> schemas.RecommendationRequest:
    return schemas.RecommendationRequest(location="Punjab", season="winter", soil_type="clay loam")


def test_recommend_returns_ordered_list_and_logs_request(store):
    svc = AdvisoryService(store, clock=lambda: NOW)

    recs = svc.recommend("u1", mk_request())

    assert [r["crop"] for r in recs] == ["Wheat", "Mustard", "Gram (Chickpea)"]
    assert set(recs[0]) == {"crop", "suitability", "reason", "expectedYield", "plantingTime", "harvestTime"}
    key = f"recommendation_request:u1:{int(NOW.timestamp() * 1000)}"
    entry = store.get(key)
    assert entry["soilType"] == "clay loam"
    assert entry["recommendations"] == recs
    assert entry["timestamp"].startswith("2024-02-15T09:00:00")


def test_recommend_survives_log_write_failure(store, caplog):
    svc = AdvisoryService(FailingWrites(store), clock=lambda: NOW)

    recs = svc.recommend("u1", mk_request())

    assert len(recs) == 3
    assert "could not log recommendation request" in caplog.text


def test_custom_recommender_order_is_by_suitability(store):
    catalogue = [
        schemas.Recommendation(crop="Peas", suitability=40, reason="r", expected_yield="y", planting_time="p", harvest_time="h"),
        schemas.Recommendation(crop="Rice", suitability=95, reason="r", expected_yield="y", planting_time="p", harvest_time="h"),
    ]
    svc = AdvisoryService(store, recommender=SeasonalRecommender(catalogue), clock=lambda: NOW)

    assert [r["crop"] for r in svc.recommend("u1", mk_request())] == ["Rice", "Peas"]


def test_consultation_is_pending_and_persisted(store):
    svc = AdvisoryService(store, clock=lambda: NOW)
    req = schemas.ConsultationRequest(question="Yellow leaves on wheat?", category="disease", urgency="high")

    ticket = svc.submit_consultation("u1", req)

    assert ticket["status"] == "pending"
    assert ticket["userId"] == "u1"
    assert store.get(f"consultation:{ticket['id']}") == ticket


def test_consultation_store_failure_propagates(store):
    svc = AdvisoryService(FailingWrites(store), clock=lambda: NOW)
    req = schemas.ConsultationRequest(question="q", category="c", urgency="low")

    with pytest.raises(RuntimeError):
        svc.submit_consultation("u1", req)
