"""HTTP surface over an in-memory store."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from leadhub import deps
from leadhub.main import app
from leadhub.models.ad_models import AdAccount, Campaign
from leadhub.models.lead_models import Lead, LeadFieldValue
from leadhub.models.sync_models import SyncLog


@pytest.fixture
def client(store):
    for cache in (deps.hierarchy_cache, deps.countries_cache, deps.field_mapping_cache):
        cache.invalidate()
    app.dependency_overrides[deps.get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
    for cache in (deps.hierarchy_cache, deps.countries_cache, deps.field_mapping_cache):
        cache.invalidate()


@pytest.fixture
def account(store):
    store.insert(AdAccount, [{"account_id": "111", "account_name": "Main"}])
    store.insert(
        Campaign,
        [{"campaign_id": "c1", "name": "Summer-TR", "ad_account_id": "111", "spend_usd": 80.0}],
    )
    (lead,) = store.insert(
        Lead,
        [
            {
                "lead_id": "L1",
                "form_name": "Signup",
                "campaign_id": "c1",
                "ad_account_id": "111",
                "created_at": datetime(2024, 6, 10, tzinfo=timezone.utc),
            }
        ],
    )
    store.insert(LeadFieldValue, [{"lead_id": lead.id, "field_name": "E-Mail", "field_value": "a@x.io"}])
    store.insert(SyncLog, [{"type": "spend", "status": "success"}])
    return lead


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


class TestCampaigns:
    def test_hierarchy(self, client, account):
        resp = client.get("/api/campaigns/hierarchy", params={"account_id": "111"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 1
        assert body["campaigns"][0]["countries"] == ["TR"]
        assert body["campaigns"][0]["leads_count"] == 1

    def test_bad_level(self, client):
        resp = client.get("/api/campaigns/hierarchy", params={"level": "account"})
        assert resp.status_code == 400

    def test_countries(self, client, account):
        assert client.get("/api/campaigns/countries").json()["countries"] == ["TR"]

    def test_list(self, client, account):
        campaigns = client.get("/api/campaigns").json()["campaigns"]
        assert campaigns[0]["ad_account_name"] == "Main"
        assert campaigns[0]["leads"] == 1


class TestLeads:
    def test_list_with_date_range(self, client, account):
        inside = client.get("/api/leads", params={"start_date": "2024-06-10", "end_date": "2024-06-10"}).json()
        outside = client.get("/api/leads", params={"start_date": "2024-06-11"}).json()

        assert inside["total"] == 1
        assert inside["data"][0]["campaign_name"] == "Summer-TR"
        assert outside["total"] == 0

    def test_detail_resolves_names_on_read(self, client, account, store):
        client.post("/api/field-mappings/seed")

        detail = client.get(f"/api/leads/{account.id}").json()["lead"]

        assert detail["field_data"] == [{"name": "E-Mail", "mapped_name": "email", "values": ["a@x.io"]}]

    def test_missing_lead(self, client):
        assert client.get("/api/leads/999").status_code == 404


class TestFieldMappings:
    def test_create_then_conflict(self, client):
        body = {"raw_field_name": "Handynummer", "mapped_field": "phone", "language": "de"}

        created = client.post("/api/field-mappings", json=body)
        duplicate = client.post("/api/field-mappings", json={**body, "raw_field_name": "handy_nummer"})

        assert created.status_code == 201
        assert duplicate.status_code == 409

    def test_update_missing(self, client):
        assert client.put("/api/field-mappings/999", json={"mapped_field": "city"}).status_code == 404

    def test_update_with_null_target_is_unprocessable(self, client):
        created = client.post("/api/field-mappings", json={"raw_field_name": "Stadt", "mapped_field": "city"}).json()

        resp = client.put(f"/api/field-mappings/{created['mapping']['id']}", json={"mapped_field": None})

        assert resp.status_code == 422

    def test_unmapped(self, client, account):
        fields = client.get("/api/field-mappings/unmapped").json()["fields"]
        assert fields == [{"field_name": "E-Mail", "count": 1, "sample_values": ["a@x.io"]}]


class TestDashboard:
    def test_stats(self, client, account):
        stats = client.get("/api/dashboard/stats").json()["stats"]
        assert stats["total_spend"] == 80.0
        assert stats["total_leads"] == 1
        assert stats["last_spend_sync"] is not None
        assert stats["last_leads_sync"] is None

    def test_sync_logs(self, client, account):
        logs = client.get("/api/dashboard/sync-logs").json()["logs"]
        assert [log["type"] for log in logs] == ["spend"]


class TestSyncTriggers:
    def test_second_trigger_conflicts_with_progress(self, client):
        deps.ingestion_tracker.try_begin()
        try:
            resp = client.post("/api/meta/sync")
        finally:
            deps.ingestion_tracker.complete()

        assert resp.status_code == 409
        assert resp.json()["detail"]["progress"]["status"] == "running"

    def test_progress(self, client):
        body = client.get("/api/meta/sync/progress").json()
        assert set(body) == {"status", "ingestion", "leads"}
