import pytest
from sqlalchemy import event

from leadhub.core.errors import StorePayloadTooLarge
from leadhub.models.ad_models import Campaign
from leadhub.models.sync_models import SyncLog
from leadhub.store import Store, chunked


def _campaign(i, **overrides):
    row = {"campaign_id": f"c{i}", "name": f"Campaign {i}", "ad_account_id": "111"}
    row.update(overrides)
    return row


class TestUpsert:
    def test_second_upsert_overwrites_instead_of_duplicating(self, store):
        store.upsert(Campaign, [_campaign(1, spend_usd=10.0)], "campaign_id")
        store.upsert(Campaign, [_campaign(1, spend_usd=25.0)], "campaign_id")

        rows = store.read_all(Campaign)
        assert len(rows) == 1
        store.session.expire_all()
        assert store.first(Campaign).spend_usd == 25.0

    def test_columns_missing_from_row_keep_stored_value(self, store):
        store.upsert(Campaign, [_campaign(1, spend_usd=10.0)], "campaign_id")
        store.upsert(
            Campaign,
            [{"campaign_id": "c1", "name": "Renamed", "ad_account_id": "111"}],
            "campaign_id",
        )

        store.session.expire_all()
        campaign = store.first(Campaign)
        assert campaign.name == "Renamed"
        assert campaign.spend_usd == 10.0

    def test_empty_upsert_is_noop(self, store):
        assert store.upsert(Campaign, [], "campaign_id") == 0


class TestBatchLimits:
    def test_oversized_write_rejected(self, session):
        store = Store(session, max_rows=10, max_batch=3)
        with pytest.raises(StorePayloadTooLarge):
            store.insert(SyncLog, [{"type": "spend", "status": "success"}] * 4)
        assert store.count(SyncLog) == 0

    def test_read_all_pages_past_the_row_cap(self, session):
        store = Store(session, max_rows=10, max_batch=100)
        store.insert(Campaign, [_campaign(i) for i in range(25)])

        assert len(store.select(Campaign)) == 10
        assert len(store.read_all(Campaign)) == 25
        assert len(store.read_all(Campaign, limit=12)) == 12
        assert len(store.read_column(Campaign.campaign_id)) == 25

    def test_tied_sort_keys_page_by_id(self, engine, session):
        store = Store(session, max_rows=3, max_batch=100)
        store.insert(Campaign, [_campaign(i, spend_usd=0.0) for i in range(7)])
        statements = []

        def capture(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(engine, "before_cursor_execute", capture)
        try:
            rows = store.read_all(Campaign, order_by=Campaign.spend_usd.desc())
        finally:
            event.remove(engine, "before_cursor_execute", capture)

        ids = [row.id for row in rows]
        assert ids == sorted(ids)
        assert len(set(ids)) == 7
        assert len(statements) == 3
        assert all("ORDER BY campaigns.spend_usd DESC, campaigns.id" in s for s in statements)

    def test_existing_values_batches_membership_checks(self, session):
        store = Store(session, max_rows=2, max_batch=100)
        store.insert(Campaign, [_campaign(i) for i in range(5)])

        found = store.existing_values(Campaign.campaign_id, ["c0", "c3", "c4", "c9"])
        assert found == {"c0", "c3", "c4"}


def test_update_and_delete_where(store):
    store.insert(Campaign, [_campaign(i) for i in range(3)])

    assert store.update_where(Campaign, {"spend_usd": 5.0}, Campaign.campaign_id == "c1") == 1
    assert store.sum(Campaign.spend_usd) == 5.0
    assert store.delete_where(Campaign, Campaign.campaign_id != "c1") == 2
    assert store.count(Campaign) == 1


def test_chunked():
    assert [list(c) for c in chunked([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]
