import pytest

from leadhub.core.errors import MetaAPIError
from leadhub.models.ad_models import AdAccount
from leadhub.models.sync_models import Subscription
from leadhub.services.subscriptions import SubscriptionService


class FakeEndpoints:
    def __init__(self, failing=(), subscribed=()):
        self.failing = set(failing)
        self.subscribed = set(subscribed)

    async def subscribe_account(self, account_id):
        if account_id in self.failing:
            raise MetaAPIError("(#200) Permissions error", 403, 200)
        self.subscribed.add(account_id)
        return True

    async def get_subscribed_apps(self, account_id):
        if account_id in self.failing:
            raise MetaAPIError("(#200) Permissions error", 403, 200)
        return [{"id": "app"}] if account_id in self.subscribed else []


@pytest.fixture
def accounts(store):
    store.insert(
        AdAccount,
        [{"account_id": "111", "account_name": "Main"}, {"account_id": "222", "account_name": "Locked"}],
    )
    return store


@pytest.mark.asyncio
async def test_auto_subscribe_records_each_outcome(accounts):
    service = SubscriptionService(FakeEndpoints(failing={"222"}), accounts)

    assert await service.auto_subscribe() == {"subscribed": 1, "failed": 1}

    rows = {row["account_id"]: row for row in service.list()}
    assert rows["111"]["status"] == "subscribed"
    assert rows["111"]["last_success"] is not None
    assert rows["222"]["status"] == "error"
    assert "Permissions" in rows["222"]["last_error"]
    assert rows["222"]["account_name"] == "Locked"


@pytest.mark.asyncio
async def test_refresh_overwrites_previous_state(accounts):
    await SubscriptionService(FakeEndpoints(failing={"111"}), accounts).refresh()

    result = await SubscriptionService(FakeEndpoints(subscribed={"111"}), accounts).refresh()

    accounts.session.expire_all()
    rows = {row["account_id"]: row for row in result}
    assert rows["111"]["status"] == "subscribed"
    assert rows["111"]["last_error"] is None
    assert rows["222"]["status"] == "not_subscribed"
    assert accounts.count(Subscription) == 2
