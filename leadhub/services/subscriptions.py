"""LeadHub — Webhook Subscriptions.

Tracks, per stored ad account, whether the app is subscribed to its
leadgen webhook. Failures are recorded on the account's row and the loop
moves on to the next account.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from leadhub.connectors.meta.endpoints import SUBSCRIBED_FIELDS, MetaEndpoints
from leadhub.core.errors import MetaAPIError
from leadhub.core.logging import get_logger
from leadhub.models.ad_models import AdAccount
from leadhub.models.sync_models import Subscription
from leadhub.store import Store

logger = get_logger("services.subscriptions")


class SubscriptionService:
    def __init__(self, endpoints: MetaEndpoints, store: Store):
        self.endpoints = endpoints
        self.store = store

    def list(self) -> List[Dict[str, Any]]:
        accounts = {a.account_id: a.account_name for a in self.store.read_all(AdAccount)}
        return [
            {
                "id": sub.id,
                "account_id": sub.ad_account_id,
                "account_name": accounts.get(sub.ad_account_id, ""),
                "status": sub.status,
                "fields": sub.fields,
                "last_attempt": sub.last_attempt,
                "last_success": sub.last_success,
                "last_error": sub.last_error,
            }
            for sub in self.store.read_all(Subscription)
        ]

    def _record(self, account_id: str, **values: Any) -> None:
        row = {"ad_account_id": account_id, "last_attempt": datetime.now(timezone.utc), **values}
        self.store.upsert(Subscription, [row], "ad_account_id")

    def _record_error(self, account_id: str, error: Exception) -> None:
        self._record(account_id, status="error", last_error=str(error))

    async def refresh(self) -> List[Dict[str, Any]]:
        """Read each stored account's subscription state from Meta."""
        for account in self.store.read_all(AdAccount):
            try:
                apps = await self.endpoints.get_subscribed_apps(account.account_id)
            except MetaAPIError as e:
                logger.error(
                    f"Failed to check subscription for {account.account_id}: {e}",
                    extra={"account_id": account.account_id},
                )
                self._record_error(account.account_id, e)
                continue

            subscribed = len(apps) > 0
            values: Dict[str, Any] = {
                "status": "subscribed" if subscribed else "not_subscribed",
                "fields": SUBSCRIBED_FIELDS if subscribed else "",
                "last_error": None,
            }
            if subscribed:
                values["last_success"] = datetime.now(timezone.utc)
            self._record(account.account_id, **values)
        return self.list()

    async def auto_subscribe(self) -> Dict[str, int]:
        """Subscribe every stored account to the leadgen webhook."""
        subscribed = failed = 0
        for account in self.store.read_all(AdAccount):
            try:
                await self.endpoints.subscribe_account(account.account_id)
            except MetaAPIError as e:
                logger.error(
                    f"Failed to subscribe {account.account_id}: {e}",
                    extra={"account_id": account.account_id},
                )
                self._record_error(account.account_id, e)
                failed += 1
                continue

            self._record(
                account.account_id,
                status="subscribed",
                fields=SUBSCRIBED_FIELDS,
                last_success=datetime.now(timezone.utc),
                last_error=None,
            )
            subscribed += 1
        logger.info(f"Auto-subscribe finished: {subscribed} subscribed, {failed} failed")
        return {"subscribed": subscribed, "failed": failed}
