"""LeadHub — Ingestion Orchestrator.

One full sync pass per call:
  account upsert → campaign/adset/ad upsert → lifetime insight write-back
  → daily insight window replacement → SyncLog row.

Accounts are processed strictly one after another. Throttling that outlasts
the client's backoff skips only the affected unit (one entity list, one
insight level, one daily window); any other remote error aborts the run.
"""

import asyncio
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from leadhub.config import settings
from leadhub.connectors.meta.endpoints import MetaEndpoints
from leadhub.connectors.meta.transformer import extract_metrics, to_daily_insight_rows
from leadhub.core.errors import MetaRateLimitError
from leadhub.core.logging import elapsed_ms, get_logger
from leadhub.core.retry import retry_store_write
from leadhub.models.ad_models import Ad, AdAccount, AdSet, Campaign, DailyInsight
from leadhub.models.sync_models import IngestionProgress, SyncLog
from leadhub.store import Store, chunked
from leadhub.sync.state import RunTracker

logger = get_logger("sync.ingestion")

T = TypeVar("T")

UPSERT_CHUNK = 500
WRITE_BACK_BATCH = 50

# level → (model, external id column name)
_LEVELS = {
    "campaign": (Campaign, "campaign_id"),
    "adset": (AdSet, "adset_id"),
    "ad": (Ad, "ad_id"),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def account_external_id(account: Dict[str, Any]) -> str:
    """Meta returns both `id` (act_123) and `account_id` (123)."""
    raw = str(account.get("account_id") or account.get("id") or "")
    return raw[4:] if raw.startswith("act_") else raw


class IngestionOrchestrator:
    """Drives a spend/structure sync across every permitted ad account."""

    def __init__(
        self,
        endpoints: MetaEndpoints,
        store: Store,
        tracker: RunTracker[IngestionProgress],
        allowed_accounts: Optional[Iterable[str]] = None,
        lookback_days: Optional[int] = None,
        today: Callable[[], date] = lambda: datetime.now(timezone.utc).date(),
    ):
        self.endpoints = endpoints
        self.store = store
        self.tracker = tracker
        if allowed_accounts is None:
            allowed_accounts = settings.allowed_ad_accounts
        self.allowed_accounts = {a.replace("act_", "") for a in allowed_accounts}
        self.lookback_days = lookback_days or settings.meta_sync_lookback_days
        self._today = today

    @property
    def progress(self) -> IngestionProgress:
        return self.tracker.progress

    # ── Run ──

    async def run(self) -> IngestionProgress:
        """Execute one sync pass. Raises SyncAlreadyRunning if one is in flight."""
        self.tracker.try_begin()
        return await self.execute()

    async def execute(self) -> IngestionProgress:
        """Run the pass on a tracker the caller has already claimed."""
        started = time.monotonic()
        logger.info("🚀 Starting spend sync", extra={"run_type": "spend"})

        try:
            accounts = self._permitted(await self.endpoints.list_accounts())
            self.progress.total_accounts = len(accounts)

            for account in accounts:
                await self.sync_account(account)
                self.progress.accounts_processed += 1

            await self._write_log("spend", "success")
        except Exception as e:
            logger.error(f"Sync failed: {e}", exc_info=True, extra={"run_type": "spend"})
            self.tracker.fail(str(e))
            await self._write_failure_log("sync", e)
            raise

        self.tracker.complete()
        logger.info(
            f"✅ Spend sync completed: {self.progress.accounts_processed} accounts",
            extra={
                "run_type": "spend",
                "duration_ms": elapsed_ms(started),
            },
        )
        return self.tracker.snapshot()

    def _permitted(self, accounts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not self.allowed_accounts:
            return accounts
        permitted = [a for a in accounts if account_external_id(a) in self.allowed_accounts]
        skipped = len(accounts) - len(permitted)
        if skipped:
            logger.info(f"Skipping {skipped} ad accounts outside the allow-list")
        return permitted

    async def _write_log(self, run_type: str, status: str, error: Optional[str] = None) -> None:
        row = {"type": run_type, "status": status, "error_message": error}
        await retry_store_write(self.store.insert, SyncLog, [row], description="sync log")

    async def _write_failure_log(self, run_type: str, error: Exception) -> None:
        try:
            await self._write_log(run_type, "error", str(error))
        except Exception as log_error:
            logger.error(f"Could not record failed sync in sync_logs: {log_error}")

    async def _fetch(self, what: str, account_id: str, call: Awaitable[T]) -> Optional[T]:
        """Await a remote call; throttling exhaustion skips it (returns None)."""
        try:
            return await call
        except MetaRateLimitError as e:
            logger.error(
                f"Rate limit exhausted fetching {what}, skipping: {e}",
                extra={"account_id": account_id},
            )
            return None

    # ── Per-Account Steps ──

    async def sync_account(self, account: Dict[str, Any]) -> None:
        account_id = account_external_id(account)
        account_name = account.get("name") or account_id
        self.progress.current_account = account_name
        logger.info(f"Syncing ad account {account_name}", extra={"account_id": account_id})

        await retry_store_write(
            self.store.upsert,
            AdAccount,
            [{"account_id": account_id, "account_name": account_name, "updated_at": _utcnow()}],
            "account_id",
            description="ad account upsert",
        )

        await self.upsert_structure(account_id)

        date_stop = self._today()
        date_start = date_stop - timedelta(days=self.lookback_days)
        since, until = date_start.isoformat(), date_stop.isoformat()
        logger.info(
            f"Fetching insights for last {self.lookback_days} days: {since} to {until}",
            extra={"account_id": account_id},
        )

        for level in _LEVELS:
            await self.write_back_insights(account_id, level, since, until)

        await self.replace_daily_insights(account_id, since, until)

    async def _upsert_chunks(
        self, model: type, rows: Sequence[Dict[str, Any]], key: str
    ) -> int:
        for chunk in chunked(rows, UPSERT_CHUNK):
            await retry_store_write(
                self.store.upsert, model, chunk, key, description=f"{model.__tablename__} upsert"
            )
        return len(rows)

    def _known_ids(self, column: Any, in_pass: set, referenced: Iterable[str]) -> set:
        missing = {ref for ref in referenced if ref and ref not in in_pass}
        if not missing:
            return set(in_pass)
        return set(in_pass) | self.store.existing_values(column, missing)

    async def upsert_structure(self, account_id: str) -> None:
        now = _utcnow()

        campaigns = await self._fetch("campaigns", account_id, self.endpoints.list_campaigns(account_id)) or []
        campaign_rows = [
            {
                "campaign_id": c["id"],
                "name": c.get("name") or "",
                "type": c.get("objective"),
                "status": c.get("status"),
                "ad_account_id": account_id,
                "updated_at": now,
            }
            for c in campaigns
            if c.get("id")
        ]
        self.progress.campaigns_upserted += await self._upsert_chunks(
            Campaign, campaign_rows, "campaign_id"
        )

        adsets = await self._fetch("ad sets", account_id, self.endpoints.list_adsets(account_id)) or []
        known_campaigns = self._known_ids(
            Campaign.campaign_id,
            {r["campaign_id"] for r in campaign_rows},
            (a.get("campaign_id") for a in adsets),
        )
        adset_rows = []
        for a in adsets:
            if not a.get("id"):
                continue
            if a.get("campaign_id") not in known_campaigns:
                logger.warning(
                    f"Skipping ad set {a['id']}: unknown campaign {a.get('campaign_id')}",
                    extra={"account_id": account_id},
                )
                continue
            adset_rows.append(
                {
                    "adset_id": a["id"],
                    "name": a.get("name") or "",
                    "status": a.get("status"),
                    "optimization_goal": a.get("optimization_goal"),
                    "campaign_id": a["campaign_id"],
                    "ad_account_id": account_id,
                    "updated_at": now,
                }
            )
        self.progress.adsets_upserted += await self._upsert_chunks(AdSet, adset_rows, "adset_id")

        ads = await self._fetch("ads", account_id, self.endpoints.list_ads(account_id)) or []
        known_adsets = self._known_ids(
            AdSet.adset_id,
            {r["adset_id"] for r in adset_rows},
            (a.get("adset_id") for a in ads),
        )
        ad_rows = []
        for ad in ads:
            if not ad.get("id"):
                continue
            if ad.get("adset_id") not in known_adsets:
                logger.warning(
                    f"Skipping ad {ad['id']}: unknown ad set {ad.get('adset_id')}",
                    extra={"account_id": account_id},
                )
                continue
            ad_rows.append(
                {
                    "ad_id": ad["id"],
                    "name": ad.get("name") or "",
                    "status": ad.get("status"),
                    "adset_id": ad["adset_id"],
                    "campaign_id": ad.get("campaign_id") or "",
                    "ad_account_id": account_id,
                    "updated_at": now,
                }
            )
        self.progress.ads_upserted += await self._upsert_chunks(Ad, ad_rows, "ad_id")

        logger.info(
            f"Upserted {len(campaign_rows)} campaigns, {len(adset_rows)} ad sets, "
            f"{len(ad_rows)} ads",
            extra={"account_id": account_id},
        )

    async def write_back_insights(
        self, account_id: str, level: str, since: str, until: str
    ) -> int:
        """Overwrite spend / platform lead count on one entity level."""
        insights = await self._fetch(
            f"{level} insights",
            account_id,
            self.endpoints.list_insights(account_id, level, since, until),
        )
        if not insights:
            return 0

        model, key = _LEVELS[level]
        column = getattr(model, key)
        updates: Dict[str, Dict[str, Any]] = {}
        for row in insights:
            entity_id = row.get(f"{level}_id")
            if not entity_id:
                continue
            metrics = extract_metrics(row)
            updates[entity_id] = {
                "spend_usd": metrics.spend,
                "insights_leads_count": metrics.leads,
            }

        items = list(updates.items())
        for batch in chunked(items, WRITE_BACK_BATCH):
            await asyncio.gather(
                *(
                    retry_store_write(
                        self.store.update_where,
                        model,
                        values,
                        column == entity_id,
                        description=f"{level} insight write-back",
                    )
                    for entity_id, values in batch
                )
            )
        logger.info(
            f"Wrote {level} insights for {len(items)} entities",
            extra={"account_id": account_id},
        )
        return len(items)

    async def replace_daily_insights(self, account_id: str, since: str, until: str) -> int:
        """Delete-then-insert each fetched daily window for this account."""
        written = 0
        async for window_start, window_end, raw_rows in self.endpoints.iter_daily_insight_windows(
            account_id, since, until
        ):
            rows = to_daily_insight_rows(raw_rows, account_id)
            await retry_store_write(
                self.store.delete_where,
                DailyInsight,
                DailyInsight.ad_account_id == account_id,
                DailyInsight.date >= window_start,
                DailyInsight.date <= window_end,
                description="daily insight delete",
            )
            for chunk in chunked(rows, UPSERT_CHUNK):
                await retry_store_write(
                    self.store.insert, DailyInsight, chunk, description="daily insight insert"
                )
            written += len(rows)
            self.progress.daily_rows_written += len(rows)

        logger.info(f"Saved {written} daily insights", extra={"account_id": account_id})
        return written
