"""LeadHub — Meta API Endpoints.

Fetch functions for each Meta Marketing API resource.
Each returns the raw JSON records; persistence is the caller's job.
"""

import json
from datetime import date, timedelta
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from leadhub.connectors.meta import client as meta_client
from leadhub.connectors.meta.client import MAX_RECORDS, MetaClient
from leadhub.core.errors import MetaRateLimitError
from leadhub.core.logging import get_logger

logger = get_logger("meta.endpoints")

ACCOUNT_FIELDS = "id,name,account_id,account_status"
CAMPAIGN_FIELDS = "id,name,objective,status,created_time"
ADSET_FIELDS = "id,name,campaign_id,status,optimization_goal"
AD_FIELDS = "id,name,adset_id,campaign_id,status"

# Lifetime insight fields per level
INSIGHT_FIELDS = {
    "campaign": "campaign_id,campaign_name,spend,actions",
    "adset": "adset_id,adset_name,campaign_id,spend,actions",
    "ad": "ad_id,ad_name,adset_id,campaign_id,spend,actions",
}

DAILY_INSIGHT_FIELDS = {
    "campaign": "campaign_id,campaign_name,spend,actions,impressions,clicks,date_start",
    "adset": "campaign_id,adset_id,adset_name,spend,actions,impressions,clicks,date_start",
    "ad": "campaign_id,adset_id,ad_id,ad_name,spend,actions,impressions,clicks,date_start",
}

PAGE_FIELDS = "id,name,access_token"
FORM_FIELDS = "id,name,status,leads_count"
LEAD_FIELDS = (
    "id,created_time,field_data,ad_id,ad_name,adset_id,adset_name,"
    "campaign_id,campaign_name,form_id"
)
SUBSCRIBED_FIELDS = "leadgen,ads,adsets,campaigns"

PAGE_SIZE = 500
INSIGHT_PAGE_DELAY = 0.3  # seconds
DAILY_PAGE_DELAY = 0.5
DAILY_WINDOW_DELAY = 2.0
DAILY_WINDOW_DAYS = 90


def split_date_range(
    date_start: str, date_stop: str, window_days: int = DAILY_WINDOW_DAYS
) -> List[Tuple[str, str]]:
    """Split an inclusive YYYY-MM-DD range into windows of at most `window_days`."""
    start = date.fromisoformat(date_start)
    end = date.fromisoformat(date_stop)
    windows: List[Tuple[str, str]] = []
    current = start
    while current <= end:
        window_end = min(current + timedelta(days=window_days - 1), end)
        windows.append((current.isoformat(), window_end.isoformat()))
        current = window_end + timedelta(days=1)
    return windows


def _act(account_id: str) -> str:
    return account_id if account_id.startswith("act_") else f"act_{account_id}"


class MetaEndpoints:
    """Resource-level calls on top of MetaClient."""

    def __init__(self, client: MetaClient):
        self.client = client
        self.base_url = client.base_url

    # ── Accounts & Structure ──

    async def list_accounts(self) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/me/adaccounts"
        return await self.client._paginated_get(url, {"fields": ACCOUNT_FIELDS})

    async def list_campaigns(self, account_id: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{_act(account_id)}/campaigns"
        params = {"fields": CAMPAIGN_FIELDS, "limit": PAGE_SIZE}
        return await self.client._paginated_get(url, params)

    async def list_adsets(self, account_id: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{_act(account_id)}/adsets"
        params = {"fields": ADSET_FIELDS, "limit": PAGE_SIZE}
        return await self.client._paginated_get(url, params)

    async def list_ads(self, account_id: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{_act(account_id)}/ads"
        params = {"fields": AD_FIELDS, "limit": PAGE_SIZE}
        return await self.client._paginated_get(url, params)

    # ── Insights ──

    async def list_insights(
        self,
        account_id: str,
        level: str,
        date_start: str,
        date_stop: str,
        fields: Optional[str] = None,
        time_increment: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch insights for one level over a time range.

        Raises MetaRateLimitError when throttling outlasts the client's retries.
        """
        url = f"{self.base_url}/{_act(account_id)}/insights"
        params = {
            "level": level,
            "fields": fields or INSIGHT_FIELDS[level],
            "time_range": json.dumps({"since": date_start, "until": date_stop}),
            "limit": PAGE_SIZE,
        }
        if time_increment:
            params["time_increment"] = time_increment
        page_delay = DAILY_PAGE_DELAY if time_increment else INSIGHT_PAGE_DELAY
        data = await self.client._paginated_get(url, params, page_delay=page_delay)
        logger.info(
            f"Fetched {len(data)} {level} insight records",
            extra={"account_id": account_id},
        )
        return data

    async def iter_daily_insight_windows(
        self,
        account_id: str,
        date_start: str,
        date_stop: str,
        level: str = "campaign",
    ) -> AsyncIterator[Tuple[str, str, List[Dict[str, Any]]]]:
        """Yield (window_start, window_end, rows) per 90-day window.

        A window whose throttling retries run out is logged and not yielded,
        so the caller leaves that window's stored rows alone.
        """
        windows = split_date_range(date_start, date_stop)
        logger.info(
            f"Splitting {date_start} to {date_stop} into {len(windows)} daily windows",
            extra={"account_id": account_id},
        )
        for i, (window_start, window_end) in enumerate(windows):
            if i > 0:
                await meta_client._sleep(DAILY_WINDOW_DELAY)
            try:
                rows = await self.list_insights(
                    account_id,
                    level,
                    window_start,
                    window_end,
                    fields=DAILY_INSIGHT_FIELDS[level],
                    time_increment="1",
                )
            except MetaRateLimitError as e:
                logger.error(
                    f"Skipping daily window {window_start} to {window_end}: {e}",
                    extra={"account_id": account_id},
                )
                continue
            yield window_start, window_end, rows

    async def list_daily_insights(
        self,
        account_id: str,
        level: str,
        date_start: str,
        date_stop: str,
    ) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        async for _, _, window_rows in self.iter_daily_insight_windows(
            account_id, date_start, date_stop, level
        ):
            rows.extend(window_rows)
        return rows

    # ── Pages, Forms & Leads ──

    async def list_pages(self) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/me/accounts"
        return await self.client._paginated_get(url, {"fields": PAGE_FIELDS})

    async def list_lead_forms(
        self, page_id: str, page_token: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{page_id}/leadgen_forms"
        params: Dict[str, Any] = {"fields": FORM_FIELDS}
        if page_token:
            params["access_token"] = page_token
        return await self.client._paginated_get(url, params)

    async def iter_form_lead_pages(
        self,
        form_id: str,
        page_token: Optional[str] = None,
        max_records: int = MAX_RECORDS,
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        """Stream a form's leads one page at a time."""
        url = f"{self.base_url}/{form_id}/leads"
        params: Dict[str, Any] = {"fields": LEAD_FIELDS, "limit": PAGE_SIZE}
        if page_token:
            params["access_token"] = page_token
        seen = 0
        pages = self.client.iter_pages(url, params)
        try:
            async for data in pages:
                seen += len(data)
                yield data
                if seen >= max_records:
                    logger.warning(
                        f"Reached {max_records} leads limit for form {form_id}",
                        extra={"form_id": form_id},
                    )
                    break
        finally:
            await pages.aclose()

    async def list_form_leads(
        self, form_id: str, page_token: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        leads: List[Dict[str, Any]] = []
        async for data in self.iter_form_lead_pages(form_id, page_token):
            leads.extend(data)
        return leads

    async def get_lead(self, lead_id: str) -> Dict[str, Any]:
        url = f"{self.base_url}/{lead_id}"
        return await self.client._request("GET", url, {"fields": LEAD_FIELDS})

    # ── Webhook Subscriptions ──

    async def subscribe_account(self, account_id: str) -> bool:
        url = f"{self.base_url}/{_act(account_id)}/subscribed_apps"
        result = await self.client._request(
            "POST", url, {"subscribed_fields": SUBSCRIBED_FIELDS}
        )
        return bool(result.get("success"))

    async def get_subscribed_apps(self, account_id: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{_act(account_id)}/subscribed_apps"
        result = await self.client._request("GET", url)
        return result.get("data") or []
