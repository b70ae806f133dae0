"""LeadHub — Dashboard Read Service.

Accounts, campaign list, headline stats and the sync audit trail.
"""

from collections import Counter
from typing import Any, Dict, List, Optional

from sqlalchemy import func

from leadhub.models.ad_models import AdAccount, Campaign
from leadhub.models.hierarchy_models import DashboardStats
from leadhub.models.lead_models import Lead
from leadhub.models.sync_models import SyncLog
from leadhub.services.hierarchy import day_bounds
from leadhub.store import Store


class DashboardService:
    def __init__(self, store: Store):
        self.store = store

    def list_accounts(self) -> List[AdAccount]:
        return self.store.read_all(AdAccount, order_by=AdAccount.account_name)

    def _campaign_filters(
        self,
        date_start: Optional[str],
        date_end: Optional[str],
        account_id: Optional[str],
    ) -> List[Any]:
        filters: List[Any] = []
        start, end = day_bounds(date_start, date_end)
        if start:
            filters.append(Campaign.created_at >= start)
        if end:
            filters.append(Campaign.created_at < end)
        if account_id:
            filters.append(Campaign.ad_account_id == account_id.replace("act_", ""))
        return filters

    def list_campaigns(
        self,
        date_start: Optional[str] = None,
        date_end: Optional[str] = None,
        account_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Campaigns by spend, with account name and stored form-lead count."""
        filters = self._campaign_filters(date_start, date_end, account_id)
        if search:
            filters.append(func.lower(Campaign.name).contains(search.lower()))
        campaigns = self.store.read_all(Campaign, *filters, order_by=Campaign.spend_usd.desc())

        account_names = {a.account_id: a.account_name for a in self.list_accounts()}
        campaign_ids = [c.campaign_id for c in campaigns]
        lead_counts: Counter = Counter()
        if campaign_ids:
            lead_counts = Counter(
                self.store.read_column(Lead.campaign_id, Lead.campaign_id.in_(campaign_ids))
            )

        return [
            {
                "id": c.id,
                "campaign_id": c.campaign_id,
                "name": c.name,
                "ad_account_id": c.ad_account_id,
                "ad_account_name": account_names.get(c.ad_account_id, ""),
                "type": c.type,
                "status": c.status,
                "spend_usd": c.spend_usd or 0.0,
                "leads": lead_counts.get(c.campaign_id, 0),
            }
            for c in campaigns
        ]

    def _last_sync(self, run_type: str) -> Optional[str]:
        logs = self.store.select(
            SyncLog,
            SyncLog.type == run_type,
            SyncLog.status == "success",
            order_by=SyncLog.created_at.desc(),
            limit=1,
        )
        return logs[0].created_at.isoformat() if logs else None

    def stats(
        self,
        date_start: Optional[str] = None,
        date_end: Optional[str] = None,
        account_id: Optional[str] = None,
        objective: Optional[str] = None,
    ) -> DashboardStats:
        campaign_filters = self._campaign_filters(date_start, date_end, account_id)
        if objective:
            campaign_filters.append(Campaign.type == objective)
        total_spend = self.store.sum(Campaign.spend_usd, *campaign_filters)

        lead_filters: List[Any] = []
        start, end = day_bounds(date_start, date_end)
        if start:
            lead_filters.append(Lead.created_at >= start)
        if end:
            lead_filters.append(Lead.created_at < end)
        if account_id:
            lead_filters.append(Lead.ad_account_id == account_id.replace("act_", ""))

        return DashboardStats(
            total_spend=total_spend,
            total_leads=self.store.count(Lead, *lead_filters),
            last_spend_sync=self._last_sync("spend"),
            last_leads_sync=self._last_sync("leads"),
        )

    def sync_logs(self, limit: int = 50) -> List[SyncLog]:
        return self.store.select(SyncLog, order_by=SyncLog.created_at.desc(), limit=limit)
