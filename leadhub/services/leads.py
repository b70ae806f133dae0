"""LeadHub — Lead Read Service."""

from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_

from leadhub.core.logging import get_logger
from leadhub.models.ad_models import AdAccount, Campaign
from leadhub.models.lead_models import Lead, LeadFieldValue
from leadhub.services.field_mappings import FieldMappingCache
from leadhub.services.hierarchy import day_bounds
from leadhub.store import Store

logger = get_logger("services.leads")


class LeadService:
    def __init__(self, store: Store, mapping_cache: FieldMappingCache):
        self.store = store
        self.mapping_cache = mapping_cache

    def _names(self, leads: List[Lead]) -> tuple:
        campaign_ids = {l.campaign_id for l in leads if l.campaign_id}
        account_ids = {l.ad_account_id for l in leads if l.ad_account_id}
        campaigns = (
            self.store.select(Campaign, Campaign.campaign_id.in_(campaign_ids)) if campaign_ids else []
        )
        accounts = (
            self.store.select(AdAccount, AdAccount.account_id.in_(account_ids)) if account_ids else []
        )
        return (
            {c.campaign_id: c.name for c in campaigns},
            {a.account_id: a.account_name for a in accounts},
        )

    @staticmethod
    def _summary(lead: Lead, campaign_names: Dict[str, str], account_names: Dict[str, str]) -> Dict[str, Any]:
        return {
            "id": lead.id,
            "lead_id": lead.lead_id,
            "created_at": lead.created_at.isoformat() if lead.created_at else None,
            "ad_account_name": account_names.get(lead.ad_account_id or "", ""),
            "campaign_id": lead.campaign_id,
            "campaign_name": campaign_names.get(lead.campaign_id or "", ""),
            "ad_set_name": lead.ad_set_name or "",
            "ad_name": lead.ad_name or "",
            "form_name": lead.form_name or "",
            "source": lead.source or "",
        }

    def list_leads(
        self,
        date_start: Optional[str] = None,
        date_end: Optional[str] = None,
        account_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
        form_name: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Dict[str, Any]:
        """Newest-first page of leads plus the total matching count."""
        filters: List[Any] = []
        start, end = day_bounds(date_start, date_end)
        if start:
            filters.append(Lead.created_at >= start)
        if end:
            filters.append(Lead.created_at < end)
        if account_id:
            filters.append(Lead.ad_account_id == account_id.replace("act_", ""))
        if campaign_id:
            filters.append(Lead.campaign_id == campaign_id)
        if form_name:
            filters.append(func.lower(Lead.form_name).contains(form_name.lower()))
        if search:
            needle = search.lower()
            filters.append(
                or_(
                    func.lower(Lead.lead_id).contains(needle),
                    func.lower(Lead.form_name).contains(needle),
                )
            )

        page = max(page, 1)
        leads = self.store.select(
            Lead,
            *filters,
            order_by=Lead.created_at.desc(),
            limit=limit,
            offset=(page - 1) * limit,
        )
        campaign_names, account_names = self._names(leads)
        return {
            "data": [self._summary(l, campaign_names, account_names) for l in leads],
            "total": self.store.count(Lead, *filters),
            "page": page,
            "limit": limit,
        }

    def get_lead(self, lead_pk: int) -> Optional[Dict[str, Any]]:
        """One lead with its field values; unmapped names are resolved on read."""
        lead = self.store.first(Lead, Lead.id == lead_pk)
        if lead is None:
            return None

        campaign_names, account_names = self._names([lead])
        detail = self._summary(lead, campaign_names, account_names)
        fields = self.store.read_all(LeadFieldValue, LeadFieldValue.lead_id == lead.id)
        detail["field_data"] = [
            {
                "name": f.field_name,
                "mapped_name": f.mapped_field_name
                or self.mapping_cache.resolve(self.store, f.field_name),
                "values": [f.field_value],
            }
            for f in fields
        ]
        return detail
