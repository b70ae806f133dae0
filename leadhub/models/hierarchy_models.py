"""LeadHub — Hierarchy & Dashboard Response Schemas."""

from typing import List, Optional
from pydantic import BaseModel, field_validator


# ─────────────────────────────────────────────
# HIERARCHY TREE: Campaign → AdSet → Ad
# ─────────────────────────────────────────────


class AdNode(BaseModel):
    ad_id: str
    name: str
    status: Optional[str] = None
    adset_id: str
    campaign_id: str
    spend_usd: float = 0.0
    leads_count: int = 0
    countries: List[str] = []


class AdSetNode(BaseModel):
    adset_id: str
    name: str
    status: Optional[str] = None
    optimization_goal: Optional[str] = None
    campaign_id: str
    spend_usd: float = 0.0
    leads_count: int = 0
    countries: List[str] = []
    ads: List[AdNode] = []


class CampaignNode(BaseModel):
    """Root of one hierarchy branch.

    `leads_count` is the platform count when non-zero, otherwise the
    number of stored form leads for the campaign.
    """

    id: Optional[int] = None
    campaign_id: str
    name: str
    type: Optional[str] = None
    status: Optional[str] = None
    ad_account_id: str
    spend_usd: float = 0.0
    leads_count: int = 0
    insights_leads_count: int = 0
    form_leads_count: int = 0
    countries: List[str] = []
    adsets: List[AdSetNode] = []


# ─────────────────────────────────────────────
# FIELD MAPPINGS
# ─────────────────────────────────────────────


class FieldMappingCreate(BaseModel):
    raw_field_name: str
    mapped_field: str
    language: Optional[str] = None
    auto_detected: bool = False


class FieldMappingUpdate(BaseModel):
    raw_field_name: Optional[str] = None
    mapped_field: Optional[str] = None
    language: Optional[str] = None
    auto_detected: Optional[bool] = None

    @field_validator("raw_field_name", "mapped_field", "auto_detected")
    @classmethod
    def not_null(cls, value):
        # omitted means unchanged; these columns are NOT NULL
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class UnmappedField(BaseModel):
    field_name: str
    count: int
    sample_values: List[str] = []


# ─────────────────────────────────────────────
# DASHBOARD
# ─────────────────────────────────────────────


class DashboardStats(BaseModel):
    total_spend: float = 0.0
    total_leads: int = 0
    last_spend_sync: Optional[str] = None
    last_leads_sync: Optional[str] = None
