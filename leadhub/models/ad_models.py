"""LeadHub — Advertising Hierarchy Models.

Accounts, campaigns, ad sets and ads are keyed by the platform's external ids
and upserted on every sync. Spend and lead counts are overwritten, never summed.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdAccount(SQLModel, table=True):
    """Advertising account discovered through the platform."""

    __tablename__ = "ad_accounts"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: str = Field(unique=True, index=True, description="External id, no act_ prefix")
    account_name: str = Field(default="")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Campaign(SQLModel, table=True):
    """Campaign with lifetime spend and platform-reported lead count."""

    __tablename__ = "campaigns"

    id: Optional[int] = Field(default=None, primary_key=True)
    campaign_id: str = Field(unique=True, index=True)
    name: str = Field(default="")
    type: Optional[str] = Field(default=None, description="Campaign objective")
    status: Optional[str] = Field(default=None)
    ad_account_id: str = Field(index=True, description="Owning account external id")
    spend_usd: float = Field(default=0.0)
    insights_leads_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class AdSet(SQLModel, table=True):
    __tablename__ = "ad_sets"

    id: Optional[int] = Field(default=None, primary_key=True)
    adset_id: str = Field(unique=True, index=True)
    name: str = Field(default="")
    status: Optional[str] = Field(default=None)
    optimization_goal: Optional[str] = Field(default=None)
    campaign_id: str = Field(index=True)
    ad_account_id: str = Field(index=True)
    spend_usd: float = Field(default=0.0)
    insights_leads_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Ad(SQLModel, table=True):
    __tablename__ = "ads"

    id: Optional[int] = Field(default=None, primary_key=True)
    ad_id: str = Field(unique=True, index=True)
    name: str = Field(default="")
    status: Optional[str] = Field(default=None)
    adset_id: str = Field(index=True)
    campaign_id: str = Field(index=True)
    ad_account_id: str = Field(index=True)
    spend_usd: float = Field(default=0.0)
    insights_leads_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class DailyInsight(SQLModel, table=True):
    """Per-day performance row.

    The rows of an (account, date window) are always replaced as a whole:
    the platform re-attributes past days, so merging would leave stale rows.
    Empty adset_id / ad_id mean a campaign-level row.
    """

    __tablename__ = "daily_insights"
    __table_args__ = (
        UniqueConstraint(
            "date", "campaign_id", "adset_id", "ad_id", name="uq_daily_insight"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    date: str = Field(index=True, description="YYYY-MM-DD")
    campaign_id: str = Field(index=True)
    campaign_name: str = Field(default="")
    adset_id: str = Field(default="", index=True)
    ad_id: str = Field(default="", index=True)
    spend_usd: float = Field(default=0.0)
    leads_count: int = Field(default=0)
    impressions: int = Field(default=0)
    clicks: int = Field(default=0)
    ad_account_id: str = Field(index=True)
