"""LeadHub — Sync Audit & Progress Models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel
from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─────────────────────────────────────────────
# DATABASE MODELS
# ─────────────────────────────────────────────


class SyncLog(SQLModel, table=True):
    """Append-only audit row, one per sync attempt."""

    __tablename__ = "sync_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    type: str = Field(index=True, description="spend | leads | webhook | sync")
    status: str = Field(description="success | error")
    error_message: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class Subscription(SQLModel, table=True):
    """Webhook subscription state of one ad account."""

    __tablename__ = "subscriptions"

    id: Optional[int] = Field(default=None, primary_key=True)
    ad_account_id: str = Field(unique=True, index=True)
    status: str = Field(default="not_subscribed")
    fields: str = Field(default="")
    last_attempt: Optional[datetime] = Field(default=None)
    last_success: Optional[datetime] = Field(default=None)
    last_error: Optional[str] = Field(default=None)


# ─────────────────────────────────────────────
# PYDANTIC SCHEMAS: run progress snapshots
# ─────────────────────────────────────────────


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class RunProgress(BaseModel):
    """Common shape of a pollable run snapshot."""

    status: RunStatus = RunStatus.IDLE
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None


class IngestionProgress(RunProgress):
    current_account: Optional[str] = None
    accounts_processed: int = 0
    total_accounts: int = 0
    campaigns_upserted: int = 0
    adsets_upserted: int = 0
    ads_upserted: int = 0
    daily_rows_written: int = 0


class LeadSyncProgress(RunProgress):
    current_page: Optional[str] = None
    current_form: Optional[str] = None
    total_fetched: int = 0
    total_inserted: int = 0
    total_skipped: int = 0
    forms_processed: int = 0
    total_forms: int = 0
    errors: int = 0
