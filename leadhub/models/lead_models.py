"""LeadHub — Lead & Field Mapping Models."""

from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Lead(SQLModel, table=True):
    """One form submission. Immutable once inserted.

    `lead_id` is the platform's id and the dedup key: a second sync
    observing the same id never inserts again.
    """

    __tablename__ = "leads"

    id: Optional[int] = Field(default=None, primary_key=True)
    lead_id: str = Field(unique=True, index=True)
    form_id: Optional[str] = Field(default=None)
    form_name: str = Field(default="Unknown", index=True)
    page_id: Optional[str] = Field(default=None)
    ad_id: Optional[str] = Field(default=None)
    ad_name: Optional[str] = Field(default=None)
    ad_set_id: Optional[str] = Field(default=None)
    ad_set_name: Optional[str] = Field(default=None)
    campaign_id: Optional[str] = Field(default=None, index=True)
    ad_account_id: Optional[str] = Field(default=None, index=True)
    source: str = Field(default="sync", description="sync | webhook")
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class LeadFieldValue(SQLModel, table=True):
    """One submitted form field of a lead."""

    __tablename__ = "lead_field_data"

    id: Optional[int] = Field(default=None, primary_key=True)
    lead_id: int = Field(foreign_key="leads.id", index=True)
    field_name: str
    mapped_field_name: Optional[str] = Field(default=None, index=True)
    field_value: str = Field(default="")


class FieldMapping(SQLModel, table=True):
    """Raw form-field label → canonical field name.

    Uniqueness is on the normalized form of the raw name, so "E-Mail" and
    "e_mail" cannot carry two different mappings.
    """

    __tablename__ = "field_mappings"

    id: Optional[int] = Field(default=None, primary_key=True)
    raw_field_name: str
    normalized_name: str = Field(unique=True, index=True)
    mapped_field: str = Field(index=True)
    language: Optional[str] = Field(default=None)
    auto_detected: bool = Field(default=False)
    created_at: datetime = Field(default_factory=_utcnow)
