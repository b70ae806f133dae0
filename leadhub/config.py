"""LeadHub — Central Configuration via Pydantic Settings."""

import os
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Meta API ──
    meta_access_token: str = ""
    meta_api_version: str = "v19.0"
    meta_base_url: str = "https://graph.facebook.com"
    meta_allowed_ad_accounts: str = ""  # comma-separated, empty = all
    meta_sync_lookback_days: int = 90

    # ── Webhook ──
    meta_app_secret: Optional[str] = None
    meta_webhook_verify_token: Optional[str] = None

    # ── Database ──
    database_url: str = ""
    store_max_rows: int = 1000
    store_max_batch: int = 500

    # ── Caches ──
    hierarchy_cache_ttl_seconds: float = 60.0
    countries_cache_ttl_seconds: float = 300.0

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    sync_hour: int = 3  # Daily ingestion at 3 AM UTC
    lead_sync_hour: int = 4

    @property
    def allowed_ad_accounts(self) -> List[str]:
        """Allow-listed account ids with any `act_` prefix stripped."""
        return [
            a.strip().removeprefix("act_")
            for a in self.meta_allowed_ad_accounts.split(",")
            if a.strip()
        ]

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/leadhub.db"
        return "sqlite:///./leadhub.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
