"""Ads Hub — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Database ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    snapshot_hour: int = 3  # Daily snapshot at 3 AM UTC

    # ── Formulas ──
    formula_max_length: int = 2000
    formula_max_inputs: int = 50

    # ── Snapshots ──
    snapshot_schema_version: str = "1.0.0"
    default_currency: str = "USD"

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/adshub.db"
        return "sqlite:///./adshub.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
