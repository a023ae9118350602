from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Alerting
    sync_alert_email: str = Field(default="integrity-alerts@example.org", alias="SYNC_ALERT_EMAIL")
    alert_webhook_url: str = Field(default="", alias="ALERT_WEBHOOK_URL")

    # Ledger gateway (empty = in-memory sample ledger)
    ledger_base_url: str = Field(default="", alias="LEDGER_BASE_URL")
    ledger_timeout_seconds: float = Field(default=5.0, gt=0, alias="LEDGER_TIMEOUT_SECONDS")

    # Registries / scoring
    registry_data_path: str = Field(default="", alias="REGISTRY_DATA_PATH")
    discrepancy_report_limit: int = Field(default=50, ge=1, alias="DISCREPANCY_REPORT_LIMIT")
    authenticity_pass_threshold: int = Field(default=70, ge=0, le=100, alias="AUTHENTICITY_PASS_THRESHOLD")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")


@lru_cache
def get_settings() -> EngineSettings:
    return EngineSettings()
