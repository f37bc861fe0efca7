"""DealDesk configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class DealDeskSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///dealdesk.db"
    echo_sql: bool = False
    app_title: str = "DealDesk CRM"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8020

    # Inbound webhooks. An empty secret leaves the endpoint open.
    security_fail_closed: bool = False
    webhook_secret_header: str = "X-Webhook-Secret"
    iclosed_webhook_secret: str = ""
    kixie_webhook_secret: str = ""

    # Owner resolution: "first_user" (single-tenant fallback) or "explicit"
    owner_policy: str = "first_user"

    # Kixie outbound API
    kixie_api_url: str = "https://apig.kixie.com/app/event"
    kixie_timeout_seconds: float = 30.0
    kixie_max_retries: int = 3
    kixie_retry_base_delay: float = 1.0

    # Credential encryption for third-party integrations
    encryption_key: str = ""

    model_config = {"env_prefix": "DEALDESK_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def alembic_ini_path(self) -> Path:
        return self.base_dir / "alembic.ini"

    @property
    def webhook_secrets(self) -> dict[str, str]:
        return {
            "iclosed": self.iclosed_webhook_secret,
            "kixie": self.kixie_webhook_secret,
        }


settings = DealDeskSettings()
