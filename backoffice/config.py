# backoffice/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10.v1"
    database_url: str = "sqlite:///./backoffice.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Tenancy / auth ----
    auth_mode: str = "dev"  # dev|header
    dev_auto_provision: bool = True

    # Dev header names
    dev_header_org_slug: str = "X-Org-Slug"
    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"

    # ---- Workflow defaults (OrganizationSettings rows override per org) ----
    application_expiration_days: int = 30
    lease_offer_expiration_days: int = 30
    lease_activation_window_days: int = 30
    organization_share_percentage: float = 0.20
    default_dividend_payment_method: str = "Lease Credit"

    # ---- Celery ----
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None
    sweep_hour_utc: int = 2

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")

        if not 0.0 <= float(self.organization_share_percentage) <= 1.0:
            raise ValueError("organization_share_percentage must be between 0 and 1")


settings = Settings()
