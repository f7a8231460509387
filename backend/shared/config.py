"""
Centralized configuration for the MedInvest backend.

All settings are loaded from environment variables with sensible defaults.
Provider credentials are namespaced per provider (GOOGLE_*, GITHUB_*, ...).
"""

import logging
import re
import secrets
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_CREDENTIAL_FIELDS = (
    "google_web_client_id",
    "google_web_client_secret",
    "github_client_id",
    "github_client_secret",
    "github_mobile_client_id",
    "github_mobile_client_secret",
    "facebook_app_id",
    "facebook_app_secret",
    "apple_client_id",
)


def clean_env_value(value: object) -> str:
    """
    Normalize a credential pasted into an environment variable.

    Strips surrounding whitespace, anything after an embedded newline
    (real or a literal backslash-n) and control characters.
    """
    if value is None:
        return ""
    cleaned = str(value).strip()
    cleaned = re.sub(r"[\r\n].*$", "", cleaned, flags=re.DOTALL)
    cleaned = re.sub(r"\\n.*$", "", cleaned, flags=re.DOTALL)
    cleaned = re.sub(r"[\x00-\x1f\x7f]", "", cleaned)
    return cleaned


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "MedInvest API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:8081", "http://localhost:5000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""

    # Signing secrets
    jwt_secret: str = ""
    session_secret: str = Field(
        default="",
        validation_alias=AliasChoices("session_secret", "oauth_state_secret"),
    )

    # Public URLs
    oauth_redirect_base: str = ""
    oauth_callback_domain: str = ""
    public_domain: str = Field(
        default="",
        validation_alias=AliasChoices("public_domain", "expo_public_domain"),
    )
    app_root_url: str = ""

    # Google
    google_web_client_id: str = Field(
        default="",
        validation_alias=AliasChoices("google_web_client_id", "expo_public_google_web_client_id"),
    )
    google_web_client_secret: str = ""

    # GitHub (web app, plus an optional separate app for native clients)
    github_client_id: str = Field(
        default="",
        validation_alias=AliasChoices("github_client_id", "expo_public_github_client_id"),
    )
    github_client_secret: str = ""
    github_mobile_client_id: str = Field(
        default="",
        validation_alias=AliasChoices("github_mobile_client_id", "expo_public_github_mobile_client_id"),
    )
    github_mobile_client_secret: str = ""

    # Facebook
    facebook_app_id: str = Field(
        default="",
        validation_alias=AliasChoices("facebook_app_id", "expo_public_facebook_app_id"),
    )
    facebook_app_secret: str = ""

    # Apple
    apple_client_id: str = ""
    apple_bundle_ids: list[str] = ["com.medinvest.app", "host.exp.Exponent"]

    # Sessions
    session_ttl_days: int = 30
    bearer_ttl_days: int = 30

    # Outbound calls
    provider_timeout_seconds: float = 10.0
    jwks_cache_ttl_seconds: int = 86400

    @field_validator(*_CREDENTIAL_FIELDS, mode="before")
    @classmethod
    def _clean_credentials(cls, value: object) -> str:
        return clean_env_value(value)

    @model_validator(mode="after")
    def _ensure_signing_secrets(self) -> "Settings":
        if not self.session_secret:
            logger.warning(
                "SESSION_SECRET is not set; generated a per-process state secret. "
                "Logins in flight during a restart will fail."
            )
            self.session_secret = secrets.token_hex(32)
        if not self.jwt_secret:
            logger.warning("JWT_SECRET is not set; generated a per-process bearer secret.")
            self.jwt_secret = secrets.token_hex(32)
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once, which also keeps
    any generated secret stable for the process lifetime.
    """
    return Settings()
