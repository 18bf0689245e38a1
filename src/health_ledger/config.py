"""Application configuration."""

import os
from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


@dataclass(frozen=True)
class OAuthCredentials:
    """Client credentials for the activity service's token endpoint."""

    client_id: str
    client_secret: str


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    api_token: str
    whoop_client_id: str
    whoop_client_secret: str
    whoop_redirect_uri: str
    whoop_api_base_url: str = "https://api.prod.whoop.com/developer/v2"
    whoop_token_url: str = "https://api.prod.whoop.com/oauth/oauth2/token"
    whoop_authorize_url: str = "https://api.prod.whoop.com/oauth/oauth2/auth"
    whoop_scopes: str = "offline read:cycles"
    http_timeout_seconds: float = 8.0
    token_refresh_margin_seconds: int = 60
    store_max_attempts: int = 5
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def oauth_credentials(self) -> OAuthCredentials:
        """Return the WHOOP client credentials."""
        return OAuthCredentials(
            client_id=self.whoop_client_id,
            client_secret=self.whoop_client_secret,
        )
