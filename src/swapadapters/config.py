"""Plugin configuration using pydantic-settings.

Holds the API credentials and endpoints the exchange plugins are
initialized with.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    log_level: str = Field(default="INFO", description="Log level when debug is off")

    # ======================
    # HTTP
    # ======================
    http_timeout: float = Field(default=30.0, description="Timeout for exchange requests in seconds")

    # ======================
    # SideShift
    # ======================
    sideshift_base_url: str = Field(
        default="https://sideshift.ai/api/v1", description="SideShift.ai API URL"
    )
    sideshift_affiliate_id: str = Field(default="", description="SideShift.ai affiliate id")

    # ======================
    # CoinSwitch
    # ======================
    coinswitch_base_url: str = Field(
        default="https://api.coinswitch.co/", description="CoinSwitch API URL"
    )
    coinswitch_api_key: str = Field(default="", description="CoinSwitch API key")

    # ======================
    # Nomics
    # ======================
    nomics_base_url: str = Field(
        default="https://api.nomics.com/v1", description="Nomics API URL"
    )
    nomics_api_key: str = Field(default="", description="Nomics exchange rates API key")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "http_timeout": self.http_timeout,
            "sideshift": {
                "url": self.sideshift_base_url,
                "affiliate_id": "***" if self.sideshift_affiliate_id else "(not set)",
            },
            "coinswitch": {
                "url": self.coinswitch_base_url,
                "api_key": "***" if self.coinswitch_api_key else "(not set)",
            },
            "nomics": {
                "url": self.nomics_base_url,
                "api_key": "***" if self.nomics_api_key else "(not set)",
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
