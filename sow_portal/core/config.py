"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # HubSpot private app
    HUBSPOT_ACCESS_TOKEN: SecretStr = SecretStr("")
    HUBSPOT_API_BASE: str = "https://api.hubapi.com"
    HUBSPOT_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Self-healing ceilings (provisioning pass / single wrapped attempt)
    PROVISIONING_TIMEOUT_SECONDS: float = 30.0
    OPERATION_TIMEOUT_SECONDS: float = 30.0

    # Detailed /health diagnostics (generate with: openssl rand -hex 32)
    HEALTH_CHECK_API_KEY: SecretStr = SecretStr("")

    # Files and timeline notes
    SOW_FILES_FOLDER: str = "/SOW-Approvals"
    NOTE_TIMEZONE: str = "America/New_York"

    # Application Settings
    APP_ENV: Literal["development", "staging", "production"] = "development"
    PUBLIC_BASE_URL: str = ""

    # Logging
    LOG_FORMAT: Literal["text", "json"] = "text"
    LOG_LEVEL: str = "INFO"

    # CORS Configuration
    CORS_ORIGINS: str = "http://localhost:3000"

    @field_validator("HUBSPOT_API_BASE")
    @classmethod
    def validate_api_base(cls, v: str) -> str:
        """Validate that HUBSPOT_API_BASE is a valid URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("HUBSPOT_API_BASE must start with http:// or https://")
        return v.rstrip("/")

    @field_validator(
        "HUBSPOT_REQUEST_TIMEOUT_SECONDS",
        "PROVISIONING_TIMEOUT_SECONDS",
        "OPERATION_TIMEOUT_SECONDS",
    )
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Timeouts must be positive."""
        if v <= 0:
            raise ValueError("timeouts must be greater than zero")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"

    @property
    def hubspot_configured(self) -> bool:
        """Check if a HubSpot access token is present."""
        return bool(self.HUBSPOT_ACCESS_TOKEN.get_secret_value())

    def validate_startup(self) -> None:
        """Validate that all required secrets are configured.

        Raises:
            ValueError: If any required secret is missing or empty.
        """
        required_secrets = {
            "HUBSPOT_ACCESS_TOKEN": self.HUBSPOT_ACCESS_TOKEN.get_secret_value(),
            "HEALTH_CHECK_API_KEY": self.HEALTH_CHECK_API_KEY.get_secret_value(),
        }
        missing = [name for name, value in required_secrets.items() if not value]
        if missing:
            raise ValueError(f"Required secrets are missing or empty: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance loaded from the environment.
    """
    return Settings()

