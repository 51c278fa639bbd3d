"""
PawSafe - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Local store
    database_url: str = "sqlite:///pawsafe.db"
    db_echo: bool = False

    # Firebase Realtime Database (remote authoritative store)
    firebase_credentials_path: Optional[str] = None
    firebase_database_url: Optional[str] = None
    firebase_reports_path: str = "reports"

    # Firebase Cloud Messaging token of this device (local proximity notifications)
    device_push_token: Optional[str] = None

    # Device identity and saved preferences
    device_id_path: str = ".pawsafe_device_id"
    preferences_path: str = ".pawsafe_preferences.json"

    # Default for the proximity alerts toggle until the user changes it
    proximity_alerts_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def remote_configured(self) -> bool:
        return bool(self.firebase_credentials_path and self.firebase_database_url)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
