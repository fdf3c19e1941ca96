"""
Configuration Management for Subscription Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    subscriptions_sheet_name: str = Field(
        default="Subscriptions",
        description="Name of the sheet for subscriptions"
    )
    preferences_sheet_name: str = Field(
        default="NotificationPreferences",
        description="Name of the sheet for notification preferences"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AuthSettings(BaseSettings):
    """
    Authentication configuration.

    When disabled, the app runs as a single local development user.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=False,
        description="Require sign-in through the configured OIDC provider"
    )
    provider: str = Field(
        default="google",
        description="Name of the OIDC provider section in Streamlit secrets"
    )
    dev_user_id: str = Field(
        default="local-user",
        min_length=1,
        description="Owner id used when authentication is disabled"
    )
    dev_user_email: str = Field(
        default="local@example.com",
    )
    dev_user_name: str = Field(
        default="Local User",
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Where subscriptions are persisted"
    )

    # Scheduling
    upcoming_window_days: int = Field(
        default=7,
        ge=1,
        le=30,
        description="Dashboard lookahead window for upcoming payments"
    )
    schedule_preview_count: int = Field(
        default=3,
        ge=1,
        le=24,
        description="How many future payments to show on the detail page"
    )
    roll_forward_stale_dates: bool = Field(
        default=False,
        description="Project past anchor dates forward when looking for upcoming payments"
    )

    # Validation thresholds
    max_reasonable_price: float = Field(
        default=10000.0,
        gt=0,
        description="Prices above this are flagged for review (not rejected)"
    )
    stale_payment_date_days: int = Field(
        default=365,
        ge=1,
        description="Payment dates older than this are flagged for review"
    )

    # Display
    currency_symbol: str = Field(
        default="$",
        max_length=5,
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    sections = {
        "google_sheets": lambda: settings.google_sheets,
        "auth": lambda: settings.auth,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
