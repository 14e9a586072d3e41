"""
Configuration Management for Biashara Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Gate thresholds, timeouts and restart caps are policy, so they live
here rather than inside the components that apply them.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CloudinarySettings(BaseSettings):
    """Cloudinary receipt image storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        extra="ignore"
    )

    cloud_name: str = Field(
        ...,
        description="Cloudinary cloud name"
    )
    api_key: str = Field(
        ...,
        description="Cloudinary API key"
    )
    api_secret: str = Field(
        ...,
        description="Cloudinary API secret"
    )
    folder: str = Field(
        default="biashara_ledger",
        description="Root folder receipts are uploaded under"
    )


class MindeeSettings(BaseSettings):
    """Mindee OCR service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MINDEE_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Mindee API key"
    )


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
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    categories_sheet_name: str = Field(
        default="Categories",
        description="Name of the sheet for user and default categories"
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


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
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

    # Locale
    default_locale: str = Field(
        default="en",
        description="Locale used when the caller does not pass one"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp",
        description="Comma-separated list of supported image formats"
    )
    min_image_quality_score: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Minimum image quality score before OCR is attempted"
    )

    # Confidence gate
    gate_reject_below: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Extractions below this confidence are rejected"
    )
    gate_accept_at: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Extractions at or above this confidence are accepted"
    )

    # Extraction call
    extraction_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        le=120,
        description="Upper bound on a single extraction call"
    )
    extraction_max_attempts: int = Field(
        default=2,
        ge=1,
        le=3,
        description="Caller-side attempts for network/timeout failures"
    )
    extraction_retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Backoff multiplier between caller-side attempts"
    )
    max_input_chars: int = Field(
        default=4000,
        ge=100,
        description="Longest transcript/OCR text sent to the model"
    )

    # Voice capture
    max_recognizer_restarts: int = Field(
        default=50,
        ge=0,
        description="Transparent recognizer restarts allowed per voice session"
    )
    recognizer_stop_timeout_seconds: float = Field(
        default=3.0,
        gt=0,
        description="How long stop() waits for the recognizer to end"
    )

    # Pipeline behaviour
    auto_save_accepted: bool = Field(
        default=True,
        description="Persist ACCEPTED extractions without confirmation"
    )
    auto_categorize: bool = Field(
        default=True,
        description="Ask the model for a category when extraction omits one"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=100000000.0,
        description="Maximum reasonable amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=1,
        description="How many days in the future a receipt date can be"
    )
    items_total_tolerance: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Relative gap allowed between item sum and total"
    )

    @model_validator(mode='after')
    def validate_gate_thresholds(self) -> 'AppSettings':
        """The reject boundary cannot sit above the accept boundary."""
        if self.gate_reject_below > self.gate_accept_at:
            raise ValueError(
                "gate_reject_below must be less than or equal to gate_accept_at"
            )
        return self

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()

    @property
    def mindee(self) -> MindeeSettings:
        return MindeeSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

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

    for name in ("cloudinary", "mindee", "google_sheets", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
