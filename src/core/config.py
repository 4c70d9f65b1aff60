"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.tax.year import TaxYear


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Error Tracking
    sentry_dsn: str | None = None
    """Sentry DSN for error tracking. Optional."""

    # Environment
    environment: str = "development"
    """Current environment (development, staging, production)."""

    debug: bool = False
    """Enable debug mode."""

    log_format: str | None = None
    """Logging format override (json or console). Defaults by environment."""

    # Rate tables
    rate_tables_dir: Path | None = None
    """Directory of rate table YAML documents. Defaults to the bundled tables."""

    default_tax_year: str = "2025/26"
    """Tax year used by the HTTP surface when a request omits one."""

    @field_validator("default_tax_year")
    @classmethod
    def normalise_default_tax_year(cls, value: str) -> str:
        """Accept any tax year spelling TaxYear understands, store it canonically."""
        return str(TaxYear.from_string(value.strip()))

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production."""
        return self.environment.lower() == "production"


try:
    settings = Settings()
except Exception as exc:
    env_file = Path(".env")
    root_error = str(exc)
    suggestions = [
        "DEFAULT_TAX_YEAR must look like 2025/26.",
        "RATE_TABLES_DIR must be a directory path if set.",
    ]

    raise RuntimeError(
        "Failed to initialize application settings. "
        f"Check environment variables in {env_file.resolve() if env_file.exists() else '.env'}.\n"
        + f"Error: {root_error}\n"
        + "\n".join(suggestions)
    ) from exc
