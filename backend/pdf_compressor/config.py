"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.

Settings are built once at process start by load_settings() and handed to
create_app(); nothing in the package reads a module-level settings object.
"""
import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

BYTES_PER_MB = 1024 * 1024

# Error types pydantic reports for absent or empty required values
_MISSING_ERROR_TYPES = {"missing", "string_too_short"}


class ConfigurationError(Exception):
    """Raised when required environment variables are absent."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Missing environment variables: {', '.join(missing)}")


def _default_tmp_dir() -> Path:
    return Path(tempfile.gettempdir()) / "pdf-compressor"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # HTTP listener
    host: str = "0.0.0.0"
    port: int = 4000

    # S3-compatible object storage (required)
    storage_endpoint_url: str = Field(..., min_length=1)
    storage_access_key: str = Field(..., min_length=1)
    storage_secret_key: str = Field(..., min_length=1)
    storage_bucket: str = Field(..., min_length=1)
    storage_region: str = "auto"
    storage_public_url: Optional[str] = None  # e.g. https://<project>.supabase.co/storage/v1/object/public/<bucket>
    storage_cache_control: str = "max-age=3600"

    # Size limits in MB
    max_output_mb: int = 95
    max_input_mb: int = 600

    # Ghostscript
    ghostscript_preset: str = "/printer"
    ghostscript_binary: str = "gs"

    tmp_dir: Path = Field(default_factory=_default_tmp_dir)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @property
    def max_input_bytes(self) -> int:
        return self.max_input_mb * BYTES_PER_MB

    @property
    def max_output_bytes(self) -> int:
        return self.max_output_mb * BYTES_PER_MB

    @property
    def public_base_url(self) -> str:
        """Base URL that object paths are appended to when building public links."""
        if self.storage_public_url:
            return self.storage_public_url.rstrip("/")
        return f"{self.storage_endpoint_url.rstrip('/')}/{self.storage_bucket}"

    def ensure_tmp_dir(self) -> Path:
        """Create the temp directory if needed. Safe to call repeatedly."""
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        return self.tmp_dir


def load_settings(env_file: Optional[str] = ".env", **overrides) -> Settings:
    """
    Build the process-wide settings and prepare the temp directory.

    Args:
        env_file: Optional dotenv file read in addition to the environment
        **overrides: Field values that take precedence over the environment

    Returns:
        Frozen Settings instance

    Raises:
        ConfigurationError: If any required variable is missing or empty
    """
    try:
        settings = Settings(_env_file=env_file, **overrides)
    except ValidationError as e:
        missing = [
            str(error["loc"][0]).upper()
            for error in e.errors()
            if error["type"] in _MISSING_ERROR_TYPES and error["loc"]
        ]
        if not missing:
            raise
        raise ConfigurationError(missing) from e

    settings.ensure_tmp_dir()
    return settings
