# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings. Credentials may
be left empty here and resolved through the secret provider at startup.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from profilegen.core.errors import ConfigurationError

UPLOAD_TIERS = ("buffer", "base64", "url")


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Secrets ===
    gcp_project: str = ""

    # === Image provider ===
    image_provider: Literal["bfl", "fal"] = "bfl"
    bfl_api_key: str = ""
    bfl_base_url: str = "https://api.us1.bfl.ai/v1"
    bfl_model: str = "flux-pro-1.1"
    bfl_width: int = 1024
    bfl_height: int = 576
    fal_api_key: str = ""
    fal_base_url: str = "https://fal.run"
    fal_model: str = "fal-ai/flux-pro/v1.1-ultra"
    fal_aspect_ratio: str = "16:9"
    provider_http_timeout_s: float = 30.0
    poll_interval_s: float = 0.5
    poll_max_attempts: int = 30

    # === Retry ===
    generation_max_retries: int = 1
    generation_retry_delay_s: float = 1.0

    # === Prompt LLM ===
    prompt_llm_enabled: bool = True
    prompt_llm_provider: str = "openai"
    prompt_llm_model: str = "gpt-4o"
    prompt_llm_timeout_s: float = 20.0
    prompt_llm_max_tokens: int = 500
    prompt_llm_temperature: float = 0.7
    openai_api_key: str = ""

    # === CDN (ImageKit) ===
    imagekit_private_key: str = ""
    imagekit_upload_url: str = "https://upload.imagekit.io/api/v1/files/upload"
    cdn_folder: str = "profile-images"
    upload_tiers: str = "buffer,base64,url"
    upload_timeout_s: float = 60.0
    degrade_on_upload_failure: bool = True

    # === Cache ===
    cache_backend: Literal["json", "sqlite"] = "json"
    cache_root: Path = Path("data")
    cache_manifest_name: str = "cache-manifest.json"
    cache_max_age_days: int = 180
    cache_keep_local_copy: bool = True
    fingerprint_fields_appraiser: str = "gender,age,specialization"
    fingerprint_fields_location: str = "type,city,state,description,features"

    # === Orchestration ===
    request_timeout_s: float = 120.0

    # === Bulk ===
    bulk_concurrency: int = 3
    results_dir: Path = Path("logs")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("poll_interval_s", "provider_http_timeout_s", "upload_timeout_s")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("durations must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        unknown = [t for t in self.upload_tiers_list if t not in UPLOAD_TIERS]
        if unknown:
            errors.append(f"UPLOAD_TIERS contains unknown tiers: {', '.join(unknown)}")
        if not self.upload_tiers_list:
            errors.append("UPLOAD_TIERS must name at least one tier")

        if self.poll_max_attempts < 1:
            errors.append("POLL_MAX_ATTEMPTS must be >= 1")

        if self.cache_max_age_days <= 0:
            errors.append("CACHE_MAX_AGE_DAYS must be > 0")

        if not self.fingerprint_fields_for("appraiser"):
            errors.append("FINGERPRINT_FIELDS_APPRAISER must not be empty")
        if not self.fingerprint_fields_for("location"):
            errors.append("FINGERPRINT_FIELDS_LOCATION must not be empty")

        if self.generation_max_retries < 0:
            errors.append("GENERATION_MAX_RETRIES must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def upload_tiers_list(self) -> list[str]:
        """Parse comma-separated upload tier order."""
        return [t.strip() for t in self.upload_tiers.split(",") if t.strip()]

    @property
    def cache_max_age(self) -> timedelta:
        return timedelta(days=self.cache_max_age_days)

    @property
    def manifest_path(self) -> Path:
        return self.cache_root.expanduser() / self.cache_manifest_name

    @property
    def image_dir(self) -> Path:
        return self.cache_root.expanduser() / "images"

    def fingerprint_fields_for(self, kind: str) -> list[str]:
        """Allow-listed attribute names that affect the image of ``kind``."""
        raw = (
            self.fingerprint_fields_location
            if kind == "location"
            else self.fingerprint_fields_appraiser
        )
        return [f.strip() for f in raw.split(",") if f.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
