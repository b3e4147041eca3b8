"""Environment-based configuration for GarbageScan."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from garbagescan.classifier.contracts import ResponseContract


class Settings(BaseSettings):
    """Application settings loaded from GARBAGESCAN_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GARBAGESCAN_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8083

    # Authentication for the JSON API (None = disabled)
    api_key: str | None = None

    # Classification endpoint
    api_base_url: str = "http://localhost:8080"
    predict_path: str = "/predict"
    upload_field: str = "image"
    response_contract: ResponseContract = "text"
    request_timeout: float = Field(default=5.0, gt=0)

    # Widget validation
    max_file_size: int = Field(default=8_388_608, ge=1)
    accepted_types: list[str] = Field(default_factory=lambda: ["jpg", "jpeg", "png", "webp"])

    # Uploader checks (None = unchecked)
    uploader_accept_types: list[str] | None = None
    uploader_max_file_size: int | None = Field(default=None, ge=1)
    max_image_pixels: int = Field(default=16_777_216, ge=1)
    resolution_width: int | None = Field(default=None, ge=1)
    resolution_height: int | None = Field(default=None, ge=1)
    resolution_type: Literal["absolute", "less", "more", "ratio"] = "absolute"

    @field_validator("accepted_types", "uploader_accept_types")
    @classmethod
    def _normalize_extensions(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [ext.strip().lstrip(".").lower() for ext in value if ext.strip()]

    @field_validator("predict_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"

    @property
    def predict_url(self) -> str:
        """Full URL of the classification endpoint."""
        return f"{self.api_base_url.rstrip('/')}{self.predict_path}"


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
