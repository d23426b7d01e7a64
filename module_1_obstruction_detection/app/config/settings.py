"""Configuration utilities for Module 1 obstruction detection."""
from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application configuration sourced from environment variables or defaults."""

    model_config = SettingsConfigDict(env_prefix="FIELDNAV_DETECT_", case_sensitive=False)

    detector_endpoint: str = Field(
        default="http://localhost:8000",
        description="Base URL of the remote obstruction detector.",
    )
    detect_path: str = Field(default="/detect_base64")
    request_timeout_seconds: float = Field(default=15.0, gt=0.0)
    max_retries: int = Field(default=0, ge=0)
    retry_backoff_seconds: float = Field(default=1.0, ge=0.0)
    analysis_confidence: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Fixed confidence score reported with every obstruction analysis.",
    )
    save_previews: bool = Field(default=True, description="Persist annotated previews to disk.")
    preview_dir: Path = Field(
        default=Path(__file__).resolve().parents[2] / "output_previews",
        description="Directory for annotated preview images.",
    )
    log_format: str = Field(default="text")
    overlay_font_scale: float = Field(default=0.5, gt=0.0)
    overlay_color_bgr: List[int] = Field(default_factory=lambda: [0, 255, 255])

    @field_validator("preview_dir", mode="before")
    @classmethod
    def _expand_dir(cls, value: str | Path) -> Path:
        return Path(value).expanduser()

    @field_validator("detector_endpoint")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def detect_url(self) -> str:
        path = self.detect_path if self.detect_path.startswith("/") else f"/{self.detect_path}"
        return f"{self.detector_endpoint}{path}"


def load_settings(**overrides: object) -> AppSettings:
    """Return application settings, applying optional overrides."""

    return AppSettings(**overrides)
