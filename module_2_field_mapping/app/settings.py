from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FIELDNAV_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    module_root: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[1])
    documents_path: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[1] / "storage" / "marker_documents.json")
    default_user: str = "local"
    marker_label_prefix: str = "Obstacle"
    map_center_lat: float = 14.5995
    map_center_lng: float = 120.9842
    map_zoom: int = Field(default=13, ge=0, le=22)
    interactive_map: bool = True
    enable_renderer: bool = True
    load_on_startup: bool = True
    bot_refresh_seconds: float = 10.0
    bot_drift_degrees: float = 0.001
    enable_bot_worker: bool = True
    detection_previews: bool = False
    detection_preview_dir: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[1] / "storage" / "previews")
    log_format: str = "text"

    @model_validator(mode="after")
    def _check_center(self) -> "AppSettings":
        if not -90.0 <= self.map_center_lat <= 90.0:
            raise ValueError(f"map_center_lat out of range: {self.map_center_lat}")
        if not -180.0 <= self.map_center_lng <= 180.0:
            raise ValueError(f"map_center_lng out of range: {self.map_center_lng}")
        if self.bot_refresh_seconds <= 0:
            self.bot_refresh_seconds = 10.0
        return self


def get_settings() -> AppSettings:
    return AppSettings()
