"""Centralized settings for the sea-nav core."""
from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "SEA_NAV_"}

    # Redis; empty string means disabled (file store fallback)
    redis_url: str = ""

    # Local persistence; empty means ~/.sea_nav
    data_dir: str = ""

    # External feature services
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    user_agent: str = "SeaNav/0.1.0 (contact: you@example.com)"
    http_timeout_s: int = 30

    # Freshness windows in seconds
    ttl_hazards: int = 604800         # 7 d, seamark data changes slowly
    ttl_marinas: int = 86400          # 24 h, facility listings

    # Navigation defaults
    waypoint_threshold_nm: float = 0.1    # ~185 m
    approach_threshold_nm: float = 0.5
    off_course_threshold_deg: float = 45.0
    low_speed_kt: float = 0.5
    speed_window: int = 5
    history_size: int = 100
    enable_voice_alerts: bool = True
    enable_vibration: bool = True

    # Background hazard warmer
    worker_interval_s: int = 3600

    def resolved_data_dir(self) -> Path:
        d = Path(self.data_dir) if self.data_dir else Path.home() / ".sea_nav"
        d.mkdir(parents=True, exist_ok=True)
        return d


settings = Settings()
