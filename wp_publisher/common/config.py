"""Project configuration and paths.

Loads settings from config/settings.yaml and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")


class TransportConfig(BaseModel):
    """Timeouts and retry policy for outbound WordPress calls."""
    request_timeout: float = 30.0
    media_timeout: float = 60.0
    max_retries: int = Field(default=2, ge=0)
    backoff_base_ms: int = 1000
    backoff_max_ms: int = 8000
    retry_statuses: frozenset[int] = frozenset({429, 500, 502, 503, 504})
    rate_limit_rpm: int = 0  # 0 disables per-host pacing
    user_agent: str = "wp-publisher/1.0"

    def backoff_seconds(self, attempt: int) -> float:
        """Delay before the retry that follows ``attempt`` (0-based)."""
        return min(self.backoff_base_ms * (2 ** attempt), self.backoff_max_ms) / 1000.0


class PublishingSettings(BaseModel):
    """WordPress REST conventions and publishing policy."""
    api_prefix: str = "/wp-json/wp/v2"
    default_alt_text: str = "Article image"
    excerpt_length: int = 160
    recreate_missing_posts: bool = False
    categories_per_page: int = 100
    categories_max_pages: int = 10
    categories_timeout: float = 15.0
    site_icon_timeout: float = 8.0
    reconcile_site_workers: int = Field(default=1, ge=1)


class DatabaseSettings(BaseModel):
    """Database connection settings."""
    db_path: str = str(DATA_DIR / "wp_publisher.db")


class Settings(BaseModel):
    """Top-level application settings."""
    transport: TransportConfig = Field(default_factory=TransportConfig)
    publishing: PublishingSettings = Field(default_factory=PublishingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    @classmethod
    def load(cls, settings_path: Path | None = None) -> Settings:
        """Load settings from config/settings.yaml, falling back to defaults.

        ``WP_*`` environment variables override values from the file.
        """
        settings_path = settings_path or CONFIG_DIR / "settings.yaml"
        data: dict = {}
        if settings_path.exists():
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

        transport = dict(data.get("transport") or {})
        if timeout := os.getenv("WP_REQUEST_TIMEOUT"):
            transport["request_timeout"] = float(timeout)
        if timeout := os.getenv("WP_MEDIA_TIMEOUT"):
            transport["media_timeout"] = float(timeout)
        if retries := os.getenv("WP_MAX_RETRIES"):
            transport["max_retries"] = int(retries)
        if rpm := os.getenv("WP_RATE_LIMIT_RPM"):
            transport["rate_limit_rpm"] = int(rpm)
        data["transport"] = transport

        if db_path := os.getenv("WP_DATABASE_PATH"):
            data["database"] = {**(data.get("database") or {}), "db_path": db_path}

        return cls(**data)


# Singleton settings instance
settings = Settings.load()
