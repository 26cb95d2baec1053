"""Centralized configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Config:
    """Application configuration with sensible defaults.

    All values are read from environment variables at construction time.
    """

    # --- Project ---
    project_id: str = "default"
    force_lower_case_categories: bool = True
    user_time_zone: str = "America/New_York"

    # --- Publish webhook ---
    publish_webhook_url: str = ""
    publish_webhook_token: str = ""

    # --- Scheduling ---
    schedule_interval_minutes: int = 5

    # --- Paths ---
    data_dir: Path = field(default_factory=lambda: Path("data"))
    messages_path: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Config:
        """Build config from environment variables."""
        messages_path = os.getenv("MESSAGES_PATH", "")
        return cls(
            project_id=os.getenv("PROJECT_ID", "default"),
            force_lower_case_categories=_env_bool("FORCE_LOWER_CASE_CATEGORIES", True),
            user_time_zone=os.getenv("USER_TIME_ZONE", "America/New_York"),
            publish_webhook_url=os.getenv("PUBLISH_WEBHOOK_URL", ""),
            publish_webhook_token=os.getenv("PUBLISH_WEBHOOK_TOKEN", ""),
            schedule_interval_minutes=int(os.getenv("SCHEDULE_INTERVAL_MINUTES", "5")),
            data_dir=Path(os.getenv("DATA_DIR", "data")),
            messages_path=Path(messages_path) if messages_path else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def projects_dir(self) -> Path:
        return self.data_dir / "projects"

    @property
    def published_dir(self) -> Path:
        return self.data_dir / "published"

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"
