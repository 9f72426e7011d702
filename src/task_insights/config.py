"""Configuration loading from environment variables."""

import os
from dataclasses import dataclass, field
from datetime import timedelta, timezone
from pathlib import Path

from task_insights.core.scope import ScopePolicy

_FALSY = {"0", "false", "no", "off"}


@dataclass
class Config:
    db_path: Path = field(default_factory=lambda: Path.home() / ".task_insights" / "ti.db")
    report_utc_offset_hours: float = 8.0
    share_task_visibility: bool = True
    slack_bot_token: str | None = None
    digest_channel: str | None = None
    log_level: str = "WARNING"

    @property
    def report_tz(self) -> timezone:
        return timezone(timedelta(hours=self.report_utc_offset_hours))

    @property
    def scope_policy(self) -> ScopePolicy:
        return ScopePolicy(include_shared_task_departments=self.share_task_visibility)

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        if db := os.environ.get("TI_DB_PATH"):
            config.db_path = Path(db)

        if offset := os.environ.get("TI_REPORT_UTC_OFFSET"):
            try:
                config.report_utc_offset_hours = float(offset)
            except ValueError:
                pass  # keep default

        if shared := os.environ.get("TI_SCOPE_SHARED_TASKS"):
            config.share_task_visibility = shared.strip().lower() not in _FALSY

        config.slack_bot_token = os.environ.get("SLACK_BOT_TOKEN")
        config.digest_channel = os.environ.get("TI_DIGEST_CHANNEL")

        if level := os.environ.get("TI_LOG_LEVEL"):
            config.log_level = level.upper()

        return config


def get_config() -> Config:
    return Config.from_env()
