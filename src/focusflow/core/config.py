"""Configuration management with Pydantic and YAML support."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from focusflow.habits.models import HabitCategory


class TimerConfig(BaseModel):
    """Focus timer configuration."""

    focus_minutes: int = Field(default=25, ge=1, le=180)
    break_minutes: int = Field(default=5, ge=1, le=60)
    breaks_enabled: bool = Field(default=True, description="Enter a break after each session")
    tick_seconds: float = Field(default=1.0, gt=0, description="Countdown tick interval")


class HabitDefaults(BaseModel):
    """Defaults applied to newly created habits."""

    color: str = Field(default="#8B5CF6", pattern="^#[0-9A-Fa-f]{6}$")
    category: HabitCategory = Field(default=HabitCategory.PERSONAL)
    target_per_day: int = Field(default=1, ge=1)


class StatsConfig(BaseModel):
    """Reporting configuration."""

    report_days: int = Field(default=7, ge=1, le=365, description="Default trailing window")


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FOCUSFLOW_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/focusflow")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".local/state/focusflow/logs")
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config/focusflow")

    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Single local user; the repository is bound to this id
    user_id: str = Field(default="local")

    # Sub-configurations
    timer: TimerConfig = Field(default_factory=TimerConfig)
    habits: HabitDefaults = Field(default_factory=HabitDefaults)
    stats: StatsConfig = Field(default_factory=StatsConfig)

    @property
    def db_path(self) -> Path:
        """Path to SQLite database."""
        return self.data_dir / "focusflow.db"

    @property
    def state_dir(self) -> Path:
        """Directory for device-local state (unlocks, reminders)."""
        return self.data_dir / "state"

    @property
    def config_file(self) -> Path:
        """Path to YAML config file."""
        return self.config_dir / "config.yaml"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.state_dir.mkdir(parents=True, exist_ok=True)

        os.chmod(self.data_dir, 0o700)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from YAML file, environment variables, and defaults.

        Priority (highest to lowest):
        1. YAML config file
        2. Environment variables
        3. Default values
        """
        config_path = config_path or Path.home() / ".config/focusflow/config.yaml"

        yaml_config: dict[str, Any] = {}
        if config_path.exists():
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}

        return cls(**yaml_config)

    def save(self, config_path: Path | None = None) -> None:
        """Save current configuration to YAML file."""
        config_path = config_path or self.config_file
        config_path.parent.mkdir(parents=True, exist_ok=True)

        # JSON mode turns paths and enums into plain strings for YAML
        data = self.model_dump(mode="json", exclude_none=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


@lru_cache
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.load()
