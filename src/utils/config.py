"""Configuration management using Pydantic Settings with YAML support."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "soundbase.db"

    @property
    def url(self) -> str:
        return f"sqlite+aiosqlite:///{self.path}"


class RecommendationConfig(BaseModel):
    """Recommendation reader configuration."""

    limit: int = 10

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Limit must be at least 1")
        return v


class AnalyticsConfig(BaseModel):
    """Defaults for analytic queries."""

    top_songs_days: int = 7
    top_songs_limit: int = 10


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_format: bool = False
    file: str | None = None

    @property
    def file_path(self) -> Path | None:
        return Path(self.file).expanduser() if self.file else None


class WebConfig(BaseModel):
    """Web API configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SOUNDBASE_",
        env_nested_delimiter="__",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    recommendations: RecommendationConfig = Field(default_factory=RecommendationConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)


def load_config(config_path: Path | str = "config.yaml") -> Settings:
    """Load configuration from YAML file with environment variable overrides."""
    path = Path(config_path)

    if path.exists():
        with open(path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    yaml_config = _expand_env_vars(yaml_config)

    return Settings(**yaml_config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand ${VAR} patterns in config values."""
    if isinstance(obj, str):
        pattern = re.compile(r"\$\{([^}]+)\}")
        for var in pattern.findall(obj):
            obj = obj.replace(f"${{{var}}}", os.environ.get(var, ""))
        return obj
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    return obj


def save_config(settings: Settings, config_path: Path | str = "config.yaml") -> None:
    """Save configuration to YAML file."""
    path = Path(config_path)
    config_dict = settings.model_dump(mode="json")

    with open(path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
