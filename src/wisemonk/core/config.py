"""Wisemonk configuration: Pydantic model and TOML loading."""

from __future__ import annotations

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator, model_validator

from wisemonk.core.constants import (
    CONFIG_FILENAME,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_TICK_SECONDS,
    _default_config_dir,
)
from wisemonk.core.duration import parse_duration
from wisemonk.core.exceptions import ConfigError, ConfigNotFoundError, DurationParseError


def wisemonk_dir() -> Path:
    """Return the Wisemonk config directory (not created)."""
    return _default_config_dir()


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


def _secret_text(v: Any) -> str:
    return str(v.get_secret_value() if hasattr(v, "get_secret_value") else v)


class SlackConfig(BaseModel):
    bot_token: SecretStr  # xoxb-* Bot User OAuth Token (Web API)
    app_token: SecretStr  # xapp-* App-Level Token (Socket Mode)

    @field_validator("bot_token", mode="before")
    @classmethod
    def validate_bot_token(cls, v: Any) -> Any:
        if not re.fullmatch(r"xoxb-[A-Za-z0-9\-]+", _secret_text(v)):
            raise ValueError(
                "Invalid Slack bot token format. "
                "Expected: xoxb-<alphanumeric>. Get one from your Slack App settings."
            )
        return v

    @field_validator("app_token", mode="before")
    @classmethod
    def validate_app_token(cls, v: Any) -> Any:
        if not re.fullmatch(r"xapp-[A-Za-z0-9\-]+", _secret_text(v)):
            raise ValueError(
                "Invalid Slack app token format. "
                "Expected: xapp-<alphanumeric>. Enable Socket Mode in your Slack App settings."
            )
        return v


class DiscourseConfig(BaseModel):
    url: str
    api_key: SecretStr
    api_username: str = "wisemonk"

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Discourse url must start with http:// or https://")
        return v.rstrip("/")


class ChannelConfig(BaseModel):
    """Per-channel monitoring settings."""

    interval: str = "10m"
    max_messages: int = Field(
        default=20,
        validation_alias=AliasChoices("max_messages", "maxmsg"),
    )
    create_topic_in: str = ""
    search_over: list[str] = Field(default_factory=list)

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v: str) -> str:
        try:
            window = parse_duration(v)
        except DurationParseError as exc:
            raise ValueError(f"interval: {exc}") from exc
        if window <= timedelta(0):
            raise ValueError("interval must be positive")
        return v

    @field_validator("max_messages")
    @classmethod
    def validate_max_messages(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_messages must be at least 1")
        return v

    @property
    def window(self) -> timedelta:
        return parse_duration(self.interval)


class MonitorConfig(BaseModel):
    tick_seconds: float = DEFAULT_TICK_SECONDS
    queue_size: int = DEFAULT_QUEUE_SIZE

    @field_validator("tick_seconds")
    @classmethod
    def validate_tick(cls, v: float) -> float:
        if not (0.1 <= v <= 300.0):
            raise ValueError("tick_seconds must be between 0.1 and 300")
        return v

    @field_validator("queue_size")
    @classmethod
    def validate_queue_size(cls, v: int) -> int:
        if not (1 <= v <= 100_000):
            raise ValueError("queue_size must be between 1 and 100000")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "text"  # "text" | "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


class WisemonkConfig(BaseModel):
    """Root Wisemonk configuration model."""

    slack: SlackConfig
    discourse: DiscourseConfig | None = None
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    channels: dict[str, ChannelConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def at_least_one_channel(self) -> WisemonkConfig:
        if not self.channels:
            raise ValueError(
                "At least one channel must be configured, e.g. [channels.C0123ABCD]."
            )
        return self

    @model_validator(mode="after")
    def topic_category_needs_discourse(self) -> WisemonkConfig:
        if self.discourse is None:
            return self
        missing = [cid for cid, ch in self.channels.items() if not ch.create_topic_in]
        if missing:
            raise ValueError(
                f"create_topic_in is required when [discourse] is configured "
                f"(missing for: {', '.join(sorted(missing))})"
            )
        return self


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------


def _config_file_path() -> Path:
    if env_path := os.environ.get("WISEMONK_CONFIG"):
        return Path(env_path)
    return wisemonk_dir() / CONFIG_FILENAME


def load_config(path: Path | str | None = None) -> WisemonkConfig:
    """
    Load WisemonkConfig from a TOML file, overlaid with environment variables.

    Priority (highest to lowest):
      1. Environment variables (WISEMONK_*)
      2. Config file (``$WISEMONK_CONFIG`` or <config dir>/config.toml)
    """
    import tomllib

    cfg_path = Path(path) if path is not None else _config_file_path()

    if not cfg_path.exists():
        raise ConfigNotFoundError(f"Config file not found: {cfg_path}")

    try:
        with open(cfg_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as exc:
        raise ConfigError(f"Cannot read config file {cfg_path}: {exc}") from exc

    _apply_env_overrides(data)

    try:
        return WisemonkConfig.model_validate(data)
    except Exception as exc:
        raise ConfigError(f"Invalid config at {cfg_path}: {exc}") from exc


def _apply_env_overrides(data: dict[str, Any]) -> None:
    """Overlay WISEMONK_* environment variables onto parsed TOML."""
    if token := os.environ.get("WISEMONK_SLACK_BOT_TOKEN"):
        data.setdefault("slack", {})["bot_token"] = token
    if token := os.environ.get("WISEMONK_SLACK_APP_TOKEN"):
        data.setdefault("slack", {})["app_token"] = token

    if url := os.environ.get("WISEMONK_DISCOURSE_URL"):
        data.setdefault("discourse", {})["url"] = url
    if key := os.environ.get("WISEMONK_DISCOURSE_API_KEY"):
        data.setdefault("discourse", {})["api_key"] = key

    if level := os.environ.get("WISEMONK_LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = level
