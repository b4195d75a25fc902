"""Configuration loader with YAML parsing, env-var interpolation, and Pydantic validation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    path: str = "/"
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["authorization", "x-client-info", "apikey", "content-type"]
    )


class AuthConfig(BaseModel):
    jwt_secret: str
    jwt_algorithms: list[str] = Field(default_factory=lambda: ["HS256"])
    audience: Optional[str] = "authenticated"
    leeway_seconds: int = 0


class GatewayConfig(BaseModel):
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 3600
    max_text_length: int = 10_000


class AIConfig(BaseModel):
    backend: str = "gemini"  # "gemini" | "anthropic"
    model: str = "gemini-2.0-flash-exp"
    timezone: str = "UTC"
    assistant_name: str = "Lumen"
    product_name: str = "LumenR"
    chat_temperature: float = 0.9
    chat_max_tokens: int = 2000
    structured_temperature: float = 0.7
    structured_max_tokens: int = 1000
    document_temperature: float = 0.7
    document_max_tokens: int = 4000
    conversion_temperature: float = 0.3
    sources_max_tokens: int = 2000
    history_turns: int = 20
    history_chars: int = 500


class GeminiConfig(BaseModel):
    api_key: str
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: int = 60


class AnthropicConfig(BaseModel):
    api_key: str
    base_url: Optional[str] = None
    max_retries: int = 0
    timeout: int = 120


class ImageConfig(BaseModel):
    api_key: Optional[str] = None
    base_url: str = "https://ai.gateway.lovable.dev/v1"
    model: str = "google/gemini-2.5-flash-image-preview"
    timeout: int = 120

    @field_validator("api_key")
    @classmethod
    def _unset_key(cls, value: Optional[str]) -> Optional[str]:
        # An unresolved ${VAR} placeholder means the key was never provided
        if not value or _ENV_VAR_PATTERN.fullmatch(value):
            return None
        return value


class DefaultsConfig(BaseModel):
    """Values filled in when the model omits optional arguments."""

    priority: str = "Medium"
    due_date_today: bool = True
    reminder_enabled: bool = False
    note_category: str = "General"
    class_color: str = "#3b82f6"
    expected_start_time: str = "09:00"
    list_limit: int = 10
    note_search_limit: int = 10
    event_match_limit: int = 5
    timesheet_lookback_days: int = 30
    calendar_lookahead_days: int = 30


class StorageConfig(BaseModel):
    db_path: str = "./data/lumen_assistant.db"


class AppConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "console" | "json"
    data_dir: str = "./data"
    auth: AuthConfig
    server: ServerConfig = Field(default_factory=ServerConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    gemini: Optional[GeminiConfig] = None
    anthropic: Optional[AnthropicConfig] = None
    image: ImageConfig = Field(default_factory=ImageConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


def _interpolate_env_vars(text: str, extra: dict[str, str] | None = None) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        if extra and var_name in extra:
            return extra[var_name]
        value = os.environ.get(var_name)
        if value is None:
            return match.group(0)
        return value

    return _ENV_VAR_PATTERN.sub(_replace, text)


def load_config(config_path: str | Path = "config.yaml", env_path: str | Path = ".env") -> AppConfig:
    """Load and validate configuration from YAML file with env-var interpolation."""
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    raw_text = config_file.read_text(encoding="utf-8")

    # data_dir may be referenced by other values, so resolve it first
    raw_data = yaml.safe_load(raw_text) or {}
    data_dir = str(raw_data.get("data_dir", "./data"))
    data_dir = _interpolate_env_vars(data_dir)

    interpolated = _interpolate_env_vars(raw_text, extra={"data_dir": data_dir})
    data = yaml.safe_load(interpolated) or {}

    return AppConfig(**data)
