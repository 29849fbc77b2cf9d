"""Gateway configuration.

Settings are a ``pydantic_settings.BaseSettings`` model. Values resolve in
this order, highest first: keyword overrides, environment variables, the YAML
file named by ``GATEWAY_CONFIG``, then the defaults below. Field names double
as (case-insensitive) environment variable names, e.g. ``GEMINI_API_KEY``.
"""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_ENV_VAR = "GATEWAY_CONFIG"

DEFAULT_MODEL_NAME = "gemini-2.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_DOCUMENT_PROMPT = "Ringkas dokumen berikut:"
DEFAULT_AUDIO_PROMPT = "Please transcribe and analyze this audio:"

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class ConfigError(ValueError):
    """Raised when configuration is missing or malformed."""


def load_cfg(path: str | Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


class YamlConfigSource(PydanticBaseSettingsSource):
    """Settings read from the YAML file named by ``GATEWAY_CONFIG``."""

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        path = os.getenv(CONFIG_ENV_VAR)
        self.data = load_cfg(path) if path else {}

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self.data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self.data)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_ignore_empty=True,
        extra="forbid",
        frozen=True,
    )

    gemini_api_key: str | None = Field(default=None, description="Gemini API key; required to serve")
    gemini_model_name: str = DEFAULT_MODEL_NAME
    gemini_base_url: str = DEFAULT_BASE_URL
    gemini_timeout: float | None = Field(default=None, gt=0, description="Seconds; unset means no local timeout")

    host: str = "0.0.0.0"
    port: int = Field(default=3000, gt=0, lt=65536)

    upload_dir: Path = Path("uploads")
    keep_uploads: bool = False
    redact_error_details: bool = False
    log_level: LogLevel = "INFO"

    document_prompt: str = DEFAULT_DOCUMENT_PROMPT
    audio_prompt: str = DEFAULT_AUDIO_PROMPT

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # .env is loaded into the process environment by python-dotenv instead.
        return (init_settings, env_settings, YamlConfigSource(settings_cls), file_secret_settings)


def load_settings(**overrides: Any) -> Settings:
    """
    Build settings, turning validation failures into ``ConfigError``.

    Args:
        overrides: Field values that take precedence over every other source.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
    logging.getLogger("gemini_gateway.config").debug(
        "Loaded settings: model=%s port=%s upload_dir=%s",
        settings.gemini_model_name, settings.port, settings.upload_dir,
    )
    return settings
