"""YAML configuration for the dispatch pipeline, validated with pydantic."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from structlog import get_logger

from priority_dispatch.errors import ConfigError

logger = get_logger(__name__)

CONFIG_ENV_VAR = "PRIORITY_DISPATCH_CONFIG"
DEFAULT_CONFIG_PATH = Path("priority-dispatch.yml")


class ScoringConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    provider: Literal["openai", "anthropic", "none"] = "openai"
    model: Optional[str] = None
    api_key: Optional[str] = None  # falls back to OPENAI_API_KEY / ANTHROPIC_API_KEY
    max_attempts: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=10.0, ge=0)


class RateLimitConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    window_ms: int = Field(default=60_000, gt=0)
    capacity: int = Field(default=30, ge=0)
    key_prefix: str = "rate"


class BackoffConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    base_ms: int = Field(default=200, gt=0)
    cap_ms: int = Field(default=30_000, gt=0)
    max_exponent: int = Field(default=10, ge=0)


class RedisConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    url: str = "redis://localhost:6379"
    priority_stream: str = "notifications:priority"


class DispatchConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    backoff: BackoffConfig = Field(default_factory=BackoffConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    log_level: str = "INFO"


def expand_env_vars(config: object) -> object:
    """Recursively replace ${VAR} patterns with environment variable values.

    Unset variables are left as-is.
    """
    if isinstance(config, dict):
        return {k: expand_env_vars(v) for k, v in config.items()}
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str):

        def replace_env_var(match: re.Match[str]) -> str:
            return os.getenv(match.group(1), match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, config)
    return config


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    if model.model_extra:
        logger.warning("unknown config keys", section=path, config_path=str(config_path), keys=list(model.model_extra))
    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def resolve_config_path(path: Path | None = None) -> Path:
    if path is not None:
        return path
    env_path = os.getenv(CONFIG_ENV_VAR)
    return Path(env_path).expanduser() if env_path else DEFAULT_CONFIG_PATH


def load_config(path: Path | None = None) -> DispatchConfig:
    """Load and validate configuration.

    A missing file yields the defaults.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or fails validation.
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        return DispatchConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping at the top level")

    try:
        model = DispatchConfig.model_validate(expand_env_vars(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    _warn_unknown_keys(model, "root", config_path)
    return model
