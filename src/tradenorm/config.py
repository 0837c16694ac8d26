"""Configuration for tradenorm."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from tradenorm.parsers.errors import UnsupportedBrokerError
from tradenorm.registry import resolve_broker

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TRADENORM_CONFIG"
DEFAULT_CONFIG_NAME = "tradenorm.toml"


class ConfigError(Exception):
    """Raised when a config file cannot be read or does not validate."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class ParseConfig(BaseModel):
    """Parser settings."""

    default_broker: str | None = None
    combine_files: bool = True
    # Report malformed numeric fields as warnings instead of silently using 0.
    strict_numbers: bool = False

    @field_validator("default_broker")
    @classmethod
    def _canonical_broker(cls, value: str | None) -> str | None:
        """Store aliases such as "schwab" as the registry value ("charles_schwab")."""
        if value is None or not value.strip():
            return None
        try:
            return resolve_broker(value).value
        except UnsupportedBrokerError as exc:
            raise ValueError(f"unknown broker {value!r}") from exc


class OutputConfig(BaseModel):
    """Serialization settings for the CLI."""

    format: Literal["json", "csv"] = "json"
    indent: int = Field(default=2, ge=0)

    @field_validator("format", mode="before")
    @classmethod
    def _lower_format(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class TradenormConfig(BaseModel):
    """Top-level configuration."""

    parse: ParseConfig = Field(default_factory=ParseConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def from_toml(cls, path: Path | str) -> TradenormConfig:
        """Load configuration from a TOML file.

        Raises:
            ConfigError: If the file is not valid TOML or a setting is rejected.
        """
        path = Path(path)
        with open(path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(path, f"invalid TOML: {exc}") from exc
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigError(path, problems) from exc

    @classmethod
    def find_and_load(cls, explicit_path: Path | str | None = None) -> TradenormConfig | None:
        """Find and load config: explicit path > TRADENORM_CONFIG env > tradenorm.toml in cwd.

        Returns None if no config file is found.
        """
        if explicit_path:
            logger.info("Loading config from %s", explicit_path)
            return cls.from_toml(explicit_path)
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            logger.info("Loading config from %s=%s", CONFIG_ENV_VAR, env_path)
            return cls.from_toml(env_path)
        default = Path(DEFAULT_CONFIG_NAME)
        if default.exists():
            logger.info("Loading config from %s", default)
            return cls.from_toml(default)
        return None
