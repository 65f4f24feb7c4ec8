"""
Event bus configuration.

Loads a BusConfig from:
1. Default values
2. A JSON config file (optional)
3. Environment variables (EVENTBUS_*), optionally seeded from a .env file

Later sources override earlier ones.

Usage:
    from eventbus.config import BusConfig

    config = BusConfig.from_env()
    strict = BusConfig(max_listeners_per_event=10, throw_on_max_listeners=True)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from eventbus.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "EVENTBUS"


class BusConfig(BaseModel):
    """Immutable per-bus options."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_listeners_per_event: int = Field(ge=0, default=100)  # 0 = unlimited
    wildcards_enabled: bool = True
    namespaces_enabled: bool = True
    throw_on_max_listeners: bool = False
    debug: bool = False
    history_size: int = Field(ge=0, default=100)
    delimiter: str = ":"

    @field_validator("delimiter")
    @classmethod
    def delimiter_is_usable(cls, v: str) -> str:
        if not v or "*" in v:
            raise ValueError("delimiter must be a non-empty string without '*'")
        return v

    @classmethod
    def build(cls, **options: Any) -> "BusConfig":
        """Validate options, raising ConfigurationError instead of pydantic's error."""
        try:
            return cls(**options)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid bus configuration: {e}", {"options": options}) from e

    def merged(self, **overrides: Any) -> "BusConfig":
        """Return a copy with overrides applied (validated)."""
        if not overrides:
            return self
        return self.build(**{**self.model_dump(), **overrides})

    @classmethod
    def from_file(cls, path: Union[str, Path], base: Optional["BusConfig"] = None) -> "BusConfig":
        """Load options from a JSON file, either flat or under an "events" key."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}", {"path": str(path)}) from e

        if isinstance(data, dict) and isinstance(data.get("events"), dict):
            data = data["events"]
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

        logger.debug(f"Loaded bus config from {path}")
        return (base or cls()).merged(**data)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = ENV_PREFIX,
        env_file: Optional[Union[str, Path]] = None,
        base: Optional["BusConfig"] = None,
    ) -> "BusConfig":
        """
        Build a config from EVENTBUS_* variables.

        Args:
            environ: Mapping to read instead of os.environ
            prefix: Variable prefix
            env_file: Optional .env file, loaded without overriding existing vars
            base: Config whose values are used for unset variables
        """
        if env_file is not None:
            _load_env_file(Path(env_file))

        environ = os.environ if environ is None else environ
        overrides = _options_from_env(environ, prefix)
        return (base or cls()).merged(**overrides)


def _load_env_file(env_path: Path) -> None:
    if not env_path.exists():
        logger.warning(f".env file not found: {env_path}")
        return

    from dotenv import load_dotenv

    load_dotenv(env_path, override=False)
    logger.debug(f"Loaded .env from {env_path}")


def _options_from_env(environ: Mapping[str, str], prefix: str) -> Dict[str, Any]:
    """EVENTBUS_MAX_LISTENERS_PER_EVENT=5 -> {"max_listeners_per_event": 5}"""
    head = f"{prefix}_"
    fields = set(BusConfig.model_fields)
    options: Dict[str, Any] = {}

    for key, value in environ.items():
        if not key.startswith(head):
            continue
        name = key[len(head):].lower()
        if name not in fields:
            logger.debug(f"Ignoring unknown bus option {key}")
            continue
        options[name] = _parse_env_value(value) if name != "delimiter" else value

    return options


def _parse_env_value(value: str) -> Any:
    """Parse environment variable value to appropriate type."""
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    return value
