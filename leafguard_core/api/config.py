"""
Client Configuration
Centralized settings for the LeafGuard API client, weather connector and local storage
"""
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml
from dotenv import load_dotenv

from leafguard_core.errors import ConfigurationError
from leafguard_core.logging import get_logger

logger = get_logger(__name__)


DEFAULT_BASE_URL = "http://127.0.0.1:5000/api"
DEFAULT_TIMEOUT = 10.0          # seconds
MAX_RETRIES = 3                 # retries after the first attempt
RETRY_DELAY = 1.0               # seconds between attempts
DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

WEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"
DEFAULT_DB_PATH = Path.home() / ".leafguard" / "credentials.db"
CONFIG_FILENAME = "leafguard.toml"

# Environment variable -> (config field, type)
ENV_OVERRIDES = {
    "LEAFGUARD_API_URL": ("base_url", str),
    "LEAFGUARD_TIMEOUT": ("timeout", float),
    "LEAFGUARD_MAX_RETRIES": ("max_retries", int),
    "LEAFGUARD_RETRY_DELAY": ("retry_delay", float),
    "LEAFGUARD_DB_PATH": ("db_path", Path),
    "LEAFGUARD_LOG_LEVEL": ("log_level", str),
    "OPENWEATHER_API_KEY": ("weather_api_key", str),
    "OPENWEATHER_BASE_URL": ("weather_base_url", str),
}

# toml section -> {key: config field}
TOML_SECTIONS = {
    "api": {
        "base_url": "base_url",
        "timeout": "timeout",
        "max_retries": "max_retries",
        "retry_delay": "retry_delay",
        "headers": "headers",
    },
    "weather": {
        "api_key": "weather_api_key",
        "base_url": "weather_base_url",
    },
    "storage": {
        "db_path": "db_path",
    },
    "logging": {
        "level": "log_level",
    },
}


@dataclass
class ClientConfig:
    """Configuration for the LeafGuard client"""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = MAX_RETRIES
    retry_delay: float = RETRY_DELAY
    headers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    db_path: Path = DEFAULT_DB_PATH
    weather_api_key: Optional[str] = None
    weather_base_url: str = WEATHER_BASE_URL
    log_level: str = "INFO"

    def validate(self) -> "ClientConfig":
        """Check value ranges; returns self so calls can be chained"""
        if not self.base_url or not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"Base URL must be an http(s) URL, got {self.base_url!r}",
                config_key="base_url",
                expected_type="http(s) URL",
            )
        if self.timeout <= 0:
            raise ConfigurationError(
                "Timeout must be positive", config_key="timeout", expected_type="float > 0"
            )
        if self.max_retries < 0:
            raise ConfigurationError(
                "Retry count cannot be negative",
                config_key="max_retries",
                expected_type="int >= 0",
            )
        if self.retry_delay < 0:
            raise ConfigurationError(
                "Retry delay cannot be negative",
                config_key="retry_delay",
                expected_type="float >= 0",
            )
        return self

    def with_overrides(self, **overrides: Any) -> "ClientConfig":
        """Return a copy with the given fields replaced"""
        return replace(self, **overrides).validate()


def _coerce(key: str, value: Any, target_type: type) -> Any:
    """Convert a raw config value, raising ConfigurationError on failure"""
    try:
        return target_type(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid value for {key}: {value!r}",
            config_key=key,
            expected_type=target_type.__name__,
        )


def _load_toml(path: Path) -> Dict[str, Any]:
    """
    Read overrides from a leafguard.toml file

    Expected format:
        [api]
        base_url = "https://leafguard.example.com/api"
        timeout = 15
        max_retries = 3
        retry_delay = 1.0

        [weather]
        api_key = "your_api_key"

        [storage]
        db_path = "/var/lib/leafguard/credentials.db"

        [logging]
        level = "DEBUG"
    """
    try:
        raw = toml.load(path)
    except toml.TomlDecodeError as e:
        raise ConfigurationError(f"Could not parse {path}: {e}", config_key=str(path))

    values: Dict[str, Any] = {}
    for section, mapping in TOML_SECTIONS.items():
        section_values = raw.get(section, {})
        for key, field_name in mapping.items():
            if key in section_values:
                values[field_name] = section_values[key]
    return values


def load_config(
    path: Optional[Union[str, Path]] = None,
    use_env: bool = True,
    **overrides: Any,
) -> ClientConfig:
    """
    Build a ClientConfig from defaults, an optional toml file and the environment.

    Precedence (lowest to highest): defaults, toml file, environment
    variables (a .env file is loaded first), keyword overrides.

    Args:
        path: Path to a leafguard.toml file; ./leafguard.toml is used if present
        use_env: Whether to read LEAFGUARD_* / OPENWEATHER_* variables
        **overrides: Explicit field values

    Returns:
        Validated ClientConfig
    """
    values: Dict[str, Any] = {}

    toml_path = Path(path) if path else Path.cwd() / CONFIG_FILENAME
    if toml_path.exists():
        values.update(_load_toml(toml_path))
        logger.debug(f"Loaded configuration from {toml_path}")
    elif path:
        raise ConfigurationError(f"Config file not found: {toml_path}", config_key="path")

    if use_env:
        load_dotenv()
        for env_key, (field_name, _) in ENV_OVERRIDES.items():
            env_value = os.getenv(env_key)
            if env_value:
                values[field_name] = env_value

    values.update(overrides)

    types = {field_name: target for field_name, target in ENV_OVERRIDES.values()}
    for field_name, value in list(values.items()):
        if field_name in types and value is not None:
            values[field_name] = _coerce(field_name, value, types[field_name])

    if "base_url" in values:
        values["base_url"] = values["base_url"].rstrip("/")

    return ClientConfig(**values).validate()
