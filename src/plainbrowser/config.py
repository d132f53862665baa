"""Configuration management with pydantic and pydantic-settings.

Two layers live here:

- ``BrowserConfig`` validates the per-browser configuration map (the
  ``url`` plus transport pass-through options) handed over by a suite file,
  a pytest option, or the environment.
- ``PlainBrowserSettings`` loads process-wide defaults from ``PLAINBROWSER_``
  environment variables (and ``.env``).
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final
from urllib.parse import urlsplit

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from plainbrowser.exceptions import ConfigurationError

# Transport flag name -> transport option key. Canonical keys map to
# themselves; the CURLOPT_* spellings keep existing suite files loading.
TRANSPORT_FLAGS: Final[dict[str, str]] = {
    "max_redirects": "max_redirects",
    "CURLOPT_MAXREDIRS": "max_redirects",
    "allow_redirects": "allow_redirects",
    "CURLOPT_FOLLOWLOCATION": "allow_redirects",
    "pool_connections": "pool_connections",
    "pool_maxsize": "pool_maxsize",
    "CURLOPT_MAXCONNECTS": "pool_maxsize",
    "pool_block": "pool_block",
    "max_retries": "max_retries",
    "trust_env": "trust_env",
    "stream": "stream",
}

_TRANSPORT_FLAG_TYPES: Final[dict[str, type]] = {
    "max_redirects": int,
    "allow_redirects": bool,
    "pool_connections": int,
    "pool_maxsize": int,
    "pool_block": bool,
    "max_retries": int,
    "trust_env": bool,
    "stream": bool,
}

_AUTH_SCHEMES: Final[frozenset[str]] = frozenset({"basic", "digest"})

SUPPORTED_HTTP_VERSIONS: Final[frozenset[str]] = frozenset({"1.1"})


def _check_flag_value(key: str, value: Any) -> None:
    expected = _TRANSPORT_FLAG_TYPES[key]
    if expected is bool:
        if not isinstance(value, bool):
            raise ValueError(f"Transport flag '{key}' expects a boolean, got {value!r}")
        return
    # bool is an int subclass; reject it for counters
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Transport flag '{key}' expects an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"Transport flag '{key}' must be >= 0, got {value}")


class BrowserConfig(BaseModel):
    """Validated browser configuration.

    Only ``url`` is required. Unknown keys are ignored so a shared suite
    file can carry settings for other tooling.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    url: str
    verify: bool | str = False
    expect: bool = False
    timeout: float = Field(default=30, ge=0)
    connect_timeout: float | None = Field(default=None, ge=0)
    headers: dict[str, str] = Field(default_factory=dict)
    auth: tuple[str, ...] | None = None
    proxy: str | dict[str, str] | None = None
    cert: str | None = None
    ssl_key: str | None = None
    query: dict[str, Any] = Field(default_factory=dict)
    cookies: bool | dict[str, str] = True
    version: str = "1.1"
    transport_options: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("transport_options", "transportOptions", "curl"),
    )

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"url must be an absolute http(s) URL, got {value!r}")
        return value

    @field_validator("version", mode="before")
    @classmethod
    def _check_version(cls, value: Any) -> str:
        version = str(value)
        if version not in SUPPORTED_HTTP_VERSIONS:
            raise ValueError(
                f"HTTP version {version!r} is not supported. "
                f"Supported: {', '.join(sorted(SUPPORTED_HTTP_VERSIONS))}"
            )
        return version

    @field_validator("auth", mode="before")
    @classmethod
    def _check_auth(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, (list, tuple)) or len(value) not in (2, 3):
            raise ValueError("auth must be [username, password] or [username, password, scheme]")
        if len(value) == 3 and str(value[2]).lower() not in _AUTH_SCHEMES:
            raise ValueError(
                f"Unsupported auth scheme {value[2]!r}. "
                f"Supported: {', '.join(sorted(_AUTH_SCHEMES))}"
            )
        return tuple(value)

    @field_validator("transport_options")
    @classmethod
    def _resolve_transport_flags(cls, value: dict[str, Any]) -> dict[str, Any]:
        resolved: dict[str, Any] = {}
        for name, flag_value in value.items():
            key = TRANSPORT_FLAGS.get(name)
            if key is None:
                raise ValueError(
                    f"Unknown transport flag {name!r}. "
                    f"Known flags: {', '.join(sorted(TRANSPORT_FLAGS))}"
                )
            _check_flag_value(key, flag_value)
            resolved[key] = flag_value
        return resolved

    def reconfigured(self, **overrides: Any) -> BrowserConfig:
        """Return a re-validated copy with *overrides* applied.

        Raises:
            ConfigurationError: If the resulting configuration is invalid.
        """
        return load_config({**self.model_dump(), **overrides})


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(loc) for loc in error["loc"]) or "<root>"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def load_config(config: Mapping[str, Any] | BrowserConfig) -> BrowserConfig:
    """Validate a configuration map.

    Args:
        config: Raw option mapping, or an already validated config.

    Returns:
        The validated ``BrowserConfig``.

    Raises:
        ConfigurationError: If ``url`` is missing or any option is invalid.
    """
    if isinstance(config, BrowserConfig):
        return config
    try:
        return BrowserConfig.model_validate(dict(config))
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid browser configuration: {_format_validation_error(exc)}"
        ) from exc


def load_config_file(path: str | Path, section: str = "plainbrowser") -> BrowserConfig:
    """Load and validate a configuration map from a YAML suite file.

    The file may hold the options at top level, or nested under *section*.

    Args:
        path: Path to the YAML file.
        section: Key whose mapping holds the browser options, if present.

    Returns:
        The validated ``BrowserConfig``.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid YAML,
            or does not describe a valid configuration.
    """
    filepath = Path(path)
    try:
        with filepath.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in '{filepath}': {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file '{filepath}': {exc}") from exc

    if data is None:
        raise ConfigurationError(f"Config file '{filepath}' is empty.")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file '{filepath}' must contain a mapping.")
    if section in data:
        data = data[section]
        if not isinstance(data, dict):
            raise ConfigurationError(f"Section '{section}' in '{filepath}' must be a mapping.")
    return load_config(data)


class PlainBrowserSettings(BaseSettings):
    """plainbrowser settings loaded from environment variables.

    All settings use the PLAINBROWSER_ prefix for environment variables.
    """

    url: str | None = Field(default=None, description="Base URL of the application under test")
    verify: bool = Field(default=False, description="Validate TLS certificates")
    timeout: float = Field(default=30, description="Request timeout in seconds")

    # Logging configuration
    log_level: str = Field(default="WARNING", description="Logging level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    output_dir: Path = Field(
        default=Path("tests") / "_output",
        description="Directory where pages of failed tests are saved",
    )

    model_config = SettingsConfigDict(
        env_prefix="PLAINBROWSER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def browser_config(self, **overrides: Any) -> BrowserConfig:
        """Build a ``BrowserConfig`` from these settings.

        Args:
            **overrides: Options layered on top of the environment values.

        Raises:
            ConfigurationError: If no URL is configured or options are invalid.
        """
        options: dict[str, Any] = {"verify": self.verify, "timeout": self.timeout}
        if self.url:
            options["url"] = self.url
        options.update(overrides)
        if "url" not in options:
            raise ConfigurationError(
                "PLAINBROWSER_URL environment variable is required when no url is configured"
            )
        return load_config(options)


# Global settings instance
_settings: PlainBrowserSettings | None = None


def get_settings() -> PlainBrowserSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = PlainBrowserSettings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None
