"""Settings for issue-relay, read from the environment and YAML config files.

Every setting has a dotted config key (``linear.api_key``), an environment
variable (``LINEAR_API_KEY``) and a Settings attribute. The environment wins
over the local ``.issue-relay/config.yaml``, which wins over the global
``~/.issue-relay/config.yaml``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import structlog
import yaml

from issue_relay.backends.linear import LinearCatalog
from issue_relay.backends.vercel import VercelClient
from issue_relay.issues import IssueService
from issue_relay.resolver import EntityResolver
from issue_relay.traces.sqlite import SqliteTraceStore
from issue_relay.traces.store import MemoryTraceStore, TraceStore

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".issue-relay"
CONFIG_FILE_NAME = "config.yaml"

TRACE_BACKENDS = ("memory", "sqlite")
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


@dataclass(frozen=True)
class SettingSpec:
    """A known setting and how its raw value is checked."""

    attribute: str
    env_var: str
    key: str
    description: str
    secret: bool = False
    choices: tuple[str, ...] = ()
    integer: bool = False

    def parse(self, value: Any) -> Any:
        """Return the checked value, converting integers from their text form.

        Raises:
            ValueError: If the value is not acceptable for this setting
        """
        if self.integer:
            try:
                number = int(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid {self.key}: {value!r} is not an integer") from e
            if not 1 <= number <= 65535:
                raise ValueError(f"Invalid {self.key}: {number} is outside 1-65535")
            return number
        if self.choices:
            text = str(value).lower()
            if text not in self.choices:
                raise ValueError(f"Invalid {self.key}: {value!r}. Expected one of: {', '.join(self.choices)}")
            return text
        return str(value)


SETTINGS = (
    SettingSpec("linear_api_key", "LINEAR_API_KEY", "linear.api_key", "Linear API key", secret=True),
    SettingSpec("default_project", "DEFAULT_PROJECT_ID", "linear.default_project", "Project used when none is given"),
    SettingSpec("vercel_api_key", "VERCEL_API_KEY", "vercel.api_key", "Vercel access token", secret=True),
    SettingSpec("api_key", "API_KEY", "api.key", "Bearer key for the HTTP API", secret=True),
    SettingSpec("trace_backend", "TRACE_BACKEND", "traces.backend", "Trace store", choices=TRACE_BACKENDS),
    SettingSpec("trace_db_path", "TRACE_DB_PATH", "traces.path", "SQLite trace database path"),
    SettingSpec("host", "HOST", "server.host", "Address the server binds to"),
    SettingSpec("port", "PORT", "server.port", "Port the server listens on", integer=True),
    SettingSpec("log_level", "LOG_LEVEL", "log.level", "Log level", choices=LOG_LEVELS),
)

SETTINGS_BY_KEY = {spec.key: spec for spec in SETTINGS}


def setting_spec(key: str) -> SettingSpec:
    """Look up a setting by its config key.

    Raises:
        ValueError: If the key is not a known setting
    """
    try:
        return SETTINGS_BY_KEY[key]
    except KeyError:
        raise ValueError(f"Unknown setting: {key}. Known settings: {', '.join(SETTINGS_BY_KEY)}") from None


def check_setting(key: str, value: Any) -> Any:
    """Validate a value for a config key and return it in its stored form."""
    return setting_spec(key).parse(value)


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise yaml.YAMLError(f"expected a mapping, got {type(data).__name__}")
    return data


class Config:
    """YAML config files for issue-relay settings.

    Writes go to one file: the global one with ``use_global``, otherwise the
    local one. Reads of the local config fall back to the global file.
    Only known setting keys can be written.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            use_global: If True, use global config only. If False, use local config with global fallback.
            config_dir: Custom directory to store config file (overrides use_global)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif use_global:
            self.config_dir = Path.home() / CONFIG_DIR_NAME
        else:
            self.config_dir = Path.cwd() / CONFIG_DIR_NAME
        self.is_global = use_global
        self.config_file = self.config_dir / CONFIG_FILE_NAME
        self._config = self._load()

        self._global_config: dict[str, Any] = {}
        global_file = Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if not self.is_global and global_file.exists() and global_file != self.config_file:
            try:
                self._global_config = _read_yaml(global_file)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Ignoring unreadable global config", path=str(global_file), error=str(e))

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    @property
    def scope(self) -> str:
        return "global" if self.is_global else "local"

    def _load(self) -> dict[str, Any]:
        if not self.config_file.exists():
            return {}
        try:
            config = _read_yaml(self.config_file)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", path=str(self.config_file), error=str(e))
            raise ValueError(f"Failed to load config from {self.config_file}: {e}") from e

        unknown = [key for key in config if key not in SETTINGS_BY_KEY]
        if unknown:
            logger.warning("Config file has unknown keys", path=str(self.config_file), keys=unknown)
        return config

    def _save(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to save config", path=str(self.config_file), error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value from this file, or from the global file for a local config."""
        if key in self._config:
            return self._config[key]
        if key in self._global_config:
            return self._global_config[key]
        return default

    def source(self, key: str) -> str | None:
        """Name the file a value is read from: ``local``, ``global`` or None."""
        if key in self._config:
            return self.scope
        if key in self._global_config:
            return "global"
        return None

    def set(self, key: str, value: Any) -> Any:
        """Validate and store a setting.

        Args:
            key: Known setting key, e.g. ``server.port``
            value: Raw value; integers are stored as numbers

        Returns:
            The value as stored

        Raises:
            ValueError: If the key is unknown or the value is invalid
        """
        stored = check_setting(key, value)
        logger.debug("Setting config value", key=key, scope=self.scope)
        self._config[key] = stored
        self._save()
        return stored

    def unset(self, key: str) -> bool:
        """Remove a setting from this file. Returns whether it was present."""
        if key not in self._config:
            return False
        logger.debug("Unsetting config value", key=key, scope=self.scope)
        del self._config[key]
        self._save()
        return True

    def list(self) -> dict[str, Any]:
        """All values visible through this config, local ones taking precedence."""
        merged = dict(self._global_config)
        merged.update(self._config)
        return merged

    def unknown_keys(self) -> list[str]:
        return [key for key in self.list() if key not in SETTINGS_BY_KEY]


def get_config(use_global: bool = False) -> Config:
    """Get a configuration instance.

    Args:
        use_global: If True, return global config. If False, return local config with global fallback.
    """
    return Config(use_global=use_global)


@dataclass(frozen=True)
class SettingValue:
    """An effective setting value and where it came from."""

    spec: SettingSpec
    value: Any
    source: str


def resolve_settings(config: Config, environ: Mapping[str, str]) -> list[SettingValue]:
    """Resolve every known setting; ``source`` is ``env``, ``local``, ``global`` or ``default``.

    Raises:
        ValueError: If a configured value is invalid
    """
    defaults = {field.name: field.default for field in fields(Settings)}
    resolved = []
    for spec in SETTINGS:
        raw = environ.get(spec.env_var)
        if raw not in (None, ""):
            resolved.append(SettingValue(spec, spec.parse(raw), "env"))
            continue
        raw = config.get(spec.key)
        if raw not in (None, ""):
            resolved.append(SettingValue(spec, spec.parse(raw), config.source(spec.key)))
            continue
        resolved.append(SettingValue(spec, defaults[spec.attribute], "default"))
    return resolved


@dataclass
class Settings:
    """Effective settings. Environment variables take precedence over config files."""

    linear_api_key: str | None = None
    default_project: str | None = None
    vercel_api_key: str | None = None
    api_key: str | None = None
    trace_backend: str = "sqlite"
    trace_db_path: str = f"{CONFIG_DIR_NAME}/traces.db"
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "info"

    @classmethod
    def load(cls, config: Config | None = None, environ: Mapping[str, str] | None = None) -> "Settings":
        """Resolve settings from the environment and the config files.

        Args:
            config: Config to read (defaults to the local config with global fallback)
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ValueError: If a configured value is invalid
        """
        config = config if config is not None else get_config()
        environ = environ if environ is not None else os.environ
        resolved = resolve_settings(config, environ)
        return cls(**{item.spec.attribute: item.value for item in resolved})


def build_catalog(settings: Settings) -> LinearCatalog:
    if not settings.linear_api_key:
        raise ValueError(
            "Linear API key not configured. Set LINEAR_API_KEY or use:\n"
            "  issue-relay config set linear.api_key <key>"
        )
    return LinearCatalog(api_key=settings.linear_api_key)


def build_service(settings: Settings) -> IssueService:
    """Build issue operations over the Linear catalog with a fresh resolver cache."""
    catalog = build_catalog(settings)
    resolver = EntityResolver(catalog, default_project=settings.default_project)
    return IssueService(catalog, resolver)


def build_hosting(settings: Settings) -> VercelClient | None:
    """Build the Vercel client, or None when no Vercel token is configured."""
    if not settings.vercel_api_key:
        return None
    return VercelClient(api_key=settings.vercel_api_key)


def build_store(settings: Settings) -> TraceStore:
    if settings.trace_backend == "memory":
        return MemoryTraceStore()
    if settings.trace_backend == "sqlite":
        return SqliteTraceStore(settings.trace_db_path)
    raise ValueError(f"Unknown trace backend: {settings.trace_backend}")
