"""Configuration loading and validation for mupctl using Pydantic."""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mupctl.core.exceptions import (
    ConfigLoadError,
    ConfigNotFound,
    SettingsError,
    SettingsNotFound,
    SettingsParseError,
)

CONFIG_FILENAMES = ["mup.yaml", "mup.yml"]
SETTINGS_FILENAME = "settings.json"

# Top-level keys that are not modules
RESERVED_KEYS = {"servers", "hooks", "plugins"}


class ServerConfig(BaseModel):
    """Login details for one server."""

    model_config = ConfigDict(extra="forbid")

    host: str
    username: str
    pem: str | None = None
    password: str | None = None
    opts: dict[str, Any] = Field(default_factory=dict)


class ModuleConfig(BaseModel):
    """A deployment module and the servers it runs on.

    Only ``servers`` is interpreted here; every other key belongs to the
    module itself.
    """

    model_config = ConfigDict(extra="allow")

    servers: dict[str, Any] | list[str]

    def server_names(self) -> list[str]:
        """Names of the servers this module runs on, in declared order."""
        return list(self.servers)


class MupConfig(BaseModel):
    """Schema for mup.yaml."""

    model_config = ConfigDict(extra="allow")

    servers: dict[str, ServerConfig]
    hooks: dict[str, list[str] | str] = Field(default_factory=dict)
    plugins: list[str] = Field(default_factory=list)

    @field_validator("hooks")
    @classmethod
    def validate_hook_names(cls, v: dict[str, Any]) -> dict[str, Any]:
        for name in v:
            phase, _, task = name.partition(".")
            if phase not in ("pre", "post") or not task:
                raise ValueError(
                    f"hook '{name}' must be named 'pre.<task>' or 'post.<task>'"
                )
        return v


def module_server_names(module_config: Any) -> list[str]:
    """Server names declared by a raw module entry.

    ``servers`` may be a mapping keyed by server name or a list of names.
    Anything else declares no servers.
    """
    if not isinstance(module_config, dict):
        return []
    servers = module_config.get("servers")
    if isinstance(servers, dict):
        return list(servers.keys())
    if isinstance(servers, list):
        return [name for name in servers if isinstance(name, str)]
    return []


def _format_error(prefix: tuple[Any, ...], error: dict[str, Any]) -> str:
    loc = ".".join(str(part) for part in (*prefix, *error["loc"]))
    return f"{loc}: {error['msg']}" if loc else error["msg"]


def validate_config(config: dict[str, Any]) -> list[str]:
    """Check a loaded config against the schema.

    Returns a list of human readable problems. An empty list means the
    config is valid. Problems are advisory and never stop a task from
    running.
    """
    problems: list[str] = []

    try:
        MupConfig.model_validate(config)
    except ValidationError as e:
        problems.extend(_format_error((), err) for err in e.errors())

    servers = config.get("servers")
    known = set(servers) if isinstance(servers, dict) else set()

    for key, value in config.items():
        if key in RESERVED_KEYS or not isinstance(value, dict) or "servers" not in value:
            continue
        try:
            ModuleConfig.model_validate(value)
        except ValidationError as e:
            problems.extend(_format_error((key,), err) for err in e.errors())
            continue
        for name in module_server_names(value):
            if name not in known:
                problems.append(f"{key}.servers.{name}: server is not defined in servers")

    return problems


def find_config_file(base: str | Path) -> Path:
    """Locate the config file in ``base``.

    Falls back to the first candidate name when none exists so that the
    resulting error names the expected file.
    """
    base = Path(base)
    for filename in CONFIG_FILENAMES:
        path = base / filename
        if path.exists():
            return path
    return base / CONFIG_FILENAMES[0]


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load mup.yaml.

    Raises:
        ConfigNotFound: The file does not exist
        ConfigLoadError: The file cannot be read or parsed
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigNotFound(str(path))
    except UnicodeDecodeError as e:
        raise ConfigLoadError(str(path), f"Invalid encoding: {e}")
    except yaml.YAMLError as e:
        raise ConfigLoadError(str(path), f"Invalid YAML: {e}")
    except OSError as e:
        raise ConfigLoadError(str(path), str(e))

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigLoadError(str(path), "top-level value must be a mapping")
    return content


def load_settings_file(path: str | Path) -> Any:
    """Load and parse settings.json.

    Raises:
        SettingsNotFound: The file does not exist
        SettingsParseError: The file is not valid UTF-8 JSON
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise SettingsNotFound(str(path))
    except UnicodeDecodeError as e:
        raise SettingsParseError(str(path), str(e))
    except OSError as e:
        raise SettingsError(f"Unable to load settings.json at {path}", {"error": str(e)})

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SettingsParseError(str(path), str(e))
