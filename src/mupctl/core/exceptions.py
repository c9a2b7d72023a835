"""Custom exceptions for mupctl."""

from typing import Any


class MupError(Exception):
    """Base exception for all mupctl errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConfigError(MupError):
    """Configuration-related errors."""

    pass


class ConfigNotFound(ConfigError):
    """The mup.yaml file does not exist."""

    def __init__(self, path: str):
        super().__init__(
            f'"mup.yaml" file not found at\n  {path}\nRun "mup init" to create it.'
        )
        self.path = path


class ConfigLoadError(ConfigError):
    """The mup.yaml file exists but could not be loaded."""

    def __init__(self, path: str, error: str):
        super().__init__(f"Unable to load config at {path}", {"error": error})
        self.path = path


class SettingsError(MupError):
    """Settings file errors."""

    pass


class SettingsNotFound(SettingsError):
    """The settings.json file does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Unable to load settings.json at {path}")
        self.path = path


class SettingsParseError(SettingsError):
    """The settings file is not valid JSON."""

    def __init__(self, path: str, error: str):
        super().__init__(f"Error parsing settings file {path}:\n{error}")
        self.path = path
        self.error = error


class CredentialError(MupError):
    """Server credential resolution errors."""

    def __init__(
        self,
        message: str,
        server: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.server = server


class CredentialMissing(CredentialError):
    """No pem, password or ssh-agent is available for a server."""

    def __init__(self, server: str):
        super().__init__(
            f"Server \"{server}\" doesn't have password, ssh-agent or pem",
            server,
        )


class CredentialFileUnreadable(CredentialError):
    """A server's private key file could not be read."""

    def __init__(self, server: str, path: str, error: str | None = None):
        super().__init__(
            f'Unable to load pem at "{path}" for server "{server}"',
            server,
            {"error": error} if error else None,
        )
        self.path = path


class HookError(MupError):
    """A shell hook exited with a non-zero status."""

    def __init__(self, hook: str, command: str, returncode: int):
        super().__init__(
            f"Hook {hook} failed: `{command}` exited with status {returncode}"
        )
        self.hook = hook
        self.command = command
        self.returncode = returncode


class PluginError(MupError):
    """A plugin could not be loaded or registered."""

    def __init__(self, plugin: str, error: str):
        super().__init__(f"Unable to load plugin {plugin}", {"error": error})
        self.plugin = plugin
