"""Core utilities and shared components for mupctl."""

# Note: Import context lazily to avoid circular imports
# Use: from mupctl.core.context import MupContext, pass_context
from mupctl.core.exceptions import (
    MupError,
    ConfigError,
    SettingsError,
    CredentialError,
    HookError,
    PluginError,
)
from mupctl.core.output import OutputFormatter, console

__all__ = [
    "MupError",
    "ConfigError",
    "SettingsError",
    "CredentialError",
    "HookError",
    "PluginError",
    "OutputFormatter",
    "console",
]
