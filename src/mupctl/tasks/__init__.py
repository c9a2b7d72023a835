"""Task registry, hook dispatch and the task runner."""

from mupctl.tasks.hooks import HookDispatcher
from mupctl.tasks.registry import (
    CallableHook,
    HookHandler,
    HookRegistry,
    ShellCommand,
    TaskRegistry,
    as_hook_handler,
    discover_plugins,
    load_plugins,
    register_plugin,
)
from mupctl.tasks.runner import TaskRunner

__all__ = [
    "CallableHook",
    "HookDispatcher",
    "HookHandler",
    "HookRegistry",
    "ShellCommand",
    "TaskRegistry",
    "TaskRunner",
    "as_hook_handler",
    "discover_plugins",
    "load_plugins",
    "register_plugin",
]
