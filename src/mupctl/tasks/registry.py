"""Task and hook registries, and plugin loading."""

from __future__ import annotations

import importlib
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Any, Union

from mupctl.core.exceptions import PluginError
from mupctl.core.logging import StructuredLogger

if TYPE_CHECKING:
    from mupctl.core.context import MupContext, ScopedContext

    Context = Union[MupContext, ScopedContext]

logger = StructuredLogger("tasks.registry")

PLUGIN_ENTRY_POINT_GROUP = "mupctl.plugins"

TaskFunc = Callable[["Context"], Any]
HookFunc = Callable[["Context"], Any]


@dataclass(frozen=True)
class ShellCommand:
    """Hook that runs a shell command in the project directory."""

    command: str


@dataclass(frozen=True)
class CallableHook:
    """Hook that calls a function with the context."""

    func: HookFunc


HookHandler = Union[ShellCommand, CallableHook]


def as_hook_handler(value: Any) -> HookHandler:
    """Wrap a plain string or callable in the matching hook variant."""
    if isinstance(value, (ShellCommand, CallableHook)):
        return value
    if isinstance(value, str):
        return ShellCommand(value)
    if callable(value):
        return CallableHook(value)
    raise TypeError(f"Hook must be a shell command or a callable, got {type(value).__name__}")


def hook_key(phase: str, task: str) -> str:
    """Registry key for the hooks of one phase of a task."""
    return f"{phase}.{task}"


class TaskRegistry:
    """Named tasks available to ``mup run``."""

    def __init__(self, tasks: Mapping[str, TaskFunc] | None = None):
        self._tasks: dict[str, TaskFunc] = dict(tasks or {})

    def register(self, name: str, func: TaskFunc) -> None:
        if name in self._tasks:
            logger.warning("Task overridden", task=name)
        self._tasks[name] = func

    def task(self, name: str) -> Callable[[TaskFunc], TaskFunc]:
        """Decorator form of :meth:`register`."""

        def decorator(func: TaskFunc) -> TaskFunc:
            self.register(name, func)
            return func

        return decorator

    def names(self) -> list[str]:
        return sorted(self._tasks)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __getitem__(self, name: str) -> TaskFunc:
        return self._tasks[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)


class HookRegistry:
    """Ordered hook handlers keyed by ``pre.<task>`` / ``post.<task>``."""

    def __init__(self, hooks: Mapping[str, Iterable[Any]] | None = None):
        self._hooks: dict[str, list[HookHandler]] = {}
        for key, handlers in (hooks or {}).items():
            self.extend(key, handlers)

    def add(self, key: str, handler: Any) -> None:
        self._hooks.setdefault(key, []).append(as_hook_handler(handler))

    def extend(self, key: str, handlers: Iterable[Any]) -> None:
        for handler in handlers:
            self.add(key, handler)

    def update_from_config(self, hooks: Mapping[str, Iterable[str]] | None) -> None:
        """Append the shell hooks listed under ``hooks:`` in mup.yaml."""
        for key, commands in (hooks or {}).items():
            if isinstance(commands, str):
                commands = [commands]
            self.extend(key, commands)

    def get(self, key: str) -> list[HookHandler]:
        return list(self._hooks.get(key, []))

    def __contains__(self, key: object) -> bool:
        return key in self._hooks


def register_plugin(plugin: Any, tasks: TaskRegistry, hooks: HookRegistry) -> None:
    """Call a plugin's ``register(tasks, hooks)`` function.

    ``plugin`` is either a module exposing ``register`` or the function
    itself.
    """
    register = getattr(plugin, "register", plugin)
    if not callable(register):
        name = getattr(plugin, "__name__", repr(plugin))
        raise PluginError(name, "plugin has no register(tasks, hooks) function")
    register(tasks, hooks)


def load_plugins(
    names: Iterable[str],
    tasks: TaskRegistry,
    hooks: HookRegistry,
) -> None:
    """Import plugins by module name and register them."""
    for name in names:
        try:
            module = importlib.import_module(name)
        except ImportError as e:
            raise PluginError(name, str(e))
        register_plugin(module, tasks, hooks)
        logger.debug("Loaded plugin", plugin=name)


def discover_plugins(tasks: TaskRegistry, hooks: HookRegistry) -> None:
    """Register plugins advertised by installed distributions."""
    for ep in entry_points(group=PLUGIN_ENTRY_POINT_GROUP):
        try:
            plugin = ep.load()
        except ImportError as e:
            raise PluginError(ep.name, str(e))
        register_plugin(plugin, tasks, hooks)
        logger.debug("Loaded plugin", plugin=ep.name)
