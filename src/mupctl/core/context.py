"""Orchestration context shared by tasks and hooks."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import click
from rich.markup import escape

from mupctl.config import (
    find_config_file,
    load_config_file,
    load_settings_file,
    validate_config,
    SETTINGS_FILENAME,
)
from mupctl.core.logging import StructuredLogger
from mupctl.core.output import OutputFormatter
from mupctl.core.utils import pluralize, resolve_path
from mupctl.sessions.credentials import SessionDescriptor
from mupctl.sessions.registry import SessionMap, SessionRegistry, select_sessions
from mupctl.tasks.registry import HookRegistry, TaskRegistry
from mupctl.tasks.runner import TaskRunner


class MupContext:
    """State for one ``mup`` invocation.

    Config, settings and sessions are loaded on first use and cached for the
    rest of the command. Tasks and hooks receive this object (or a
    :class:`ScopedContext` derived from it).
    """

    def __init__(
        self,
        base: str | Path,
        args: Sequence[str] | None = None,
        config_path: str | None = None,
        settings_path: str | None = None,
        verbose: bool = False,
        tasks: TaskRegistry | None = None,
        hooks: HookRegistry | None = None,
        output: OutputFormatter | None = None,
        agent_socket: str | None = None,
    ):
        self._base = Path(base)
        self._args = list(args or [])
        self._config_path = config_path
        self._settings_path = settings_path
        self._verbose = verbose
        self._output = output or OutputFormatter()
        self._logger = StructuredLogger("context")

        self._config: dict[str, Any] | None = None
        self._config_file: Path | None = None
        self._settings: Any = None
        self._settings_loaded = False
        self._sessions = SessionRegistry(self.get_config, agent_socket)

        self.tasks = tasks if tasks is not None else TaskRegistry()
        self.hooks = hooks if hooks is not None else HookRegistry()
        self._runner = TaskRunner(self.tasks, self.hooks, self._output)

    @property
    def base_path(self) -> Path:
        """Project directory. Moves to the config file's directory once an
        explicit config path has been loaded."""
        return self._base

    @property
    def args(self) -> list[str]:
        """Extra command line arguments passed through to the task."""
        return self._args

    @property
    def verbose(self) -> bool:
        return self._verbose

    @property
    def output(self) -> OutputFormatter:
        return self._output

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    @property
    def runner(self) -> TaskRunner:
        return self._runner

    @property
    def config_file(self) -> Path | None:
        """Path mup.yaml was loaded from, once loaded."""
        return self._config_file

    @property
    def sessions(self) -> SessionMap:
        """Every configured server's session, resolved on first access."""
        return self._sessions.load()

    def get_config(self, validate: bool = True) -> dict[str, Any]:
        """Load mup.yaml once and return the cached mapping.

        Schema problems are printed when ``validate`` is set but never stop
        loading.
        """
        if self._config is None:
            if self._config_path:
                path = resolve_path(self._config_path)
                self._base = path.parent
            else:
                path = find_config_file(self._base)

            self._config = load_config_file(path)
            self._config_file = path
            self._logger.debug("Loaded config", path=path)

            if validate:
                self.validate_config(path)

        return self._config

    def validate_config(self, path: str | Path) -> list[str]:
        """Print any schema problems in the loaded config."""
        problems = validate_config(self._config or {})
        if not problems:
            return problems

        out = self._output
        out.print(escape(f"loaded {Path(path).name} from {path}"))
        out.print("")
        out.print(
            f"{len(problems)} Validation {pluralize(len(problems), 'Error')}",
            style="red",
        )
        for problem in problems:
            out.print(f"  - {escape(problem)}", style="red")
        out.print("")
        out.print("If you think there is a bug in the mup.yaml validator, please")
        out.print("open an issue in the mupctl repository.")
        out.print("")
        return problems

    def get_settings(self) -> Any:
        """Load settings.json once and return the parsed value."""
        if not self._settings_loaded:
            if self._settings_path:
                path = resolve_path(self._settings_path)
            else:
                path = self._base / SETTINGS_FILENAME

            self._settings = load_settings_file(path)
            self._settings_loaded = True
            self._logger.debug("Loaded settings", path=path)

        return self._settings

    def get_sessions(self, modules: Iterable[str] = ()) -> list[SessionDescriptor]:
        """Sessions for every server used by ``modules``."""
        sessions = self.sessions
        return list(select_sessions(self.get_config(), sessions, modules).values())

    def with_sessions(self, modules: Iterable[str] = ()) -> "ScopedContext":
        """A view of this context limited to the sessions of ``modules``."""
        sessions = self.sessions
        return ScopedContext(self, select_sessions(self.get_config(), sessions, modules))

    async def run_task(self, name: str | None) -> bool:
        return await self._runner.run(name, self)


class ScopedContext:
    """A :class:`MupContext` view that only exposes some sessions.

    Everything except session access is read from the root context, so
    config and settings are always the root's cached values.
    """

    def __init__(self, root: MupContext, sessions: SessionMap):
        self._root = root
        self._scoped_sessions = dict(sessions)

    @property
    def root(self) -> MupContext:
        return self._root

    @property
    def base_path(self) -> Path:
        return self._root.base_path

    @property
    def args(self) -> list[str]:
        return self._root.args

    @property
    def verbose(self) -> bool:
        return self._root.verbose

    @property
    def output(self) -> OutputFormatter:
        return self._root.output

    @property
    def logger(self) -> StructuredLogger:
        return self._root.logger

    @property
    def tasks(self) -> TaskRegistry:
        return self._root.tasks

    @property
    def hooks(self) -> HookRegistry:
        return self._root.hooks

    @property
    def runner(self) -> TaskRunner:
        return self._root.runner

    @property
    def config_file(self) -> Path | None:
        return self._root.config_file

    @property
    def sessions(self) -> SessionMap:
        return self._scoped_sessions

    def get_config(self, validate: bool = True) -> dict[str, Any]:
        return self._root.get_config(validate)

    def validate_config(self, path: str | Path) -> list[str]:
        return self._root.validate_config(path)

    def get_settings(self) -> Any:
        return self._root.get_settings()

    def get_sessions(self, modules: Iterable[str] = ()) -> list[SessionDescriptor]:
        return list(select_sessions(self.get_config(), self.sessions, modules).values())

    def with_sessions(self, modules: Iterable[str] = ()) -> "ScopedContext":
        return ScopedContext(
            self._root, select_sessions(self.get_config(), self.sessions, modules)
        )

    async def run_task(self, name: str | None) -> bool:
        return await self._root.runner.run(name, self)


# Click decorator for passing context
pass_context = click.make_pass_decorator(MupContext)
