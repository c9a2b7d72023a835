"""Task execution with pre/post hooks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape

from mupctl.core.async_utils import maybe_await
from mupctl.core.logging import StructuredLogger
from mupctl.core.output import OutputFormatter
from mupctl.tasks.hooks import HookDispatcher
from mupctl.tasks.registry import HookRegistry, TaskRegistry

if TYPE_CHECKING:
    from mupctl.tasks.registry import Context

logger = StructuredLogger("tasks.runner")


class TaskRunner:
    """Runs a named task between its pre and post hooks."""

    def __init__(
        self,
        tasks: TaskRegistry,
        hooks: HookRegistry,
        output: OutputFormatter,
    ):
        self.tasks = tasks
        self.hooks = hooks
        self.output = output
        self.dispatcher = HookDispatcher(hooks)

    async def run(self, name: str | None, ctx: "Context") -> bool:
        """Run task ``name`` with ``ctx``.

        Returns False without running anything when the name is empty or
        unknown. Errors raised by hooks or by the task itself propagate, and
        post hooks only run once the task has succeeded.
        """
        if not name:
            self.output.print_error("Task name is required")
            return False

        if name not in self.tasks:
            self.output.print_error(f"Unknown task name: {escape(name)}")
            return False

        log = logger.bind(task=name)

        log.debug("Running pre hooks")
        await self.dispatcher.run("pre", name, ctx)

        log.debug("Running task")
        await maybe_await(self.tasks[name](ctx))

        log.debug("Running post hooks")
        await self.dispatcher.run("post", name, ctx)

        return True
