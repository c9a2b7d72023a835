"""Pre/post hook dispatch."""

from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING, Literal

from mupctl.core.async_utils import maybe_await
from mupctl.core.exceptions import HookError
from mupctl.core.logging import StructuredLogger
from mupctl.tasks.registry import CallableHook, HookRegistry, ShellCommand, hook_key

if TYPE_CHECKING:
    from mupctl.tasks.registry import Context

logger = StructuredLogger("tasks.hooks")

HookPhase = Literal["pre", "post"]


class HookDispatcher:
    """Runs the hooks registered for one phase of a task.

    Hooks run one at a time in the order they were registered. Each hook
    finishes before the next starts, and the first failure stops the phase.
    """

    def __init__(self, hooks: HookRegistry):
        self.hooks = hooks

    async def run(self, phase: HookPhase, task: str, ctx: "Context") -> None:
        key = hook_key(phase, task)
        for index, handler in enumerate(self.hooks.get(key)):
            logger.debug("Running hook", hook=key, index=index)
            if isinstance(handler, ShellCommand):
                self._run_script(key, handler.command, ctx)
            elif isinstance(handler, CallableHook):
                await maybe_await(handler.func(ctx))
            else:
                raise TypeError(f"Unknown hook handler: {handler!r}")

    def _run_script(self, key: str, command: str, ctx: "Context") -> None:
        # Blocks the whole process and shares the terminal with the hook
        result = subprocess.run(command, shell=True, cwd=str(ctx.base_path))
        if result.returncode != 0:
            raise HookError(key, command, result.returncode)
