"""Main CLI entry point for mup."""

import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markup import escape

from mupctl import __version__
from mupctl.config import CONFIG_FILENAMES, SETTINGS_FILENAME
from mupctl.core.async_utils import run_sync
from mupctl.core.context import MupContext, pass_context
from mupctl.core.exceptions import MupError
from mupctl.core.logging import LogLevel, setup_logging
from mupctl.core.output import OutputFormat, OutputFormatter
from mupctl.tasks.registry import HookRegistry, TaskRegistry, discover_plugins, load_plugins


CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
}

CONFIG_TEMPLATE = """\
servers:
  one:
    host: 1.2.3.4
    username: root
    # pem: ~/.ssh/id_rsa
    # password: password
    # or leave both out to use ssh-agent
    # opts:
    #   port: 22

app:
  name: app
  path: ../app
  servers:
    one: {}

hooks: {}
#  pre.deploy:
#    - npm test

plugins: []
"""

SETTINGS_TEMPLATE = "{}\n"


class OutputFormatType(click.ParamType):
    """Custom Click parameter type for output format."""

    name = "format"

    def convert(
        self,
        value: Any,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> OutputFormat:
        if isinstance(value, OutputFormat):
            return value
        try:
            return OutputFormat(value.lower())
        except ValueError:
            self.fail(
                f"Invalid format '{value}'. Choose from: table, json, yaml, raw",
                param,
                ctx,
            )


OUTPUT_FORMAT = OutputFormatType()


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console = Console()
    console.print(f"mup version {__version__}")
    ctx.exit()


def load_registries(mup: MupContext) -> None:
    """Register plugin tasks and hooks, then the shell hooks from mup.yaml."""
    discover_plugins(mup.tasks, mup.hooks)
    config = mup.get_config()
    load_plugins(config.get("plugins") or [], mup.tasks, mup.hooks)
    mup.hooks.update_from_config(config.get("hooks"))


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-c",
    "--config",
    "config_path",
    metavar="FILE",
    envvar="MUP_CONFIG",
    help="Path to mup.yaml",
)
@click.option(
    "-s",
    "--settings",
    "settings_path",
    metavar="FILE",
    envvar="MUP_SETTINGS",
    help="Path to settings.json",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Print debug logs",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress non-essential output",
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output",
)
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    settings_path: str | None,
    verbose: bool,
    quiet: bool,
    no_color: bool,
) -> None:
    """mup - deploy apps to your own servers over SSH.

    \b
    Examples:
        mup init
        mup validate
        mup sessions app
        mup run deploy

    \b
    Configuration:
        ./mup.yaml          Servers, modules, hooks and plugins
        ./settings.json     Settings passed to tasks
        SSH_AUTH_SOCK       ssh-agent used when a server has no pem or password
    """
    setup_logging(LogLevel.DEBUG if verbose else LogLevel.WARNING, rich_output=not no_color)

    ctx.obj = MupContext(
        base=Path.cwd(),
        config_path=config_path,
        settings_path=settings_path,
        verbose=verbose,
        tasks=TaskRegistry(),
        hooks=HookRegistry(),
        output=OutputFormatter(color=not no_color, quiet=quiet),
    )


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("task", required=False)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@pass_context
def run(mup: MupContext, task: str | None, args: tuple[str, ...]) -> None:
    """Run TASK with its pre and post hooks.

    Any ARGS after the task name are passed to the task.
    """
    mup.args.extend(args)

    if task:
        load_registries(mup)

    if not run_sync(mup.run_task(task)):
        sys.exit(1)


@cli.command()
@pass_context
def tasks(mup: MupContext) -> None:
    """List the tasks registered by plugins."""
    load_registries(mup)
    names = mup.tasks.names()
    if not names:
        mup.output.print("[dim]No tasks registered[/dim]")
        return
    for name in names:
        mup.output.print(name)


@cli.command()
@pass_context
def validate(mup: MupContext) -> None:
    """Check mup.yaml for problems."""
    mup.get_config(validate=False)
    problems = mup.validate_config(mup.config_file)
    if problems:
        sys.exit(1)
    mup.output.print_success(f"{mup.config_file.name} is valid")


@cli.command()
@click.argument("modules", nargs=-1)
@click.option(
    "-o",
    "--output",
    "output_format",
    type=OUTPUT_FORMAT,
    metavar="FORMAT",
    help="Output format: table, json, yaml, raw",
)
@pass_context
def sessions(
    mup: MupContext,
    modules: tuple[str, ...],
    output_format: OutputFormat | None,
) -> None:
    """List the servers used by MODULES (all servers if none are given).

    Credentials are never printed, only the authentication method.
    """
    if modules:
        selected = mup.get_sessions(modules)
    else:
        selected = list(mup.sessions.values())

    if output_format:
        mup.output.format = output_format
    mup.output.print_data([s.to_dict() for s in selected], title="Sessions")


@cli.command()
@pass_context
def init(mup: MupContext) -> None:
    """Create mup.yaml and settings.json in the current directory."""
    files = [
        (mup.base_path / CONFIG_FILENAMES[0], CONFIG_TEMPLATE),
        (mup.base_path / SETTINGS_FILENAME, SETTINGS_TEMPLATE),
    ]
    for path, content in files:
        if path.exists():
            mup.output.print_warning(f"{path.name} already exists, skipping")
            continue
        path.write_text(content)
        mup.output.print_success(f"Created {path.name}")

    mup.output.print_info("Add your servers to mup.yaml, then run \"mup validate\"")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except MupError as e:
        console = Console(stderr=True)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    except KeyboardInterrupt:
        console = Console(stderr=True)
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
