"""Skadi CLI entry point and global options."""

from pathlib import Path
from typing import Literal

import click

from skadi import __version__
from skadi.cli.commands import exec_command, invoke, serve
from skadi.cli.common import EXIT_ERROR
from skadi.cli.output import OutputFormat, OutputFormatter, set_output_format
from skadi.cli.plugins import plugins
from skadi.core.errors import handle_error
from skadi.core.logging import configure_logging, set_verbose


@click.group()
@click.option(
    "--format",
    "-f",
    type=click.Choice(["json", "jsonl", "human"]),
    default="json",
    help="Output format (default: json)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose logging to stderr",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Suppress informational output",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Log format for stderr (default: text)",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Configuration file (default: ~/.config/skadi/config.yaml)",
)
@click.version_option(version=__version__, prog_name="skadi")
@click.pass_context
def cli(
    ctx: click.Context,
    format: OutputFormat,
    verbose: bool,
    quiet: bool,
    log_format: Literal["text", "json"],
    config_path: Path | None,
) -> None:
    """Skadi: a desktop shell assembled from run-time plugins.

    Loads plugin components from the plugins directory or a running host
    service, and talks to the host over HTTP and the IPC socket.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(
        {
            "format": format,
            "verbose": verbose,
            "quiet": quiet,
            "log_format": log_format,
            "config_path": config_path,
            "formatter": OutputFormatter(format=format),
        }
    )

    set_output_format(format)
    set_verbose(verbose)
    configure_logging(log_format=log_format, quiet=quiet)


cli.add_command(plugins)
cli.add_command(invoke)
cli.add_command(exec_command)
cli.add_command(serve)


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except Exception as e:
        handle_error(e, EXIT_ERROR)


if __name__ == "__main__":
    main()
