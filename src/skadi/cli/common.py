"""Helpers shared by the CLI commands."""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, NoReturn

import click

from skadi.cli.output import OutputFormatter
from skadi.core.config import SkadiConfig, load_config
from skadi.core.errors import (
    ConfigError,
    DiscoveryError,
    InvalidArgumentError,
    RequestTimeoutError,
    SkadiError,
    TransportError,
)
from skadi.host.directory import DirectoryHost
from skadi.host.http import HttpHost
from skadi.host.rpc import HostRPC

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_INVALID_ARGS = 2
EXIT_NOT_FOUND = 3
EXIT_PLUGIN_ERROR = 4
EXIT_TIMEOUT = 10
EXIT_UNAVAILABLE = 12


def exit_code_for(error: SkadiError) -> int:
    """Map an error to the process exit code."""
    if isinstance(error, RequestTimeoutError):
        return EXIT_TIMEOUT
    if isinstance(error, TransportError):
        return EXIT_UNAVAILABLE
    if isinstance(error, (InvalidArgumentError, ConfigError)):
        return EXIT_INVALID_ARGS
    if isinstance(error, DiscoveryError):
        return EXIT_NOT_FOUND
    return EXIT_ERROR


def get_formatter(ctx: click.Context) -> OutputFormatter:
    return ctx.obj["formatter"]


def get_config(ctx: click.Context) -> SkadiConfig:
    """Load the configuration once per invocation.

    Raises:
        ConfigError: If the configuration file is invalid
    """
    if ctx.obj.get("config") is None:
        ctx.obj["config"] = load_config(ctx.obj.get("config_path"))
    return ctx.obj["config"]


def fail(ctx: click.Context, error: SkadiError) -> NoReturn:
    """Write ``error`` to stdout and exit with its code."""
    get_formatter(ctx).error(error.to_structured_error())
    ctx.exit(exit_code_for(error))


def parse_args(pairs: tuple[str, ...]) -> dict[str, Any]:
    """Turn ``key=value`` pairs into command arguments.

    Values are decoded as JSON when possible and kept as strings otherwise.

    Raises:
        InvalidArgumentError: If a pair has no ``=``
    """
    args: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise InvalidArgumentError(f"Expected key=value, got: {pair}", field="arg")
        try:
            args[key] = json.loads(raw)
        except ValueError:
            args[key] = raw
    return args


@asynccontextmanager
async def open_host(config: SkadiConfig, remote: bool) -> AsyncIterator[HostRPC]:
    """Yield the running host service (``remote``) or the local plugins directory."""
    if remote:
        async with HttpHost(config.base_url) as host:
            yield host
    else:
        yield DirectoryHost(config.plugins_dir)
