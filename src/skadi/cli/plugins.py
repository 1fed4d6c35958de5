"""Plugin CLI commands."""

import asyncio

import click

from skadi.bridge import CapabilityBridge
from skadi.cli.common import (
    EXIT_NOT_FOUND,
    EXIT_PLUGIN_ERROR,
    fail,
    get_config,
    get_formatter,
    open_host,
)
from skadi.core.config import SkadiConfig
from skadi.core.errors import DiscoveryError, SkadiError
from skadi.ipc.socket import IPCSocket
from skadi.plugins import PluginLoader, derive_plugin_name
from skadi.shell import PluginShell
from skadi.ui import render_to_string


@click.group()
@click.option(
    "--remote",
    is_flag=True,
    default=False,
    help="Read plugins from the running host service instead of the plugins directory",
)
@click.pass_context
def plugins(ctx: click.Context, remote: bool) -> None:
    """Inspect installed plugins."""
    ctx.obj["remote"] = remote


@plugins.command("list")
@click.pass_context
def list_plugins(ctx: click.Context) -> None:
    """List installed plugin files in load order."""
    formatter = get_formatter(ctx)

    async def run(config: SkadiConfig) -> list[str]:
        async with open_host(config, ctx.obj["remote"]) as host:
            return await host.list_plugin_files()

    try:
        filenames = asyncio.run(run(get_config(ctx)))
    except SkadiError as e:
        fail(ctx, e)

    formatter.stream(
        [{"name": derive_plugin_name(f), "filename": f} for f in filenames],
        title="Plugins",
    )


@plugins.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Fetch and compile every plugin and report its status.

    Exits non-zero when any plugin failed.
    """
    formatter = get_formatter(ctx)

    async def run(config: SkadiConfig) -> PluginLoader:
        async with open_host(config, ctx.obj["remote"]) as host:
            loader = PluginLoader(host)
            await loader.load()
            if loader.error is not None:
                raise DiscoveryError(loader.error)
            return loader

    try:
        loader = asyncio.run(run(get_config(ctx)))
    except SkadiError as e:
        fail(ctx, e)

    formatter.stream([plugin.to_dict() for plugin in loader.plugins], title="Plugin status")
    if any(not plugin.ok for plugin in loader.plugins):
        ctx.exit(EXIT_PLUGIN_ERROR)


@plugins.command()
@click.argument("name")
@click.pass_context
def render(ctx: click.Context, name: str) -> None:
    """Render one plugin to markup.

    A plugin that fails renders as its placeholder.
    """
    formatter = get_formatter(ctx)

    async def run(config: SkadiConfig) -> dict | None:
        async with open_host(config, ctx.obj["remote"]) as host:
            loader = PluginLoader(host)
            bridge = CapabilityBridge(host, IPCSocket(config.request_timeout), label=config.label)
            shell = PluginShell(loader, bridge)
            mounted = await shell.start()
            if loader.error is not None:
                raise DiscoveryError(loader.error)
            try:
                found = [m for m in mounted if m.plugin.name == name]
                if not found:
                    return None
                target = found[-1]
                return {
                    "name": target.plugin.name,
                    "filename": target.plugin.filename,
                    "ok": target.plugin.ok and target.error is None,
                    "error": target.plugin.error or target.error,
                    "markup": render_to_string(target.tree),
                }
            finally:
                shell.unmount()

    try:
        result = asyncio.run(run(get_config(ctx)))
    except SkadiError as e:
        fail(ctx, e)

    if result is None:
        formatter.error({"code": "PLUGIN_NOT_FOUND", "message": f"No plugin named {name}"})
        ctx.exit(EXIT_NOT_FOUND)

    if formatter.is_human():
        click.echo(result["markup"])
    else:
        formatter.output(result)
    if not result["ok"]:
        ctx.exit(EXIT_PLUGIN_ERROR)
