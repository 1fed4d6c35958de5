"""Host CLI commands: invoke, exec and serve."""

import asyncio
from pathlib import Path
from typing import Any

import click

from skadi.bridge import CapabilityBridge
from skadi.cli.common import fail, get_config, get_formatter, open_host, parse_args
from skadi.core.config import SkadiConfig
from skadi.core.errors import SkadiError
from skadi.core.logging import info, warning
from skadi.host.directory import DirectoryHost
from skadi.host.http import HttpHost
from skadi.host.server import HostService, start_service
from skadi.ipc.socket import init_socket, reset_socket


@click.command()
@click.argument("command")
@click.option("--arg", "-a", "pairs", multiple=True, help="Argument as key=value (can be repeated)")
@click.option(
    "--local",
    is_flag=True,
    default=False,
    help="Run against the plugins directory instead of the running host service",
)
@click.pass_context
def invoke(ctx: click.Context, command: str, pairs: tuple[str, ...], local: bool) -> None:
    """Invoke a host command and print its result."""
    formatter = get_formatter(ctx)

    async def run(config: SkadiConfig, args: dict[str, Any]) -> Any:
        async with open_host(config, remote=not local) as host:
            return await host.invoke(command, args)

    try:
        result = asyncio.run(run(get_config(ctx), parse_args(pairs)))
    except SkadiError as e:
        fail(ctx, e)

    formatter.output({"command": command, "result": result})


@click.command("exec")
@click.argument("path")
@click.argument("args", nargs=-1)
@click.option("--poll", is_flag=True, default=False, help="Stream the script's events until interrupted")
@click.option("--timeout", type=float, default=None, help="Request timeout in seconds")
@click.pass_context
def exec_command(
    ctx: click.Context,
    path: str,
    args: tuple[str, ...],
    poll: bool,
    timeout: float | None,
) -> None:
    """Run a host script through the IPC socket."""
    formatter = get_formatter(ctx)

    async def run(config: SkadiConfig) -> Any:
        sock = await init_socket(
            config.ipc_port,
            config.host,
            timeout=timeout or config.request_timeout,
        )
        try:
            async with HttpHost(config.base_url) as host:
                bridge = CapabilityBridge(host, sock, label=config.label)
                result = await bridge.exec(path, list(args), polls=poll)
                formatter.output({"path": path, "result": result})

                if not (poll and isinstance(result, dict) and result.get("event")):
                    return
                async for payload in bridge.stream(result["event"]):
                    formatter.output({"event": result["event"], "payload": payload})
                warning("Host closed the IPC socket", event=result["event"])
        finally:
            await reset_socket()

    try:
        asyncio.run(run(get_config(ctx)))
    except SkadiError as e:
        fail(ctx, e)
    except KeyboardInterrupt:
        pass


@click.command()
@click.option("--port", "-p", "ports", type=int, multiple=True, help="Port to listen on (can be repeated)")
@click.option(
    "--plugins-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Plugins directory (default: from configuration)",
)
@click.pass_context
def serve(ctx: click.Context, ports: tuple[int, ...], plugins_dir: Path | None) -> None:
    """Run the host service (HTTP commands and the IPC socket)."""

    async def run(config: SkadiConfig) -> None:
        host = DirectoryHost(plugins_dir or config.plugins_dir)
        service = HostService(host, config.scripts_dir)
        runner = await start_service(
            service, config.host, list(ports) or [config.port, config.ipc_port]
        )
        try:
            await asyncio.Event().wait()
        finally:
            info("Shutting down host service")
            await runner.cleanup()

    try:
        asyncio.run(run(get_config(ctx)))
    except SkadiError as e:
        fail(ctx, e)
    except KeyboardInterrupt:
        pass
