"""Host service: HTTP command endpoint plus the IPC WebSocket.

Routes:

- ``GET /healthcheck`` -> ``OK``
- ``GET /plugins`` -> JSON list of plugin file names
- ``POST /invoke/{command}`` -> ``{"ok": ..., "result"|"error": ...}``
- ``GET /ws`` -> IPC socket answering ``exec`` and ``ping`` requests and
  carrying pushed events
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any

from aiohttp import WSMsgType, web

from skadi.core.errors import HostCommandError, InvalidArgumentError, SkadiError
from skadi.core.logging import debug, error, info, warning
from skadi.host.directory import DirectoryHost


class HostService:
    """Answers host RPC and IPC socket requests for one DirectoryHost."""

    def __init__(self, host: DirectoryHost, scripts_dir: Path) -> None:
        self.host = host
        self.scripts_dir = scripts_dir
        self._sockets: dict[web.WebSocketResponse, str | None] = {}
        self._tasks: set[asyncio.Task] = set()

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/healthcheck", self.healthcheck)
        app.router.add_get("/plugins", self.plugins)
        app.router.add_post("/invoke/{command}", self.invoke)
        app.router.add_get("/ws", self.websocket)
        app.on_shutdown.append(self._on_shutdown)
        return app

    async def healthcheck(self, request: web.Request) -> web.Response:
        return web.Response(text="OK")

    async def plugins(self, request: web.Request) -> web.Response:
        try:
            files = await self.host.list_plugin_files()
        except SkadiError as e:
            return web.json_response(e.to_structured_error(), status=404)
        return web.json_response(files)

    async def invoke(self, request: web.Request) -> web.Response:
        command = request.match_info["command"]
        try:
            args = await request.json() if request.can_read_body else {}
        except json.JSONDecodeError:
            return web.json_response({"ok": False, "error": "Request body must be JSON"}, status=400)
        if not isinstance(args, dict):
            return web.json_response({"ok": False, "error": "Arguments must be an object"}, status=400)

        try:
            result = await self.host.invoke(command, args)
        except SkadiError as e:
            return web.json_response({"ok": False, "error": e.message, "code": e.error.code})
        return web.json_response({"ok": True, "result": result})

    async def websocket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self._sockets[ws] = None
        debug("IPC client connected", remote=request.remote)

        try:
            async for msg in ws:
                if msg.type != WSMsgType.TEXT:
                    continue
                try:
                    message = json.loads(msg.data)
                except json.JSONDecodeError:
                    warning("Dropping malformed IPC request")
                    continue
                if not isinstance(message, dict):
                    continue
                if isinstance(message.get("label"), str):
                    self._sockets[ws] = message["label"]
                self._spawn(self._handle(ws, message))
        finally:
            self._sockets.pop(ws, None)
            debug("IPC client disconnected", remote=request.remote)
        return ws

    async def emit(self, event: str, payload: Any, label: str | None = None) -> int:
        """Push an event to connected sockets.

        Args:
            event: Event name, delivered as the message ``type``
            payload: JSON-serializable event payload
            label: Only deliver to sockets that identified with this label

        Returns:
            Number of sockets the event was sent to
        """
        sent = 0
        for ws, ws_label in list(self._sockets.items()):
            if ws.closed or (label is not None and ws_label != label):
                continue
            await ws.send_json({"type": event, "payload": payload})
            sent += 1
        return sent

    async def _handle(self, ws: web.WebSocketResponse, message: dict[str, Any]) -> None:
        request_id = message.get("id")
        kind = message.get("type")
        reply: dict[str, Any] = {"id": request_id, "type": kind}

        try:
            if kind == "exec":
                reply["result"] = await self.exec_script(
                    ws,
                    message.get("path"),
                    message.get("args") or [],
                    bool(message.get("polls")),
                )
            elif kind == "ping":
                reply["result"] = "pong"
            else:
                raise InvalidArgumentError(f"Unknown message type: {kind}", field="type")
            reply["ok"] = True
        except SkadiError as e:
            reply.update(ok=False, error=e.message, code=e.error.code)

        if request_id is not None and not ws.closed:
            await ws.send_json(reply)

    async def exec_script(
        self,
        ws: web.WebSocketResponse,
        path: Any,
        args: Any,
        polls: bool = False,
    ) -> Any:
        """Run a script relative to the scripts directory.

        Executables run directly, anything else through ``bash``. Without
        ``polls`` the script's stdout is returned once it exits. With
        ``polls`` the call returns immediately and every JSON line the script
        prints is pushed to ``ws`` as an event named after the script.
        """
        if not isinstance(path, str) or not path:
            raise InvalidArgumentError("exec requires a script path", field="path")
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            raise InvalidArgumentError("exec args must be a list of strings", field="args")

        root = self.scripts_dir.resolve()
        script = (root / path).resolve()
        if not script.is_relative_to(root):
            raise InvalidArgumentError(f"Script path escapes the scripts directory: {path}", field="path")
        if not script.is_file():
            raise HostCommandError("exec", f"Script not found: {path}")

        argv = [str(script), *args] if os.access(script, os.X_OK) else ["bash", str(script), *args]
        info("Executing script", path=path, polls=polls)

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise HostCommandError("exec", f"Failed to start {path}: {e}") from e

        if polls:
            self._spawn(self._stream_events(ws, proc, script.name))
            return {"polling": True, "event": script.name}

        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise HostCommandError(
                "exec",
                f"Script execution failed with status {proc.returncode}: "
                f"{stderr.decode('utf-8', 'replace').strip()}",
            )
        return stdout.decode("utf-8", "replace")

    async def _stream_events(
        self,
        ws: web.WebSocketResponse,
        proc: asyncio.subprocess.Process,
        event: str,
    ) -> None:
        if proc.stdout is None:
            return
        async for line in proc.stdout:
            try:
                payload = json.loads(line)
            except (json.JSONDecodeError, UnicodeDecodeError):
                continue
            if ws.closed:
                proc.kill()
                break
            await ws.send_json({"type": event, "payload": payload})
        returncode = await proc.wait()
        if returncode != 0:
            warning("Polling script exited with error", event=event, status=returncode)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            error("IPC request handler failed", reason=str(task.exception()))

    async def _on_shutdown(self, app: web.Application) -> None:
        for task in list(self._tasks):
            task.cancel()
        for ws in list(self._sockets):
            await ws.close()


async def start_service(
    service: HostService,
    host: str,
    ports: list[int],
) -> web.AppRunner:
    """Start ``service`` listening on every port in ``ports``.

    Returns:
        The running AppRunner; call ``cleanup()`` to stop it
    """
    runner = web.AppRunner(service.build_app())
    await runner.setup()
    for port in dict.fromkeys(ports):
        await web.TCPSite(runner, host, port).start()
        info(f"Server running on http://{host}:{port}")
    return runner
