"""Persistent WebSocket connection to the host IPC service.

One :class:`IPCSocket` serves the whole process. Requests are correlated
with responses through a random ``id``; host-originated events carry no
``id`` and are routed by ``type`` to subscribers. The two kinds of handler
live in separate maps so an event name can never collide with a live
request id.

Wire format, one JSON object per WebSocket text frame::

    -> {"id": "k3J...", "type": "exec", "label": "main", "path": "..."}
    <- {"id": "k3J...", "type": "exec", "ok": true, "result": ...}
    <- {"type": "battery.sh", "payload": {...}}
"""

import asyncio
import inspect
import json
import secrets
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any

import aiohttp
from aiohttp import ClientTimeout

from skadi.core.errors import RequestTimeoutError, TransportError
from skadi.core.http_client import create_client_session
from skadi.core.logging import debug, error, info, warning

DEFAULT_REQUEST_TIMEOUT = 5.0
DEFAULT_IPC_PORT = 3499
ID_BYTES = 12
MAX_LOGGED_PAYLOAD = 100

# Handshake only; an open socket has no read deadline.
SOCKET_TIMEOUT = ClientTimeout(total=None, connect=5)

EventHandler = Callable[[dict[str, Any]], Awaitable[Any] | Any]


class IPCSocket:
    """Request/response and event client over one WebSocket."""

    def __init__(self, timeout: float = DEFAULT_REQUEST_TIMEOUT) -> None:
        """Initialize an unconnected socket.

        Args:
            timeout: Seconds to wait for a response before a request fails
        """
        self.timeout = timeout
        self.url: str | None = None
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task | None = None
        self._pending: dict[str, asyncio.Future] = {}
        self._subscriptions: dict[str, list[EventHandler]] = {}
        self._handler_tasks: set[asyncio.Task] = set()

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    @property
    def pending_ids(self) -> set[str]:
        """Correlation ids still waiting for a response."""
        return set(self._pending)

    def subscribed_events(self) -> set[str]:
        return set(self._subscriptions)

    async def connect(self, port: int = DEFAULT_IPC_PORT, host: str = "localhost", path: str = "/ws") -> None:
        """Open the connection and start dispatching inbound messages.

        Calling connect on an open socket does nothing.

        Raises:
            TransportError: If the host cannot be reached
        """
        if self.connected:
            return

        await self._release()
        self.url = f"ws://{host}:{port}{path}"
        self._session = create_client_session(timeout=SOCKET_TIMEOUT)
        try:
            self._ws = await self._session.ws_connect(self.url)
        except (aiohttp.ClientError, OSError) as e:
            await self._release()
            raise TransportError(f"Failed to connect to {self.url}: {e}") from e

        self._reader = asyncio.create_task(self._read_loop(self._ws))
        info("IPC socket connected", url=self.url)

    async def send(
        self,
        type: str,
        payload: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send a request and wait for the response with the same id.

        Args:
            type: Message discriminator (e.g. ``"exec"``)
            payload: Extra fields merged into the message
            timeout: Override the socket's request timeout

        Returns:
            The full response message

        Raises:
            TransportError: If the socket is not open or the write fails
            RequestTimeoutError: If no response arrives in time
        """
        if not self.connected:
            raise TransportError("WebSocket not connected")

        request_id = self._new_id()
        message = {**(payload or {}), "id": request_id, "type": type}
        wait = self.timeout if timeout is None else timeout

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            try:
                await self._ws.send_str(json.dumps(message, default=str))
            except (ConnectionError, aiohttp.ClientError, RuntimeError) as e:
                raise TransportError(f"Failed to send '{type}': {e}") from e

            try:
                return await asyncio.wait_for(future, timeout=wait)
            except asyncio.TimeoutError:
                warning("IPC request timed out", type=type, id=request_id, timeout=wait)
                raise RequestTimeoutError(request_id, wait) from None
        finally:
            self._pending.pop(request_id, None)

    def subscribe(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for pushed messages of type ``event``.

        Returns:
            Idempotent action that removes this subscription
        """
        self._subscriptions.setdefault(event, []).append(handler)
        active = True

        def unsubscribe() -> None:
            nonlocal active
            if not active:
                return
            active = False
            handlers = self._subscriptions.get(event)
            if handlers is None:
                return
            for i, registered in enumerate(handlers):
                if registered is handler:
                    del handlers[i]
                    break
            if not handlers:
                del self._subscriptions[event]

        return unsubscribe

    async def wait_closed(self) -> None:
        """Wait until the reader stops, whether the host hung up or :meth:`close` ran."""
        if self._reader is not None:
            await asyncio.wait({self._reader})

    async def close(self) -> None:
        """Close the connection and fail every outstanding request."""
        if self._reader is not None:
            self._reader.cancel()
            with suppress(asyncio.CancelledError):
                await self._reader
            self._reader = None
        await self._release()
        self._fail_pending("WebSocket closed")

    async def _release(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _new_id(self) -> str:
        while True:
            request_id = secrets.token_urlsafe(ID_BYTES)
            if request_id not in self._pending:
                return request_id

    def _fail_pending(self, reason: str) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(TransportError(reason))

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    try:
                        self._dispatch(msg.data.decode("utf-8"))
                    except UnicodeDecodeError:
                        warning("Dropping non UTF-8 IPC frame")
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    warning("IPC socket error", reason=str(ws.exception()))
                    break
        except Exception as e:
            error("IPC reader failed", reason=str(e))
        finally:
            self._fail_pending("WebSocket connection closed")
            if not ws.closed:
                await ws.close()
            info("IPC socket disconnected", url=self.url)

    def _dispatch(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, RecursionError) as e:
            warning("Dropping malformed IPC message", reason=str(e)[:MAX_LOGGED_PAYLOAD])
            return

        if not isinstance(message, dict):
            warning("Dropping non-object IPC message")
            return

        if "id" in message:
            future = self._pending.pop(message["id"], None) if isinstance(message["id"], str) else None
            if future is None:
                debug("Response for unknown or expired request", id=message["id"])
            elif not future.done():
                future.set_result(message)
            return

        event = message.get("type")
        handlers = self._subscriptions.get(event) if isinstance(event, str) else None
        if not handlers:
            debug("No subscriber for IPC event", type=event)
            return

        for handler in list(handlers):
            try:
                result = handler(message)
            except Exception as e:
                error("IPC event handler failed", event=event, reason=str(e))
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._handler_tasks.add(task)
                task.add_done_callback(self._handler_done)

    def _handler_done(self, task: asyncio.Task) -> None:
        self._handler_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            error("IPC event handler failed", reason=str(task.exception()))


_socket: IPCSocket | None = None


def get_socket() -> IPCSocket:
    """Return the process-wide socket, creating it on first use."""
    global _socket
    if _socket is None:
        _socket = IPCSocket()
    return _socket


async def init_socket(
    port: int = DEFAULT_IPC_PORT,
    host: str = "localhost",
    path: str = "/ws",
    timeout: float | None = None,
) -> IPCSocket:
    """Connect the process-wide socket if it is not already open."""
    sock = get_socket()
    if timeout is not None:
        sock.timeout = timeout
    await sock.connect(port, host, path)
    return sock


async def reset_socket() -> None:
    """Close and forget the process-wide socket."""
    global _socket
    if _socket is not None:
        await _socket.close()
        _socket = None
