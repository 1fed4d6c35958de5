"""Capability bridge handed to every plugin component.

Plugins reach host services only through this object (``props["bridge"]``);
they never see the host client or the socket directly.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

from pydantic import AnyUrl, TypeAdapter, ValidationError

from skadi.core.errors import HostCommandError, InvalidArgumentError
from skadi.core.logging import debug
from skadi.host.rpc import HostRPC
from skadi.ipc.socket import IPCSocket, get_socket
from skadi.ui import use_effect, use_ref

_URL = TypeAdapter(AnyUrl)


def validate_url(url: Any) -> str:
    """Check that ``url`` is an absolute URL.

    Raises:
        InvalidArgumentError: If it is not
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidArgumentError(f"Invalid URL: {url!r}", field="url")
    try:
        _URL.validate_python(url)
    except ValidationError:
        raise InvalidArgumentError(f"Invalid URL: {url}", field="url") from None
    return url


class CapabilityBridge:
    """Remote invoke, event subscription, privileged exec and open-external."""

    def __init__(
        self,
        host: HostRPC,
        socket: IPCSocket | None = None,
        label: str = "main",
    ) -> None:
        """Initialize the bridge.

        Args:
            host: Host RPC channel
            socket: IPC socket (default: the process-wide socket)
            label: Window label sent with exec requests
        """
        self._host = host
        self._socket = socket or get_socket()
        self.label = label

    async def invoke(self, command: str, args: dict[str, Any] | None = None) -> Any:
        """Run a host command and return its result.

        Host failures propagate with the host's message.
        """
        return await self._host.invoke(command, args)

    def listen(self, event: str, handler: Callable[[Any], Any]) -> Callable[[], None]:
        """Call ``handler`` with the payload of every ``event`` pushed by the host.

        Returns:
            Action that revokes the subscription
        """
        debug("Plugin subscribed to event", event=event)

        def deliver(message: dict[str, Any]) -> Any:
            return handler(message.get("payload"))

        return self._socket.subscribe(event, deliver)

    async def stream(self, event: str) -> AsyncIterator[Any]:
        """Yield the payload of every pushed ``event`` until the connection drops.

        Payloads already queued when the host hangs up are still yielded.
        """
        queue: asyncio.Queue = asyncio.Queue()
        unsubscribe = self.listen(event, queue.put_nowait)
        closed = asyncio.ensure_future(self._socket.wait_closed())
        getter: asyncio.Future | None = None
        try:
            while True:
                getter = asyncio.ensure_future(queue.get())
                await asyncio.wait({getter, closed}, return_when=asyncio.FIRST_COMPLETED)
                if not getter.done():
                    break
                yield getter.result()
            while not queue.empty():
                yield queue.get_nowait()
            debug("Event stream ended", event=event)
        finally:
            if getter is not None:
                getter.cancel()
            closed.cancel()
            unsubscribe()

    def use_event(self, event: str, handler: Callable[[Any], Any]) -> None:
        """Hook form of :meth:`listen` for use inside a component.

        Subscribes on mount, follows the latest ``handler`` and unsubscribes
        on unmount or when ``event`` changes.
        """
        latest = use_ref(handler)
        latest.current = handler
        use_effect(lambda: self.listen(event, lambda payload: latest.current(payload)), [event])

    async def exec(
        self,
        path: str,
        args: Sequence[str] | None = None,
        polls: bool = False,
        timeout: float | None = None,
    ) -> Any:
        """Ask the host to run a script.

        Raises:
            TransportError: If the socket is not connected
            RequestTimeoutError: If the host does not answer in time
            HostCommandError: If the host reports a failure
        """
        response = await self._socket.send(
            "exec",
            {"label": self.label, "path": path, "args": list(args or []), "polls": polls},
            timeout=timeout,
        )
        if response.get("ok") is False:
            raise HostCommandError("exec", str(response.get("error") or "Script execution failed"))
        return response.get("result")

    async def open_external(self, url: str) -> None:
        """Open ``url`` outside the application after validating it.

        Raises:
            InvalidArgumentError: If ``url`` is not an absolute URL
        """
        validate_url(url)
        await self._host.open_external(url)
