"""HTTP client for a remote host service."""

import asyncio
from typing import Any

import aiohttp

from skadi.core.errors import HostCommandError, TransportError
from skadi.core.http_client import create_client_session
from skadi.core.logging import debug
from skadi.host.rpc import LIST_PLUGIN_FILES, OPEN_EXTERNAL, READ_PLUGIN_FILE


class HttpHost:
    """Calls host commands with ``POST {base_url}/invoke/{command}``.

    Replies are ``{"ok": true, "result": ...}`` or
    ``{"ok": false, "error": "..."}``.
    """

    def __init__(self, base_url: str, session: aiohttp.ClientSession | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "HttpHost":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = create_client_session()
            self._owns_session = True
        return self._session

    async def invoke(self, command: str, args: dict[str, Any] | None = None) -> Any:
        """Invoke a host command.

        Raises:
            TransportError: If the host cannot be reached
            HostCommandError: If the host rejects the command
        """
        url = f"{self.base_url}/invoke/{command}"
        debug("Invoking host command", command=command)

        try:
            async with self._get_session().post(url, json=args or {}) as resp:
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    raise HostCommandError(
                        command, f"Host returned a non-JSON response (HTTP {resp.status})"
                    ) from None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Host request '{command}' failed: {e}") from e

        if not isinstance(data, dict):
            raise HostCommandError(command, "Host returned a malformed response")
        if not data.get("ok"):
            raise HostCommandError(command, str(data.get("error") or f"Command '{command}' failed"))
        return data.get("result")

    async def list_plugin_files(self) -> list[str]:
        result = await self.invoke(LIST_PLUGIN_FILES)
        if not isinstance(result, list) or not all(isinstance(name, str) for name in result):
            raise HostCommandError(LIST_PLUGIN_FILES, "Expected a list of file names")
        return result

    async def read_plugin_file(self, filename: str) -> str:
        result = await self.invoke(READ_PLUGIN_FILE, {"filename": filename})
        if not isinstance(result, str):
            raise HostCommandError(READ_PLUGIN_FILE, f"Expected source text for {filename}")
        return result

    async def open_external(self, url: str) -> None:
        await self.invoke(OPEN_EXTERNAL, {"url": url})
