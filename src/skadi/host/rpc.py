"""Host RPC surface consumed by the loader and the capability bridge."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class HostRPC(Protocol):
    """Commands every host implementation answers."""

    async def list_plugin_files(self) -> list[str]:
        """Enumerate installed plugin source files, in display order."""
        ...

    async def read_plugin_file(self, filename: str) -> str:
        """Return the raw source text of one plugin file."""
        ...

    async def invoke(self, command: str, args: dict[str, Any] | None = None) -> Any:
        """Run a named host command and return its result."""
        ...

    async def open_external(self, url: str) -> None:
        """Open ``url`` outside the application."""
        ...


LIST_PLUGIN_FILES = "get_plugin_files"
READ_PLUGIN_FILE = "read_plugin_file"
OPEN_EXTERNAL = "open_external"
