"""In-process host backed by a plugins directory."""

import inspect
import webbrowser
from collections.abc import Callable
from pathlib import Path
from typing import Any

from skadi.compiler.dialect import is_plugin_file
from skadi.core.errors import DiscoveryError, FetchError, HostCommandError, SkadiError
from skadi.core.logging import debug, info
from skadi.host.rpc import LIST_PLUGIN_FILES, OPEN_EXTERNAL, READ_PLUGIN_FILE

CommandHandler = Callable[..., Any]


class DirectoryHost:
    """Serves plugin files from one directory and runs registered commands.

    Command handlers are called with the invocation arguments as keyword
    arguments and may be plain functions or coroutines.
    """

    def __init__(
        self,
        plugins_dir: Path,
        commands: dict[str, CommandHandler] | None = None,
        opener: Callable[[str], Any] | None = None,
    ) -> None:
        """Initialize the host.

        Args:
            plugins_dir: Directory holding plugin source files
            commands: Extra commands exposed through ``invoke``
            opener: Callable used by ``open_external`` (default: webbrowser.open)
        """
        self.plugins_dir = plugins_dir
        self._opener = opener or webbrowser.open
        self._commands: dict[str, CommandHandler] = {
            LIST_PLUGIN_FILES: self.list_plugin_files,
            READ_PLUGIN_FILE: self.read_plugin_file,
            OPEN_EXTERNAL: self.open_external,
        }
        self._commands.update(commands or {})

    @property
    def commands(self) -> list[str]:
        return sorted(self._commands)

    def register(self, command: str, handler: CommandHandler) -> None:
        """Expose ``handler`` as host command ``command``."""
        self._commands[command] = handler

    async def list_plugin_files(self) -> list[str]:
        """List plugin files sorted by name.

        Dotfiles and files without a plugin extension (including ``.pyi``
        stubs) are skipped.

        Raises:
            DiscoveryError: If the directory is missing or unreadable
        """
        if not self.plugins_dir.is_dir():
            raise DiscoveryError(f"Plugins directory does not exist: {self.plugins_dir}")

        try:
            entries = sorted(self.plugins_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise DiscoveryError(f"Failed to list {self.plugins_dir}: {e}") from e

        names = [
            entry.name
            for entry in entries
            if entry.is_file() and not entry.name.startswith(".") and is_plugin_file(entry.name)
        ]
        debug("Found plugin files", count=len(names))
        return names

    async def read_plugin_file(self, filename: str) -> str:
        """Read one plugin file.

        Raises:
            FetchError: If the name escapes the directory or the file cannot be read
        """
        root = self.plugins_dir.resolve()
        path = (root / filename).resolve()
        if path.parent != root:
            raise FetchError(f"Plugin file outside plugins directory: {filename}", filename)

        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise FetchError(f"Plugin file not found: {filename}", filename) from None
        except (OSError, UnicodeDecodeError) as e:
            raise FetchError(f"Failed to read {filename}: {e}", filename) from e

    async def open_external(self, url: str) -> None:
        info("Opening external resource", url=url)
        self._opener(url)

    async def invoke(self, command: str, args: dict[str, Any] | None = None) -> Any:
        """Run a command by name.

        Raises:
            HostCommandError: For unknown commands or handler failures
        """
        handler = self._commands.get(command)
        if handler is None:
            raise HostCommandError(command, f"Unknown command: {command}")

        try:
            result = handler(**(args or {}))
            if inspect.isawaitable(result):
                result = await result
        except SkadiError:
            raise
        except Exception as e:
            raise HostCommandError(command, str(e) or type(e).__name__) from e
        return result
