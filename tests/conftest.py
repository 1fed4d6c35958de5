"""
Shared pytest fixtures for the Skadi test suite.
"""

from pathlib import Path
from typing import Any

import pytest

from skadi.core.errors import DiscoveryError, FetchError, HostCommandError
from skadi.core.logging import configure_logging, set_verbose
from skadi.ipc.socket import reset_socket


VALID_PLUGIN = '''
def Component(props):
    return div(span("hello"), class_="greeting")
'''

BROKEN_PLUGIN = '''
def Component(props:
    return div("never")
'''


class FakeHost:
    """In-memory HostRPC double that records every call."""

    def __init__(
        self,
        files: dict[str, str] | None = None,
        listing: list[str] | None = None,
        discovery_error: str | None = None,
        fetch_errors: dict[str, str] | None = None,
    ) -> None:
        self.files = dict(files or {})
        self.listing = listing
        self.discovery_error = discovery_error
        self.fetch_errors = dict(fetch_errors or {})
        self.listed = 0
        self.fetched: list[str] = []
        self.invoked: list[tuple[str, dict[str, Any] | None]] = []
        self.opened: list[str] = []
        self.on_fetch = None

    async def list_plugin_files(self) -> list[str]:
        self.listed += 1
        if self.discovery_error is not None:
            raise DiscoveryError(self.discovery_error)
        if self.listing is not None:
            return list(self.listing)
        return sorted(self.files)

    async def read_plugin_file(self, filename: str) -> str:
        self.fetched.append(filename)
        if self.on_fetch is not None:
            await self.on_fetch(filename)
        if filename in self.fetch_errors:
            raise FetchError(self.fetch_errors[filename], filename)
        return self.files[filename]

    async def invoke(self, command: str, args: dict[str, Any] | None = None) -> Any:
        self.invoked.append((command, args))
        if command == "fail":
            raise HostCommandError(command, "command failed on host")
        return {"command": command, "args": args or {}}

    async def open_external(self, url: str) -> None:
        self.opened.append(url)


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep test output free of log noise."""
    configure_logging(log_format="text", quiet=True)
    set_verbose(False)
    yield
    configure_logging(log_format="text", quiet=False)


@pytest.fixture
async def clean_socket():
    """Make sure the process-wide socket does not leak between tests."""
    await reset_socket()
    yield
    await reset_socket()


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost(files={"a.py": VALID_PLUGIN})


@pytest.fixture
def plugins_dir(tmp_path: Path) -> Path:
    """A plugins directory with one valid, one broken and one typed plugin."""
    directory = tmp_path / "plugins"
    directory.mkdir()
    (directory / "clock.py").write_text(VALID_PLUGIN, encoding="utf-8")
    (directory / "broken.py").write_text(BROKEN_PLUGIN, encoding="utf-8")
    (directory / "typed.pyt").write_text(
        "from typing import Any\n\n"
        "def Component(props: dict[str, Any]) -> Any:\n"
        "    return p('typed')\n",
        encoding="utf-8",
    )
    (directory / "notes.txt").write_text("not a plugin", encoding="utf-8")
    (directory / ".hidden.py").write_text(VALID_PLUGIN, encoding="utf-8")
    return directory
