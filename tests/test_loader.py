"""
Tests for plugin loading.

Tests cover:
- Partial failure of individual plugins
- Discovery failure
- Load order and name derivation
- Superseded load cycles
"""

import asyncio

from skadi.compiler import FailureStage
from skadi.plugins import LoadState, PluginLoader, derive_plugin_name, load_plugins
from skadi.ui import Root, render_to_string
from tests.conftest import BROKEN_PLUGIN, VALID_PLUGIN, FakeHost


class TestPluginName:
    """Tests for name derivation."""

    def test_strips_extension(self):
        assert derive_plugin_name("clock.py") == "clock"

    def test_strips_directory(self):
        assert derive_plugin_name("widgets/battery.pyt") == "battery"

    def test_only_last_extension(self):
        assert derive_plugin_name("a.b.py") == "a.b"


class TestPluginLoader:
    """Tests for PluginLoader."""

    async def test_fetch_failure_is_isolated(self):
        host = FakeHost(
            files={"a.pyt": VALID_PLUGIN},
            listing=["a.pyt", "b.py"],
            fetch_errors={"b.py": "Plugin file not found: b.py"},
        )
        states = []

        async def record(_filename):
            states.append(loader.state)

        host.on_fetch = record
        loader = PluginLoader(host)

        plugins = await loader.load()

        assert [(p.name, p.error) for p in plugins] == [
            ("a", None),
            ("b", "Plugin file not found: b.py"),
        ]
        assert plugins[1].stage is FailureStage.FETCH
        assert states == [LoadState.LOADING, LoadState.LOADING]
        assert loader.state is LoadState.READY
        assert loader.error is None

    async def test_discovery_failure(self):
        host = FakeHost(files={"a.py": VALID_PLUGIN}, discovery_error="host unreachable")
        loader = PluginLoader(host)

        plugins = await loader.load()

        assert plugins == []
        assert loader.plugins == []
        assert loader.error == "host unreachable"
        assert loader.state is LoadState.ERRORED
        assert host.fetched == []

    async def test_compile_failure_becomes_placeholder(self):
        host = FakeHost(files={"a.py": VALID_PLUGIN, "b.py": BROKEN_PLUGIN})
        plugins = await load_plugins(host)

        broken = plugins[1]
        assert broken.name == "b"
        assert broken.stage is FailureStage.COMPILE
        assert "SyntaxError" in broken.error

        root = Root(broken.component)
        root.render()
        assert "Compile Error: b.py" in render_to_string(root.tree)

    async def test_order_follows_discovery(self):
        host = FakeHost(
            files={"z.py": VALID_PLUGIN, "a.py": VALID_PLUGIN, "m.py": VALID_PLUGIN},
            listing=["z.py", "a.py", "m.py"],
        )
        plugins = await load_plugins(host)

        assert [p.name for p in plugins] == ["z", "a", "m"]
        assert host.fetched == ["z.py", "a.py", "m.py"]

    async def test_duplicate_names_are_kept(self):
        host = FakeHost(
            files={"clock.py": VALID_PLUGIN, "clock.pyt": "x = 1\n"},
            listing=["clock.py", "clock.pyt"],
        )
        loader = PluginLoader(host)
        await loader.load()

        assert [p.name for p in loader.plugins] == ["clock", "clock"]
        assert loader.get("clock").filename == "clock.pyt"
        assert loader.get("missing") is None

    async def test_reload_replaces_collection(self):
        host = FakeHost(files={"a.py": VALID_PLUGIN})
        loader = PluginLoader(host)
        await loader.load()

        host.files["b.py"] = VALID_PLUGIN
        await loader.reload()

        assert [p.name for p in loader.plugins] == ["a", "b"]
        assert loader.generation == 2

    async def test_superseded_cycle_is_discarded(self):
        host = FakeHost(files={"a.py": VALID_PLUGIN, "b.py": VALID_PLUGIN})
        gate = asyncio.Event()

        async def block_first(filename):
            if filename == "a.py" and not gate.is_set():
                await gate.wait()

        host.on_fetch = block_first
        loader = PluginLoader(host)

        first = asyncio.create_task(loader.load())
        await asyncio.sleep(0)
        host.files = {"c.py": VALID_PLUGIN}
        gate.set()
        second = await loader.load()
        await first

        assert [p.name for p in second] == ["c"]
        assert [p.name for p in loader.plugins] == ["c"]
        assert loader.state is LoadState.READY

    async def test_to_dict(self):
        host = FakeHost(files={"a.py": VALID_PLUGIN, "b.py": BROKEN_PLUGIN})
        plugins = await load_plugins(host)

        assert plugins[0].to_dict() == {
            "name": "a",
            "filename": "a.py",
            "ok": True,
            "stage": None,
            "error": None,
        }
        assert plugins[1].to_dict()["stage"] == "compile"
