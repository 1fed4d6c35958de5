"""
Tests for the plugin shell.
"""

from skadi.bridge import CapabilityBridge
from skadi.ipc import IPCSocket
from skadi.plugins import PluginLoader
from skadi.shell import PluginShell
from tests.conftest import BROKEN_PLUGIN, VALID_PLUGIN, FakeHost

BRIDGE_PLUGIN = '''
def Component(props):
    count, set_count = use_state(0)
    has_bridge = props["bridge"] is not None
    return p(f"count={count} bridge={has_bridge}")
'''

RENDER_FAILURE_PLUGIN = '''
def Component(props):
    return div(props["missing"])
'''


def make_shell(files, listing=None):
    host = FakeHost(files=files, listing=listing)
    bridge = CapabilityBridge(host, IPCSocket())
    return PluginShell(PluginLoader(host), bridge), host


class TestPluginShell:
    """Tests for mounting plugins."""

    async def test_mounts_every_plugin_in_order(self):
        shell, _ = make_shell(
            {"a.py": VALID_PLUGIN, "b.py": BROKEN_PLUGIN},
        )

        mounted = await shell.start()

        assert [m.plugin.name for m in mounted] == ["a", "b"]
        markup = shell.render_to_string()
        assert markup.startswith('<div class="window">')
        assert '<div class="greeting"><span>hello</span></div>' in markup
        assert "Compile Error: b.py" in markup

    async def test_bridge_is_injected(self):
        shell, _ = make_shell({"counter.py": BRIDGE_PLUGIN})
        await shell.start()

        assert "count=0 bridge=True" in shell.render_to_string()

    async def test_render_failure_becomes_placeholder(self):
        shell, _ = make_shell({"a.py": VALID_PLUGIN, "oops.py": RENDER_FAILURE_PLUGIN})

        mounted = await shell.start()

        assert mounted[0].error is None
        assert mounted[1].error == "KeyError: 'missing'"
        assert "Execution Error: oops.py" in shell.render_to_string()

    async def test_update_rerenders_dirty_plugins(self):
        source = '''
state = {}

def Component(props):
    count, set_count = use_state(0)
    state["set"] = set_count
    return p(str(count))
'''
        host = FakeHost(files={"counter.py": source})
        shell = PluginShell(PluginLoader(host), CapabilityBridge(host, IPCSocket()))
        mounted = await shell.start()

        plugin_state = mounted[0].plugin.component.__globals__["state"]
        plugin_state["set"](7)
        shell.update()

        assert shell.render_to_string() == '<div class="window"><p>7</p></div>'

    async def test_reload_and_unmount(self):
        shell, host = make_shell({"a.py": VALID_PLUGIN})
        await shell.start()

        host.files["b.py"] = VALID_PLUGIN
        mounted = await shell.reload()
        assert [m.plugin.name for m in mounted] == ["a", "b"]

        shell.unmount()
        assert shell.mounted == []
        assert shell.render_to_string() == '<div class="window"></div>'
