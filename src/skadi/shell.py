"""Host shell: mounts loaded plugins with the capability bridge."""

from dataclasses import dataclass
from typing import Any

from skadi.bridge import CapabilityBridge
from skadi.compiler import FailureStage, placeholder_component
from skadi.core.errors import error_message
from skadi.core.logging import error
from skadi.plugins import CompiledPlugin, PluginLoader
from skadi.ui import Root, render_to_string


@dataclass
class MountedPlugin:
    """A plugin mounted in the shell."""

    plugin: CompiledPlugin
    root: Root
    error: str | None = None

    @property
    def tree(self) -> Any:
        return self.root.tree


class PluginShell:
    """Renders every loaded plugin, in collection order, with one shared bridge."""

    def __init__(self, loader: PluginLoader, bridge: CapabilityBridge) -> None:
        self.loader = loader
        self.bridge = bridge
        self.mounted: list[MountedPlugin] = []

    async def start(self) -> list[MountedPlugin]:
        await self.loader.load()
        return self.mount()

    async def reload(self) -> list[MountedPlugin]:
        await self.loader.reload()
        return self.mount()

    def mount(self) -> list[MountedPlugin]:
        """Unmount everything and mount the loader's current collection."""
        self.unmount()
        props = {"bridge": self.bridge}
        self.mounted = [self._mount_one(plugin, props) for plugin in self.loader.plugins]
        return self.mounted

    def update(self) -> None:
        """Re-render plugins whose state changed since the last render."""
        for index, mounted in enumerate(self.mounted):
            if not mounted.root.dirty:
                continue
            try:
                mounted.root.flush()
            except Exception as e:
                self.mounted[index] = self._fail(mounted.plugin, mounted.root, e)

    def unmount(self) -> None:
        for mounted in self.mounted:
            self._teardown(mounted.plugin, mounted.root)
        self.mounted = []

    def render_to_string(self) -> str:
        inner = "".join(render_to_string(mounted.tree) for mounted in self.mounted)
        return f'<div class="window">{inner}</div>'

    def _mount_one(self, plugin: CompiledPlugin, props: dict[str, Any]) -> MountedPlugin:
        root = Root(plugin.component, props)
        try:
            root.render()
            root.flush()
        except Exception as e:
            return self._fail(plugin, root, e)
        return MountedPlugin(plugin=plugin, root=root)

    def _fail(self, plugin: CompiledPlugin, root: Root, exc: Exception) -> MountedPlugin:
        message = f"{type(exc).__name__}: {exc}"
        error(f"Error rendering plugin {plugin.filename}", reason=message)
        self._teardown(plugin, root)

        fallback = Root(placeholder_component(FailureStage.EXECUTION, plugin.filename, message))
        fallback.render()
        return MountedPlugin(plugin=plugin, root=fallback, error=message)

    @staticmethod
    def _teardown(plugin: CompiledPlugin, root: Root) -> None:
        try:
            root.unmount()
        except Exception as e:
            error(f"Error unmounting plugin {plugin.filename}", reason=error_message(e))
