"""Plugin discovery and loading.

Lists plugin files through the host, fetches each one and compiles it into
a component. Files are processed one at a time in the order the host
reports them so diagnostics stay attributable and ordered.
"""

from skadi.compiler import DynamicCompiler, FailureStage, placeholder_component
from skadi.core.errors import error_message
from skadi.core.logging import debug, error, info
from skadi.host.rpc import HostRPC
from skadi.plugins.interface import (
    CompiledPlugin,
    LoadState,
    PluginSource,
    derive_plugin_name,
)

SOURCE_PREVIEW_CHARS = 200


class PluginLoader:
    """Owns the plugin collection and its loading state.

    Every call to :meth:`load` starts a new load cycle with its own
    generation number. A cycle that finds a newer one has started drops its
    results instead of publishing them.
    """

    def __init__(
        self,
        host: HostRPC,
        compiler: DynamicCompiler | None = None,
    ) -> None:
        """Initialize the loader.

        Args:
            host: Host answering ``list_plugin_files`` and ``read_plugin_file``
            compiler: Compiler for plugin sources
        """
        self._host = host
        self._compiler = compiler or DynamicCompiler()
        self.state = LoadState.IDLE
        self.plugins: list[CompiledPlugin] = []
        self.error: str | None = None
        self.generation = 0

    @property
    def loading(self) -> bool:
        return self.state is LoadState.LOADING

    def get(self, name: str) -> CompiledPlugin | None:
        """Return the last plugin with ``name`` (later entries shadow earlier ones)."""
        found = None
        for plugin in self.plugins:
            if plugin.name == name:
                found = plugin
        return found

    async def load(self) -> list[CompiledPlugin]:
        """Run one load cycle and publish its collection.

        Discovery failure moves the loader to ``errored`` with an empty
        collection. Failures of individual files never abort the cycle.

        Returns:
            The published collection
        """
        self.generation += 1
        generation = self.generation
        self.state = LoadState.LOADING
        self.error = None

        try:
            filenames = list(await self._host.list_plugin_files())
        except Exception as e:
            if generation != self.generation:
                return self.plugins
            message = error_message(e)
            error("Error loading plugins", reason=message)
            self.plugins = []
            self.error = message
            self.state = LoadState.ERRORED
            return self.plugins

        info("Found plugin files", count=len(filenames))

        loaded: list[CompiledPlugin] = []
        for filename in filenames:
            if generation != self.generation:
                debug("Discarding superseded load cycle", generation=generation)
                return self.plugins
            loaded.append(await self._load_one(filename))

        if generation != self.generation:
            debug("Discarding superseded load cycle", generation=generation)
            return self.plugins

        self.plugins = loaded
        self.state = LoadState.READY
        info(
            "Loaded plugins",
            count=len(loaded),
            failed=sum(1 for plugin in loaded if not plugin.ok),
        )
        return loaded

    async def reload(self) -> list[CompiledPlugin]:
        """Replace the whole collection with a fresh load cycle."""
        return await self.load()

    async def fetch(self, filename: str) -> PluginSource:
        """Fetch the source of one plugin file from the host."""
        text = await self._host.read_plugin_file(filename)
        debug(f"Loaded code for {filename}", preview=text[:SOURCE_PREVIEW_CHARS])
        return PluginSource(filename=filename, source_text=text)

    async def _load_one(self, filename: str) -> CompiledPlugin:
        name = derive_plugin_name(filename)

        try:
            source = await self.fetch(filename)
        except Exception as e:
            message = error_message(e)
            error(f"Error loading plugin {filename}", reason=message)
            return CompiledPlugin(
                name=name,
                component=placeholder_component(FailureStage.FETCH, filename, message),
                filename=filename,
                error=message,
                stage=FailureStage.FETCH,
            )

        result = self._compiler.compile(source.source_text, source.filename)
        return CompiledPlugin(
            name=name,
            component=result.component,
            filename=filename,
            error=result.message,
            stage=result.stage,
        )


async def load_plugins(host: HostRPC, compiler: DynamicCompiler | None = None) -> list[CompiledPlugin]:
    """Run one load cycle against ``host`` and return the collection."""
    return await PluginLoader(host, compiler).load()
