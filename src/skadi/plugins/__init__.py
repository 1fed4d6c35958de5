"""Plugin loading for the Skadi host.

Plugins are Python source files delivered at run time. Each one is
compiled in-process into a UI component; a plugin that fails to fetch,
compile or execute is replaced by a placeholder instead of breaking the
batch.
"""

from skadi.plugins.interface import (
    CompiledPlugin,
    LoadState,
    PluginSource,
    derive_plugin_name,
)
from skadi.plugins.loader import PluginLoader, load_plugins

__all__ = [
    "CompiledPlugin",
    "LoadState",
    "PluginLoader",
    "PluginSource",
    "derive_plugin_name",
    "load_plugins",
]
