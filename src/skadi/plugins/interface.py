"""Plugin data types.

Defines the records produced by one load cycle and the loader state.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath

from skadi.compiler.placeholder import FailureStage
from skadi.ui import ComponentFactory


class LoadState(str, Enum):
    """Lifecycle of the plugin collection."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERRORED = "errored"


@dataclass(frozen=True)
class PluginSource:
    """Source text of one plugin file as fetched from the host."""

    filename: str
    source_text: str


@dataclass(frozen=True)
class CompiledPlugin:
    """A loaded plugin.

    ``component`` is never None: broken plugins carry a placeholder, with
    ``error`` holding the failure message and ``stage`` where it happened.
    Names are not deduplicated; a later plugin with the same name shadows
    an earlier one wherever plugins are keyed by name.
    """

    name: str
    component: ComponentFactory
    filename: str
    error: str | None = None
    stage: FailureStage | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        """JSON-serializable summary (the component itself is omitted)."""
        return {
            "name": self.name,
            "filename": self.filename,
            "ok": self.ok,
            "stage": self.stage.value if self.stage else None,
            "error": self.error,
        }


def derive_plugin_name(filename: str) -> str:
    """Plugin name is the file name without directory or extension."""
    return PurePath(filename).stem
