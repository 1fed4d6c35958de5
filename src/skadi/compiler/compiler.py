"""Turn plugin source text into a component factory.

:func:`compile_to_component` never raises: every failure is converted into
a placeholder component so one broken plugin cannot stop the others (or
the host) from loading.
"""

from dataclasses import dataclass
from typing import Any

from skadi.compiler.dialect import Dialect, detect_dialect
from skadi.compiler.placeholder import FailureStage, placeholder_component
from skadi.compiler.scope import PluginModule, ScopePrimitives
from skadi.compiler.transform import transform_source
from skadi.core.errors import (
    CompileError,
    MissingExportError,
    PluginExecutionError,
    SkadiError,
)
from skadi.core.logging import debug, error, warning
from skadi.ui import ComponentFactory


@dataclass(frozen=True)
class CompileResult:
    """Outcome of compiling one plugin.

    ``component`` is always callable. ``stage`` and ``error`` are set only
    when it is a placeholder.
    """

    component: ComponentFactory
    filename: str
    stage: FailureStage | None = None
    error: SkadiError | None = None

    @property
    def ok(self) -> bool:
        return self.stage is None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None


def _describe(exc: BaseException) -> str:
    if isinstance(exc, SyntaxError) and exc.lineno:
        return f"{type(exc).__name__}: {exc.msg} (line {exc.lineno})"
    return f"{type(exc).__name__}: {exc}"


def _failure(stage: FailureStage, filename: str, exc: SkadiError) -> CompileResult:
    return CompileResult(
        component=placeholder_component(stage, filename, exc.message),
        filename=filename,
        stage=stage,
        error=exc,
    )


NOT_EXPORTED = object()


def resolve_component(namespace: dict[str, Any], module: PluginModule, exports: dict) -> Any:
    """Find the exported component.

    Checked in order: a top-level ``Component`` binding, ``exports["default"]``,
    then ``module.exports`` when it is itself callable. A binding counts even
    when its value is ``None``; the caller rejects it as not callable.

    Returns:
        The candidate, or ``NOT_EXPORTED`` if nothing was exported
    """
    if "Component" in namespace:
        return namespace["Component"]
    if isinstance(exports, dict) and "default" in exports:
        return exports["default"]
    if callable(module.exports):
        return module.exports
    return NOT_EXPORTED


def compile_to_component(
    source: str,
    filename: str,
    dialect: Dialect | None = None,
    primitives: ScopePrimitives | None = None,
) -> CompileResult:
    """Compile plugin source into a component factory.

    Args:
        source: Plugin source text
        filename: Plugin file name, used for dialect detection and diagnostics
        dialect: Override the dialect detected from ``filename``
        primitives: Runtime primitives injected into the plugin scope

    Returns:
        CompileResult whose component is real or a placeholder
    """
    dialect = dialect or detect_dialect(filename)
    primitives = primitives or ScopePrimitives()

    debug(f"Compiling plugin {filename}", dialect=dialect.value)

    try:
        code = transform_source(source, filename, dialect)
    except Exception as e:
        error(f"Error compiling plugin {filename}", reason=_describe(e))
        return _failure(FailureStage.COMPILE, filename, CompileError(_describe(e), filename))

    module = PluginModule()
    exports = module.exports
    namespace = primitives.namespace(module, filename)

    try:
        exec(code, namespace)
        candidate = resolve_component(namespace, module, exports)
        if candidate is NOT_EXPORTED:
            warning(f"No component found in plugin {filename}")
            return _failure(FailureStage.MISSING_EXPORT, filename, MissingExportError(filename))
        if not callable(candidate):
            raise TypeError(f"Plugin {filename} did not export a valid component")
    except Exception as e:
        error(f"Error executing plugin {filename}", reason=_describe(e))
        return _failure(
            FailureStage.EXECUTION, filename, PluginExecutionError(_describe(e), filename)
        )

    debug(
        f"Created component for {filename}",
        component=getattr(candidate, "__name__", type(candidate).__name__),
    )
    return CompileResult(component=candidate, filename=filename)


class DynamicCompiler:
    """Compiles plugin sources against a fixed set of scope primitives."""

    def __init__(self, primitives: ScopePrimitives | None = None) -> None:
        self.primitives = primitives or ScopePrimitives()

    def compile(self, source: str, filename: str, dialect: Dialect | None = None) -> CompileResult:
        return compile_to_component(source, filename, dialect, self.primitives)
