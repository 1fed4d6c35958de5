"""In-process compiler for plugin source text."""

from skadi.compiler.compiler import (
    CompileResult,
    DynamicCompiler,
    compile_to_component,
    resolve_component,
)
from skadi.compiler.dialect import PLUGIN_EXTENSIONS, Dialect, detect_dialect, is_plugin_file
from skadi.compiler.placeholder import FailureStage, placeholder_component
from skadi.compiler.scope import (
    MODULE_PARAMETERS,
    SAFE_BUILTINS,
    SCOPE_PARAMETERS,
    PluginModule,
    ScopePrimitives,
)
from skadi.compiler.transform import transform_source

__all__ = [
    "CompileResult",
    "Dialect",
    "DynamicCompiler",
    "FailureStage",
    "MODULE_PARAMETERS",
    "PLUGIN_EXTENSIONS",
    "PluginModule",
    "SAFE_BUILTINS",
    "SCOPE_PARAMETERS",
    "ScopePrimitives",
    "compile_to_component",
    "detect_dialect",
    "is_plugin_file",
    "placeholder_component",
    "resolve_component",
    "transform_source",
]
