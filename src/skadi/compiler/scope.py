"""Execution scope handed to plugin module bodies.

A plugin sees exactly the names listed in :data:`SCOPE_PARAMETERS` and
:data:`MODULE_PARAMETERS` plus the builtins in :data:`SAFE_BUILTINS`.
There is no import machinery, file access or dynamic evaluation in scope.
"""

import builtins
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from skadi.ui import (
    create_element,
    use_callback,
    use_effect,
    use_memo,
    use_ref,
    use_state,
)

SCOPE_PARAMETERS = (
    "create_element",
    "use_state",
    "use_effect",
    "use_callback",
    "use_memo",
    "use_ref",
)

MODULE_PARAMETERS = ("module", "exports")

_ALLOWED_BUILTINS = (
    "abs", "all", "any", "bool", "callable", "chr", "dict", "divmod",
    "enumerate", "filter", "float", "format", "frozenset", "getattr",
    "hasattr", "hash", "id", "int", "isinstance", "issubclass", "iter",
    "len", "list", "map", "max", "min", "next", "object", "ord", "pow",
    "print", "property", "range", "repr", "reversed", "round", "set",
    "setattr", "slice", "sorted", "staticmethod", "classmethod", "str",
    "sum", "super", "tuple", "type", "zip",
    "ArithmeticError", "AssertionError", "AttributeError", "Exception",
    "IndexError", "KeyError", "LookupError", "NotImplementedError",
    "RuntimeError", "StopIteration", "TypeError", "ValueError",
    "ZeroDivisionError",
    "Ellipsis", "NotImplemented",
    "__build_class__",
)

SAFE_BUILTINS: dict[str, Any] = {name: getattr(builtins, name) for name in _ALLOWED_BUILTINS}


class PluginModule:
    """Stand-in for a module object.

    ``exports`` starts as a dict; plugins either set ``exports["default"]``
    or rebind ``module.exports`` to a component.
    """

    def __init__(self) -> None:
        self.exports: Any = {}


@dataclass(frozen=True)
class ScopePrimitives:
    """UI runtime primitives injected into every plugin scope."""

    create_element: Callable[..., Any] = create_element
    use_state: Callable[..., Any] = use_state
    use_effect: Callable[..., Any] = use_effect
    use_callback: Callable[..., Any] = use_callback
    use_memo: Callable[..., Any] = use_memo
    use_ref: Callable[..., Any] = use_ref
    builtins: dict[str, Any] = field(default_factory=lambda: dict(SAFE_BUILTINS))

    def namespace(self, module: PluginModule, filename: str) -> dict[str, Any]:
        """Build the globals dict for one plugin module body."""
        scope: dict[str, Any] = {name: getattr(self, name) for name in SCOPE_PARAMETERS}
        scope["module"] = module
        scope["exports"] = module.exports
        scope["__builtins__"] = dict(self.builtins)
        scope["__name__"] = f"skadi_plugin_{PurePath(filename).stem}"
        scope["__file__"] = filename
        return scope
