"""Minimal UI runtime that plugin components render against."""

from skadi.ui.element import (
    ComponentFactory,
    Element,
    create_element,
    render_to_string,
)
from skadi.ui.hooks import (
    HookError,
    Ref,
    use_callback,
    use_effect,
    use_memo,
    use_ref,
    use_state,
)
from skadi.ui.root import Root

__all__ = [
    "ComponentFactory",
    "Element",
    "HookError",
    "Ref",
    "Root",
    "create_element",
    "render_to_string",
    "use_callback",
    "use_effect",
    "use_memo",
    "use_ref",
    "use_state",
]
