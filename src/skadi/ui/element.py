"""Element tree primitives.

Plugin components return trees of :class:`Element`. An element's ``type``
is either an intrinsic tag name (``"div"``) or another component factory.
"""

import html
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

ComponentFactory = Callable[[dict[str, Any]], Any]

VOID_TAGS = frozenset({"br", "hr", "img", "input", "meta", "link"})


@dataclass
class Element:
    """A node in a rendered UI tree."""

    type: str | ComponentFactory
    props: dict[str, Any] = field(default_factory=dict)
    children: list[Any] = field(default_factory=list)

    @property
    def key(self) -> Any:
        return self.props.get("key")

    def text_content(self) -> str:
        """Concatenate every text node below this element."""
        return "".join(_text_of(child) for child in self.children)

    def find_all(self, tag: str) -> list["Element"]:
        """Return all descendant elements (and self) with the given tag."""
        found = [self] if self.type == tag else []
        for child in self.children:
            if isinstance(child, Element):
                found.extend(child.find_all(tag))
        return found


def create_element(
    type: str | ComponentFactory,
    props: dict[str, Any] | None = None,
    *children: Any,
) -> Element:
    """Create an element.

    Nested lists/tuples of children are flattened; ``None`` and booleans
    are dropped so conditional expressions can be used inline.

    Args:
        type: Intrinsic tag name or component factory
        props: Element properties (copied)
        *children: Child elements or text

    Returns:
        New Element
    """
    if not isinstance(type, str) and not callable(type):
        raise TypeError(f"Element type must be a tag name or callable, got {type!r}")
    return Element(type=type, props=dict(props or {}), children=list(_flatten(children)))


def _flatten(children: Iterable[Any]) -> Iterable[Any]:
    for child in children:
        if child is None or isinstance(child, bool):
            continue
        if isinstance(child, (list, tuple)):
            yield from _flatten(child)
        else:
            yield child


def _text_of(node: Any) -> str:
    if isinstance(node, Element):
        return node.text_content()
    return str(node)


def render_to_string(node: Any) -> str:
    """Serialize a rendered tree into HTML-like markup.

    Component elements must already be resolved (see :class:`skadi.ui.Root`);
    callable props such as event handlers are omitted.
    """
    if node is None or isinstance(node, bool):
        return ""
    if isinstance(node, (list, tuple)):
        return "".join(render_to_string(child) for child in node)
    if not isinstance(node, Element):
        return html.escape(str(node))
    if not isinstance(node.type, str):
        raise TypeError("render_to_string requires a resolved tree; mount it with Root first")

    attrs = "".join(_format_attr(name, value) for name, value in node.props.items())
    if node.type in VOID_TAGS and not node.children:
        return f"<{node.type}{attrs} />"
    inner = "".join(render_to_string(child) for child in node.children)
    return f"<{node.type}{attrs}>{inner}</{node.type}>"


def _format_attr(name: str, value: Any) -> str:
    if name == "key" or callable(value) or value is None or value is False:
        return ""
    if value is True:
        return f" {name}"
    if name == "style" and isinstance(value, dict):
        value = "; ".join(f"{_css_name(k)}: {v}" for k, v in value.items())
    return f' {name}="{html.escape(str(value), quote=True)}"'


def _css_name(name: str) -> str:
    # fontSize -> font-size
    return "".join(f"-{c.lower()}" if c.isupper() else c for c in name)
