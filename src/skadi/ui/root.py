"""Render root that mounts a component tree and drives its hooks."""

from typing import Any

from skadi.ui.element import ComponentFactory, Element, create_element
from skadi.ui.hooks import ComponentInstance

MAX_FLUSH_PASSES = 25


class Root:
    """Mounts one element tree.

    Component instances are keyed by their position in the tree (or their
    ``key`` prop) plus their factory, so state survives re-renders as long
    as the tree shape is stable.
    """

    def __init__(
        self,
        node: Element | ComponentFactory,
        props: dict[str, Any] | None = None,
    ) -> None:
        if isinstance(node, Element):
            self._element = node
        else:
            self._element = create_element(node, props)
        self._instances: dict[tuple[Any, ...], ComponentInstance] = {}
        self._dirty = False
        self.tree: Any = None
        self.render_count = 0

    @property
    def dirty(self) -> bool:
        """True when a state setter ran since the last render."""
        return self._dirty

    def render(self) -> Any:
        """Render the tree, unmount vanished components, then run effects.

        Returns:
            Resolved tree containing only intrinsic elements and text
        """
        self._dirty = False
        visited: list[tuple[Any, ...]] = []
        tree = self._resolve(self._element, (0,), visited)

        seen = set(visited)
        for path in list(self._instances):
            if path not in seen:
                self._instances.pop(path).unmount()

        self.tree = tree
        self.render_count += 1

        # children before parents
        for path in reversed(visited):
            self._instances[path].run_effects()
        return tree

    def flush(self) -> Any:
        """Re-render until no state updates are pending."""
        passes = 0
        while self._dirty:
            passes += 1
            if passes > MAX_FLUSH_PASSES:
                raise RuntimeError("Too many re-renders; a state update loops on every render")
            self.render()
        return self.tree

    def unmount(self) -> None:
        """Run all effect cleanups and drop component state."""
        for path in reversed(list(self._instances)):
            self._instances.pop(path).unmount()
        self.tree = None

    def _schedule(self, _instance: ComponentInstance) -> None:
        self._dirty = True

    def _resolve(self, node: Any, path: tuple[Any, ...], visited: list[tuple[Any, ...]]) -> Any:
        if isinstance(node, (list, tuple)):
            return [
                self._resolve(child, path + (_segment(child, i),), visited)
                for i, child in enumerate(node)
            ]
        if not isinstance(node, Element):
            return node

        if callable(node.type):
            key = path + (node.type,)
            instance = self._instances.get(key)
            if instance is None:
                instance = ComponentInstance(node.type, self._schedule)
                self._instances[key] = instance
            visited.append(key)

            props = dict(node.props)
            if node.children:
                props["children"] = list(node.children)
            return self._resolve(instance.render(props), path + (0,), visited)

        children = []
        for i, child in enumerate(node.children):
            resolved = self._resolve(child, path + (_segment(child, i),), visited)
            if isinstance(resolved, list):
                children.extend(c for c in resolved if c is not None)
            elif resolved is not None:
                children.append(resolved)
        return Element(node.type, dict(node.props), children)


def _segment(child: Any, index: int) -> Any:
    if isinstance(child, Element) and child.key is not None:
        return ("key", child.key)
    return index
