"""Component state hooks.

Hooks attach state to the component instance currently being rendered.
The instance is tracked in a context variable that :class:`ComponentInstance`
binds for the duration of one render call, so hooks called anywhere else
raise :class:`HookError`.
"""

from collections.abc import Callable, Sequence
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

_current: ContextVar["ComponentInstance | None"] = ContextVar(
    "skadi_current_component", default=None
)


class HookError(RuntimeError):
    """A hook was used outside a render or in an unstable order."""


@dataclass
class Ref:
    """Mutable container that survives re-renders."""

    current: Any = None


class _StateSlot:
    __slots__ = ("value", "setter")

    def __init__(self, value: Any):
        self.value = value
        self.setter: Callable[[Any], None] | None = None


class _EffectSlot:
    __slots__ = ("deps", "cleanup")

    def __init__(self) -> None:
        self.deps: tuple[Any, ...] | None = None
        self.cleanup: Callable[[], Any] | None = None


class _MemoSlot:
    __slots__ = ("deps", "value")

    def __init__(self) -> None:
        self.deps: tuple[Any, ...] | None = None
        self.value: Any = None


class ComponentInstance:
    """Hook storage for one mounted component."""

    def __init__(
        self,
        component: Callable[[dict[str, Any]], Any],
        on_update: Callable[["ComponentInstance"], None] | None = None,
    ) -> None:
        self.component = component
        self.hooks: list[Any] = []
        self.mounted = False
        self.pending_effects: list[tuple[_EffectSlot, Callable[[], Any]]] = []
        self._cursor = 0
        self._on_update = on_update

    def render(self, props: dict[str, Any]) -> Any:
        """Call the component with this instance bound as the hook owner."""
        self._cursor = 0
        token = _current.set(self)
        try:
            result = self.component(props)
        finally:
            _current.reset(token)

        if self.mounted and self._cursor != len(self.hooks):
            raise HookError("Rendered fewer hooks than during the previous render")
        self.mounted = True
        return result

    def schedule_update(self) -> None:
        if self._on_update is not None:
            self._on_update(self)

    def run_effects(self) -> None:
        """Run effects queued by the last render, cleaning up their previous run first."""
        pending, self.pending_effects = self.pending_effects, []
        for slot, effect in pending:
            if slot.cleanup is not None:
                cleanup, slot.cleanup = slot.cleanup, None
                cleanup()
            result = effect()
            if callable(result):
                slot.cleanup = result

    def unmount(self) -> None:
        """Run every outstanding effect cleanup."""
        self.pending_effects = []
        for slot in self.hooks:
            if isinstance(slot, _EffectSlot) and slot.cleanup is not None:
                cleanup, slot.cleanup = slot.cleanup, None
                cleanup()

    def next_slot(self, kind: type, factory: Callable[[], Any]) -> tuple[Any, bool]:
        index = self._cursor
        self._cursor += 1

        if index < len(self.hooks):
            slot = self.hooks[index]
            if not isinstance(slot, kind):
                raise HookError(
                    f"Hook order changed between renders at position {index}"
                )
            return slot, False

        if self.mounted:
            raise HookError("Rendered more hooks than during the previous render")

        slot = factory()
        self.hooks.append(slot)
        return slot, True


def _instance(hook_name: str) -> ComponentInstance:
    instance = _current.get()
    if instance is None:
        raise HookError(f"{hook_name} called outside of a component render")
    return instance


def _same(a: Any, b: Any) -> bool:
    return a is b or a == b


def _deps_changed(previous: tuple[Any, ...] | None, deps: Sequence[Any] | None) -> bool:
    if deps is None or previous is None:
        return True
    if len(previous) != len(deps):
        return True
    return any(not _same(a, b) for a, b in zip(previous, deps))


def use_state(initial: Any) -> tuple[Any, Callable[[Any], None]]:
    """Return the current state value and a stable setter.

    ``initial`` may be a zero-argument callable evaluated on first render.
    The setter accepts a value or a function of the previous value.
    """
    instance = _instance("use_state")
    slot, created = instance.next_slot(
        _StateSlot, lambda: _StateSlot(initial() if callable(initial) else initial)
    )

    if created:
        def set_state(value: Any) -> None:
            new_value = value(slot.value) if callable(value) else value
            if _same(new_value, slot.value):
                return
            slot.value = new_value
            instance.schedule_update()

        slot.setter = set_state

    return slot.value, slot.setter


def use_effect(effect: Callable[[], Any], deps: Sequence[Any] | None = None) -> None:
    """Schedule ``effect`` to run after render when ``deps`` change.

    If the effect returns a callable it is used as cleanup before the next
    run and on unmount.
    """
    instance = _instance("use_effect")
    slot, created = instance.next_slot(_EffectSlot, _EffectSlot)
    if created or _deps_changed(slot.deps, deps):
        slot.deps = tuple(deps) if deps is not None else None
        instance.pending_effects.append((slot, effect))


def use_memo(factory: Callable[[], Any], deps: Sequence[Any] | None = None) -> Any:
    """Return a cached value, recomputed only when ``deps`` change."""
    instance = _instance("use_memo")
    slot, created = instance.next_slot(_MemoSlot, _MemoSlot)
    if created or _deps_changed(slot.deps, deps):
        slot.value = factory()
        slot.deps = tuple(deps) if deps is not None else None
    return slot.value


def use_callback(callback: Callable[..., Any], deps: Sequence[Any] | None = None) -> Callable[..., Any]:
    """Return ``callback``, keeping the first identity while ``deps`` are unchanged."""
    _instance("use_callback")
    return use_memo(lambda: callback, deps)


def use_ref(initial: Any = None) -> Ref:
    instance = _instance("use_ref")
    slot, _ = instance.next_slot(Ref, lambda: Ref(initial))
    return slot
