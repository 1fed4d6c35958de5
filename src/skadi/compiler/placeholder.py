"""Placeholder components rendered in place of broken plugins."""

from enum import Enum

from skadi.ui import ComponentFactory, create_element


class FailureStage(str, Enum):
    """Where a plugin failed on its way to a usable component."""

    FETCH = "fetch"
    COMPILE = "compile"
    EXECUTION = "execution"
    MISSING_EXPORT = "missing-export"


_LABELS = {
    FailureStage.FETCH: "Failed: {filename}",
    FailureStage.COMPILE: "Compile Error: {filename}",
    FailureStage.EXECUTION: "Execution Error: {filename}",
    FailureStage.MISSING_EXPORT: "No component exported from {filename}",
}

_COLORS = {
    FailureStage.FETCH: "red",
    FailureStage.COMPILE: "red",
    FailureStage.EXECUTION: "orange",
    FailureStage.MISSING_EXPORT: "yellow",
}


def placeholder_component(
    stage: FailureStage,
    filename: str,
    message: str | None = None,
) -> ComponentFactory:
    """Build an inert component showing a diagnostic for ``filename``.

    Args:
        stage: Failure stage, selects the diagnostic text
        filename: Plugin file the diagnostic refers to
        message: Underlying error, exposed as the element title

    Returns:
        Component factory that renders a single ``div``
    """
    text = _LABELS[stage].format(filename=filename)
    props = {
        "style": {"color": _COLORS[stage], "fontSize": "12px", "padding": "4px"},
        "data-error": stage.value,
    }
    if message:
        props["title"] = message

    def placeholder(_props: dict) -> object:
        return create_element("div", props, text)

    placeholder.__name__ = f"{stage.name.title().replace('_', '')}Placeholder"
    placeholder.failure_stage = stage  # type: ignore[attr-defined]
    return placeholder
