"""Plugin source dialects."""

from enum import Enum
from pathlib import PurePath


class Dialect(str, Enum):
    """Source dialect of a plugin file.

    ``typed`` sources may carry annotations and ``typing`` imports that are
    stripped before execution; ``plain`` sources run as written.
    """

    PLAIN = "plain"
    TYPED = "typed"


DIALECT_EXTENSIONS: dict[str, Dialect] = {
    ".py": Dialect.PLAIN,
    ".pyt": Dialect.TYPED,
}

PLUGIN_EXTENSIONS = tuple(DIALECT_EXTENSIONS)


def detect_dialect(filename: str) -> Dialect:
    """Pick the dialect from the file extension, defaulting to plain."""
    return DIALECT_EXTENSIONS.get(PurePath(filename).suffix.lower(), Dialect.PLAIN)


def is_plugin_file(filename: str) -> bool:
    return PurePath(filename).suffix.lower() in DIALECT_EXTENSIONS
