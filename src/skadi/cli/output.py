"""Output formatting for the Skadi CLI.

Implements JSON, JSONL, and human-readable output modes.
stdout contains only machine-readable results.
stderr carries progress, logs, and diagnostics.
"""

import json
import sys
from collections.abc import Iterable
from enum import Enum
from pathlib import PurePath
from typing import Any, Literal

from pydantic import BaseModel

OutputFormat = Literal["json", "jsonl", "human"]

_output_format: OutputFormat = "json"


def set_output_format(format: OutputFormat) -> None:
    """Set the global output format."""
    global _output_format
    _output_format = format


class JSONEncoder(json.JSONEncoder):
    """JSON encoder for Skadi types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, PurePath):
            return str(obj)
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json")
        return super().default(obj)


def _plain(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_none=True)
    return data


def output_json(data: Any, file: Any = None) -> None:
    """Output data as JSON to stdout.

    Args:
        data: Data to output (dict, list, or Pydantic model)
        file: Output file (defaults to stdout)
    """
    if file is None:
        file = sys.stdout

    json.dump(_plain(data), file, cls=JSONEncoder, ensure_ascii=False)
    file.write("\n")
    file.flush()


def output_jsonl(records: Iterable[Any], file: Any = None) -> None:
    """Output records as JSONL (one JSON object per line) to stdout."""
    if file is None:
        file = sys.stdout

    for record in records:
        json.dump(_plain(record), file, cls=JSONEncoder, ensure_ascii=False)
        file.write("\n")
        file.flush()


def output_human(data: Any, title: str | None = None, file: Any = None) -> None:
    """Output data in human-readable format to stdout.

    Args:
        data: Data to output
        title: Optional title for the output
        file: Output file (defaults to stdout)
    """
    if file is None:
        file = sys.stdout

    if title:
        file.write(f"\n{title}\n")
        file.write("=" * len(title) + "\n\n")

    data = _plain(data)
    if isinstance(data, dict):
        _format_dict(data, file)
    elif isinstance(data, list):
        _format_list(data, file)
    else:
        file.write(str(data) + "\n")

    file.flush()


def output_human_table(
    records: list[dict[str, Any]],
    columns: list[str] | None = None,
    title: str | None = None,
    file: Any = None,
    max_width: int = 60,
) -> None:
    """Output records as a human-readable table.

    Args:
        records: List of record dictionaries
        columns: Columns to display (keys of the first record if None)
        title: Optional title for the table
        file: Output file (defaults to stdout)
        max_width: Maximum column width
    """
    if file is None:
        file = sys.stdout

    if not records:
        file.write("No records.\n")
        return

    if title:
        file.write(f"\n{title}\n")
        file.write("=" * len(title) + "\n\n")

    if columns is None:
        columns = list(records[0].keys())

    widths = {col: len(col) for col in columns}
    for record in records[:100]:
        for col in columns:
            widths[col] = min(max_width, max(widths[col], len(_cell(record.get(col)))))

    header = " | ".join(col.ljust(widths[col])[: widths[col]] for col in columns)
    file.write(header + "\n")
    file.write("-" * len(header) + "\n")

    for record in records:
        row = []
        for col in columns:
            value = _cell(record.get(col))
            if len(value) > widths[col]:
                value = value[: widths[col] - 3] + "..."
            row.append(value.ljust(widths[col]))
        file.write(" | ".join(row) + "\n")

    file.write(f"\nTotal: {len(records)} records\n")
    file.flush()


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def _format_dict(data: dict[str, Any], file: Any, indent: int = 0) -> None:
    prefix = "  " * indent
    for key, value in data.items():
        if isinstance(value, dict):
            file.write(f"{prefix}{key}:\n")
            _format_dict(value, file, indent + 1)
        elif isinstance(value, list):
            file.write(f"{prefix}{key}:\n")
            _format_list(value, file, indent + 1)
        else:
            file.write(f"{prefix}{key}: {value}\n")


def _format_list(data: list[Any], file: Any, indent: int = 0) -> None:
    prefix = "  " * indent
    for i, item in enumerate(data):
        if isinstance(item, dict):
            file.write(f"{prefix}[{i}]:\n")
            _format_dict(item, file, indent + 1)
        else:
            file.write(f"{prefix}- {item}\n")


def output(data: Any, format: OutputFormat | None = None, **kwargs: Any) -> None:
    """Output data in the specified format (the global one if not given)."""
    if format is None:
        format = _output_format

    if format == "jsonl" and isinstance(data, list):
        output_jsonl(data, **kwargs)
    elif format == "human":
        output_human(data, **kwargs)
    else:
        output_json(data, **kwargs)


def output_error(error: Any, file: Any = None) -> None:
    """Output an error to stdout in the current format.

    Errors are output to stdout (not stderr) for programmatic handling.
    """
    output(error, file=file)


class OutputFormatter:
    """Encapsulates output formatting for commands."""

    def __init__(self, format: OutputFormat = "json"):
        self.format = format

    def output(self, data: Any) -> None:
        output(data, format=self.format)

    def error(self, error: Any) -> None:
        output(error, format=self.format)

    def stream(self, records: Iterable[Any], title: str | None = None) -> None:
        """Write a batch of records: a table for humans, JSONL otherwise.

        Args:
            records: Records (dicts or Pydantic models)
            title: Table title (human format only)
        """
        if self.format == "human":
            output_human_table([_plain(record) for record in records], title=title)
        else:
            output_jsonl(records)

    def is_human(self) -> bool:
        return self.format == "human"
