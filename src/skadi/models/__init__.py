"""Pydantic models for Skadi."""

from skadi.models.error import ErrorCode, StructuredError

__all__ = [
    "ErrorCode",
    "StructuredError",
]
