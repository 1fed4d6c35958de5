"""Structured error model for the Skadi plugin host."""

from typing import Any

from pydantic import BaseModel, Field


class StructuredError(BaseModel):
    """Structured error response format.

    Every failure surfaced by Skadi (CLI output, loader batch errors,
    host RPC replies) follows this schema so callers can branch on
    ``code`` instead of parsing messages.
    """

    code: str = Field(
        ...,
        pattern=r"^[A-Z][A-Z0-9_]*$",
        description="Error code (e.g., FETCH_FAILED)",
        examples=[
            "DISCOVERY_FAILED",
            "FETCH_FAILED",
            "COMPILE_ERROR",
            "MISSING_EXPORT",
            "TRANSPORT_ERROR",
            "REQUEST_TIMEOUT",
            "INVALID_ARGUMENT",
        ],
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    remediation: str = Field(
        ...,
        description="Suggested fix or next step",
    )

    retryable: bool = Field(
        ...,
        description="Whether retry may succeed",
    )

    context: dict[str, Any] | None = Field(
        default=None,
        description="Additional context (filename, request id, etc.)",
    )

    model_config = {"extra": "forbid"}


class ErrorCode:
    """Standard error codes for Skadi."""

    DISCOVERY_FAILED = "DISCOVERY_FAILED"
    FETCH_FAILED = "FETCH_FAILED"
    COMPILE_ERROR = "COMPILE_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    MISSING_EXPORT = "MISSING_EXPORT"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    HOST_COMMAND_ERROR = "HOST_COMMAND_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
