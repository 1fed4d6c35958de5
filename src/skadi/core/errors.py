"""Structured error handling for Skadi."""

import sys
from typing import Any, NoReturn

from skadi.models.error import ErrorCode, StructuredError


class SkadiError(Exception):
    """Base exception for Skadi errors.

    Wraps a StructuredError for consistent error handling.
    """

    def __init__(
        self,
        code: str,
        message: str,
        remediation: str,
        retryable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        self.error = StructuredError(
            code=code,
            message=message,
            remediation=remediation,
            retryable=retryable,
            context=context,
        )
        super().__init__(message)

    @property
    def message(self) -> str:
        return self.error.message

    def to_structured(self) -> StructuredError:
        """Convert to StructuredError."""
        return self.error

    def to_structured_error(self) -> dict:
        """Convert to JSON-serializable dict for output."""
        return self.error.model_dump(mode="json", exclude_none=True)


class DiscoveryError(SkadiError):
    """Listing the installed plugin files failed."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.DISCOVERY_FAILED,
            message=message,
            remediation="Check that the host is running and the plugins directory is readable",
            retryable=True,
        )


class FetchError(SkadiError):
    """Reading one plugin file failed."""

    def __init__(self, message: str, filename: str | None = None):
        super().__init__(
            code=ErrorCode.FETCH_FAILED,
            message=message,
            remediation="Check that the plugin file exists and is readable",
            retryable=True,
            context={"filename": filename} if filename else None,
        )


class CompileError(SkadiError):
    """Plugin source could not be parsed or transformed."""

    def __init__(self, message: str, filename: str):
        super().__init__(
            code=ErrorCode.COMPILE_ERROR,
            message=message,
            remediation="Fix the syntax error in the plugin source",
            retryable=False,
            context={"filename": filename},
        )


class PluginExecutionError(SkadiError):
    """Plugin module body raised while executing."""

    def __init__(self, message: str, filename: str):
        super().__init__(
            code=ErrorCode.EXECUTION_ERROR,
            message=message,
            remediation="Check the plugin's top-level code for runtime errors",
            retryable=False,
            context={"filename": filename},
        )


class MissingExportError(SkadiError):
    """Plugin module produced no usable component."""

    def __init__(self, filename: str):
        super().__init__(
            code=ErrorCode.MISSING_EXPORT,
            message=f"No component exported from {filename}",
            remediation=(
                "Define a top-level 'Component', set exports['default'], "
                "or assign a callable to module.exports"
            ),
            retryable=False,
            context={"filename": filename},
        )


class TransportError(SkadiError):
    """Socket transport is not connected or the send failed."""

    def __init__(self, message: str = "WebSocket not connected"):
        super().__init__(
            code=ErrorCode.TRANSPORT_ERROR,
            message=message,
            remediation="Check that the host IPC service is running and reachable",
            retryable=True,
        )


class RequestTimeoutError(SkadiError):
    """No response arrived for a correlated request."""

    def __init__(self, request_id: str, timeout: float):
        super().__init__(
            code=ErrorCode.REQUEST_TIMEOUT,
            message="Request timeout",
            remediation="Retry the request or raise the request timeout",
            retryable=True,
            context={"request_id": request_id, "timeout_seconds": timeout},
        )


class InvalidArgumentError(SkadiError):
    """A capability was called with a malformed argument."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            code=ErrorCode.INVALID_ARGUMENT,
            message=message,
            remediation="Check the argument and try again",
            retryable=False,
            context={"field": field} if field else None,
        )


class HostCommandError(SkadiError):
    """The host rejected a command."""

    def __init__(self, command: str, message: str):
        super().__init__(
            code=ErrorCode.HOST_COMMAND_ERROR,
            message=message,
            remediation=f"Check the arguments passed to '{command}'",
            retryable=False,
            context={"command": command},
        )


class ConfigError(SkadiError):
    """Configuration file could not be parsed or validated."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(
            code=ErrorCode.CONFIG_ERROR,
            message=message,
            remediation="Fix the configuration file or remove it to use defaults",
            retryable=False,
            context={"path": path} if path else None,
        )


def handle_error(error: SkadiError | Exception, exit_code: int = 1) -> NoReturn:
    """Handle an error by outputting it and exiting.

    Args:
        error: The error to handle
        exit_code: Exit code to use
    """
    from skadi.cli.output import output_error

    if isinstance(error, SkadiError):
        output_error(error.to_structured())
    else:
        structured = StructuredError(
            code=ErrorCode.INTERNAL_ERROR,
            message=str(error),
            remediation="This is an unexpected error. Please report it.",
            retryable=False,
            context={"type": type(error).__name__},
        )
        output_error(structured)

    sys.exit(exit_code)


def error_message(error: BaseException) -> str:
    """Return the human-readable message of any exception."""
    if isinstance(error, SkadiError):
        return error.message
    return str(error) or type(error).__name__
