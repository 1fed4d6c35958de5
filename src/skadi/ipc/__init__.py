"""Socket transport between plugins and the host IPC service."""

from skadi.ipc.socket import (
    DEFAULT_IPC_PORT,
    DEFAULT_REQUEST_TIMEOUT,
    IPCSocket,
    get_socket,
    init_socket,
    reset_socket,
)

__all__ = [
    "DEFAULT_IPC_PORT",
    "DEFAULT_REQUEST_TIMEOUT",
    "IPCSocket",
    "get_socket",
    "init_socket",
    "reset_socket",
]
