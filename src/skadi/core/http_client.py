"""aiohttp session factory with consistent timeouts.

Every aiohttp session in Skadi (host RPC client, IPC socket) is created
here so timeouts stay uniform.
"""

import aiohttp
from aiohttp import ClientTimeout

__all__ = [
    "DEFAULT_TIMEOUT",
    "create_client_session",
]

# Host services are local; anything slower than this is a hung host.
DEFAULT_TIMEOUT = ClientTimeout(
    total=30,
    connect=5,
    sock_read=25,
)


def create_client_session(
    timeout: ClientTimeout | None = None,
    **kwargs,
) -> aiohttp.ClientSession:
    """Create an aiohttp ClientSession with the default timeout.

    Args:
        timeout: Optional custom timeout. Uses DEFAULT_TIMEOUT if not specified.
        **kwargs: Additional arguments passed to ClientSession.

    Returns:
        Configured aiohttp.ClientSession.
    """
    if timeout is None:
        timeout = DEFAULT_TIMEOUT
    return aiohttp.ClientSession(timeout=timeout, **kwargs)
