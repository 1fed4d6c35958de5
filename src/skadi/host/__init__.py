"""Host-side collaborators: the RPC surface and its implementations."""

from skadi.host.directory import DirectoryHost
from skadi.host.http import HttpHost
from skadi.host.rpc import HostRPC

__all__ = [
    "DirectoryHost",
    "HostRPC",
    "HttpHost",
]
