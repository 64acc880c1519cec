"""
The naming server, which maintains the directory tree of the filesystem.

Clients use the Service interface to list directories, create files and directories,
and to find the storage server that hosts a file. Storage servers use the Registration
interface to announce themselves and the files they host. Both interfaces are served at
well-known ports, see naming.stubs for creating stubs from just a hostname.
"""

from .interfaces import Registration, Service
from .server import NamingServer
from .stubs import ServerStubs
from .tree import PathNode

__all__ = [
    "NamingServer",
    "PathNode",
    "Registration",
    "ServerStubs",
    "Service",
]
