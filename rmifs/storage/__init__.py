"""
Storage servers, which host file contents on behalf of the naming server.

A storage server exposes a directory of the local file system. At start-up it registers
its files with the naming server, which may tell it to delete files that another
storage server already hosts. From then on clients read and write files through the
Storage interface and the naming server creates and deletes files through the Command
interface.
"""

from .interfaces import Command, Storage
from .server import StorageServer

__all__ = [
    "Command",
    "Storage",
    "StorageServer",
]
