"""Remote interfaces of a storage server."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rmifs.common import Path
from rmifs.errors import NotFoundError, OutOfRangeError, RMIException
from rmifs.rmi import throws


class Storage(ABC):
    """Interface used by clients to access the contents of files."""

    @abstractmethod
    @throws(RMIException, NotFoundError)
    def size(self, file: Path) -> int:
        """Return the length of a file in bytes."""

    @abstractmethod
    @throws(RMIException, NotFoundError, OutOfRangeError, OSError)
    def read(self, file: Path, offset: int, length: int) -> bytes:
        """
        Read a range of bytes from a file.

        Raises NotFoundError if the file does not exist or is a directory, and
        OutOfRangeError if the range is negative or extends past the end of the file.
        """

    @abstractmethod
    @throws(RMIException, NotFoundError, OutOfRangeError, OSError)
    def write(self, file: Path, offset: int, data: bytes) -> None:
        """
        Write bytes to a file at the given offset.

        The file is extended as needed. Raises NotFoundError if the file does not exist
        or is a directory, and OutOfRangeError if the offset is negative.
        """


class Command(ABC):
    """Interface used by the naming server to manage the files of a storage server."""

    @abstractmethod
    @throws(RMIException)
    def create(self, file: Path) -> bool:
        """
        Create an empty file along with any missing parent directories.

        Return False if the path is the root or already exists.
        """

    @abstractmethod
    @throws(RMIException)
    def delete(self, path: Path) -> bool:
        """
        Delete a file or a directory with everything in it.

        Return False if the path is the root, does not exist or can't be deleted.
        """

    @abstractmethod
    @throws(RMIException, NotFoundError, OSError)
    def copy(self, file: Path, server: Storage) -> bool:
        """
        Copy a file from another storage server, replacing any local copy.

        Raises NotFoundError if the file does not exist on the other server.
        """
