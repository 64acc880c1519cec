"""Remote interfaces of the naming server."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from rmifs.common import Path
from rmifs.errors import (
    AlreadyRegisteredError,
    IllegalStateError,
    NotFoundError,
    RMIException,
)
from rmifs.rmi import throws
from rmifs.storage.interfaces import Command, Storage


class Service(ABC):
    """
    Interface used by clients to navigate the filesystem.

    It is served at the well-known SERVICE_PORT of the naming server. File contents are
    not accessed through this interface, but through the Storage stub returned by
    get_storage().
    """

    @abstractmethod
    @throws(RMIException, NotFoundError)
    def is_directory(self, path: Path) -> bool:
        """Determine whether a path refers to a directory (True) or a file (False)."""

    @abstractmethod
    @throws(RMIException, NotFoundError)
    def list(self, directory: Path) -> List[str]:
        """Return the names of the entries of a directory, in no particular order."""

    @abstractmethod
    @throws(RMIException, NotFoundError, IllegalStateError)
    def create_file(self, file: Path) -> bool:
        """
        Create a file on one of the storage servers.

        Return False if the path is the root or already exists. Raises NotFoundError if
        the parent directory does not exist.
        """

    @abstractmethod
    @throws(RMIException, NotFoundError)
    def create_directory(self, directory: Path) -> bool:
        """
        Create a directory.

        Return False if the path is the root or already exists. Raises NotFoundError if
        the parent directory does not exist.
        """

    @abstractmethod
    @throws(RMIException, NotFoundError)
    def delete(self, path: Path) -> bool:
        """
        Delete a file, or a directory with everything in it.

        Return False for the root directory or if a storage server failed to delete its
        copy. Raises NotFoundError if the path does not exist.
        """

    @abstractmethod
    @throws(RMIException, NotFoundError)
    def get_storage(self, file: Path) -> Storage:
        """Return a stub for the storage server that hosts a file."""


class Registration(ABC):
    """
    Interface used by storage servers to announce themselves to the naming server.

    It is served at the well-known REGISTRATION_PORT of the naming server.
    """

    @abstractmethod
    @throws(RMIException, AlreadyRegisteredError)
    def register(
        self, storage: Storage, command: Command, files: List[Path]
    ) -> List[Path]:
        """
        Register a storage server along with the files that it hosts.

        The files are merged into the directory tree. Files that already exist, or that
        would collide with existing directories, are returned so that the storage server
        can delete its copies of them.
        """
