"""Module implementing a storage server on top of a local directory."""

import os
import shutil
import threading
from typing import Optional

import rmifs.constants as constants
from rmifs.common import Path
from rmifs.errors import IllegalStateError, NotFoundError, OutOfRangeError
from rmifs.logger import log
from rmifs.rmi import Address, Skeleton, stub
from .interfaces import Command, Storage


class StorageServer(Storage, Command):
    """
    Storage server that hosts the files in a directory of the local file system.

    Clients access file contents through the Storage interface and the naming server
    manages files through the Command interface. Both are served on ports chosen by the
    system, since the naming server hands out stubs for them.
    """

    def __init__(
        self,
        root: str,
        storage_address: Optional[Address] = None,
        command_address: Optional[Address] = None,
    ):
        """Create a storage server for the given directory, without starting it."""
        if root is None:
            raise ValueError("root cannot be None")

        self.root = os.path.abspath(root)

        self._storage_skeleton = Skeleton(Storage, self, storage_address)
        self._command_skeleton = Skeleton(Command, self, command_address)

        self._lock = threading.RLock()

    @property
    def storage_address(self) -> Optional[Address]:
        return self._storage_skeleton.address

    @property
    def command_address(self) -> Optional[Address]:
        return self._command_skeleton.address

    def start(self, hostname: str, naming_server) -> None:
        """
        Start the storage server and register it with the naming server.

        The hostname is the externally routable name of this machine, which is carried
        by the stubs handed to the naming server. Files that the naming server rejects
        are deleted, along with directories that end up empty.
        """
        files = Path.list(self.root)

        self._storage_skeleton.start()
        self._command_skeleton.start()

        storage = stub.create(Storage, self._storage_skeleton, hostname)
        command = stub.create(Command, self._command_skeleton, hostname)

        to_delete = naming_server.register(storage, command, files)

        for path in to_delete:
            if not self.delete(path):
                raise IllegalStateError(f"unable to delete duplicate file {path}")

        self._prune(self.root)

        log.info(
            f"storage server for {self.root} registered "
            f"{len(files) - len(to_delete)} file(s)"
        )

    def stop(self) -> None:
        """Stop serving both interfaces. The server should not be restarted."""
        self._storage_skeleton.stop()
        self._command_skeleton.stop()

        self.stopped(None)

    def stopped(self, cause: Optional[BaseException]) -> None:
        """
        Handle the server having shut down.

        The cause is None if the server was stopped by a call to stop(). This hook does
        nothing by default.
        """

    def _local_file(self, file: Path) -> str:
        """Return the local path of a file, which must exist and not be a directory."""
        local = file.to_file(self.root)

        if not os.path.isfile(local):
            raise NotFoundError(f"{file} does not exist or is a directory")

        return local

    def _prune(self, directory: str) -> None:
        """Remove all empty directories below the given directory."""
        for dirpath, _, _ in os.walk(directory, topdown=False):
            if dirpath != self.root and not os.listdir(dirpath):
                os.rmdir(dirpath)

    def _prune_parents(self, path: Path) -> None:
        """Remove the parents of a deleted path as long as they're empty."""
        parent = path.parent()

        while not parent.is_root():
            local = parent.to_file(self.root)

            if not os.path.isdir(local) or os.listdir(local):
                break

            os.rmdir(local)
            parent = parent.parent()

    #
    # Storage interface
    #

    def size(self, file: Path) -> int:
        with self._lock:
            return os.path.getsize(self._local_file(file))

    def read(self, file: Path, offset: int, length: int) -> bytes:
        with self._lock:
            local = self._local_file(file)
            file_size = os.path.getsize(local)

            if offset < 0 or length < 0 or offset + length > file_size:
                raise OutOfRangeError(
                    f"range {offset}+{length} is outside of {file} ({file_size} bytes)"
                )

            fd = os.open(local, os.O_RDONLY)

            try:
                return os.pread(fd, length, offset)
            finally:
                os.close(fd)

    def write(self, file: Path, offset: int, data: bytes) -> None:
        with self._lock:
            local = self._local_file(file)

            if offset < 0:
                raise OutOfRangeError(f"negative offset {offset} in {file}")

            fd = os.open(local, os.O_WRONLY)

            try:
                os.pwrite(fd, data, offset)
            finally:
                os.close(fd)

    #
    # Command interface
    #

    def create(self, file: Path) -> bool:
        if file.is_root():
            return False

        local = file.to_file(self.root)

        with self._lock:
            if os.path.lexists(local):
                return False

            try:
                os.makedirs(os.path.dirname(local), exist_ok=True)

                with open(local, "xb"):
                    pass
            except OSError as e:
                log.warning(f"failed to create {file}: {e}")
                return False

        return True

    def delete(self, path: Path) -> bool:
        if path.is_root():
            return False

        local = path.to_file(self.root)

        with self._lock:
            if not os.path.lexists(local):
                return False

            try:
                if os.path.isdir(local) and not os.path.islink(local):
                    shutil.rmtree(local)
                else:
                    os.unlink(local)

                self._prune_parents(path)
            except OSError as e:
                log.warning(f"failed to delete {path}: {e}")
                return False

        return True

    def copy(self, file: Path, server: Storage) -> bool:
        # The lock is only taken for local changes since the other server may be
        # copying from this one at the same time.
        file_size = server.size(file)
        local = file.to_file(self.root)

        with self._lock:
            if os.path.isdir(local) and not os.path.islink(local):
                shutil.rmtree(local)

            os.makedirs(os.path.dirname(local), exist_ok=True)

            with open(local, "wb"):
                pass

        offset = 0

        while offset < file_size:
            length = min(constants.COPY_CHUNK_SIZE, file_size - offset)
            chunk = server.read(file, offset, length)

            if len(chunk) == 0:
                break

            with self._lock:
                fd = os.open(local, os.O_WRONLY)

                try:
                    os.pwrite(fd, chunk, offset)
                finally:
                    os.close(fd)

            offset += len(chunk)

        log.debug(f"copied {file} ({file_size} bytes) from {server}")

        return True
