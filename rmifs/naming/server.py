"""Module implementing the naming server."""

import random
import threading
from typing import List, Optional

from rmifs.common import Path
from rmifs.config import NamingConfig
from rmifs.errors import (
    AlreadyRegisteredError,
    IllegalStateError,
    NotFoundError,
    RMIException,
)
from rmifs.logger import log
from rmifs.rmi import Address, Skeleton, stub, StubBase
from rmifs.storage.interfaces import Command, Storage
from .interfaces import Registration, Service
from .stubs import ServerStubs
from .tree import PathNode


class NamingServer(Service, Registration):
    """
    Naming server that maintains the directory tree of the filesystem.

    The naming server doesn't store any file contents, which is the job of the storage
    servers. Its purpose is to map each path to the storage server that hosts it.
    Storage servers announce themselves and their files through the Registration
    interface and clients navigate the filesystem through the Service interface. Both
    are served at well-known ports so that stubs can be created from just a hostname.

    All operations on the tree are serialized by a single lock.
    """

    def __init__(self, config: Optional[NamingConfig] = None):
        """Create the naming server, without starting it."""
        self.config = config or NamingConfig()

        self._service_skeleton = Skeleton(
            Service, self, (self.config.host, self.config.service_port)
        )
        self._registration_skeleton = Skeleton(
            Registration, self, (self.config.host, self.config.registration_port)
        )

        self._root = PathNode(Path())
        self._registered: List[ServerStubs] = []
        self._lock = threading.Lock()

        self._started = False
        self._start_lock = threading.Lock()

    @property
    def service_address(self) -> Optional[Address]:
        return self._service_skeleton.address

    @property
    def registration_address(self) -> Optional[Address]:
        return self._registration_skeleton.address

    def start(self) -> None:
        """
        Start serving the Service and Registration interfaces.

        Starting a started server has no effect. If either interface fails to start then
        RMIException is raised and the server should not be started again.
        """
        with self._start_lock:
            if self._started:
                return

            self._registration_skeleton.start()

            try:
                self._service_skeleton.start()
            except RMIException:
                self._registration_skeleton.stop()
                raise

            self._started = True

        log.info(
            f"naming server started (service at {self.service_address}, "
            f"registration at {self.registration_address})"
        )

    def stop(self) -> None:
        """Stop both interfaces. The server should not be restarted."""
        with self._start_lock:
            if not self._started:
                return

            self._registration_skeleton.stop()
            self._service_skeleton.stop()

            self._started = False

        self.stopped(None)

    def stopped(self, cause: Optional[BaseException]) -> None:
        """
        Handle the server having shut down completely.

        The cause is None if the server was stopped by a call to stop(). This hook does
        nothing by default.
        """

    #
    # Service interface
    #

    @staticmethod
    def _require(*args: object) -> None:
        if any(arg is None for arg in args):
            raise ValueError("arguments cannot be None")

    def is_directory(self, path: Path) -> bool:
        self._require(path)

        with self._lock:
            return not self._root.resolve(path).is_file

    def list(self, directory: Path) -> List[str]:
        self._require(directory)

        with self._lock:
            node = self._root.resolve(directory)

            if node.is_file:
                raise NotFoundError(f"{directory} is not a directory")

            return [name for name in node.children]

    def _parent_directory(self, path: Path) -> PathNode:
        node = self._root.resolve(path.parent())

        if node.is_file:
            raise NotFoundError(f"{path.parent()} is not a directory")

        return node

    def create_file(self, file: Path) -> bool:
        self._require(file)

        if file.is_root():
            return False

        with self._lock:
            parent = self._parent_directory(file)

            if file.last() in parent.children:
                return False

            if len(self._registered) == 0:
                raise IllegalStateError("no storage servers are registered")

            server = random.choice(self._registered)

            if not server.command.create(file):
                log.warning(f"{server.command} reported that {file} already exists")

            parent.add_child(file.last(), PathNode(file, server))

        log.debug(f"created file {file} on {server.storage}")

        return True

    def create_directory(self, directory: Path) -> bool:
        self._require(directory)

        if directory.is_root():
            return False

        with self._lock:
            parent = self._parent_directory(directory)

            if directory.last() in parent.children:
                return False

            parent.add_child(directory.last(), PathNode(directory))

        log.debug(f"created directory {directory}")

        return True

    def delete(self, path: Path) -> bool:
        self._require(path)

        if path.is_root():
            return False

        with self._lock:
            node = self._root.resolve(path)

            if node.is_file:
                servers = node.servers()
            else:
                servers = set()
                for descendant in node.descendants():
                    servers |= descendant.servers()

            confirmed = True

            for server in servers:
                if not server.command.delete(path):
                    log.warning(f"{server.command} failed to delete {path}")
                    confirmed = False

            self._root.resolve(path.parent()).remove_child(path.last())

        log.debug(f"deleted {path} from {len(servers)} storage server(s)")

        return confirmed

    def get_storage(self, file: Path) -> Storage:
        self._require(file)

        with self._lock:
            node = self._root.resolve(file)

            if not node.is_file:
                raise NotFoundError(f"{file} is not a file")

            threshold = self.config.replication_threshold

            if threshold > 0 and node.touch(threshold):
                self._replicate(node)

            return node.owner.storage

    def _replicate(self, node: PathNode) -> None:
        """Copy a file to a storage server that doesn't have it yet, if any."""
        candidates = [s for s in self._registered if s not in node.servers()]

        if len(candidates) == 0:
            return

        target = random.choice(candidates)

        try:
            if target.command.copy(node.path, node.owner.storage):
                node.replicas.add(target)
                log.info(f"replicated {node.path} to {target.storage}")
        except (RMIException, NotFoundError) as e:
            # Replication is best effort, the file remains available on its owner.
            log.warning(f"failed to replicate {node.path} to {target.storage}: {e}")

    #
    # Registration interface
    #

    def register(
        self, storage: Storage, command: Command, files: List[Path]
    ) -> List[Path]:
        self._require(storage, command, files)

        # A file listed twice is registered once
        files = list(dict.fromkeys(files))

        if isinstance(command, StubBase):
            command = stub.create(
                Command, command.address, timeout_ms=self.config.command_timeout
            )

        stubs = ServerStubs(storage, command)

        with self._lock:
            if stubs in self._registered:
                raise AlreadyRegisteredError(f"{storage} is already registered")

            to_delete = [file for file in files if not self._add_file(file, stubs)]

            self._registered.append(stubs)

        log.info(
            f"registered {storage} with {len(files)} file(s), "
            f"{len(to_delete)} to be deleted"
        )

        return to_delete

    def _add_file(self, file: Path, owner: ServerStubs) -> bool:
        """
        Merge a file of a registering storage server into the tree.

        Missing parent directories are created. Return False if the file collides with
        an existing file or directory, in which case the existing entry wins.
        """
        if file.is_root():
            return True

        node = self._root

        for component in file:
            if node.is_file:
                # A parent of the file is a file itself
                return False

            if component not in node.children:
                node.add_child(component, PathNode(node.path / component))

            node = node.children[component]

        if node.is_file or len(node.children) > 0:
            return False

        node.owner = owner

        return True
