"""Directory tree of the naming server."""

from __future__ import annotations

from typing import Dict, List, Optional, Set

from rmifs.common import Path
from rmifs.errors import AlreadyExistsError, NotFoundError
from .stubs import ServerStubs


class PathNode:
    """
    Node in the directory tree, representing either a file or a directory.

    A node is a file if and only if it has an owner, the storage server that hosts the
    file. Only directories have children. Files may have replicas on other storage
    servers and count how often they're accessed to decide when to replicate them.
    """

    def __init__(self, path: Path, owner: Optional[ServerStubs] = None):
        self.path = path
        self.owner = owner
        self.replicas: Set[ServerStubs] = set()
        self.children: Dict[str, PathNode] = {}
        self.access_count = 0

    @property
    def is_file(self) -> bool:
        return self.owner is not None

    def servers(self) -> Set[ServerStubs]:
        """Return all storage servers with a copy of this file."""
        if self.owner is None:
            return set()

        return {self.owner} | self.replicas

    def resolve(self, path: Path) -> PathNode:
        """Find the node of a path, relative to this node."""
        node = self

        for component in path:
            if component not in node.children:
                raise NotFoundError(f"{path} does not exist")

            node = node.children[component]

        return node

    def add_child(self, name: str, node: PathNode) -> None:
        if self.is_file:
            raise NotFoundError(f"{self.path} is not a directory")
        if name in self.children:
            raise AlreadyExistsError(f"{self.path / name} already exists")

        self.children[name] = node

    def remove_child(self, name: str) -> PathNode:
        if name not in self.children:
            raise NotFoundError(f"{self.path / name} does not exist")

        return self.children.pop(name)

    def descendants(self) -> List[PathNode]:
        """Return all file nodes below this node."""
        files = []

        for child in self.children.values():
            if child.is_file:
                files.append(child)
            else:
                files += child.descendants()

        return files

    def touch(self, threshold: int) -> bool:
        """
        Count an access to this node.

        Return True, and start counting from zero again, once the number of accesses
        exceeds the threshold.
        """
        self.access_count += 1

        if self.access_count > threshold:
            self.access_count = 0
            return True
        else:
            return False

    def reset_access_count(self) -> None:
        self.access_count = 0

    def __repr__(self) -> str:
        kind = "file" if self.is_file else "directory"
        return f"PathNode({str(self.path)!r}, {kind})"
