"""Distributed filesystem paths."""

from __future__ import annotations

import functools
import os
from typing import Iterable, Iterator, List, Tuple

from rmifs.errors import InvalidPathError, NotFoundError

# Components that refer to the current or parent directory of the local file system
RELATIVE_COMPONENTS = (".", "..")


@functools.total_ordering
class Path:
    """
    Immutable path within the distributed filesystem.

    The string representation is a forward slash delimited sequence of components, with
    the root directory written as a single forward slash. Components can neither be
    empty nor contain a forward slash (the delimiter) or a colon (reserved for
    applications, for example to prefix a path with a hostname), and can't be "." or
    "..", so that a path never leads outside the directory of a storage server.

    Example:
    ```
    p = Path("/usr//bin")
    assert list(p) == ["usr", "bin"]
    assert p / "env" == Path("/usr/bin/env")
    ```
    """

    __slots__ = ("_components",)

    def __init__(self, path: str = "/"):
        """
        Parse a path string.

        Empty components caused by repeated slashes are dropped. The string must begin
        with a forward slash and may not contain a colon, nor "." or ".." components.
        """
        if not isinstance(path, str):
            raise InvalidPathError(f"expected path string, got {path!r}")
        if path == "" or not path.startswith("/"):
            raise InvalidPathError(f"path '{path}' does not begin with a forward slash")
        if ":" in path:
            raise InvalidPathError(f"path '{path}' contains a colon")

        self._components: Tuple[str, ...] = tuple(c for c in path.split("/") if c)

        for component in self._components:
            if component in RELATIVE_COMPONENTS:
                raise InvalidPathError(f"path '{path}' contains '{component}'")

    @classmethod
    def _from_components(cls, components: Iterable[str]) -> Path:
        path = cls.__new__(cls)
        path._components = tuple(components)
        return path

    @staticmethod
    def validate_component(component: str) -> None:
        """Check that a string can be used as a single path component."""
        if not isinstance(component, str) or component == "":
            raise InvalidPathError("path component is empty")
        if "/" in component or ":" in component:
            raise InvalidPathError(f"path component '{component}' contains '/' or ':'")
        if component in RELATIVE_COMPONENTS:
            raise InvalidPathError(f"path component '{component}' is not a name")

    def append(self, component: str) -> Path:
        """Return a new path with the component added to the end."""
        self.validate_component(component)
        return self._from_components(self._components + (component,))

    def __truediv__(self, component: str) -> Path:
        return self.append(component)

    @staticmethod
    def list(directory: str) -> List[Path]:
        """
        List the paths of all files in a directory tree on the local file system.

        The paths are relative to the given directory, so a file at directory/a/b is
        returned as /a/b.
        """
        if not os.path.exists(directory):
            raise NotFoundError(f"directory {directory} does not exist")
        if not os.path.isdir(directory):
            raise InvalidPathError(f"{directory} is not a directory")

        paths = []

        for dirpath, _, filenames in os.walk(directory):
            relative = os.path.relpath(dirpath, directory)
            parent = Path._from_components(
                c for c in relative.split(os.sep) if c not in ("", ".")
            )

            for filename in filenames:
                if os.path.isfile(os.path.join(dirpath, filename)):
                    paths.append(parent / filename)

        return paths

    def is_root(self) -> bool:
        """Determine whether the path represents the root directory."""
        return len(self._components) == 0

    def parent(self) -> Path:
        """Return the path to the parent of this path."""
        if self.is_root():
            raise InvalidPathError("the root directory has no parent")

        return self._from_components(self._components[:-1])

    def last(self) -> str:
        """Return the last component in the path."""
        if self.is_root():
            raise InvalidPathError("the root directory has no last component")

        return self._components[-1]

    def is_subpath(self, other: Path) -> bool:
        """
        Determine if the other path is a subpath of this path.

        The other path is a subpath if its components are a prefix of the components of
        this path. By that definition every path is a subpath of itself.
        """
        n = len(other._components)
        return self._components[:n] == other._components

    def to_file(self, root: str) -> str:
        """Convert the path to a local file system path below the given directory."""
        return os.path.join(root, *self._components)

    def __iter__(self) -> Iterator[str]:
        return iter(self._components)

    def __len__(self) -> int:
        return len(self._components)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Path):
            return self._components == other._components
        return NotImplemented

    def __lt__(self, other: Path) -> bool:
        if isinstance(other, Path):
            return self._components < other._components
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._components)

    def __str__(self) -> str:
        return "/" + "/".join(self._components)

    def __repr__(self) -> str:
        return f"Path({str(self)!r})"

    def __reduce__(self):
        return (Path, (str(self),))
