"""Types shared by clients, the naming server and storage servers."""

from .path import Path

__all__ = [
    "Path",
]
