"""Stubs that identify storage servers and bootstrap stubs for the naming server."""

from dataclasses import dataclass
from typing import Optional

from rmifs.constants import REGISTRATION_PORT, SERVICE_PORT
from rmifs.rmi import stub
from rmifs.storage.interfaces import Command, Storage
from .interfaces import Registration, Service


@dataclass(frozen=True)
class ServerStubs:
    """Pair of stubs through which the naming server reaches a storage server."""

    storage: Storage
    command: Command


def service(hostname: str, port: Optional[int] = None) -> Service:
    """Create a stub for the Service interface of the naming server at hostname."""
    return stub.create(Service, (hostname, port or SERVICE_PORT))


def registration(hostname: str, port: Optional[int] = None) -> Registration:
    """Create a stub for the Registration interface of the naming server at hostname."""
    return stub.create(Registration, (hostname, port or REGISTRATION_PORT))
