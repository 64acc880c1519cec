"""Factory of stubs, the client side of RMI."""

import socket
from typing import Any, Optional, Union

from rmifs.errors import HostUnknownError, IllegalStateError
from .encoding import encoding_for
from .interface import validate
from .proxy import Address, proxy_class
from .skeleton import Skeleton, WILDCARD_HOSTS


def create(
    interface: type,
    target: Union[Skeleton, Address],
    hostname: Optional[str] = None,
    timeout_ms: Optional[int] = None,
    connect_timeout_ms: Optional[int] = None,
) -> Any:
    """
    Create a stub for the remote interface.

    The target is either the skeleton serving the remote object or its network address.
    A skeleton must have been created with a fixed address or already be started. The
    hostname overrides the host of the skeleton's address, which is useful when the
    skeleton listens on all interfaces but only one name is routable for clients.

    The returned object is an instance of the interface. Each method call opens a new
    connection to the skeleton, sends the call and returns the result or raises the
    exception of the remote method. Transport failures raise RMIException.
    """
    if interface is None or target is None:
        raise ValueError("interface and target cannot be None")

    validate(interface)

    if isinstance(target, Skeleton):
        address = _skeleton_address(target, hostname)
    else:
        host, port = target
        address = (hostname or host, int(port))

    return proxy_class(interface)(
        interface,
        address,
        encoding_for(interface),
        timeout_ms=timeout_ms,
        connect_timeout_ms=connect_timeout_ms,
    )


def _skeleton_address(skeleton: Skeleton, hostname: Optional[str]) -> Address:
    """Determine the address that stubs use to reach the skeleton."""
    address = skeleton.address

    if address is None or address[1] == 0:
        raise IllegalStateError(
            "skeleton has no fixed address and has not been started yet"
        )

    host, port = address

    if hostname is not None:
        host = hostname
    elif host in WILDCARD_HOSTS:
        try:
            host = socket.gethostbyname(socket.gethostname())
        except OSError as e:
            raise HostUnknownError(f"no address found for the local host: {e}") from e

    return (host, port)
