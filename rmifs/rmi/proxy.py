"""Client side proxies that turn method calls into remote calls."""

import functools
import inspect
import logging
import time
from typing import Any, Callable, List, Optional, Sequence, Tuple

import zmq

import rmifs.constants as constants
from rmifs.errors import RMIException
from rmifs.logger import log, summarize
from .interface import (
    describe_method,
    is_nullable,
    parameter_types,
    qualified_name,
    remote_methods,
)

Address = Tuple[str, int]

_default_timeouts = {
    "timeout_ms": constants.CALL_TIMEOUT_MS,
    "connect_timeout_ms": constants.CONNECT_TIMEOUT_MS,
}


def set_default_timeouts(timeout_ms: int, connect_timeout_ms: int) -> None:
    """
    Change the timeouts of stubs created from now on.

    The call timeout bounds the wait for a reply and the connect timeout bounds the
    wait for a connection to the skeleton. A timeout of -1 waits forever.
    """
    _default_timeouts["timeout_ms"] = timeout_ms
    _default_timeouts["connect_timeout_ms"] = connect_timeout_ms


def endpoint(address: Address) -> str:
    host, port = address
    return f"tcp://{host}:{port}"


class StubBase:
    """
    Shared logic of all stubs.

    Two stubs are equal if they implement the same interface and carry the same remote
    address, which means that they would connect to the same skeleton.
    """

    def __init__(
        self,
        interface: type,
        address: Address,
        encoding: Any,
        timeout_ms: Optional[int] = None,
        connect_timeout_ms: Optional[int] = None,
    ):
        host, port = address

        self._interface = interface
        self._address = (host, int(port))
        self._encoding = encoding

        if timeout_ms is None:
            timeout_ms = _default_timeouts["timeout_ms"]
        if connect_timeout_ms is None:
            connect_timeout_ms = _default_timeouts["connect_timeout_ms"]

        self._timeout_ms = timeout_ms
        self._connect_timeout_ms = connect_timeout_ms

    @property
    def interface(self) -> type:
        return self._interface

    @property
    def address(self) -> Address:
        return self._address

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StubBase):
            return (
                self._interface is other._interface and self._address == other._address
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._address, qualified_name(self._interface)))

    def __repr__(self) -> str:
        host, port = self._address
        return f"Interface {self._interface.__qualname__} @ {host}:{port}"

    def __reduce__(self):
        from .stub import create

        return (create, (self._interface, self._address))

    def _invoke(self, name: str, arg_types: Sequence[str], args: List[Any]) -> Any:
        """
        Call a method on the remote object.

        Every call uses its own connection that is closed once the reply has been
        received, so calls from multiple threads are independent.
        """
        t_call = time.time()

        try:
            call = self._encoding.pack((name, list(arg_types), args))
        except Exception as e:
            raise RMIException(f"unable to serialize call to {name}: {e}") from e

        sock = zmq.Context.instance().socket(zmq.REQ)

        try:
            sock.setsockopt(zmq.LINGER, 0)
            sock.setsockopt(zmq.IMMEDIATE, 1)
            sock.setsockopt(zmq.SNDTIMEO, self._connect_timeout_ms)
            sock.setsockopt(zmq.RCVTIMEO, self._timeout_ms)

            sock.connect(endpoint(self._address))
            sock.send(call)
            reply = sock.recv()
        except zmq.ZMQError as e:
            raise RMIException(f"call to {name} on {self!r} failed: {e}") from e
        finally:
            sock.close()

        try:
            is_exception, payload = self._encoding.unpack(reply)
        except Exception as e:
            raise RMIException(f"malformed reply to {name} from {self!r}") from e

        # Explicit check before logging because summarize is relatively slow
        if log.isEnabledFor(logging.DEBUG):
            t_millis = round((time.time() - t_call) * 1000)
            summary = tuple([summarize(arg) for arg in args])
            log.debug(f"rmi::{name}{summary} - {t_millis} ms")

        if is_exception:
            if not isinstance(payload, BaseException):
                raise RMIException(f"malformed exception from {self!r}: {payload!r}")
            raise payload
        else:
            return payload


def _remote_method(name: str, method: Callable) -> Callable:
    """Create the stub implementation of an interface method."""
    signature = inspect.signature(method)
    arg_types = describe_method(method)

    parameters = list(signature.parameters)[1:]
    nullable = [is_nullable(t) for t in parameter_types(method)]

    @functools.wraps(method)
    def call(self: StubBase, *args: Any, **kwargs: Any) -> Any:
        bound = signature.bind(self, *args, **kwargs)
        bound.apply_defaults()

        values = list(bound.args[1:])

        for parameter, value, allows_none in zip(parameters, values, nullable):
            if value is None and not allows_none:
                raise ValueError(f"argument '{parameter}' of {name}() cannot be None")

        return self._invoke(name, arg_types, values)

    # functools.wraps copies the abstract marker of the interface method
    call.__isabstractmethod__ = False  # type: ignore

    return call


@functools.lru_cache(maxsize=None)
def proxy_class(interface: type) -> type:
    """Create a class that implements every method of the interface remotely."""
    namespace = {
        name: _remote_method(name, method)
        for name, method in remote_methods(interface).items()
    }
    namespace["__module__"] = interface.__module__

    metaclass = type(interface)

    return metaclass(f"{interface.__name__}Stub", (StubBase, interface), namespace)
