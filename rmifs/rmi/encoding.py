"""
Serialization of call and reply frames using MessagePack.

Builtin values (None, booleans, integers, strings, bytes, lists and dicts) are encoded
natively. Domain values are encoded as single-key maps that tag their type:

* {"__path__": "/a/b"} for a Path
* {"__stub__": {"interface": ..., "address": [host, port]}} for a stub
* {"__exception__": {"module": ..., "name": ..., "args": [...]}} for an exception
* {"__data__": {"type": ..., "data": {...}}} for a registered dataclass

Stubs are reconstructed as working stubs on the receiving end, so a stub sent from one
process to another remains callable.
"""

import builtins
from dataclasses import is_dataclass
import functools
import typing
from typing import Any, Dict, List, Tuple, Type

import msgpack

from rmifs.common import Path
from rmifs.errors import ERRORS
from .interface import (
    declared_exceptions,
    is_remote_interface,
    qualified_name,
    remote_methods,
)
from .proxy import proxy_class, StubBase


class Encoding:
    """Serialization and deserialization of RMI frames."""

    def __init__(self, *seed_types: type):
        """
        Initialize a (de)serializer with support for the given types.

        Dataclasses and remote interfaces used within the seed types are discovered
        automatically, as are the exceptions declared by interface methods.
        """
        self._dataclasses: Dict[str, type] = {}
        self._interfaces: Dict[str, type] = {}
        self._exceptions: Dict[str, Type[BaseException]] = {}

        for exc_type in ERRORS:
            self.register_exception(exc_type)

        for seed_type in seed_types:
            self.register_types(seed_type)

    def register_types(self, seed_type: type) -> None:
        """
        Register all dataclass and interface types used within the specified type.

        This includes the class itself, its class members, method signatures of
        interfaces, nested dataclasses, and container types like List and Optional.
        """
        dataclasses, interfaces = self._discover_types(seed_type)

        for dataclass in dataclasses:
            self._dataclasses[dataclass.__qualname__] = dataclass

        for interface in interfaces:
            self._interfaces[qualified_name(interface)] = interface

            for method in remote_methods(interface).values():
                for exc_type in declared_exceptions(method):
                    self.register_exception(exc_type)

    def register_exception(self, exc_type: Type[BaseException]) -> None:
        """Allow an exception type to be reconstructed faithfully."""
        if exc_type.__module__ != "builtins":
            self._exceptions[qualified_name(exc_type)] = exc_type

    def pack(self, obj: Any) -> bytes:
        """Serialize an object using MessagePack."""
        return msgpack.packb(obj, default=self.serialize_obj)

    def unpack(self, data: bytes) -> Any:
        """Deserialize an object using MessagePack."""
        return msgpack.unpackb(data, object_hook=self.deserialize_obj)

    def serialize_obj(self, obj: Any) -> Any:
        """Turn a domain object into a serialization friendly representation."""
        if isinstance(obj, Path):
            return {"__path__": str(obj)}
        elif isinstance(obj, StubBase):
            return self._serialize_stub(obj)
        elif isinstance(obj, BaseException):
            return self._serialize_exception(obj)
        elif obj.__class__.__qualname__ in self._dataclasses:
            return self._serialize_dataclass(obj)
        else:
            raise ValueError(f"unserializable object {obj}")

    def deserialize_obj(self, obj: Any) -> Any:
        """Reconstruct a domain object from a serialized representation."""
        if not isinstance(obj, dict) or len(obj) != 1:
            return obj
        elif "__path__" in obj:
            return Path(obj["__path__"])
        elif "__stub__" in obj:
            return self._deserialize_stub(obj)
        elif "__exception__" in obj:
            return self._deserialize_exception(obj)
        elif "__data__" in obj:
            return self._deserialize_dataclass(obj)
        else:
            return obj

    #
    # Stub serialization
    #

    @staticmethod
    def _serialize_stub(stub: StubBase) -> Dict:
        host, port = stub.address
        return {
            "__stub__": {
                "interface": qualified_name(stub.interface),
                "address": [host, port],
            }
        }

    def _deserialize_stub(self, obj: Dict) -> StubBase:
        """
        Reconstruct a stub from its serialized representation.

        Only stubs for previously registered interfaces can be deserialized.
        """
        name = obj["__stub__"]["interface"]
        host, port = obj["__stub__"]["address"]

        if name not in self._interfaces:
            raise TypeError(f"unknown interface '{name}'")

        interface = self._interfaces[name]

        return proxy_class(interface)(interface, (host, port), encoding_for(interface))

    #
    # Exception serialization
    #

    @staticmethod
    def _serialize_exception(exc: BaseException) -> Dict:
        """Turn an exception into a serialization friendly dict."""
        return {
            "__exception__": {
                "module": exc.__class__.__module__,
                "name": exc.__class__.__qualname__,
                "args": exc.args,
            }
        }

    def _deserialize_exception(self, obj: Dict) -> BaseException:
        """
        Reconstruct an exception from its serialized representation.

        If it was a builtin exception (like IOError) or a registered one (like
        NotFoundError) then it is reconstructed faithfully, otherwise as a generic
        Exception with the original arguments.
        """
        module = obj["__exception__"]["module"]
        name = obj["__exception__"]["name"]
        args = obj["__exception__"]["args"]

        if module == "builtins":
            exc_type = getattr(builtins, name, None.__class__)
        else:
            exc_type = self._exceptions.get(f"{module}.{name}", None.__class__)

        if isinstance(exc_type, type) and issubclass(exc_type, BaseException):
            try:
                return exc_type(*args)
            except Exception:
                return Exception(*args)
        else:
            return Exception(*args)

    #
    # Data class serialization
    #

    @classmethod
    def _serialize_dataclass(cls, obj: Any) -> Dict:
        """Turn a dataclass into a serialization friendly dict."""
        return {"__data__": {"type": obj.__class__.__qualname__, "data": obj.__dict__}}

    def _deserialize_dataclass(self, obj: Dict) -> Any:
        """
        Reconstruct a dataclass from its serialized representation.

        Only previously registered dataclass types can be deserialized.
        """
        type_name = obj["__data__"]["type"]
        type_data = obj["__data__"]["data"]

        if type_name in self._dataclasses:
            try:
                return self._dataclasses[type_name](**type_data)
            except Exception as e:
                raise TypeError(f"failed to deserialize {type_name}: {e}")
        else:
            raise TypeError(f"unknown dataclass '{type_name}'")

    @staticmethod
    def _discover_types(*seed_types: type) -> Tuple[List[type], List[type]]:
        """
        Find all dataclass and remote interface types used with the specified types.

        This includes the class itself, its class members, the parameter and return
        types of interface methods, nested dataclasses, and container types like List
        and Optional.
        """
        candidates = set(seed_types)
        explored = set()
        dataclasses = set()
        interfaces = set()

        while len(candidates) > 0:
            candidate = candidates.pop()

            if candidate not in explored:
                explored.add(candidate)
            else:
                continue

            if is_dataclass(candidate) and isinstance(candidate, type):
                dataclasses.add(candidate)

                # Discover member types of dataclass
                for subtype in typing.get_type_hints(candidate).values():
                    candidates.add(subtype)
            elif is_remote_interface(candidate):
                interfaces.add(candidate)

                # Discover types used by the methods of the interface
                for method in remote_methods(candidate).values():
                    for subtype in typing.get_type_hints(method).values():
                        candidates.add(subtype)
            elif hasattr(candidate, "__origin__"):
                # Discover types nested in constructs like Union[T] and List[T]
                for subtype in getattr(candidate, "__args__", ()):
                    candidates.add(subtype)

        return list(dataclasses), list(interfaces)


@functools.lru_cache(maxsize=None)
def encoding_for(interface: type) -> Encoding:
    """Return the (shared) encoding for calls on the given interface."""
    return Encoding(interface)
