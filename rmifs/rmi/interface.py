"""
Declaration and inspection of remote interfaces.

A remote interface is an abstract class whose public methods are all abstract and
declare, through the throws() decorator, that they may fail with RMIException:

```
class Calculator(ABC):
    @abstractmethod
    @throws(RMIException, ZeroDivisionError)
    def divide(self, a: int, b: int) -> float:
        ...
```
"""

import inspect
import typing
from typing import Any, Callable, Dict, Tuple, Type

from rmifs.errors import InvalidInterfaceError, RMIException


def throws(*exception_types: Type[BaseException]) -> Callable[[Callable], Callable]:
    """Declare the exceptions that an interface method may raise."""

    def decorator(func: Callable) -> Callable:
        func.__throws__ = tuple(exception_types)  # type: ignore
        return func

    return decorator


def declared_exceptions(method: Callable) -> Tuple[Type[BaseException], ...]:
    return getattr(method, "__throws__", ())


def remote_methods(interface: type) -> Dict[str, Callable]:
    """Return the public methods of an interface by name."""
    return {
        name: getattr(interface, name)
        for name in dir(interface)
        if not name.startswith("_") and callable(getattr(interface, name))
    }


def is_remote_interface(candidate: Any) -> bool:
    """Check whether the candidate qualifies as a remote interface."""
    try:
        validate(candidate)
    except InvalidInterfaceError:
        return False
    else:
        return True


def validate(interface: Any) -> None:
    """Raise InvalidInterfaceError unless the argument is a remote interface."""
    if not inspect.isclass(interface) or not inspect.isabstract(interface):
        raise InvalidInterfaceError(f"{interface!r} is not an interface")

    for name, method in remote_methods(interface).items():
        if not getattr(method, "__isabstractmethod__", False):
            raise InvalidInterfaceError(
                f"{interface.__qualname__}.{name} is implemented by the interface"
            )

        if not any(issubclass(RMIException, t) for t in declared_exceptions(method)):
            raise InvalidInterfaceError(
                f"{interface.__qualname__}.{name} does not declare RMIException"
            )


def qualified_name(t: type) -> str:
    return f"{t.__module__}.{t.__qualname__}"


def describe_type(t: Any) -> str:
    """Return the descriptor of a parameter type as it is sent over the wire."""
    if isinstance(t, type):
        return qualified_name(t)
    else:
        # Constructs like List[Path] and Optional[int]
        return str(t)


def parameter_types(method: Callable) -> Tuple[Any, ...]:
    """Return the declared types of the parameters of a method, excluding self."""
    hints = typing.get_type_hints(method)
    parameters = list(inspect.signature(method).parameters.values())[1:]

    return tuple(hints.get(p.name, Any) for p in parameters)


def describe_method(method: Callable) -> Tuple[str, ...]:
    """Return the type descriptors that identify a method together with its name."""
    return tuple(describe_type(t) for t in parameter_types(method))


def is_nullable(t: Any) -> bool:
    """Check if None is an acceptable value for the given type."""
    return t is Any or t is type(None) or type(None) in getattr(t, "__args__", ())
