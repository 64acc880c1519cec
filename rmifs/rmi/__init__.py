"""
Remote method invocation for Python classes based on ZeroMQ and MessagePack.

A remote interface is an abstract class whose methods declare that they can fail with
RMIException. A Skeleton serves an object implementing such an interface and stubs,
created with stub.create(), are instances of the interface that forward every method
call to the skeleton.

```
class Calculator(ABC):
    @abstractmethod
    @rmi.throws(rmi.RMIException, ZeroDivisionError)
    def divide(self, a: int, b: int) -> float:
        ...

class CalculatorImpl(Calculator):
    def divide(self, a, b):
        return a / b

skeleton = rmi.Skeleton(Calculator, CalculatorImpl(), ("127.0.0.1", 7000))
skeleton.start()

calculator = rmi.stub.create(Calculator, ("127.0.0.1", 7000))
calculator.divide(1, 2)
```

The design follows a couple of requirements:

* Calls are independent
    * Every stub call uses its own connection, so stubs can be shared by threads.
    * Every call is served by its own worker thread on the skeleton.
* Faithful errors
    * Exceptions raised by the remote method are raised by the stub with the same
    class, as long as it's a builtin, an rmifs error, or declared by the interface.
    * Failures of the transport itself always surface as RMIException.
* Stubs are values
    * Two stubs are equal if they implement the same interface and carry the same
    address.
    * Stubs can be passed as arguments and return values of remote calls.

ZeroMQ takes care of framing and connection handling, MessagePack of compact encoding
of the call and reply frames.
"""

from rmifs.errors import RMIException
from . import stub
from .encoding import Encoding
from .interface import throws, validate
from .proxy import Address, set_default_timeouts, StubBase
from .skeleton import Skeleton, State

__all__ = [
    "Address",
    "Encoding",
    "RMIException",
    "Skeleton",
    "State",
    "StubBase",
    "set_default_timeouts",
    "stub",
    "throws",
    "validate",
]
