"""
Error kinds shared by the RMI layer and the filesystem.

Each class derives from the builtin exception that best describes it, so callers can
catch either the specific kind (NotFoundError) or the builtin one (FileNotFoundError).
All of them survive a trip over the wire with their class intact.
"""


class RMIException(IOError):
    """Raised when a remote call fails in the transport rather than in the callee."""


class IllegalStateError(RuntimeError):
    """Raised when an object is used in a state that does not permit the operation."""


class HostUnknownError(OSError):
    """Raised when no routable address can be found for a wildcard-bound skeleton."""


class InvalidInterfaceError(TypeError):
    """Raised when a class does not qualify as a remote interface."""


class InvalidPathError(ValueError):
    """Raised for malformed path strings and illegal path operations."""


class NotFoundError(FileNotFoundError):
    """Raised when a path does not exist or is of the wrong kind."""


class AlreadyExistsError(FileExistsError):
    """Raised when a name is already taken."""


class AlreadyRegisteredError(IllegalStateError):
    """Raised when a storage server registers with the naming server twice."""


class OutOfRangeError(IndexError):
    """Raised for negative or past-the-end file ranges."""


ERRORS = (
    RMIException,
    IllegalStateError,
    HostUnknownError,
    InvalidInterfaceError,
    InvalidPathError,
    NotFoundError,
    AlreadyExistsError,
    AlreadyRegisteredError,
    OutOfRangeError,
)
