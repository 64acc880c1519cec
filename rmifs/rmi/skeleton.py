"""Server side dispatcher that exposes an object implementing a remote interface."""

from enum import auto, Enum
import threading
from typing import Any, Dict, List, Optional, Tuple

import zmq

from rmifs.errors import IllegalStateError, RMIException
from rmifs.logger import log
from .encoding import encoding_for
from .interface import describe_method, remote_methods, validate
from .proxy import Address, endpoint

WILDCARD_HOSTS = ("", "*", "0.0.0.0", "::")


class State(Enum):
    """Lifecycle of a skeleton, which can't be restarted once stopped."""

    NOT_STARTED = auto()
    RUNNING = auto()
    STOPPED = auto()


class Skeleton:
    """
    RMI server that exposes the methods of a remote interface on a server object.

    The skeleton listens on a ZeroMQ ROUTER socket and hands every incoming call to a
    new worker thread, which invokes the method on the server object and sends back its
    return value or raised exception. Calls are therefore served concurrently and the
    server object is responsible for its own locking.

    The hooks stopped(), listen_error() and service_error() can be overridden in
    subclasses to be notified of the skeleton's state and of errors.

    Example:
    ```
    skeleton = Skeleton(Calculator, CalculatorImpl(), ("127.0.0.1", 7000))
    skeleton.start()

    calculator = stub.create(Calculator, skeleton)
    calculator.divide(1, 2)
    ```
    """

    def __init__(self, interface: type, server: Any, address: Optional[Address] = None):
        """
        Instantiate a skeleton for the server object implementing the interface.

        The skeleton listens on the given address once started. Without an address, or
        with port 0, it listens on a port chosen by the system.
        """
        if interface is None or server is None:
            raise ValueError("interface and server cannot be None")

        validate(interface)

        if not isinstance(server, interface):
            raise TypeError(f"{server!r} does not implement {interface.__qualname__}")

        self.interface = interface
        self.server = server

        self._address = None if address is None else (address[0], int(address[1]))
        self._encoding = encoding_for(interface)
        self._methods: Dict[Tuple[str, Tuple[str, ...]], str] = {
            (name, describe_method(method)): name
            for name, method in remote_methods(interface).items()
        }

        self._state = State.NOT_STARTED
        self._state_lock = threading.Lock()
        self._listener: Optional[threading.Thread] = None
        self._start_error: Optional[zmq.ZMQError] = None

        self._control_endpoint = f"inproc://skeleton-{id(self)}-control"
        self._replies_endpoint = f"inproc://skeleton-{id(self)}-replies"

    @property
    def address(self) -> Optional[Address]:
        """
        Return the address of the skeleton.

        This is the address it was created with until it is started, after which it
        includes the port chosen by the system.
        """
        return self._address

    @property
    def state(self) -> State:
        return self._state

    def is_running(self) -> bool:
        return self._state is State.RUNNING

    def start(self) -> None:
        """
        Start listening for calls.

        Starting a running skeleton has no effect and a stopped skeleton can't be
        started again.
        """
        with self._state_lock:
            if self._state is State.RUNNING:
                return
            elif self._state is State.STOPPED:
                raise IllegalStateError("a stopped skeleton cannot be restarted")

            ready = threading.Event()

            self._listener = threading.Thread(
                target=self._listen,
                args=(ready,),
                name=f"skeleton-{self.interface.__name__}",
                daemon=True,
            )
            self._listener.start()

            ready.wait()

            if self._start_error is not None:
                error, self._start_error = self._start_error, None
                self._listener.join()

                raise RMIException(
                    f"unable to start {self.interface.__qualname__} skeleton: {error}"
                ) from error

            self._state = State.RUNNING

    def stop(self) -> None:
        """
        Stop listening for calls and wait for the listening thread to finish.

        Calls that are already being served by workers still complete, but their replies
        may be discarded. The stopped() hook is called once the skeleton has stopped.
        """
        with self._state_lock:
            if self._state is not State.RUNNING:
                return

            self._state = State.STOPPED

            control = zmq.Context.instance().socket(zmq.PAIR)

            try:
                control.connect(self._control_endpoint)
                control.send(b"")
            finally:
                control.close()

        if threading.current_thread() is not self._listener:
            self._listener.join()

    #
    # Hooks
    #

    def stopped(self, cause: Optional[BaseException]) -> None:
        """
        Handle the skeleton having stopped.

        The cause is None if the skeleton was stopped by a call to stop(), or the error
        that brought down the listening thread otherwise.
        """
        if cause is not None:
            log.error(f"{self.interface.__qualname__} skeleton stopped: {cause}")

    def listen_error(self, exception: Exception) -> bool:
        """
        Handle an error in the listening thread.

        Return True to resume listening, or False to stop the skeleton with the error as
        the cause.
        """
        return False

    def service_error(self, exception: RMIException) -> None:
        """Handle an error that a worker absorbed while serving a call."""
        log.warning(f"{self.interface.__qualname__} skeleton: {exception}")

    #
    # Listening thread
    #

    def _bind(self, sock: zmq.Socket) -> Address:
        """Bind the socket to the configured address and return the bound address."""
        host, port = self._address or ("0.0.0.0", 0)

        if host in WILDCARD_HOSTS:
            host = "0.0.0.0"

        if port == 0:
            port = sock.bind_to_random_port(f"tcp://{host}")
        else:
            sock.bind(endpoint((host, port)))

        return (host, port)

    def _listen(self, ready: threading.Event) -> None:
        """Receive calls and dispatch them to workers until the skeleton is stopped."""
        context = zmq.Context.instance()

        frontend = context.socket(zmq.ROUTER)
        replies = context.socket(zmq.PULL)
        control = context.socket(zmq.PAIR)

        sockets = [frontend, replies, control]

        try:
            self._address = self._bind(frontend)
            replies.bind(self._replies_endpoint)
            control.bind(self._control_endpoint)
        except zmq.ZMQError as e:
            for sock in sockets:
                sock.close(linger=0)

            self._start_error = e
            ready.set()
            return

        ready.set()

        log.info(f"{self.interface.__qualname__} skeleton listening on {self._address}")

        poller = zmq.Poller()
        for sock in sockets:
            poller.register(sock, zmq.POLLIN)

        cause: Optional[BaseException] = None

        try:
            while True:
                try:
                    events = dict(poller.poll())

                    if control in events:
                        control.recv()
                        break

                    if replies in events:
                        frontend.send_multipart(replies.recv_multipart())

                    if frontend in events:
                        self._dispatch(frontend.recv_multipart())
                except zmq.ZMQError as e:
                    if not self.listen_error(e):
                        cause = e
                        break
        finally:
            for sock in sockets:
                sock.close(linger=0)

            with self._state_lock:
                self._state = State.STOPPED

        log.info(f"{self.interface.__qualname__} skeleton on {self._address} stopped")

        self.stopped(cause)

    def _dispatch(self, frames: List[bytes]) -> None:
        """Start a worker for a call received as [identity, delimiter, payload]."""
        if len(frames) != 3 or frames[1] != b"":
            self.service_error(RMIException("discarded call with unexpected framing"))
            return

        identity, _, payload = frames

        worker = threading.Thread(
            target=self._serve,
            args=(identity, payload),
            name=f"skeleton-{self.interface.__name__}-worker",
            daemon=True,
        )
        worker.start()

    #
    # Workers
    #

    def _serve(self, identity: bytes, payload: bytes) -> None:
        """Serve a single call and hand the reply to the listening thread."""
        reply = self._handle(payload)

        sock = zmq.Context.instance().socket(zmq.PUSH)

        try:
            sock.connect(self._replies_endpoint)
            sock.send_multipart([identity, b"", reply], flags=zmq.NOBLOCK)
        except zmq.ZMQError as e:
            self.service_error(RMIException(f"unable to deliver reply: {e}"))
        finally:
            sock.close()

    def _handle(self, payload: bytes) -> bytes:
        """
        Decode a call, invoke the method and encode the reply.

        An empty reply is returned if the call is malformed or the reply can't be
        encoded, which the stub treats like a dropped connection.
        """
        try:
            name, arg_types, args = self._encoding.unpack(payload)
            method_name = self._methods.get((name, tuple(arg_types)))
            args = list(args)
        except Exception as e:
            self.service_error(RMIException(f"malformed call: {e}"))
            return b""

        result: Tuple[bool, Any]

        if method_name is None:
            result = (
                True,
                RMIException(
                    f"{self.interface.__qualname__} has no method {name}{arg_types}"
                ),
            )
        else:
            try:
                ret = getattr(self.server, method_name)(*args)
                result = (False, ret)
            except Exception as e:
                result = (True, e)

        try:
            return self._encoding.pack(result)
        except Exception as e:
            self.service_error(RMIException(f"unable to serialize reply: {e}"))
            return b""
