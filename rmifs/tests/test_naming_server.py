from unittest import mock

import pytest
import zmq

from rmifs.common import Path
from rmifs.config import NamingConfig
from rmifs.errors import (
    AlreadyRegisteredError,
    IllegalStateError,
    NotFoundError,
    RMIException,
)
from rmifs.naming import NamingServer, ServerStubs
from rmifs.rmi import stub
from rmifs.storage import Command, Storage


def make_stubs():
    stubs = ServerStubs(mock.Mock(), mock.Mock())

    stubs.command.create.return_value = True
    stubs.command.delete.return_value = True
    stubs.command.copy.return_value = True

    return stubs


def register(server, stubs, files):
    return server.register(stubs.storage, stubs.command, [Path(f) for f in files])


def test_register():
    server = NamingServer()
    a = make_stubs()

    assert register(server, a, ["/x", "/y/z"]) == []

    assert sorted(server.list(Path())) == ["x", "y"]
    assert server.list(Path("/y")) == ["z"]
    assert server.is_directory(Path())
    assert server.is_directory(Path("/y"))
    assert not server.is_directory(Path("/y/z"))
    assert server.get_storage(Path("/y/z")) is a.storage


def test_register_duplicate_files():
    server = NamingServer()
    a = make_stubs()
    b = make_stubs()

    register(server, a, ["/x", "/y/z"])

    assert register(server, b, ["/y/z", "/w"]) == [Path("/y/z")]

    assert sorted(server.list(Path())) == ["w", "x", "y"]
    assert server.get_storage(Path("/y/z")) is a.storage
    assert server.get_storage(Path("/w")) is b.storage


def test_register_file_over_directory():
    server = NamingServer()

    register(server, make_stubs(), ["/y/z"])

    assert register(server, make_stubs(), ["/y"]) == [Path("/y")]
    assert server.is_directory(Path("/y"))


def test_register_file_below_file():
    server = NamingServer()

    register(server, make_stubs(), ["/x"])

    assert register(server, make_stubs(), ["/x/y"]) == [Path("/x/y")]
    assert not server.is_directory(Path("/x"))


def test_register_root_is_ignored():
    server = NamingServer()

    assert register(server, make_stubs(), ["/"]) == []
    assert server.list(Path()) == []


def test_register_twice():
    server = NamingServer()
    a = make_stubs()

    register(server, a, [])

    with pytest.raises(AlreadyRegisteredError):
        register(server, a, ["/x"])

    # The second registration did not add anything
    assert server.list(Path()) == []


def test_register_none():
    server = NamingServer()
    a = make_stubs()

    with pytest.raises(ValueError):
        server.register(None, a.command, [])

    with pytest.raises(ValueError):
        server.register(a.storage, a.command, None)


def test_nonexistent_path():
    server = NamingServer()

    with pytest.raises(NotFoundError):
        server.is_directory(Path("/x"))

    with pytest.raises(NotFoundError):
        server.list(Path("/x"))

    with pytest.raises(NotFoundError):
        server.get_storage(Path("/x"))


def test_list_file():
    server = NamingServer()
    register(server, make_stubs(), ["/x"])

    with pytest.raises(NotFoundError):
        server.list(Path("/x"))


def test_get_storage_of_directory():
    server = NamingServer()
    register(server, make_stubs(), ["/y/z"])

    with pytest.raises(NotFoundError):
        server.get_storage(Path("/y"))


def test_none_arguments():
    server = NamingServer()

    for method in [
        server.is_directory,
        server.list,
        server.create_file,
        server.create_directory,
        server.delete,
        server.get_storage,
    ]:
        with pytest.raises(ValueError):
            method(None)


def test_create_directory():
    server = NamingServer()
    register(server, make_stubs(), ["/x"])

    assert not server.create_directory(Path())
    assert not server.create_directory(Path("/x"))

    assert server.create_directory(Path("/k"))
    assert not server.create_directory(Path("/k"))

    assert server.is_directory(Path("/k"))
    assert server.list(Path("/k")) == []


def test_create_directory_without_parent():
    server = NamingServer()
    register(server, make_stubs(), ["/x"])

    with pytest.raises(NotFoundError):
        server.create_directory(Path("/k/l"))

    # Files can't contain directories
    with pytest.raises(NotFoundError):
        server.create_directory(Path("/x/l"))


def test_create_file_without_storage_servers():
    server = NamingServer()
    server.create_directory(Path("/k"))

    with pytest.raises(IllegalStateError):
        server.create_file(Path("/k/f"))

    assert server.list(Path("/k")) == []


def test_create_file():
    server = NamingServer()
    a = make_stubs()
    register(server, a, [])
    server.create_directory(Path("/k"))

    assert server.create_file(Path("/k/f"))
    a.command.create.assert_called_once_with(Path("/k/f"))

    assert not server.create_file(Path("/k/f"))
    assert a.command.create.call_count == 1

    assert not server.is_directory(Path("/k/f"))
    assert server.get_storage(Path("/k/f")) is a.storage


def test_create_file_on_registered_server():
    server = NamingServer()
    servers = [make_stubs() for _ in range(3)]

    for stubs in servers:
        register(server, stubs, [])

    server.create_file(Path("/f"))

    assert server.get_storage(Path("/f")) in [s.storage for s in servers]
    assert sum(s.command.create.call_count for s in servers) == 1


def test_create_file_edge_cases():
    server = NamingServer()
    register(server, make_stubs(), ["/x"])

    assert not server.create_file(Path())
    assert not server.create_file(Path("/x"))

    with pytest.raises(NotFoundError):
        server.create_file(Path("/k/f"))

    with pytest.raises(NotFoundError):
        server.create_file(Path("/x/f"))


def test_delete_file():
    server = NamingServer()
    a = make_stubs()
    register(server, a, ["/x", "/y/z"])

    assert server.delete(Path("/y/z"))

    a.command.delete.assert_called_once_with(Path("/y/z"))
    assert server.list(Path("/y")) == []

    with pytest.raises(NotFoundError):
        server.get_storage(Path("/y/z"))


def test_delete_directory():
    server = NamingServer()
    a = make_stubs()
    b = make_stubs()
    register(server, a, ["/y/z"])
    register(server, b, ["/y/w/v", "/x"])

    assert server.delete(Path("/y"))

    a.command.delete.assert_called_once_with(Path("/y"))
    b.command.delete.assert_called_once_with(Path("/y"))
    assert server.list(Path()) == ["x"]


def test_delete_empty_directory():
    server = NamingServer()
    a = make_stubs()
    register(server, a, [])
    server.create_directory(Path("/k"))

    assert server.delete(Path("/k"))
    assert not a.command.delete.called
    assert server.list(Path()) == []


def test_delete_unconfirmed():
    server = NamingServer()
    a = make_stubs()
    a.command.delete.return_value = False
    register(server, a, ["/x"])

    assert not server.delete(Path("/x"))

    # The file is gone from the tree regardless
    assert server.list(Path()) == []


def test_delete_edge_cases():
    server = NamingServer()

    assert not server.delete(Path())

    with pytest.raises(NotFoundError):
        server.delete(Path("/x"))


def test_replication():
    server = NamingServer(NamingConfig(replication_threshold=1))
    a = make_stubs()
    b = make_stubs()
    register(server, a, ["/x"])
    register(server, b, [])

    assert server.get_storage(Path("/x")) is a.storage
    assert not b.command.copy.called

    assert server.get_storage(Path("/x")) is a.storage
    b.command.copy.assert_called_once_with(Path("/x"), a.storage)

    # Replicas are deleted along with the file
    server.delete(Path("/x"))
    a.command.delete.assert_called_once_with(Path("/x"))
    b.command.delete.assert_called_once_with(Path("/x"))


def test_replication_without_candidates():
    server = NamingServer(NamingConfig(replication_threshold=1))
    a = make_stubs()
    register(server, a, ["/x"])

    for _ in range(3):
        assert server.get_storage(Path("/x")) is a.storage

    assert not a.command.copy.called


def test_replication_failure(caplog):
    server = NamingServer(NamingConfig(replication_threshold=1))
    a = make_stubs()
    b = make_stubs()
    b.command.copy.side_effect = RMIException("unreachable")
    register(server, a, ["/x"])
    register(server, b, [])

    server.get_storage(Path("/x"))
    assert server.get_storage(Path("/x")) is a.storage

    assert "failed to replicate /x" in caplog.text

    server.delete(Path("/x"))
    assert not b.command.delete.called


def test_replication_disabled():
    server = NamingServer()
    a = make_stubs()
    b = make_stubs()
    register(server, a, ["/x"])
    register(server, b, [])

    for _ in range(10):
        server.get_storage(Path("/x"))

    assert not b.command.copy.called


def test_start_and_stop():
    server = NamingServer(
        NamingConfig(host="127.0.0.1", service_port=0, registration_port=0)
    )

    stopped = []
    server.stopped = stopped.append

    server.start()
    server.start()

    assert server.service_address[1] != 0
    assert server.registration_address[1] != 0

    server.stop()
    server.stop()

    assert stopped == [None]


def test_start_failure_stops_registration():
    server = NamingServer(
        NamingConfig(host="127.0.0.1", service_port=0, registration_port=0)
    )

    with mock.patch.object(
        server._service_skeleton, "start", side_effect=RMIException("in use")
    ):
        with pytest.raises(RMIException):
            server.start()

    assert not server._registration_skeleton.is_running()


def test_register_same_file_twice():
    server = NamingServer()
    a = make_stubs()

    assert register(server, a, ["/x", "/y/z", "/x"]) == []
    assert server.get_storage(Path("/x")) is a.storage


def test_command_timeout_releases_tree():
    server = NamingServer(NamingConfig(command_timeout=200))

    # Storage server that accepts calls but never replies
    sock = zmq.Context.instance().socket(zmq.ROUTER)
    sock.setsockopt(zmq.LINGER, 0)

    try:
        port = sock.bind_to_random_port("tcp://127.0.0.1")
        address = ("127.0.0.1", port)

        server.register(
            stub.create(Storage, address), stub.create(Command, address), []
        )

        with pytest.raises(RMIException):
            server.create_file(Path("/f"))

        assert server.list(Path()) == []
        assert server.create_directory(Path("/k"))
    finally:
        sock.close()
