"""Fixtures for running naming and storage servers on the loopback interface."""

import os

import pytest

from rmifs.common import Path
from rmifs.config import NamingConfig
from rmifs.naming import NamingServer, Registration, Service
from rmifs.rmi import stub
from rmifs.storage import StorageServer

LOCALHOST = "127.0.0.1"


@pytest.fixture
def naming_server():
    server = NamingServer(
        NamingConfig(host=LOCALHOST, service_port=0, registration_port=0)
    )
    server.start()

    yield server

    server.stop()


@pytest.fixture
def service(naming_server):
    return stub.create(Service, naming_server.service_address)


@pytest.fixture
def registration(naming_server):
    return stub.create(Registration, naming_server.registration_address)


@pytest.fixture
def start_storage(tmp_path, registration):
    """Return a function that starts a storage server hosting the given files."""
    servers = []

    def start(name, files):
        root = tmp_path / name
        root.mkdir()

        for file, contents in files.items():
            local = Path(file).to_file(str(root))
            os.makedirs(os.path.dirname(local), exist_ok=True)

            with open(local, "wb") as f:
                f.write(contents)

        server = StorageServer(str(root), (LOCALHOST, 0), (LOCALHOST, 0))
        server.start(LOCALHOST, registration)

        servers.append(server)

        return server

    yield start

    for server in servers:
        server.stop()
