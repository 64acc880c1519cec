from unittest import mock
import logging

import pytest

from rmifs.__main__ import main
import rmifs.constants as constants
from rmifs.errors import RMIException
from rmifs.logger import log


@pytest.fixture
def config(tmp_path):
    return f"--config={tmp_path / 'config'}"


def test_no_args():
    with pytest.raises(SystemExit):
        main([])


def test_debug_flag_set(config):
    with mock.patch("rmifs.__main__.NamingServer"), mock.patch("rmifs.__main__._wait"):
        with pytest.raises(SystemExit):
            main([config, "--debug", "naming"])

        assert log.getEffectiveLevel() == logging.DEBUG


def test_debug_flag_not_set(config):
    with mock.patch("rmifs.__main__.NamingServer"), mock.patch("rmifs.__main__._wait"):
        with pytest.raises(SystemExit):
            main([config, "naming"])

        assert log.getEffectiveLevel() == logging.INFO


def test_naming_server(config):
    with mock.patch("rmifs.__main__.NamingServer") as mock_server:
        with mock.patch("rmifs.__main__._wait") as mock_wait:
            with pytest.raises(SystemExit) as e:
                main([config, "naming"])

    assert e.value.code == 0
    assert mock_server().start.called
    assert mock_wait.called
    assert mock_server().stop.called


def test_interrupted(config, caplog):
    with mock.patch("rmifs.__main__.NamingServer") as mock_server:
        with mock.patch("rmifs.__main__._wait", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as e:
                main([config, "naming"])

    assert e.value.code == 0
    assert mock_server().stop.called
    assert "interrupted" in caplog.text


def test_storage_server(config):
    with mock.patch("rmifs.__main__.StorageServer") as mock_server:
        with mock.patch("rmifs.__main__.registration") as mock_registration:
            with mock.patch("rmifs.__main__._wait"):
                with pytest.raises(SystemExit) as e:
                    main(
                        [
                            config,
                            "storage",
                            "--hostname=storage.example.org",
                            "--naming-host=naming.example.org",
                            "/srv/files",
                        ]
                    )

    assert e.value.code == 0

    mock_server.assert_called_with("/srv/files")
    mock_registration.assert_called_once_with(
        "naming.example.org", constants.REGISTRATION_PORT
    )
    mock_server().start.assert_called_once_with(
        "storage.example.org", mock_registration()
    )
    assert mock_server().stop.called


def test_storage_server_config(tmp_path):
    (tmp_path / "config").write_text(
        """
        [naming]
        registration_port = 7001

        [storage]
        hostname = storage.example.org
        naming_host = naming.example.org
        """
    )

    with mock.patch("rmifs.__main__.StorageServer") as mock_server:
        with mock.patch("rmifs.__main__.registration") as mock_registration:
            with mock.patch("rmifs.__main__._wait"):
                with pytest.raises(SystemExit):
                    main([f"--config={tmp_path / 'config'}", "storage", "/srv/files"])

    mock_registration.assert_called_once_with("naming.example.org", 7001)
    mock_server().start.assert_called_once_with(
        "storage.example.org", mock_registration()
    )


def test_timeouts_from_config(tmp_path):
    (tmp_path / "config").write_text(
        """
        [rmi]
        timeout = 1000
        """
    )

    with mock.patch("rmifs.__main__.NamingServer"), mock.patch("rmifs.__main__._wait"):
        with mock.patch("rmifs.__main__.set_default_timeouts") as mock_timeouts:
            with pytest.raises(SystemExit):
                main([f"--config={tmp_path / 'config'}", "naming"])

    mock_timeouts.assert_called_once_with(1000, constants.CONNECT_TIMEOUT_MS)


def test_server_failure(config, caplog):
    with mock.patch("rmifs.__main__.NamingServer") as mock_server:
        mock_server().start.side_effect = RMIException("address in use")

        with pytest.raises(SystemExit) as e:
            main([config, "naming"])

    assert e.value.code == constants.RMIFS_ERROR_CODE
    assert "failed to run naming server: address in use" in caplog.text
