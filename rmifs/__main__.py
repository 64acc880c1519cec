"""
Module implementing the command-line interface that launches rmifs servers.

A filesystem consists of one naming server and any number of storage servers. The
naming server is started first, after which storage servers are started with the
directory they host and the host of the naming server to register with.
"""

import logging
import os
import sys
import threading
from typing import List, NoReturn, Optional

import rmifs.constants as constants
from rmifs.config import Config
from rmifs.logger import log
from rmifs.naming import NamingServer
from rmifs.naming.stubs import registration
from rmifs.rmi import set_default_timeouts
from rmifs.storage import StorageServer
from .args import Arguments


def main(arguments: Optional[List[str]] = None) -> NoReturn:
    """
    Run either a naming server or a storage server with the given arguments.

    Defaults to parsing command-line arguments from sys.argv if none are specified.
    """
    # Parse command-line arguments.
    args = Arguments.parse(arguments)

    # Configure debug logging.
    if args.debug:
        log.setLevel(logging.DEBUG)
    else:
        log.setLevel(logging.INFO)

    config = Config.load(os.path.expanduser(args.config))
    set_default_timeouts(config.rmi.timeout, config.rmi.connect_timeout)

    try:
        if args.role == "naming":
            _run_naming(config)
        else:
            _run_storage(args, config)

        exit_code = 0
    except Exception as e:
        log.error(f"failed to run {args.role} server: {e}")
        exit_code = constants.RMIFS_ERROR_CODE

    sys.exit(exit_code)


def _run_naming(config: Config) -> None:
    server = NamingServer(config.naming)
    server.start()

    _serve_until_interrupted(server)


def _run_storage(args: Arguments, config: Config) -> None:
    hostname = args.hostname or config.storage.hostname
    naming_host = args.naming_host or config.storage.naming_host

    server = StorageServer(args.root)
    server.start(
        hostname, registration(naming_host, config.naming.registration_port)
    )

    _serve_until_interrupted(server)


def _serve_until_interrupted(server) -> None:
    """Keep the server running until Ctrl-C is pressed."""
    try:
        _wait()
    except KeyboardInterrupt:
        log.info("interrupted, shutting down")
    finally:
        server.stop()


def _wait() -> None:
    threading.Event().wait()


if __name__ == "__main__":
    main()
