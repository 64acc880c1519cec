"""Module defining the command-line arguments and providing a parser for them."""

from __future__ import annotations

import argparse
from typing import List, Optional

from rmifs.constants import VERSION


class Arguments(argparse.Namespace):
    """Parsed command-line arguments."""

    role: str

    config: str
    debug: bool

    # Storage server only
    root: str
    hostname: Optional[str]
    naming_host: Optional[str]

    @classmethod
    def parse(cls, args: Optional[List[str]] = None) -> Arguments:
        """
        Parse command-line arguments from the given list of strings.

        Defaults to sys.argv if none are specified.
        """
        return cls._get_parser().parse_args(args, namespace=cls())

    @classmethod
    def _get_parser(cls) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Run a naming server or storage server of rmifs.",
            usage="rmifs [option...] {naming,storage} ...",
        )

        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {VERSION}",
            help="show the program version",
        )

        # Path to (optional) config file
        parser.add_argument(
            "--config",
            type=str,
            help="path to config file (default is ~/.rmifs/config)",
            default="~/.rmifs/config",
        )

        # Enable debug output for development
        parser.add_argument(
            "--debug", action="store_true", help="enable debug information"
        )

        roles = parser.add_subparsers(dest="role", metavar="role")
        roles.required = True

        roles.add_parser("naming", help="run the naming server")

        storage = roles.add_parser("storage", help="run a storage server")
        storage.add_argument("root", type=str, help="directory with the hosted files")
        storage.add_argument(
            "--hostname",
            type=str,
            help="externally routable name of this machine given to clients",
        )
        storage.add_argument(
            "--naming-host", type=str, help="host of the naming server to register with"
        )

        return parser
