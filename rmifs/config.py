"""Module for configuration variables with defaults that are overridable by a file."""

from __future__ import annotations

from configparser import ConfigParser, SectionProxy
from dataclasses import dataclass, field
import socket

import rmifs.constants as constants
from rmifs.logger import log


@dataclass
class NamingConfig:
    """Configuration variables of the naming server."""

    host: str = "0.0.0.0"
    service_port: int = constants.SERVICE_PORT
    registration_port: int = constants.REGISTRATION_PORT

    # Number of get_storage() calls on a file before it is copied to another storage
    # server, 0 disables replication.
    replication_threshold: int = 0

    # Timeout in milliseconds of calls to the Command interface of storage servers
    command_timeout: int = constants.COMMAND_TIMEOUT_MS

    @staticmethod
    def load(section: SectionProxy) -> NamingConfig:
        """Load overridden variables from a section within a config file."""
        config = NamingConfig()

        config.host = section.get("host", fallback=config.host)
        config.service_port = section.getint(
            "service_port", fallback=config.service_port
        )
        config.registration_port = section.getint(
            "registration_port", fallback=config.registration_port
        )
        config.replication_threshold = section.getint(
            "replication_threshold", fallback=config.replication_threshold
        )
        config.command_timeout = section.getint(
            "command_timeout", fallback=config.command_timeout
        )

        return config


@dataclass
class StorageConfig:
    """Configuration variables of a storage server."""

    # Externally routable name carried by the stubs handed to the naming server
    hostname: str = field(default_factory=socket.getfqdn)
    naming_host: str = "127.0.0.1"

    @staticmethod
    def load(section: SectionProxy) -> StorageConfig:
        """Load overridden variables from a section within a config file."""
        config = StorageConfig()

        config.hostname = section.get("hostname", fallback=config.hostname)
        config.naming_host = section.get("naming_host", fallback=config.naming_host)

        return config


@dataclass
class RMIConfig:
    """Configuration variables of stubs, in milliseconds (-1 waits forever)."""

    timeout: int = constants.CALL_TIMEOUT_MS
    connect_timeout: int = constants.CONNECT_TIMEOUT_MS

    @staticmethod
    def load(section: SectionProxy) -> RMIConfig:
        """Load overridden variables from a section within a config file."""
        config = RMIConfig()

        config.timeout = section.getint("timeout", fallback=config.timeout)
        config.connect_timeout = section.getint(
            "connect_timeout", fallback=config.connect_timeout
        )

        return config


@dataclass
class Config:
    """Configuration variables."""

    naming: NamingConfig = field(default_factory=NamingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    rmi: RMIConfig = field(default_factory=RMIConfig)

    @staticmethod
    def load(filename: str) -> Config:
        """Load overridden configuration variables from a config file."""
        parser = ConfigParser()

        config = Config()

        try:
            with open(filename, "r") as f:
                parser.read_string(f.read(), filename)

            if "naming" in parser:
                config.naming = NamingConfig.load(parser["naming"])
            if "storage" in parser:
                config.storage = StorageConfig.load(parser["storage"])
            if "rmi" in parser:
                config.rmi = RMIConfig.load(parser["rmi"])
        except FileNotFoundError:
            log.info(f"no config file at {filename}")
        except Exception as e:
            # An unreadable config file is not considered a fatal error since we can
            # fall back to defaults.
            log.error(f"failed to read config file {filename}: {e}")
        else:
            log.info(f"loaded config: {config}")

        return config
