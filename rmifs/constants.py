"""Module defining various global constants."""

# rmifs version
VERSION = "1.0.0"

# Well-known ports of the naming server interfaces
SERVICE_PORT = 6000
REGISTRATION_PORT = 6001

# Special exit code for when rmifs itself fails.
RMIFS_ERROR_CODE = 254

# Default stub timeouts in milliseconds (-1 waits forever).
CALL_TIMEOUT_MS = -1
CONNECT_TIMEOUT_MS = 5000

# Timeout of calls from the naming server to the Command interface of storage servers,
# which are made while the directory tree is locked.
COMMAND_TIMEOUT_MS = 30000

# Size of the chunks pulled from another storage server when copying a file.
COPY_CHUNK_SIZE = 1024 * 1024
