"""Module containing utilities for logging, along with a standard logger."""

import logging
from typing import Any, Optional

# Skeletons serve every call on its own thread, so the thread name tells which skeleton
# and which call a message belongs to.
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"


def _get_logger(name: Optional[str] = "rmifs") -> logging.Logger:
    logger = logging.getLogger(name)

    if not logger.handlers:
        stderr_output = logging.StreamHandler()
        stderr_output.setFormatter(logging.Formatter(LOG_FORMAT))

        logger.addHandler(stderr_output)

    return logger


def summarize(obj: Any, max_length: int = 255) -> str:
    """Return a stringified representation of the object up to the given length."""
    stringified_obj = str(obj)

    if len(stringified_obj) <= max_length:
        return stringified_obj
    else:
        return stringified_obj[: max_length - 3] + "..."


# Default logger
log = _get_logger()
