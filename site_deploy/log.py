"""
Logging setup for the deployment scripts.

Messages go through four levels: info, success, warning and error. ``SUCCESS``
sits between INFO and WARNING so it shows up at the default level.
An optional transcript file captures the same lines for the whole run.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

LOG_FORMAT: str = "%(asctime)s - %(levelname)s - %(message)s"
SUCCESS: int = 25

logging.addLevelName(SUCCESS, "SUCCESS")

logger = logging.getLogger("site_deploy")


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging the same way for every entry point."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def log_success(message: str, *args, log: Optional[logging.Logger] = None) -> None:
    """Emit a message at the SUCCESS level."""
    (log or logger).log(SUCCESS, message, *args)


@contextmanager
def transcript(path: Optional[str]) -> Iterator[Optional[logging.FileHandler]]:
    """
    Copy every ``site_deploy`` log record into ``path`` while the block runs.

    The handler is detached and closed once when the block exits, whether it
    returns normally or raises. With ``path`` set to None this is a no-op.
    Only log records are captured; the yielded handler lets callers copy
    plain printed output (the summary banner) into the same file.
    """
    if not path:
        yield None
        return

    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.debug(f"Writing transcript to {path}")
    try:
        yield handler
    finally:
        logger.removeHandler(handler)
        handler.close()
