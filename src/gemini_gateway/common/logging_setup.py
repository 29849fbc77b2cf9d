"""Central logging setup for the project."""
from __future__ import annotations
import logging
import sys

# uvicorn attaches its own handlers unless started with log_config=None;
# these are reset so server and access lines share the gateway format.
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

def setup_logging(level: int | str = logging.INFO) -> None:
    """
    Send all gateway and server logs to stdout in one format.

    Args:
        level: Logging level, as a number or a name such as "DEBUG".
    """
    if isinstance(level, str):
        level = level.upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.propagate = True
        server_logger.setLevel(logging.NOTSET)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(root.level, logging.WARNING))
