"""
core/logging.py
───────────────
Process-wide logging setup shared by the API and the CLI script.

Every module logs through ``logging.getLogger(__name__)``; this module
only decides where those records go.
"""

import logging
import sys

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(debug: bool = False) -> None:
    """
    Send log records to stdout with a single formatted handler.

    Safe to call more than once; a second call only adjusts the level.

    Args:
        debug: Log at DEBUG instead of INFO.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    if not any(getattr(h, "_rrg_handler", False) for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
        handler._rrg_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    # Request lines from the HTTP client would echo auth headers at DEBUG.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
