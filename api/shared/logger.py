"""
Centralized logging for the statgrid webapp backend.

Structured, level-based logging on top of Python's built-in logging module.
The grid layer logs operation failures and validation vetoes here instead of
raising them back into the grid widget.

Usage:
    from api.shared.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Server starting on port %d", port)
    logger.warning("Rejected %d edits in column %d", count, col)
    logger.error("Operation %s failed: %s", op_id, err)
"""

import logging
import sys

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for the webapp backend.

    Call once at startup (main.py). Subsequent calls are no-ops.
    """
    global _configured
    if _configured:
        return

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger scoped to the webapp namespace.

    Args:
        name: Module name (typically ``__name__``).
    """
    return logging.getLogger(name)
