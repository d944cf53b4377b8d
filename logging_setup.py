"""Console logging for the export command line."""

from __future__ import annotations

import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging with a single console handler.

    Safe to call multiple times (won't double-add handlers).
    """

    root = logging.getLogger()
    if root.handlers:
        return

    resolved = logging.getLevelName((level or "INFO").upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    console = logging.StreamHandler()
    console.setLevel(resolved)
    console.setFormatter(formatter)
    logging.basicConfig(level=resolved, handlers=[console])

    # fpdf2 and PIL are chatty at DEBUG.
    logging.getLogger("fpdf").setLevel(max(resolved, logging.INFO))
    logging.getLogger("PIL").setLevel(max(resolved, logging.INFO))
    logging.getLogger("httpx").setLevel(max(resolved, logging.WARNING))
