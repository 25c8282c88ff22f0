"""Logging setup for the amendpkg CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route amendpkg log records to stderr through rich.

    INFO by default, DEBUG with ``verbose``, WARNING with ``quiet``.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    pkg_logger = logging.getLogger("amendpkg")
    pkg_logger.handlers = [handler]
    pkg_logger.setLevel(level)
