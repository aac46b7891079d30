"""Logging setup for the CLI: rich handler, warnings routed into logging."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_QUIET_LOGGERS = ("pypdf", "LiteLLM", "httpx", "sentence_transformers")


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Install a RichHandler on the root logger.

    INFO by default, DEBUG with *verbose*. ``warnings.warn`` calls (e.g.
    ``TruncationWarning``) are captured and logged under ``py.warnings``.
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
