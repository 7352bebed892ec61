"""Configuración de logging para la CLI.

Los módulos de librería solo hacen `logging.getLogger(__name__)`; los handlers
se instalan aquí, una sola vez, desde el entrypoint.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_NAMESPACES = ("core", "adapters", "cli")


def configure_logging(verbose: bool = False, *, console: Console | None = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    for name in _NAMESPACES:
        logger = logging.getLogger(name)
        for existing in list(logger.handlers):
            if isinstance(existing, RichHandler):
                logger.removeHandler(existing)
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
