"""Logging setup for the naturalize CLI."""

from __future__ import annotations

import logging
import os

from .errors import InvalidSettingError

_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def resolve_log_level(default: int = logging.INFO) -> int:
    """Read ``LOG_LEVEL`` (a level name such as ``DEBUG``), falling back to ``default``."""

    raw = (os.getenv("LOG_LEVEL") or "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelNamesMapping().get(raw)
    if level is None:
        raise InvalidSettingError(f"LOG_LEVEL must be a logging level name, got {raw!r}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once. Pass ``force=True`` to reconfigure."""

    resolved = resolve_log_level() if level is None else level
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
