"""Root logger setup for the orgsync command line."""

from __future__ import annotations

import logging
from typing import Final

from .env import optional_env_var
from .errors import ConfigurationError

LOG_LEVEL_ENV: Final[str] = "ORGSYNC_LOG_LEVEL"
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_log_level() -> int:
    """Level named by ``ORGSYNC_LOG_LEVEL`` (e.g. ``debug``), INFO when unset."""

    name = optional_env_var(LOG_LEVEL_ENV)
    if not name:
        return logging.INFO
    level = logging.getLevelNamesMapping().get(name.upper())
    if level is None:
        raise ConfigurationError(f"Invalid {LOG_LEVEL_ENV} {name!r}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger; ``level`` defaults to :func:`get_log_level`."""

    logging.basicConfig(
        level=get_log_level() if level is None else level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
