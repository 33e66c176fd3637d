import os
import logging

LEVELS = [logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]

ENV_VAR = "DOTR_LOG"


def level_for(verbosity: int) -> int:
    """Maps the number of `-v` flags to a logging level"""
    return LEVELS[max(0, min(verbosity, len(LEVELS) - 1))]


def configure_logging(verbosity: int = 0, force: bool = False) -> None:
    """
    Sets up the root logger for the command line.

    Parameters
    ----------
    verbosity : int
        Number of `-v` flags, ignored when `DOTR_LOG` holds a level name such as `debug`
    force : bool
        Replace handlers installed by an earlier call
    """

    level = level_for(verbosity)
    env_level = logging.getLevelName(os.environ.get(ENV_VAR, "").upper())
    if isinstance(env_level, int):
        level = env_level

    logging.basicConfig(
        level=level,
        format="%(levelname)s [%(name)s] %(message)s",
        force=force,
    )
