# src/script_src_generator/core/utils/configure_logging.py
import logging
import sys
from typing import Dict, Optional, Union

from tqdm import tqdm

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"

Level = Union[int, str, None]


class LogWithTqdm(logging.Handler):
    """
    Writes log records through `tqdm.write()` on stderr, so they do not tear
    through the per-file progress bar. stdout is reserved for the policy.
    """
    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except Exception:
            self.handleError(record)


def _to_level(level: Level, fallback: int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), fallback)
    return level if level is not None else fallback


def configure_logger(
        level: Level = "WARNING",
        silenced_loggers: Optional[Dict[str, Level]] = None,
        verbose: bool = False,
) -> None:
    """
    Installs the tqdm handler on the root logger.

    `level` comes from settings.json (debug.level); `verbose` (the --verbose flag)
    forces DEBUG for the generator's own loggers while third-party loggers listed
    in `silenced_loggers` stay at their configured level.
    """
    handler = LogWithTqdm()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else _to_level(level, logging.WARNING))

    for name, silenced_level in (silenced_loggers or {}).items():
        logging.getLogger(name).setLevel(_to_level(silenced_level, logging.CRITICAL))
