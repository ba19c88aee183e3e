from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "cexgate.log"
LOG_FILE_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Loggers that drown the gateway's own lines at INFO
_CHATTY_LOGGERS = ("aiohttp.access", "ccxt.base.exchange")


def _resolve_level(environ: dict[str, str] | None = None) -> int:
    env = os.environ if environ is None else environ
    name = env.get("CEXGATE_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _attach(root: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)


def configure_logging(log_dir: Path | None = None) -> None:
    """Log to stderr and, when ``log_dir`` is given, to a rotating ``cexgate.log``.

    Safe to call more than once: previously installed root handlers are
    closed and replaced.
    """
    level = _resolve_level()
    root = logging.getLogger()
    root.setLevel(level)

    for stale in list(root.handlers):
        root.removeHandler(stale)
        stale.close()

    _attach(root, logging.StreamHandler(), level)

    if log_dir is not None:
        target = Path(log_dir)
        target.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            target / LOG_FILE_NAME,
            maxBytes=LOG_FILE_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        _attach(root, rotating, level)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
