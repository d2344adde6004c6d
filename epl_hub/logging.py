"""Logging setup shared by the server, the CLI and scripts."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

APP_LOGGER = "epl_hub"

# Third-party loggers that log per frame or per request
NOISY_LOGGERS = ("websockets", "uvicorn.access", "httpx")


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Send log records to stdout and, optionally, a file.

    ``level`` applies to the application's own loggers; everything else
    logs at WARNING and above, except uvicorn's startup lines.

    Args:
        level: Level name (DEBUG, INFO, ...); unknown names mean INFO
        log_file: Optional path, appended to
    """
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger(APP_LOGGER).setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass ``__name__`` so it sits under ``epl_hub``."""
    return logging.getLogger(name)
