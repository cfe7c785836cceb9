"""
Logging setup for StudyMate: console output plus size-rotated log files.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR = Path(__file__).parent.parent.parent / "logs"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers capped at WARNING (uvicorn itself stays at INFO)
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore", "anthropic", "PIL")


def _with_format(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def _rotating_file(filename: str, level: int) -> logging.Handler:
    LOG_DIR.mkdir(exist_ok=True)
    handler = RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    return _with_format(handler, level)


def setup_logging(
    app_name: str = "studymate",
    log_level: str = "",
    environment: str = "development",
    enable_console: bool = True,
    enable_file: bool = True,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        app_name: Prefix of the log files (``<app_name>.log`` and ``<app_name>_error.log``)
        log_level: Console level; empty means WARNING in production and DEBUG elsewhere
        environment: Application environment (development, production)
        enable_console: Whether to log to stdout
        enable_file: Whether to write rotating log files

    Returns:
        Configured root logger
    """
    if not log_level:
        log_level = "WARNING" if environment == "production" else "DEBUG"
    console_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers filter
    root_logger.handlers.clear()

    if enable_console:
        root_logger.addHandler(_with_format(logging.StreamHandler(sys.stdout), console_level))
    if enable_file:
        root_logger.addHandler(_rotating_file(f"{app_name}.log", logging.DEBUG))
        root_logger.addHandler(_rotating_file(f"{app_name}_error.log", logging.ERROR))

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class RequestLogger:
    """Logs one line per HTTP request, at a level matching its status code."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        client_ip: str | None = None,
        user_id: int | None = None,
    ) -> None:
        context = [f"ip={client_ip}" if client_ip else "", f"user={user_id}" if user_id else ""]
        suffix = " | ".join(part for part in context if part)

        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        self.logger.log(level, f"{method} {path} -> {status_code} ({duration_ms:.2f}ms) {suffix}")
