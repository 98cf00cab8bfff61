"""Structured logging for the aggregator.

Log records go to stderr so that stdout carries nothing but command output.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any, TextIO

import structlog

CONSOLE_FORMAT = "%(asctime)s [%(levelname)8s] %(name)s: %(message)s"
APP_LOG_MAX_BYTES = 10 * 1024 * 1024
ERROR_LOG_MAX_BYTES = 5 * 1024 * 1024

# Loggers that report every upstream request at INFO
CHATTY_LOGGERS = ("httpx", "httpcore")


class LoggingService:
    """Configures structlog on top of the stdlib root logger."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Path | None = None,
        stream: TextIO | None = None,
    ) -> None:
        """Initialize the logging service.

        Args:
            log_level: Minimum level captured
            log_dir: Directory for rotating ``app.log``/``error.log`` files
            stream: Console stream, stderr when omitted
        """
        self.log_level = log_level.upper()
        self.log_dir = log_dir
        self.stream = stream
        self.is_development = os.getenv("ENVIRONMENT", "development") == "development"

    @property
    def renders_json(self) -> bool:
        """JSON lines in production or whenever logs are written to files."""
        return not self.is_development or self.log_dir is not None

    def configure(self) -> None:
        level = getattr(logging, self.log_level, logging.INFO)

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(level)
        root_logger.addHandler(self._console_handler(level))
        if self.log_dir is not None:
            for handler in self._file_handlers(level):
                root_logger.addHandler(handler)

        for name in CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

        renderer: Any = (
            structlog.processors.JSONRenderer()
            if self.renders_json
            else structlog.dev.ConsoleRenderer(colors=False)
        )
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _console_handler(self, level: int) -> logging.Handler:
        handler = logging.StreamHandler(self.stream or sys.stderr)
        handler.setLevel(level)
        if self.renders_json:
            handler.setFormatter(logging.Formatter("%(message)s"))
        else:
            handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        return handler

    def _file_handlers(self, level: int) -> list[logging.Handler]:
        assert self.log_dir is not None
        self.log_dir.mkdir(parents=True, exist_ok=True)

        app_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "app.log",
            maxBytes=APP_LOG_MAX_BYTES,
            backupCount=5,
            encoding="utf-8",
        )
        app_handler.setLevel(level)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "error.log",
            maxBytes=ERROR_LOG_MAX_BYTES,
            backupCount=3,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)

        plain = logging.Formatter("%(message)s")
        for handler in (app_handler, error_handler):
            handler.setFormatter(plain)
        return [app_handler, error_handler]


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    environment: str | None = None,
) -> LoggingService:
    """Configure process-wide logging and return the service that did it."""
    if environment:
        os.environ["ENVIRONMENT"] = environment

    service = LoggingService(log_level=log_level, log_dir=log_dir)
    service.configure()
    return service
