"""
Logging Configuration

Every module logs through the standard library under the
``url_shortener`` namespace. This module wires those loggers to:

- a console handler with a ``[timestamp] [LEVEL] [logger] message`` format
- an optional remote sink that posts each record as JSON over HTTP

The remote sink sits behind a QueueHandler/QueueListener pair so request
handling never waits on the network.
"""

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener
from typing import Optional

import httpx

from url_shortener.core.setting import Settings

LOGGER_NAMESPACE = "url_shortener"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

_listener: Optional[QueueListener] = None


class RemoteLogHandler(logging.Handler):
    """
    Send log records to an external HTTP collector.

    Payload: {"stack": "backend", "level": ..., "package": ..., "message": ...}
    Failures are reported through handleError and never propagate.
    """

    def __init__(self, url: str, timeout: float = 2.0, stack: str = "backend"):
        super().__init__()
        self.url = url
        self.stack = stack
        self.client = httpx.Client(timeout=timeout)

    def build_payload(self, record: logging.LogRecord) -> dict:
        package = record.name
        if package.startswith(LOGGER_NAMESPACE + "."):
            package = package[len(LOGGER_NAMESPACE) + 1:]
        return {
            "stack": self.stack,
            "level": record.levelname.lower(),
            "package": package,
            "message": record.getMessage(),
        }

    def emit(self, record: logging.LogRecord) -> None:
        try:
            response = self.client.post(self.url, json=self.build_payload(record))
            response.raise_for_status()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self.client.close()
        super().close()


def configure_logging(settings: Settings) -> logging.Logger:
    """
    Configure the package logger from settings.

    Safe to call more than once: handlers installed by a previous call are
    replaced, and a running remote listener is stopped first.
    """
    global _listener

    shutdown_logging()

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(settings.LOG_LEVEL.upper())
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console)

    if settings.LOG_REMOTE_URL:
        log_queue: queue.Queue = queue.Queue(-1)
        remote = RemoteLogHandler(settings.LOG_REMOTE_URL, timeout=settings.LOG_REMOTE_TIMEOUT)
        _listener = QueueListener(log_queue, remote)
        _listener.start()
        logger.addHandler(QueueHandler(log_queue))

    logger.propagate = False
    return logger


def shutdown_logging() -> None:
    """Flush and stop the remote sink, if one is running."""
    global _listener

    if _listener is not None:
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
        _listener = None
