# =============================================================================
# leafguard_core/logging/config.py
# Logging Configuration for the LeafGuard client
# =============================================================================

import logging
import re
import sys
import time
from pathlib import Path
from datetime import datetime
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_DIR = Path("logs")

# Libraries whose INFO chatter drowns out retry and auth messages
NOISY_LOGGERS = ("urllib3", "requests")

_SECRET_PATTERNS = [
    (re.compile(r"(Bearer\s+)[^\s'\",]+"), r"\1***"),
    (re.compile(r"(['\"]?(?:password|token)['\"]?\s*[:=]\s*['\"]?)[^\s'\",}]+", re.I), r"\1***"),
]


class RedactSecretsFilter(logging.Filter):
    """Masks bearer tokens and password/token values in formatted messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern, replacement in _SECRET_PATTERNS:
            redacted = pattern.sub(replacement, redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_to_file: bool = False,
    log_filename: Optional[str] = None,
) -> None:
    """
    Configure logging for an application embedding the client.

    Args:
        level: An int or a name such as "DEBUG" (ClientConfig.log_level);
            unknown names fall back to INFO
        log_to_file: Also write to LOG_DIR
        log_filename: Defaults to leafguard_YYYY-MM-DD.log
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_to_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        if log_filename is None:
            log_filename = f"leafguard_{datetime.now().strftime('%Y-%m-%d')}.log"
        handlers.append(logging.FileHandler(LOG_DIR / log_filename))

    redact = RedactSecretsFilter()
    for handler in handlers:
        handler.addFilter(redact)

    logging.basicConfig(
        level=_resolve_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("leafguard_core").info("Logging initialized")


def get_logger(name: str) -> logging.Logger:
    """
    Usage:
        from leafguard_core.logging import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


class LogContext:
    """
    Times an operation and logs how it ended.

    A recoverable LeafGuardError is logged as a warning; anything else as
    an error.

    Usage:
        with LogContext(logger, "Detecting disease"):
            client.detect_disease(image)
        # "Detecting disease... started"
        # "Detecting disease... completed (0.84s)"
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self._started: Optional[float] = None

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._started if self._started is not None else 0.0

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.info(f"{self.operation}... started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.logger.info(f"{self.operation}... completed ({self.elapsed:.2f}s)")
            return False

        log = self.logger.warning if getattr(exc_val, "recoverable", False) else self.logger.error
        log(f"{self.operation}... failed ({self.elapsed:.2f}s): {exc_val}")
        return False
