"""
Logging configuration. All application loggers live under the "roman" namespace.
"""
import logging
import sys

from roman.app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Client libraries that log every request/page at INFO or DEBUG
_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore", "openai", "pdfminer")


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure stdout logging once. Returns the "roman" logger."""
    level_val = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=level_val,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level_val, logging.WARNING))
    return logging.getLogger("roman")


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, e.g. get_logger("services.blob_storage") -> roman.services.blob_storage."""
    return logging.getLogger(f"roman.{name}")
