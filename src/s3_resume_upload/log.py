import logging
import os
import sys

PACKAGE_LOGGER = "s3_resume_upload"
LOG_LEVEL_ENV = "S3_RESUME_UPLOAD_LOG_LEVEL"
_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty below WARNING, one line per request and retry.
_TRANSPORT_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")


def level_from_env(default: int = logging.INFO) -> int:
    """Read the level name from S3_RESUME_UPLOAD_LOG_LEVEL, e.g. "DEBUG"."""
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def setup_default_logging() -> None:
    """Give the package logger a stdout handler if nothing else handles it.

    Only the package logger is touched, the root logger and any handlers an
    embedding application installed are left alone.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if logger.handlers or logging.root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level_from_env())


def configure_logging(level=None, log_file=None):
    """Configure logging for the command line tool.

    Args:
        level: The logging level, defaults to S3_RESUME_UPLOAD_LOG_LEVEL or INFO
        log_file: Optional path to a log file
    """
    if level is None:
        level = level_from_env()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=_FORMAT,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    # Records now reach the root handlers, drop the fallback handler.
    package_logger.handlers.clear()
    package_logger.setLevel(level)
    transport_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
