"""JSON logging configuration for certificate provisioning."""

import logging

from pythonjsonlogger.json import JsonFormatter

LOGGER_NAME = "dynamic_certs"
DEFAULT_LEVEL = "INFO"

ALLOWED_FIELDS = frozenset({"timestamp", "level", "message", "exc_info", "funcName", "lineno"})


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter that emits only the fields in ``ALLOWED_FIELDS``.

    ``levelname`` is renamed to ``level``. Command output is logged as the
    message body, so stdout/stderr of a failed openssl or cockroach call stay
    in one JSON record.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        for key in [key for key in log_record if key not in ALLOWED_FIELDS]:
            log_record.pop(key)


def _setup_logger(level: str = DEFAULT_LEVEL) -> logging.Logger:
    """Return the package logger with a single JSON stream handler.

    Args:
        level: Logging level name, e.g. ``DEBUG``

    Returns:
        Configured logger; repeated calls only update the level
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
            timestamp=True,
        )
    )
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def configure_logging(level: str) -> logging.Logger:
    """Apply the configured ``LOG_LEVEL`` to the shared logger."""
    return _setup_logger(level)


# Shared logger; the entry point calls configure_logging once config is resolved
LOGGER = _setup_logger()
