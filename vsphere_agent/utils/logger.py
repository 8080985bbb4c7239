"""JSON log records on stderr; stdout is reserved for the published metric payload."""

import logging
import sys
from pythonjsonlogger import jsonlogger


LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'


def setup_logger(name: str = "vsphere_agent", level: str = "INFO", stream=None) -> logging.Logger:
    """
    Attach a JSON handler to the named logger.

    Calling it again replaces the handler rather than adding a second one.
    Component loggers created with getChild() write through this handler.

    Args:
        name: Logger name
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        stream: Destination stream, stderr by default

    Returns:
        logging.Logger: Configured logger instance

    Raises:
        ValueError: If the level name is unknown
    """
    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        raise ValueError(f"Unknown log level: {level}")

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(jsonlogger.JsonFormatter(
        LOG_FORMAT,
        timestamp=True,
        rename_fields={"levelname": "level"}
    ))

    logger = logging.getLogger(name)
    logger.setLevel(level_value)
    logger.handlers = [handler]
    logger.propagate = False
    return logger
