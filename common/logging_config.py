## common/logging_config.py`

import logging
import os

LOGGER_NAME = "voice-booking"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level=None, logfile=None):
    """Console handler on stderr (stdout belongs to the MCP stdio transport), plus LOGFILE if set."""
    if level is None:
        level = getattr(logging, os.getenv("LOGLEVEL", "INFO").upper(), logging.INFO)
    logfile = logfile or os.getenv("LOGFILE")
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    fmt = logging.Formatter(LOG_FORMAT)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(fmt)
        logger.addHandler(ch)

    if logfile and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        fh = logging.FileHandler(logfile, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        logger.addHandler(fh)
    return logger
