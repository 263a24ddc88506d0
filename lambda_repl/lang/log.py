"""Logging setup for lambda-repl. User-facing errors and warnings go through ErrorHandler; logging is for diagnostics
(what got defined, loaded and evaluated) and is silent unless enabled with --verbose.
"""

import logging
import sys

from termcolor import colored

FORMAT = "%(levelname)s\t%(name)s: %(message)s"
LOGGERS = ["lambda_repl", "__main__"]


class ColorFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "cyan",
        logging.INFO: "green",
        logging.WARNING: "yellow",
        logging.ERROR: "red",
        logging.CRITICAL: "light_red",
    }

    def format(self, record):
        levelname = record.levelname
        color = self.LEVEL_COLORS.get(record.levelno)
        if color:
            record.levelname = colored(levelname, color, attrs=["bold"])
        try:
            return super().format(record)
        finally:
            record.levelname = levelname  # other handlers should see the plain name


def setup_logging(level=logging.WARNING, format=FORMAT, stream=None):
    """Sends lambda_repl logs to stream (stderr by default), with colored level names on a terminal."""
    stream = stream if stream is not None else sys.stderr

    handler = logging.StreamHandler(stream)
    if hasattr(stream, "isatty") and stream.isatty():
        handler.setFormatter(ColorFormatter(format))
    else:
        handler.setFormatter(logging.Formatter(format))

    for name in LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
