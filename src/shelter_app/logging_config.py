"""Logging configuration for the shelter client."""
import logging
import sys
import os


class ColorFormatter(logging.Formatter):
    """Color-coded formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(level=None):
    """Configure console logging for the upload client.

    The level comes from the argument, then LOG_LEVEL, then INFO. Colors are
    used only on a terminal and can be turned off with LOG_COLORS=false.
    """
    log_level_str = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    use_colors = os.getenv('LOG_COLORS', 'true').lower() in ('true', '1', 'yes')
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    if use_colors and sys.stderr.isatty():
        console_handler.setFormatter(ColorFormatter('%(asctime)s %(levelname)s %(name)-25s %(message)s'))
    else:
        console_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)-8s %(name)-25s %(message)s'))

    logger.handlers.clear()
    logger.addHandler(console_handler)

    # Third-party noise
    logging.getLogger('PIL').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('libcloud').setLevel(logging.WARNING)

    logger.debug(f"Client logging initialized (level: {log_level_str})")
    return logger
