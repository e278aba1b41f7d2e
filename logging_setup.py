# logging_setup.py
import logging

import config


def setup_logging(level: str = None):
    """Configures global logging based on settings in config.py."""
    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO),
        format=config.LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
