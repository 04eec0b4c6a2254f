import logging
import sys


def setup_logging(level: str | int = logging.INFO, name: str = "nexdata") -> logging.Logger:
    """
    Attach a console handler to the package logger and return it.
    Calling it again only updates the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent adding handlers multiple times if logger is already set up
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(console_handler)
    return logger
