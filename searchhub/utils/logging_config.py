import logging
import sys


def setup_logging() -> logging.Logger:
    """
    Sets up logging for the indexing and search services.
    """
    logger = logging.getLogger("searchhub")
    if logger.handlers:
        return logger
    logger.setLevel(logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    info_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler.setFormatter(info_formatter)

    logger.addHandler(console_handler)
    return logger


logger = setup_logging()
