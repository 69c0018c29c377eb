from .logging_config import logger, setup_logging

__all__ = ["logger", "setup_logging"]
