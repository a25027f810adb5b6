#mock_abis/logger.py
import logging
import sys
from logging.handlers import RotatingFileHandler

from mock_abis.config import Config


def setup_logger(name: str, level: int = Config.LOGGING_LEVEL, log_file: str = Config.LOG_FILE) -> logging.Logger:
    """Setup centralized logger"""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.hasHandlers():
        return logger

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler with rotation
    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=10*1024*1024, backupCount=5)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Global logger instance
logger = setup_logger("mock-abis", Config.LOGGING_LEVEL)
