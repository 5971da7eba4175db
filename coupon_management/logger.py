"""
One stdout handler on the "coupon_management" logger; modules log through
children of it, at the level set by LOG_LEVEL.
"""
import logging
import sys

from .config import settings

logger = logging.getLogger("coupon_management")
logger.setLevel(settings.LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(settings.LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# handled here, not again by the root logger
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """Child logger "coupon_management.<name>", or the package logger when name is empty."""
    if name:
        return logging.getLogger(f"coupon_management.{name}")
    return logger
