"""
Infrastructure module - logging and common utilities.
"""

from .logging_config import setup_logging, DailyRotatingFileHandler

__all__ = [
    "setup_logging",
    "DailyRotatingFileHandler",
]
