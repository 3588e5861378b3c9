"""
Utility modules for the Threadloom narrative core
"""

from .jsonlogic import JSONLogicEvaluator
from .logger import get_logger, setup_logging

__all__ = [
    "JSONLogicEvaluator",
    "get_logger",
    "setup_logging",
]
