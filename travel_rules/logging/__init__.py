"""
Logging infrastructure for travel-rules.

Thin configuration layer over loguru.
"""

from .logger import (
    TravelRulesLogger,
    get_logger,
    get_logger_instance,
    initialize_logging,
)

__all__ = [
    "TravelRulesLogger",
    "get_logger",
    "get_logger_instance",
    "initialize_logging",
]
