"""
Logging infrastructure for travel-rules.

Provides structured logging with:
- Component-specific context (store, search, cache, cli)
- Console output plus rotating log files
- A separate error log
"""

import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from travel_rules.config import LogConfig


class TravelRulesLogger:
    """
    Configures loguru sinks for the application.

    Features:
    - Component-bound loggers via ``extra[component]``
    - Log rotation and retention
    - Errors mirrored to their own file
    """

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        rotation: str = "20 MB",
        retention: str = "14 days",
        level: str = "INFO",
        format_string: Optional[str] = None,
        enable_file_logging: bool = True,
        enable_console_logging: bool = True,
    ):
        """
        Initialize the logger.

        Args:
            log_dir: Directory for log files
            rotation: When to rotate log files
            retention: How long to keep old logs
            level: Default log level
            format_string: Custom format string
            enable_file_logging: Whether to log to files
            enable_console_logging: Whether to log to console
        """
        self.log_dir = log_dir or Path("logs")
        self.rotation = rotation
        self.retention = retention
        self.level = level

        self.format_string = format_string or (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        # Remove default handler
        logger.remove()
        logger.configure(extra={"component": "system"})

        if enable_console_logging:
            logger.add(
                sys.stderr,
                format=self.format_string,
                level=level,
                colorize=True,
            )

        if enable_file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._add_file_handlers()

        self.logger = logger.bind(component="system")

    def _add_file_handlers(self) -> None:
        """Add the main and error log files."""
        logger.add(
            self.log_dir / "travel_rules.log",
            format=self.format_string,
            level=self.level,
            rotation=self.rotation,
            retention=self.retention,
            compression="zip",
        )

        # Machine-readable errors for later inspection
        logger.add(
            self.log_dir / "errors.log",
            level="ERROR",
            rotation=self.rotation,
            retention=self.retention,
            serialize=True,
        )

    def get_logger(self, component: str) -> Any:
        """
        Get a logger bound to a specific component.

        Args:
            component: Component name (e.g., "store", "search", "cache")

        Returns:
            Logger instance bound to the component
        """
        return logger.bind(component=component)


def get_logger(component: str = "system") -> Any:
    """
    Get a component-specific logger.

    Example:
        >>> log = get_logger("search")
        >>> log.info("Search complete", results=3)
    """
    return logger.bind(component=component)


# Global logger instance
_app_logger: Optional[TravelRulesLogger] = None


def initialize_logging(
    log_config: Optional[LogConfig] = None, **overrides: Any
) -> TravelRulesLogger:
    """
    Initialize the logging system.

    This should be called once at application startup.

    Args:
        log_config: Logging section of the configuration (defaults apply if None)
        **overrides: Keyword arguments passed straight to TravelRulesLogger

    Returns:
        Configured TravelRulesLogger instance
    """
    global _app_logger
    log_config = log_config or LogConfig()

    options = {
        "log_dir": Path(log_config.log_dir),
        "rotation": log_config.rotation,
        "retention": log_config.retention,
        "level": log_config.level,
        "enable_file_logging": log_config.enable_file_logging,
        "enable_console_logging": log_config.enable_console_logging,
    }
    options.update(overrides)

    _app_logger = TravelRulesLogger(**options)
    return _app_logger


def get_logger_instance() -> Optional[TravelRulesLogger]:
    """Get the global logger instance."""
    return _app_logger
