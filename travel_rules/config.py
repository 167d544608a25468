"""
Configuration management for travel-rules.

This module provides centralized configuration for all system components:
- Rule store connection and retry settings
- Search limits and candidate over-fetching
- Pagination and cache lifetimes
- Logging settings
"""

import os
from pathlib import Path
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()


class DatabaseConfig(BaseModel):
    """Configuration for the rule store."""

    url: str = Field(
        default="sqlite:///travel_rules.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")
    max_retries: int = Field(
        default=3, ge=1, description="Attempts for transient database errors"
    )
    retry_base_delay: float = Field(
        default=1.0, ge=0.0, description="Initial backoff delay in seconds"
    )


class SearchConfig(BaseModel):
    """Configuration for rule search."""

    default_limit: int = Field(
        default=50, gt=0, description="Maximum search results returned"
    )
    overfetch_factor: int = Field(
        default=2,
        ge=1,
        description="Candidates requested from the store per result slot",
    )
    min_query_length: int = Field(
        default=3, ge=1, description="Shortest query the bot will search for"
    )


class PaginationConfig(BaseModel):
    """Configuration for paged rule lists."""

    rules_per_page: int = Field(default=5, gt=0, description="Rules per page")


class CacheConfig(BaseModel):
    """Configuration for the in-memory TTL cache."""

    default_ttl: int = Field(
        default=3600, ge=0, description="Default entry lifetime in seconds"
    )
    cleanup_interval_minutes: float = Field(
        default=10.0, gt=0.0, description="Minutes between expiry sweeps"
    )
    popular_rules_ttl: int = Field(
        default=3600, ge=0, description="Lifetime of cached popular rules"
    )
    rules_list_ttl: int = Field(
        default=1800, ge=0, description="Lifetime of cached country/category lists"
    )

    @property
    def cleanup_interval_seconds(self) -> float:
        """Sweep interval in seconds."""
        return self.cleanup_interval_minutes * 60


class LogConfig(BaseModel):
    """Configuration for logging system."""

    level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
        "<level>{message}</level>",
        description="Log message format",
    )
    rotation: str = Field(default="20 MB", description="Log file rotation size")
    retention: str = Field(default="14 days", description="Log file retention period")
    log_dir: str = Field(default="logs", description="Directory for log files")
    enable_file_logging: bool = Field(
        default=True, description="Whether to enable file logging"
    )
    enable_console_logging: bool = Field(
        default=True, description="Whether to enable console logging"
    )

    @property
    def log_path(self) -> Path:
        """Get absolute path to the log directory."""
        return Path(self.log_dir).resolve()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Main configuration object for travel-rules."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls(
            database=DatabaseConfig(
                url=os.getenv("DATABASE_URL", "sqlite:///travel_rules.db"),
                echo=_env_bool("DATABASE_ECHO"),
                max_retries=int(os.getenv("DB_MAX_RETRIES", "3")),
                retry_base_delay=float(os.getenv("DB_RETRY_BASE_DELAY", "1.0")),
            ),
            search=SearchConfig(
                default_limit=int(os.getenv("SEARCH_DEFAULT_LIMIT", "50")),
                overfetch_factor=int(os.getenv("SEARCH_OVERFETCH_FACTOR", "2")),
                min_query_length=int(os.getenv("SEARCH_MIN_QUERY_LENGTH", "3")),
            ),
            pagination=PaginationConfig(
                rules_per_page=int(os.getenv("RULES_PER_PAGE", "5")),
            ),
            cache=CacheConfig(
                default_ttl=int(os.getenv("CACHE_DEFAULT_TTL", "3600")),
                cleanup_interval_minutes=float(
                    os.getenv("CACHE_CLEANUP_INTERVAL_MINUTES", "10")
                ),
                popular_rules_ttl=int(os.getenv("POPULAR_RULES_TTL", "3600")),
                rules_list_ttl=int(os.getenv("RULES_LIST_TTL", "1800")),
            ),
            logging=LogConfig(
                level=cast(
                    Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                    os.getenv("LOG_LEVEL", "INFO"),
                ),
                log_dir=os.getenv("LOG_DIR", "logs"),
            ),
        )


# Global configuration instance
# This can be imported throughout the codebase
config = Config.from_env()
