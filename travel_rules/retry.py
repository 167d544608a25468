"""
Retry logic with exponential backoff for rule store operations.

Handles dropped connections and other transient database errors.
"""

import functools
import time
from typing import Any, Callable, TypeVar, cast

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from travel_rules.errors import DatabaseError, classify_database_error, should_retry

T = TypeVar("T")


def with_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    operation_name: str = "database_operation",
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for exponential backoff retry of database operations.

    The wrapped call is attempted up to ``max_retries`` times. Delays grow
    as base_delay, base_delay * 2, base_delay * 4, ... capped at max_delay.
    Errors are classified first; only retryable ones are repeated and the
    classified error is raised once attempts run out.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Delay before the second attempt, in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential growth
        operation_name: Name used in log messages

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0

            while True:
                attempt += 1
                try:
                    result = func(*args, **kwargs)
                    if attempt > 1:
                        logger.info(
                            f"{operation_name} succeeded after retry "
                            f"(attempt {attempt}/{max_retries})"
                        )
                    return result

                except (SQLAlchemyError, DatabaseError) as e:
                    error = classify_database_error(e)

                    if not should_retry(error) or attempt >= max_retries:
                        logger.error(
                            f"{operation_name} failed on attempt "
                            f"{attempt}/{max_retries}: {error.message}"
                        )
                        if error is e:
                            raise
                        raise error from e

                    delay = min(
                        base_delay * (exponential_base ** (attempt - 1)), max_delay
                    )
                    logger.warning(
                        f"{operation_name} failed ({error.message}), retrying in "
                        f"{delay}s (attempt {attempt}/{max_retries})"
                    )
                    time.sleep(delay)

        return cast(Callable[..., T], wrapper)

    return decorator
