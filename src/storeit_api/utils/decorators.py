"""Decorator utilities for cross-cutting concerns."""
import functools
import logging
import time
from typing import Any, Callable, Optional, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def log_execution_time(func: F) -> F:
    """Decorator to log how long a service operation took.

    Args:
        func: The function to decorate

    Returns:
        Decorated function that logs its duration in milliseconds, tagged
        with the operation name, whether it succeeded or raised
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                f"{func.__qualname__} failed after {duration_ms:.1f}ms: {str(e)}",
                extra={"event": "operation_failed", "operation": func.__qualname__, "duration_ms": duration_ms},
            )
            raise
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"{func.__qualname__} completed in {duration_ms:.1f}ms",
            extra={"event": "operation_completed", "operation": func.__qualname__, "duration_ms": duration_ms},
        )
        return result
    return cast(F, wrapper)


def retry(max_attempts: int = 3, delay: float = 0.2, backoff: float = 2.0,
          exceptions: tuple = (Exception,), logger_name: Optional[str] = None):
    """Decorator for retrying transient blob-store failures with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts, including the first
        delay: Initial delay between attempts in seconds
        backoff: Multiplier applied to the delay after each failed attempt
        exceptions: Tuple of exceptions that trigger another attempt
        logger_name: Optional logger name (defaults to module logger)

    Returns:
        Decorator function
    """
    retry_logger = logging.getLogger(logger_name) if logger_name else logger

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        retry_logger.error(f"All {max_attempts} attempts failed for {func.__name__}: {str(e)}")
                        raise
                    retry_logger.warning(
                        f"Attempt {attempt}/{max_attempts} for {func.__name__} failed: {str(e)}. "
                        f"Retrying in {current_delay:.2f}s"
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff

        return cast(F, wrapper)

    return decorator
