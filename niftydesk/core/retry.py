"""Retry decorator with exponential backoff for flaky upstream calls."""

import time
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar, cast

from niftydesk.core.logger import logger

F = TypeVar('F', bound=Callable[..., Any])


def with_retries(
    max_retries: int = 2,
    initial_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Optional[Callable[[float], None]] = None,
) -> Callable[[F], F]:
    """
    Retry the decorated call when it raises one of ``retry_on``.

    Args:
        max_retries (int): Attempts after the first one.
        initial_delay (float): Seconds before the first retry, doubled each time.
        retry_on (tuple): Exception types worth retrying. Anything else propagates at once.
        sleep (Callable): Sleeper, defaults to ``time.sleep``.

    Returns:
        Callable: The decorated function. The last error is re-raised once
        retries are exhausted.
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except retry_on as exc:
                    if attempt >= max_retries:
                        logger.error(f"'{func.__name__}' gave up after {attempt + 1} attempts: {exc}")
                        raise
                    attempt += 1
                    logger.warning(
                        f"'{func.__name__}' failed (attempt {attempt}/{max_retries + 1}): {exc}. "
                        f"Retrying in {delay:.1f}s"
                    )
                    (sleep or time.sleep)(delay)
                    delay *= 2
        return cast(F, wrapper)
    return decorator
