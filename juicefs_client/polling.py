"""
Fixed-delay polling.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from .constants import DEFAULT_POLL_INTERVAL
from .exceptions import PollTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def poll_until(check: Callable[[], T], interval: float = DEFAULT_POLL_INTERVAL,
               max_attempts: Optional[int] = None,
               sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Call ``check`` until it returns a truthy value.

    Args:
        check: Condition to evaluate; exceptions it raises propagate immediately
        interval: Seconds to wait between attempts
        max_attempts: Maximum number of calls to ``check``; ``None`` for no limit
        sleep: Function used to wait between attempts

    Returns:
        The first truthy result of ``check``

    Raises:
        PollTimeoutError: If ``check`` is still falsy after ``max_attempts`` calls
    """
    if interval < 0:
        raise ValueError("interval must not be negative")
    if max_attempts is not None and max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 0
    while True:
        attempt += 1
        result = check()
        if result:
            return result
        if max_attempts is not None and attempt >= max_attempts:
            raise PollTimeoutError(f"condition not met after {attempt} attempts")
        logger.debug("attempt %d not ready, retrying in %ss", attempt, interval)
        sleep(interval)
