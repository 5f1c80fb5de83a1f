"""
Bounded polling until a condition holds.
"""

import logging
import threading
import time
from typing import Callable, Optional

from errors import PollCancelledError, PollTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5
DEFAULT_POLL_TIMEOUT = 600


def wait_until_ready(
    predicate: Callable[[], bool],
    interval: float = DEFAULT_POLL_INTERVAL,
    timeout: float = DEFAULT_POLL_TIMEOUT,
    description: str = "condition",
    stop_event: Optional[threading.Event] = None,
) -> float:
    """
    Call predicate until it returns True or the timeout elapses.

    The predicate runs immediately and then once per interval. An exception
    from the predicate counts as "not ready yet": machines restart while they
    upgrade, so status reads are expected to fail for a while.

    Args:
        predicate: Zero-argument callable returning True once ready
        interval: Seconds to sleep between checks
        timeout: Seconds after which to give up
        description: What is being waited for, used in log messages
        stop_event: Optional event that aborts the wait when set

    Returns:
        Seconds elapsed until the predicate held

    Raises:
        PollTimeoutError: If the predicate never returned True in time
        PollCancelledError: If stop_event was set while waiting
    """
    if stop_event is None:
        stop_event = threading.Event()

    start = time.monotonic()
    deadline = start + timeout
    attempt = 0

    while True:
        attempt += 1
        try:
            if predicate():
                elapsed = time.monotonic() - start
                logger.debug(
                    f"{description} ready after {attempt} check(s), {elapsed:.1f}s"
                )
                return elapsed
        except Exception as e:
            logger.warning(f"Status check for {description} failed, retrying: {e}")

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise PollTimeoutError(
                f"Timed out after {timeout:.0f}s waiting for {description} "
                f"({attempt} check(s))"
            )
        if stop_event.wait(min(interval, remaining)):
            raise PollCancelledError(f"Stopped waiting for {description}")
