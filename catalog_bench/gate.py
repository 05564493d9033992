"""Wait for the first access token before letting the workload start."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from catalog_bench.credentials import CredentialHolder
from catalog_bench.exceptions import GateCancelledError, GateTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0


def wait_for_token(
    holder: CredentialHolder,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> str:
    """
    Poll *holder* until it contains a token and return that token.

    The holder is checked before the first sleep, so a token that is
    already present is returned immediately.  Otherwise the token is
    picked up at most one *poll_interval* after it is published.

    Args:
        holder: The shared credential cell.
        poll_interval: Seconds between checks.
        timeout: Give up after this many seconds.  ``None`` waits
            forever, matching the "block until ready" contract.
        cancel: Optional event; setting it aborts the wait.
        clock: Monotonic clock, injectable for tests.

    Returns:
        The first token observed in the holder.

    Raises:
        GateTimeoutError: If *timeout* elapsed with the holder still empty.
        GateCancelledError: If *cancel* was set first.
    """
    if poll_interval <= 0:
        raise ValueError("poll_interval must be positive")

    deadline = None if timeout is None else clock() + timeout
    waiter = cancel if cancel is not None else threading.Event()
    logger.info("Waiting for the authentication token to be available")

    while True:
        token = holder.get()
        if token is not None:
            logger.info("Authentication token available, releasing workload")
            return token

        if cancel is not None and cancel.is_set():
            raise GateCancelledError("Gave up waiting for an access token: cancelled")

        pause = poll_interval
        if deadline is not None:
            remaining = deadline - clock()
            if remaining <= 0:
                raise GateTimeoutError(
                    f"No access token after {timeout} seconds; check the catalog credentials"
                )
            pause = min(pause, remaining)

        # Event.wait doubles as an interruptible sleep.
        waiter.wait(pause)
