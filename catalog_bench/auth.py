"""
Periodic re-authentication for the shared access token.

:class:`TokenRefreshLoop` authenticates once per interval and publishes
the new token into a :class:`~catalog_bench.credentials.CredentialHolder`.
It is the holder's only writer.  The loop ends when the holder's
refresh flag is cleared; the flag is checked before every attempt, so
once a stop has been requested no further authentication is made.

A failed attempt is logged and counted, and the loop simply waits for
the next tick.  There is no retry or backoff.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum
from functools import partial

from catalog_bench.actions import authenticate
from catalog_bench.config import ConnectionParameters
from catalog_bench.credentials import CredentialHolder
from catalog_bench.exceptions import AuthenticationError
from catalog_bench.transport import CatalogTransport

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 60.0


class RefreshState(str, Enum):
    """Lifecycle of a refresh loop.  ``STOPPED`` is terminal."""

    RUNNING = "running"
    STOPPED = "stopped"


def make_authenticator(
    transport: CatalogTransport, connection: ConnectionParameters
) -> Callable[[], str]:
    """Bind :func:`~catalog_bench.actions.authenticate` to a transport and principal."""
    return partial(authenticate, transport, connection)


class TokenRefreshLoop:
    """
    Authenticate every *interval* seconds until asked to stop.

    Attributes:
        attempts: Authentication attempts made so far.
        failures: Attempts that did not produce a token.
        state: Current :class:`RefreshState`.
    """

    def __init__(
        self,
        holder: CredentialHolder,
        authenticator: Callable[[], str],
        interval: float = DEFAULT_REFRESH_INTERVAL,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.holder = holder
        self.authenticator = authenticator
        self.interval = interval
        self.attempts = 0
        self.failures = 0
        self.state = RefreshState.RUNNING
        self._thread: threading.Thread | None = None

    def _tick(self) -> None:
        """One authentication attempt; failures abort only this tick."""
        self.attempts += 1
        try:
            token = self.authenticator()
        except AuthenticationError as exc:
            self.failures += 1
            logger.warning("Token refresh attempt %d failed: %s", self.attempts, exc)
            return
        except Exception:
            self.failures += 1
            logger.exception("Token refresh attempt %d raised unexpectedly", self.attempts)
            return

        self.holder.set(token)
        logger.info("Access token refreshed (attempt %d)", self.attempts)

    def run(self) -> None:
        """Run the loop on the calling thread until a stop is requested."""
        if self.state is RefreshState.STOPPED:
            raise RuntimeError("Token refresh loop already stopped")
        try:
            while self.holder.should_refresh():
                self._tick()
                if self.holder.wait_stop(self.interval):
                    break
        finally:
            self.state = RefreshState.STOPPED
            logger.info(
                "Token refresh loop stopped after %d attempts (%d failed)",
                self.attempts,
                self.failures,
            )

    def start(self) -> None:
        """
        Run the loop on a daemon thread.

        Raises:
            RuntimeError: If this loop already ran, or if its holder was
                stopped by an earlier loop.  A stopped holder never asks
                for a refresh again, so every run needs a fresh one.
        """
        if self._thread is not None or self.state is RefreshState.STOPPED:
            raise RuntimeError("Token refresh loop cannot be started twice")
        if not self.holder.should_refresh():
            raise RuntimeError("Credential holder was already stopped; create a new one")
        self._thread = threading.Thread(
            target=self.run, name="token-refresh", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Request a stop and wait for the background thread to exit."""
        self.holder.request_stop()
        self.join(timeout)

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
