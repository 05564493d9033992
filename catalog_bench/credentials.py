"""
Shared access-token cell.

One :class:`CredentialHolder` is created per benchmark run.  The token
refresh loop is its only writer; every virtual user reads from it right
before issuing a request.  A reader may race with a concurrent refresh
and use the previous token; that is acceptable because a token stays
valid for longer than the refresh interval.
"""

from __future__ import annotations

import threading


class CredentialHolder:
    """
    Single-writer, multi-reader register for the current bearer token.

    Also carries the refresh flag.  The flag is backed by an
    :class:`threading.Event` so the refresh loop can sleep its interval
    and still wake up as soon as a stop is requested.
    """

    def __init__(self, token: str | None = None) -> None:
        self._lock = threading.Lock()
        self._token = token
        self._stop_requested = threading.Event()

    def set(self, token: str) -> None:
        """Replace the stored token; visible to all subsequent readers."""
        with self._lock:
            self._token = token

    def get(self) -> str | None:
        """Return the current token, or ``None`` before the first login."""
        with self._lock:
            return self._token

    def request_stop(self) -> None:
        """Clear the refresh flag.  Calling it more than once is harmless."""
        self._stop_requested.set()

    def should_refresh(self) -> bool:
        return not self._stop_requested.is_set()

    def wait_stop(self, timeout: float | None = None) -> bool:
        """
        Block until a stop is requested or *timeout* elapses.

        Returns:
            ``True`` if a stop was requested, ``False`` on timeout.
        """
        return self._stop_requested.wait(timeout)
