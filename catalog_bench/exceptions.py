"""
Exception hierarchy for catalog-bench.

Every error raised on purpose by the harness derives from
:class:`CatalogBenchError` so the CLI can tell "the benchmark found a
problem" apart from "the script crashed".
"""

from __future__ import annotations


class CatalogBenchError(Exception):
    """Base class for all harness errors."""


class ConfigError(CatalogBenchError):
    """Raised when benchmark parameters are missing or out of range."""


class AuthenticationError(CatalogBenchError):
    """Raised when the catalog's OAuth endpoint does not return a token."""


class CatalogRequestError(CatalogBenchError):
    """
    Raised when a catalog request returns an unexpected status.

    Attributes:
        name: Request label used for statistics (e.g. ``"Fetch Table"``).
        status_code: HTTP status returned by the server, or ``None`` when
            the request never produced a response.
    """

    def __init__(self, name: str, status_code: int | None, message: str = "") -> None:
        self.name = name
        self.status_code = status_code
        detail = message or f"unexpected status {status_code}"
        super().__init__(f"{name}: {detail}")


class GateTimeoutError(CatalogBenchError):
    """Raised when no access token appeared before the gate's deadline."""


class GateCancelledError(CatalogBenchError):
    """Raised when the gate wait was cancelled before a token appeared."""


class VersionResourceError(CatalogBenchError):
    """Raised when the bundled version resource cannot be read."""
