"""
Narrow request interface between catalog actions and a load engine.

Catalog actions never talk to an HTTP library directly; they call
:meth:`CatalogTransport.request`.  Two implementations exist:

- :class:`RequestsTransport` drives a ``requests.Session`` and is used
  by the threaded engine and the CLI dry run.
- :class:`LocustTransport` drives a Locust ``HttpSession`` and reports
  every request to Locust's statistics via ``catch_response``.

Both raise :class:`~catalog_bench.exceptions.CatalogRequestError` when
the status code is not one the caller expected, so an iteration that
hit an error is marked failed whatever engine runs it.

Key Concepts Demonstrated:
- Adapter pattern to keep actions engine-agnostic
- ``catch_response=True`` for in-band pass/fail decisions
- Tolerant JSON parsing so a non-JSON error body never masks the status
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Any

import requests

from catalog_bench.exceptions import CatalogRequestError

logger = logging.getLogger(__name__)


def _safe_json(response: Any) -> dict[str, Any]:
    """
    Return response JSON as dict, or an empty dict if parsing fails.

    HEAD responses and many error responses carry no JSON body at all;
    treating them as ``{}`` lets callers look up keys without guards.
    """
    try:
        data = response.json()
    except ValueError:
        return {}

    if isinstance(data, dict):
        return data
    return {}


def request_headers(token: str | None = None, *, form: bool = False) -> dict[str, str]:
    """
    Build the headers every catalog request carries.

    Args:
        token: Bearer token to send, or ``None`` for the OAuth call.
        form: ``True`` for form-encoded bodies (the OAuth token call).

    Returns:
        A header dict suitable for passing as ``headers``.
    """
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/x-www-form-urlencoded" if form else "application/json",
    }
    if token is not None:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class CatalogTransport:
    """Interface implemented by every transport."""

    def request(
        self,
        method: str,
        path: str,
        *,
        name: str,
        expected: Collection[int] = (200,),
        token: str | None = None,
        json: Any = None,
        data: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Issue one request and return its parsed JSON body.

        Args:
            method: HTTP verb.
            path: Path relative to the catalog base URL.
            name: Label under which the request is reported.
            expected: Status codes that count as success.
            token: Bearer token, captured by the caller at call time.
            json: JSON body.
            data: Form body; switches the content type to form-encoded.
            params: Query string parameters.

        Raises:
            CatalogRequestError: On an unexpected status or a transport
                failure.
        """
        raise NotImplementedError


class RequestsTransport(CatalogTransport):
    """Transport backed by a ``requests.Session`` and a base URL."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def request(
        self,
        method: str,
        path: str,
        *,
        name: str,
        expected: Collection[int] = (200,),
        token: str | None = None,
        json: Any = None,
        data: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=request_headers(token, form=data is not None),
                json=json,
                data=data,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.debug("%s failed before a response arrived: %s", name, exc)
            raise CatalogRequestError(name, None, str(exc)) from exc

        if response.status_code not in expected:
            raise CatalogRequestError(name, response.status_code)
        return _safe_json(response)

    def close(self) -> None:
        self.session.close()


class LocustTransport(CatalogTransport):
    """
    Transport backed by a Locust ``HttpSession``.

    The Locust session already knows the host, so *path* is passed
    through unchanged.  The request is reported under *name* so that
    URLs with entity names collapse into one statistics row.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    def request(
        self,
        method: str,
        path: str,
        *,
        name: str,
        expected: Collection[int] = (200,),
        token: str | None = None,
        json: Any = None,
        data: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        with self.client.request(
            method,
            path,
            name=name,
            headers=request_headers(token, form=data is not None),
            json=json,
            data=data,
            params=params,
            catch_response=True,
        ) as response:
            status_code = response.status_code
            if status_code not in expected:
                response.failure(f"Expected {sorted(expected)}, got {status_code}")
            else:
                response.success()
                body = _safe_json(response)

        if status_code not in expected:
            raise CatalogRequestError(name, status_code)
        return body
