"""
Catalog operations exercised by the benchmark.

Each operation takes a transport, the bearer token captured right
before the call, and one feeder record, and issues exactly one Iceberg
REST request.  Operations return the parsed response body; success and
failure are decided by the status code alone.

Request names double as statistics labels, so every URL that embeds an
entity name is reported under one fixed name.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from catalog_bench.config import ConnectionParameters
from catalog_bench.exceptions import AuthenticationError, CatalogRequestError
from catalog_bench.transport import CatalogTransport

logger = logging.getLogger(__name__)

API_PREFIX = "/api/catalog/v1"
OAUTH_TOKENS_PATH = f"{API_PREFIX}/oauth/tokens"

# Iceberg REST joins multi-level namespaces with the ASCII unit separator.
NAMESPACE_SEPARATOR = "\x1f"


def encode_namespace(namespace: list[str]) -> str:
    """URL-encode a multi-level namespace for use in a path segment."""
    return quote(NAMESPACE_SEPARATOR.join(namespace), safe="")


def _namespace_path(record: dict[str, Any]) -> str:
    return f"{API_PREFIX}/{quote(record['catalog'], safe='')}/namespaces/{encode_namespace(record['namespace'])}"


# =====================================================================
# Authentication
# =====================================================================


def authenticate(transport: CatalogTransport, connection: ConnectionParameters) -> str:
    """
    Exchange client credentials for an access token.

    Args:
        transport: Transport to send the OAuth request through.
        connection: Principal credentials and requested scope.

    Returns:
        The ``access_token`` from the OAuth response.

    Raises:
        AuthenticationError: If the server rejected the credentials or
            the response carried no token.
    """
    try:
        body = transport.request(
            "POST",
            OAUTH_TOKENS_PATH,
            name="Authenticate",
            data={
                "grant_type": "client_credentials",
                "client_id": connection.client_id,
                "client_secret": connection.client_secret,
                "scope": connection.scope,
            },
        )
    except CatalogRequestError as exc:
        raise AuthenticationError(f"Authentication failed: {exc}") from exc

    token = body.get("access_token")
    if not isinstance(token, str) or not token:
        raise AuthenticationError("Authentication response missing access_token")
    return token


# =====================================================================
# Namespaces
# =====================================================================


def fetch_all_children_namespaces(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    """List the direct children of the record's namespace."""
    return transport.request(
        "GET",
        f"{API_PREFIX}/{quote(record['catalog'], safe='')}/namespaces",
        name="Fetch all child namespaces",
        token=token,
        params={"parent": NAMESPACE_SEPARATOR.join(record["namespace"])},
    )


def check_namespace_exists(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "HEAD",
        _namespace_path(record),
        name="Check Namespace Exists",
        expected=(200, 204),
        token=token,
    )


def fetch_namespace(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "GET",
        _namespace_path(record),
        name="Fetch Namespace",
        token=token,
    )


def update_namespace_properties(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    """Set the record's ``updates`` on the namespace; removes nothing."""
    return transport.request(
        "POST",
        f"{_namespace_path(record)}/properties",
        name="Update Namespace Properties",
        token=token,
        json={"removals": [], "updates": record["updates"]},
    )


# =====================================================================
# Tables and views
# =====================================================================


def _commit_body(record: dict[str, Any], name_key: str) -> dict[str, Any]:
    """Build a commit that only sets properties, with no requirements."""
    return {
        "identifier": {"namespace": record["namespace"], "name": record[name_key]},
        "requirements": [],
        "updates": [{"action": "set-properties", "updates": record["updates"]}],
    }


def fetch_all_tables(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "GET",
        f"{_namespace_path(record)}/tables",
        name="Fetch all tables under parent namespace",
        token=token,
    )


def check_table_exists(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "HEAD",
        f"{_namespace_path(record)}/tables/{quote(record['table'], safe='')}",
        name="Check Table Exists",
        expected=(200, 204),
        token=token,
    )


def fetch_table(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "GET",
        f"{_namespace_path(record)}/tables/{quote(record['table'], safe='')}",
        name="Fetch Table",
        token=token,
    )


def update_table(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "POST",
        f"{_namespace_path(record)}/tables/{quote(record['table'], safe='')}",
        name="Update table metadata",
        token=token,
        json=_commit_body(record, "table"),
    )


def fetch_all_views(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "GET",
        f"{_namespace_path(record)}/views",
        name="Fetch all views under parent namespace",
        token=token,
    )


def check_view_exists(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "HEAD",
        f"{_namespace_path(record)}/views/{quote(record['view'], safe='')}",
        name="Check View Exists",
        expected=(200, 204),
        token=token,
    )


def fetch_view(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "GET",
        f"{_namespace_path(record)}/views/{quote(record['view'], safe='')}",
        name="Fetch View",
        token=token,
    )


def update_view(
    transport: CatalogTransport, token: str | None, record: dict[str, Any]
) -> dict[str, Any]:
    return transport.request(
        "POST",
        f"{_namespace_path(record)}/views/{quote(record['view'], safe='')}",
        name="Update View metadata",
        token=token,
        json=_commit_body(record, "view"),
    )
