"""
Shared pytest fixtures for the catalog-bench test suite.

Key Concepts Demonstrated:
- Fixture scopes and dependencies
- The ``testing`` preset for fast, deterministic parameters
- An in-process fake catalog shared by integration tests
- Recording fakes for the transport seam
"""

from __future__ import annotations

import os
from typing import Any

import pytest
from faker import Faker

# Select the testing preset before anything loads configuration.
os.environ["CATALOG_BENCH_ENV"] = "testing"
os.environ.pop("CATALOG_BENCH_CONFIG", None)
# Importing locust would otherwise monkey-patch threading for every test.
os.environ.setdefault("LOCUST_SKIP_MONKEY_PATCH", "1")

from catalog_bench.config import BenchmarkConfig, load_config
from catalog_bench.credentials import CredentialHolder
from catalog_bench.dataset import TreeDataset
from catalog_bench.exceptions import CatalogRequestError
from catalog_bench.transport import CatalogTransport, RequestsTransport
from tests.fake_catalog import FlaskSession, create_fake_catalog

fake = Faker()


class RecordingTransport(CatalogTransport):
    """
    Transport fake that records every call instead of sending it.

    Attributes:
        calls: ``(method, path, name, token, kwargs)`` tuples in call order.
        fail_names: Request names that should raise ``CatalogRequestError``.
        responses: Optional canned bodies keyed by request name.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str, str | None, dict[str, Any]]] = []
        self.fail_names: set[str] = set()
        self.responses: dict[str, dict[str, Any]] = {}

    def request(self, method, path, *, name, expected=(200,), token=None, **kwargs):
        self.calls.append((method, path, name, token, kwargs))
        if name in self.fail_names:
            raise CatalogRequestError(name, 500)
        return dict(self.responses.get(name, {}))

    def names(self) -> list[str]:
        return [call[2] for call in self.calls]


# -----------------------------------------------------------------------------
# Configuration Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def bench_config() -> BenchmarkConfig:
    """
    Provide a fresh configuration built from the ``testing`` preset.

    Returns:
        A ``BenchmarkConfig`` with a tiny dataset and millisecond timings.
    """
    return load_config(env="testing")


@pytest.fixture
def dataset(bench_config) -> TreeDataset:
    """Width-3, depth-2 tree: 4 namespaces, 3 leaves, 6 tables, 3 views."""
    return TreeDataset(bench_config.dataset)


@pytest.fixture
def holder() -> CredentialHolder:
    return CredentialHolder()


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


# -----------------------------------------------------------------------------
# Fake Catalog Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def fake_catalog(dataset, bench_config):
    """
    Create a fake catalog app serving the testing dataset.

    Yields:
        Flask application with the fake catalog blueprint registered.
    """
    app = create_fake_catalog(
        dataset,
        client_id=bench_config.connection.client_id,
        client_secret=bench_config.connection.client_secret,
    )
    yield app


@pytest.fixture
def catalog_transport(fake_catalog, bench_config) -> RequestsTransport:
    """Real ``RequestsTransport`` whose session dispatches into the fake."""
    return RequestsTransport(
        bench_config.connection.base_url,
        session=FlaskSession(fake_catalog),
        timeout=bench_config.connection.request_timeout,
    )


@pytest.fixture
def property_value() -> str:
    """A random, human-readable property value."""
    return fake.word()
