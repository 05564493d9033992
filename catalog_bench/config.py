"""
Benchmark configuration.

Parameters are grouped the same way the benchmark reasons about them:

- :class:`ConnectionParameters` — where the catalog lives and how to
  authenticate against it.
- :class:`DatasetParameters` — the shape of the namespace tree and how
  many tables, views and properties it carries.
- :class:`WorkloadParameters` — read/write ratio, throughput, duration
  and token-lifecycle timings.

Defaults come from environment-specific preset classes (selected by
``CATALOG_BENCH_ENV``), which in turn read ``CATALOG_BENCH_*``
environment variables.  A YAML file passed to :func:`load_config` (or
named by ``CATALOG_BENCH_CONFIG``) overrides the preset key by key.

Key Concepts Demonstrated:
- Class-based presets with inheritance for DRY defaults
- Environment-variable overrides for 12-factor deployability
- Validation at load time so a bad ratio fails before any traffic
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from catalog_bench.exceptions import ConfigError

logger = logging.getLogger(__name__)


class Config:
    """
    Base (shared) preset.

    Connection settings are read from the environment so credentials
    never have to live in a committed YAML file.
    """

    BASE_URL: str = os.environ.get("CATALOG_BENCH_BASE_URL", "http://localhost:8181")
    CLIENT_ID: str = os.environ.get("CATALOG_BENCH_CLIENT_ID", "root")
    CLIENT_SECRET: str = os.environ.get("CATALOG_BENCH_CLIENT_SECRET", "s3cr3t")
    SCOPE: str = os.environ.get("CATALOG_BENCH_SCOPE", "PRINCIPAL_ROLE:ALL")
    REQUEST_TIMEOUT: float = float(os.environ.get("CATALOG_BENCH_REQUEST_TIMEOUT", "30"))

    CATALOG_NAME: str = os.environ.get("CATALOG_BENCH_CATALOG", "C_0")
    NAMESPACE_WIDTH: int = 2
    NAMESPACE_DEPTH: int = 4
    TABLES_PER_NAMESPACE: int = 5
    MAX_TABLES: int = -1
    VIEWS_PER_NAMESPACE: int = 3
    MAX_VIEWS: int = -1
    NAMESPACE_PROPERTIES: int = 10
    TABLE_PROPERTIES: int = 10
    VIEW_PROPERTIES: int = 10

    READ_WRITE_RATIO: float = 0.8
    THROUGHPUT: float = 100.0
    DURATION_MINUTES: float = 5.0
    TOKEN_REFRESH_SECONDS: float = 60.0
    GATE_POLL_SECONDS: float = 1.0
    GATE_TIMEOUT_SECONDS: float | None = None
    SEED: int | None = None


class DevelopmentConfig(Config):
    """Local runs against a catalog started on the developer's machine."""

    THROUGHPUT: float = 5.0
    DURATION_MINUTES: float = 1.0


class TestingConfig(Config):
    """
    Test-suite preset.

    Points at a non-routable host and shrinks the dataset and the
    timings so that tests finish in milliseconds.
    """

    BASE_URL: str = os.environ.get("TEST_CATALOG_BENCH_BASE_URL", "http://catalog.test")
    CLIENT_ID: str = "test-client"
    CLIENT_SECRET: str = "test-secret"
    REQUEST_TIMEOUT: float = 1.0

    NAMESPACE_WIDTH: int = 3
    NAMESPACE_DEPTH: int = 2
    TABLES_PER_NAMESPACE: int = 2
    VIEWS_PER_NAMESPACE: int = 1
    NAMESPACE_PROPERTIES: int = 2
    TABLE_PROPERTIES: int = 2
    VIEW_PROPERTIES: int = 2

    READ_WRITE_RATIO: float = 0.7
    THROUGHPUT: float = 50.0
    DURATION_MINUTES: float = 0.01
    TOKEN_REFRESH_SECONDS: float = 0.05
    GATE_POLL_SECONDS: float = 0.01
    GATE_TIMEOUT_SECONDS: float | None = 5.0
    SEED: int | None = 1234


class ProductionConfig(Config):
    """Long-running runs against a shared catalog deployment."""

    GATE_TIMEOUT_SECONDS: float | None = 300.0


# Lookup table mapping environment name strings to their preset classes.
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Return the preset class for the given environment.

    Args:
        env: One of ``"development"``, ``"testing"`` or
            ``"production"``.  When *None*, ``CATALOG_BENCH_ENV`` is
            consulted, falling back to ``"development"``.

    Returns:
        The matching ``Config`` subclass, or ``DevelopmentConfig`` if the
        key is unrecognised.
    """
    if env is None:
        env = os.environ.get("CATALOG_BENCH_ENV", "development")
    return config.get(env, config["default"])


class ConnectionParameters:
    """Where the catalog lives and which principal the benchmark uses."""

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        scope: str = "PRINCIPAL_ROLE:ALL",
        request_timeout: float = 30.0,
    ) -> None:
        if not base_url:
            raise ConfigError("connection.base_url must not be empty")
        if float(request_timeout) <= 0:
            raise ConfigError("connection.request_timeout must be positive")
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.request_timeout = float(request_timeout)

    def __repr__(self) -> str:
        # The secret is left out on purpose so the object can be logged.
        return (
            f"ConnectionParameters(base_url={self.base_url!r}, "
            f"client_id={self.client_id!r}, scope={self.scope!r})"
        )


class DatasetParameters:
    """
    Shape of the N-ary namespace tree and the entities it carries.

    Tables and views only live in leaf namespaces.  ``max_tables`` and
    ``max_views`` cap the global entity count; ``-1`` disables the cap.
    """

    def __init__(
        self,
        catalog_name: str,
        namespace_width: int,
        namespace_depth: int,
        tables_per_namespace: int,
        max_tables: int,
        views_per_namespace: int,
        max_views: int,
        namespace_properties: int,
        table_properties: int,
        view_properties: int,
    ) -> None:
        if not catalog_name:
            raise ConfigError("dataset.catalog_name must not be empty")
        if int(namespace_width) < 1:
            raise ConfigError("dataset.namespace_width must be >= 1")
        if int(namespace_depth) < 1:
            raise ConfigError("dataset.namespace_depth must be >= 1")
        for field, value in (
            ("tables_per_namespace", tables_per_namespace),
            ("views_per_namespace", views_per_namespace),
            ("namespace_properties", namespace_properties),
            ("table_properties", table_properties),
            ("view_properties", view_properties),
        ):
            if int(value) < 0:
                raise ConfigError(f"dataset.{field} must be >= 0")
        for field, value in (("max_tables", max_tables), ("max_views", max_views)):
            if int(value) < -1:
                raise ConfigError(f"dataset.{field} must be -1 (unlimited) or >= 0")

        self.catalog_name = catalog_name
        self.namespace_width = int(namespace_width)
        self.namespace_depth = int(namespace_depth)
        self.tables_per_namespace = int(tables_per_namespace)
        self.max_tables = int(max_tables)
        self.views_per_namespace = int(views_per_namespace)
        self.max_views = int(max_views)
        self.namespace_properties = int(namespace_properties)
        self.table_properties = int(table_properties)
        self.view_properties = int(view_properties)


class WorkloadParameters:
    """
    Read/write mix, injection rate and token-lifecycle timings.

    Attributes:
        read_write_ratio: Fraction of iterations that take the Read
            branch, in ``[0, 1]``.
        throughput: Virtual users started per second.
        duration_minutes: How long users keep arriving.
        token_refresh_seconds: Interval between re-authentications.
        gate_poll_seconds: How often the gate checks for a token.
        gate_timeout_seconds: Give up waiting for the first token after
            this many seconds; ``None`` waits forever.
        seed: Seed for the workload selector; ``None`` is non-deterministic.
    """

    def __init__(
        self,
        read_write_ratio: float,
        throughput: float,
        duration_minutes: float,
        token_refresh_seconds: float = 60.0,
        gate_poll_seconds: float = 1.0,
        gate_timeout_seconds: float | None = None,
        seed: int | None = None,
    ) -> None:
        ratio = float(read_write_ratio)
        if not 0.0 <= ratio <= 1.0:
            raise ConfigError(
                f"workload.read_write_ratio must be between 0 and 1, got {read_write_ratio}"
            )
        if float(throughput) <= 0:
            raise ConfigError("workload.throughput must be positive")
        if float(duration_minutes) <= 0:
            raise ConfigError("workload.duration_minutes must be positive")
        if float(token_refresh_seconds) <= 0:
            raise ConfigError("workload.token_refresh_seconds must be positive")
        if float(gate_poll_seconds) <= 0:
            raise ConfigError("workload.gate_poll_seconds must be positive")
        if gate_timeout_seconds is not None and float(gate_timeout_seconds) <= 0:
            raise ConfigError("workload.gate_timeout_seconds must be positive or null")

        self.read_write_ratio = ratio
        self.throughput = float(throughput)
        self.duration_minutes = float(duration_minutes)
        self.token_refresh_seconds = float(token_refresh_seconds)
        self.gate_poll_seconds = float(gate_poll_seconds)
        self.gate_timeout_seconds = (
            None if gate_timeout_seconds is None else float(gate_timeout_seconds)
        )
        self.seed = None if seed is None else int(seed)

    @property
    def read_ratio(self) -> float:
        """Weight of the Read branch, as a percentage."""
        return self.read_write_ratio * 100.0

    @property
    def write_ratio(self) -> float:
        """Weight of the Write branch, as a percentage."""
        return 100.0 - self.read_ratio

    @property
    def duration_seconds(self) -> float:
        return self.duration_minutes * 60.0


class BenchmarkConfig:
    """The three parameter groups bundled together."""

    def __init__(
        self,
        connection: ConnectionParameters,
        dataset: DatasetParameters,
        workload: WorkloadParameters,
    ) -> None:
        self.connection = connection
        self.dataset = dataset
        self.workload = workload

    def to_dict(self) -> dict[str, Any]:
        """Return a YAML-friendly view of the configuration without secrets."""
        return {
            "connection": {
                "base_url": self.connection.base_url,
                "client_id": self.connection.client_id,
                "scope": self.connection.scope,
                "request_timeout": self.connection.request_timeout,
            },
            "dataset": dict(vars(self.dataset)),
            "workload": dict(vars(self.workload)),
        }


def _read_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from *path*; an empty file yields ``{}``."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a named sub-mapping, treating an absent section as empty."""
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return section


def load_config(
    path: str | Path | None = None,
    env: str | None = None,
) -> BenchmarkConfig:
    """
    Build a :class:`BenchmarkConfig` from a preset and an optional YAML file.

    Args:
        path: YAML file with ``connection``, ``dataset`` and ``workload``
            sections.  When *None*, ``CATALOG_BENCH_CONFIG`` is consulted;
            if that is unset too, only preset values are used.
        env: Preset name passed to :func:`get_config`.

    Returns:
        A validated configuration.

    Raises:
        ConfigError: If the file cannot be read or a value is invalid.
    """
    preset = get_config(env)
    if path is None:
        path = os.environ.get("CATALOG_BENCH_CONFIG") or None

    data: dict[str, Any] = {}
    if path is not None:
        data = _read_yaml(Path(path))
        logger.info("Loaded benchmark config from %s", path)

    conn = _section(data, "connection")
    ds = _section(data, "dataset")
    wl = _section(data, "workload")

    try:
        connection = ConnectionParameters(
            base_url=conn.get("base_url", preset.BASE_URL),
            client_id=conn.get("client_id", preset.CLIENT_ID),
            client_secret=conn.get("client_secret", preset.CLIENT_SECRET),
            scope=conn.get("scope", preset.SCOPE),
            request_timeout=conn.get("request_timeout", preset.REQUEST_TIMEOUT),
        )
        dataset = DatasetParameters(
            catalog_name=ds.get("catalog_name", preset.CATALOG_NAME),
            namespace_width=ds.get("namespace_width", preset.NAMESPACE_WIDTH),
            namespace_depth=ds.get("namespace_depth", preset.NAMESPACE_DEPTH),
            tables_per_namespace=ds.get("tables_per_namespace", preset.TABLES_PER_NAMESPACE),
            max_tables=ds.get("max_tables", preset.MAX_TABLES),
            views_per_namespace=ds.get("views_per_namespace", preset.VIEWS_PER_NAMESPACE),
            max_views=ds.get("max_views", preset.MAX_VIEWS),
            namespace_properties=ds.get("namespace_properties", preset.NAMESPACE_PROPERTIES),
            table_properties=ds.get("table_properties", preset.TABLE_PROPERTIES),
            view_properties=ds.get("view_properties", preset.VIEW_PROPERTIES),
        )
        workload = WorkloadParameters(
            read_write_ratio=wl.get("read_write_ratio", preset.READ_WRITE_RATIO),
            throughput=wl.get("throughput", preset.THROUGHPUT),
            duration_minutes=wl.get("duration_minutes", preset.DURATION_MINUTES),
            token_refresh_seconds=wl.get("token_refresh_seconds", preset.TOKEN_REFRESH_SECONDS),
            gate_poll_seconds=wl.get("gate_poll_seconds", preset.GATE_POLL_SECONDS),
            gate_timeout_seconds=wl.get("gate_timeout_seconds", preset.GATE_TIMEOUT_SECONDS),
            seed=wl.get("seed", preset.SEED),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid benchmark config: {exc}") from exc

    logger.info("Using %s preset against %s", preset.__name__, connection.base_url)
    return BenchmarkConfig(connection, dataset, workload)
