"""
Read/update load benchmark for Iceberg REST catalogs.

Drives a weighted mix of read and property-update requests against an
existing, tree-shaped catalog dataset while one background loop keeps a
shared access token fresh.

Traffic runs either through Locust (:mod:`catalog_bench.locustfile`) for
full-scale runs or through the small threaded engine behind
``catalog-bench run`` for dry runs and tests.

Key Concepts Demonstrated:
- Weighted branch selection to model a configurable read/write ratio
- A single-writer credential cell shared by every virtual user
- Round-robin feeders that walk a deterministic dataset
- Threshold gates for automated pass/fail decisions in CI
"""
