"""
Test suite for catalog-bench.

This package contains:
- unit/: fast tests of each component against fakes
- integration/: end-to-end runs against an in-process fake catalog
"""
