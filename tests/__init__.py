"""
Confluent Ops Toolkit test suite.

This package contains:
- unit/: Unit tests (no network, no confluent binary; registries and the CLI are faked)
"""
