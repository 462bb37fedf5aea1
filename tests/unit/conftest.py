"""
Shared fixtures for unit tests.
"""

import logging

import pytest

from confluent_cli import ConfluentCLI
from fakes import FakeRegistry, ScriptedRunner
from promotion_log import close_run_log


@pytest.fixture
def source():
    """Source registry with no subjects."""
    return FakeRegistry(url="https://dev-psrc.example")


@pytest.fixture
def target():
    """Target registry with no subjects."""
    return FakeRegistry(url="https://qa-psrc.example")


@pytest.fixture
def runner():
    return ScriptedRunner()


@pytest.fixture
def cli(runner):
    """ConfluentCLI wired to the scripted runner."""
    return ConfluentCLI(binary="confluent", runner=runner)


@pytest.fixture(autouse=True)
def reset_promotion_logger():
    """Leave the shared promotion logger clean between tests."""
    yield
    close_run_log()
    logging.getLogger("schema_promotion").setLevel(logging.NOTSET)
