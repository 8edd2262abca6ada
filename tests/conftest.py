"""
Shared test fixtures for the cypher-forge test suite.

Provides a seeded parameter key generator and structlog log capture.
"""

import pytest
import structlog

from cypher_forge.query_builder.parameters import ParameterKeyGenerator

# Default parameter key suffix: 12 lowercase hex characters
KEY = r"[0-9a-f]{12}"


@pytest.fixture
def key_generator():
    """Seeded generator so parameter keys are reproducible within a test."""
    return ParameterKeyGenerator(seed=1234)


@pytest.fixture
def log_output():
    """Events logged through structlog while the test runs."""
    with structlog.testing.capture_logs() as logs:
        yield logs


def warnings_in(logs):
    return [entry for entry in logs if entry["log_level"] == "warning"]
