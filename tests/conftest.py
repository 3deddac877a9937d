"""Pytest configuration and shared fixtures.

This module provides reusable fixtures for testing the FIM CSV Sync tool.
Fixtures are organized by category:
- Schema fixtures: Raw attribute descriptions and built schemas
- Mock fixtures: Pre-configured mock FIM client
- Data fixtures: Rows, CSV files and configuration
"""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from fimsync.config import FIMConfig, ImporterConfig
from fimsync.core.schema import Schema, parse_descriptor
from fimsync.fim.client import FIMClient
from fimsync.models.row import Row
from fimsync.observability.metrics import reset_global_collector

# =============================================================================
# Schema Fixtures
# =============================================================================

PERSON_ATTRIBUTES = [
    {"Name": "ObjectID", "DataType": "Reference", "Multivalued": "False"},
    {"Name": "EmployeeID", "DataType": "String", "Multivalued": "False"},
    {"Name": "FirstName", "DataType": "String", "Multivalued": "False"},
    {"Name": "LastName", "DataType": "String", "Multivalued": "False"},
    {"Name": "DisplayName", "DataType": "String", "Multivalued": "False"},
    {"Name": "Manager", "DataType": "Reference", "Multivalued": "False"},
    {"Name": "ProxyAddressCollection", "DataType": "String", "Multivalued": "True"},
    {"Name": "Delegates", "DataType": "Reference", "Multivalued": "True"},
]

GROUP_ATTRIBUTES = [
    {"Name": "ObjectID", "DataType": "Reference", "Multivalued": "False"},
    {"Name": "DisplayName", "DataType": "String", "Multivalued": "False"},
    {"Name": "Owner", "DataType": "Reference", "Multivalued": "True"},
    {"Name": "ExplicitMember", "DataType": "Reference", "Multivalued": "True"},
]

BOUND_ATTRIBUTES = {"Person": PERSON_ATTRIBUTES, "Group": GROUP_ATTRIBUTES}


def bound_attributes(object_type: str) -> list[dict]:
    """Fake FIMClient.get_bound_attributes: unknown types have no attributes."""
    return [dict(a) for a in BOUND_ATTRIBUTES.get(object_type, [])]


@pytest.fixture
def person_schema() -> Schema:
    """Person schema with scalar, reference and multi-valued attributes."""
    return Schema("Person", [parse_descriptor(a) for a in PERSON_ATTRIBUTES])


@pytest.fixture
def group_schema() -> Schema:
    """Group schema with multi-valued reference attributes."""
    return Schema("Group", [parse_descriptor(a) for a in GROUP_ATTRIBUTES])


# =============================================================================
# Mock FIM Client Fixtures
# =============================================================================


@pytest.fixture
def mock_fim_client() -> AsyncMock:
    """Create a pre-configured mock FIM client.

    Returns an AsyncMock with spec=FIMClient. Schemas for Person and Group are
    served from the fixtures above, lookups match nothing and submissions
    succeed. Individual tests can override specific methods.

    Example:
        def test_something(mock_fim_client):
            mock_fim_client.find_object_ids.return_value = ["urn:uuid:1"]
            # ... test code
    """
    client = AsyncMock(spec=FIMClient)
    client.get_bound_attributes.side_effect = bound_attributes
    client.find_object_ids.return_value = []
    client.submit.return_value = []
    client.ping.return_value = None
    return client


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def make_row():
    """Factory for rows: make_row({"EmployeeID": "1"}, line_number=2)."""

    def _make(values: dict, line_number: int = 2) -> Row:
        return Row(line_number, values)

    return _make


@pytest.fixture
def fim_config() -> FIMConfig:
    """Connection settings pointing at a fake gateway."""
    return FIMConfig(
        base_url="https://fim.example.com",
        username="svc-sync",
        password="secret",
        api_version="v2",
        timeout=30,
        verify_ssl=True,
    )


@pytest.fixture
def importer_config(fim_config: FIMConfig) -> ImporterConfig:
    """Default run configuration with a FIM connection."""
    return ImporterConfig(fim=fim_config)


@pytest.fixture
def write_csv(tmp_path: Path):
    """Write CSV text to a temporary file and return its path."""

    def _write(content: str, name: str = "input.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Start every test with an empty metrics collector."""
    reset_global_collector()
    yield
    reset_global_collector()


@pytest.fixture
def directory_schemas() -> dict[str, list[dict]]:
    """Raw attribute descriptions by object type, as the directory reports them."""
    return {object_type: bound_attributes(object_type) for object_type in BOUND_ATTRIBUTES}
