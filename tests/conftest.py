"""
Shared pytest fixtures for discovery engine tests.

Provides reusable models, stores, catalogs and CSV assets to avoid
duplication across test files.
"""

import mongomock
import pyarrow as pa
import pytest
from pyarrow import csv

from asset_discovery.asset_resolver import AssetResolver
from asset_discovery.catalog import InMemoryAssetCatalog
from asset_discovery.connectors import default_broker
from asset_discovery.context import DiscoveryAnnotationStore, DiscoveryContext
from asset_discovery.models import (
    Annotation,
    Connection,
    DataField,
    DiscoveryReport,
)
from asset_discovery.stores import InMemoryResultGraphStore, MongoResultGraphStore

USER_ID = "steward"
ASSET_GUID = "A1"


# =============================================================================
# Model Fixtures
# =============================================================================

@pytest.fixture
def valid_report_dict():
    """Minimal valid discovery report dictionary."""
    return {
        "qualified_name": "DiscoveryReport:A1:test",
        "display_name": "Test report",
        "asset_guid": ASSET_GUID,
        "asset_type": "schema-scan",
    }


@pytest.fixture
def valid_report(valid_report_dict):
    return DiscoveryReport(**valid_report_dict)


@pytest.fixture
def valid_annotation_dict():
    """Minimal valid annotation dictionary."""
    return {
        "annotation_type": "Schema Analysis",
        "summary": "3 columns",
        "confidence_level": 90,
    }


@pytest.fixture
def valid_annotation(valid_annotation_dict):
    return Annotation(**valid_annotation_dict)


@pytest.fixture
def valid_data_field_dict():
    """Minimal valid data field dictionary."""
    return {
        "data_field_name": "customer_id",
        "data_field_type": "INTEGER",
    }


@pytest.fixture
def valid_data_field(valid_data_field_dict):
    return DataField(**valid_data_field_dict)


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def mongomock_client():
    """In-memory MongoDB client for tests."""
    return mongomock.MongoClient()


@pytest.fixture
def memory_store():
    return InMemoryResultGraphStore(max_page_size=50)


@pytest.fixture
def mongo_store(monkeypatch, mongomock_client):
    """MongoResultGraphStore configured to use the mongomock client."""
    monkeypatch.setattr(
        "asset_discovery.stores.mongodb.MongoClient",
        lambda *args, **kwargs: mongomock_client,
    )
    return MongoResultGraphStore("mongodb://localhost:27017", max_page_size=50)


@pytest.fixture(params=["memory", "mongo"])
def store(request):
    """Each result graph store backend in turn."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def report_guid(store, valid_report):
    """GUID of a fresh WAITING report in the parametrized store."""
    return store.create_discovery_report(USER_ID, valid_report)


# =============================================================================
# Asset Fixtures
# =============================================================================

@pytest.fixture
def customers_table():
    return pa.table(
        {
            "customer_id": pa.array([1, 2, 3, 4], pa.int64()),
            "customer_name": pa.array(["Ada", "Grace", None, "Ada"], pa.string()),
            "balance": pa.array([10.5, None, 3.25, 7.0], pa.float64()),
            "active": pa.array([True, False, True, True], pa.bool_()),
        }
    )


@pytest.fixture
def customers_csv(tmp_path, customers_table):
    """CSV file holding the customers table."""
    path = tmp_path / "customers.csv"
    csv.write_csv(customers_table, str(path))
    return path


@pytest.fixture
def csv_connection(customers_csv):
    return Connection(
        qualified_name="file:customers.csv",
        display_name="customers.csv",
        connector_provider="CSVFileConnector",
        endpoint_address=str(customers_csv),
    )


@pytest.fixture
def catalog(csv_connection):
    return InMemoryAssetCatalog({ASSET_GUID: csv_connection})


@pytest.fixture
def broker():
    return default_broker()


@pytest.fixture
def discovery_context(memory_store, catalog, broker):
    """Context for a fresh in-memory report on asset A1."""

    def _make(**overrides):
        report = DiscoveryReport(
            qualified_name="DiscoveryReport:A1:ctx",
            asset_guid=ASSET_GUID,
            requested_annotation_types=overrides.pop("requested_annotation_types", None),
        )
        guid = memory_store.create_discovery_report(USER_ID, report)
        fields = dict(
            user_id=USER_ID,
            asset_guid=ASSET_GUID,
            report_guid=guid,
            annotation_store=DiscoveryAnnotationStore(memory_store, USER_ID, guid),
            asset_store=AssetResolver(USER_ID, ASSET_GUID, catalog, broker),
            asset_catalog=catalog,
            requested_annotation_types=report.requested_annotation_types,
        )
        fields.update(overrides)
        return DiscoveryContext(**fields)

    return _make
