"""Unit tests for the column classifier and profiler services."""

import datetime

import pyarrow as pa
import pytest

from asset_discovery.asset_resolver import AssetResolver
from asset_discovery.catalog import InMemoryAssetCatalog
from asset_discovery.connectors import Connector, ConnectorBroker, TabularDataConnector
from asset_discovery.exceptions import DiscoveryServiceError
from asset_discovery.models import Connection, LinkDirection
from asset_discovery.services import ColumnClassifierService, ColumnProfilerService
from asset_discovery.services.analyzers import (
    COLUMN_CLASSIFICATION,
    COLUMN_NAME_MATCH,
    COLUMN_PROFILE,
    DATA_PROFILE,
    DATA_SOURCE_MEASUREMENTS,
    SCHEMA_ANALYSIS,
    classify_column,
    column_stem,
    profile_column,
)


def _run(service_cls, context, name):
    service = service_cls(
        Connection(qualified_name=f"discovery:{name}", display_name=name, connector_provider=service_cls.__name__)
    )
    service.set_context(context)
    try:
        service.start()
    finally:
        service.disconnect()


def _types(annotations):
    return [a.annotation_type for a in annotations]


class TestClassification:
    @pytest.mark.parametrize(
        "name,type_name,expected",
        [
            ("customer_id", "INTEGER", ("identifier", 90)),
            ("ID", "STRING", ("identifier", 90)),
            ("order_key", "STRING", ("identifier", 90)),
            ("created", "TIMESTAMP", ("temporal", 80)),
            ("active", "BOOLEAN", ("flag", 80)),
            ("balance", "FLOAT", ("measure", 70)),
            ("city", "STRING", ("categorical", 60)),
            ("payload", "BINARY", ("other", 30)),
        ],
    )
    def test_classify_column(self, name, type_name, expected):
        assert classify_column(name, type_name) == expected

    def test_column_stem(self):
        assert column_stem("customer_name") == "customer"
        assert column_stem("Customer_ID") == "customer"
        assert column_stem("balance") is None
        assert column_stem("_private") is None


class TestProfileColumn:
    def test_numeric(self):
        profile = profile_column(pa.chunked_array([[3, 1, None, 3]], pa.int64()))
        assert profile == {"value_count": 3, "null_count": 1, "distinct_count": 2, "min": 1, "max": 3}

    def test_strings(self):
        profile = profile_column(pa.chunked_array([["b", "a", "b"]], pa.string()))
        assert profile["distinct_count"] == 2
        assert (profile["min"], profile["max"]) == ("a", "b")

    def test_booleans_have_no_range(self):
        profile = profile_column(pa.chunked_array([[True, False]], pa.bool_()))
        assert profile["min"] is None
        assert profile["max"] is None

    def test_dates_are_plain_strings(self):
        column = pa.chunked_array([[datetime.date(2024, 1, 2), datetime.date(2023, 5, 6)]], pa.date32())
        profile = profile_column(column)
        assert profile["min"] == "2023-05-06"
        assert profile["max"] == "2024-01-02"

    def test_all_null(self):
        profile = profile_column(pa.chunked_array([[None, None]], pa.null()))
        assert profile["value_count"] == 0
        assert profile["distinct_count"] == 0
        assert profile["min"] is None


class TestColumnClassifierService:
    def test_records_schema(self, discovery_context):
        context = discovery_context()
        _run(ColumnClassifierService, context, "Column Classifier")
        store = context.annotation_store

        annotations = store.get_new_annotations()
        assert _types(annotations) == [SCHEMA_ANALYSIS]
        schema = annotations[0]
        assert schema.additional_properties == {"column_count": "4"}
        assert schema.analysis_step == "classify"

        fields = store.get_annotation_data_fields(schema.guid)
        assert [f.data_field_name for f in fields] == ["customer_id", "customer_name", "balance", "active"]
        assert [f.data_field_type for f in fields] == ["INTEGER", "STRING", "FLOAT", "BOOLEAN"]

        classifications = {
            f.data_field_name: store.get_data_field_annotations(f.guid)[0].additional_properties["classification"]
            for f in fields
        }
        assert classifications == {
            "customer_id": "identifier",
            "customer_name": "categorical",
            "balance": "measure",
            "active": "flag",
        }
        assert store.get_discovery_report().analysis_step == "classify"

    def test_links_columns_sharing_a_stem(self, discovery_context):
        context = discovery_context()
        _run(ColumnClassifierService, context, "Column Classifier")
        store = context.annotation_store

        by_name = {f.data_field_name: f for f in store.get_new_data_fields()}
        related = store.get_linked_data_fields(by_name["customer_name"].guid)

        assert len(related) == 1
        assert related[0].data_field.data_field_name == "customer_id"
        assert related[0].direction is LinkDirection.UNDIRECTED
        assert related[0].link.name == COLUMN_NAME_MATCH
        assert related[0].link.properties == {"stem": "customer"}
        assert store.get_linked_data_fields(by_name["balance"].guid) == []

    def test_filter_limits_output(self, discovery_context):
        context = discovery_context(requested_annotation_types=[SCHEMA_ANALYSIS])
        _run(ColumnClassifierService, context, "Column Classifier")
        store = context.annotation_store

        fields = store.get_new_data_fields()
        assert len(fields) == 4
        assert all(store.get_data_field_annotations(f.guid) == [] for f in fields)
        assert all(store.get_linked_data_fields(f.guid) == [] for f in fields)

    def test_nothing_recorded_without_schema_analysis(self, discovery_context):
        context = discovery_context(requested_annotation_types=[DATA_PROFILE])
        _run(ColumnClassifierService, context, "Column Classifier")
        assert context.annotation_store.get_new_annotations() == []

    def test_nested_struct_fields(self, discovery_context):
        table = pa.table({"address": pa.array([{"street": "Main", "city": "Leeds"}])})
        catalog = InMemoryAssetCatalog({"A1": Connection(qualified_name="mem", connector_provider="Table")})

        class InMemoryTableConnector(TabularDataConnector):
            def read_table(self):
                return table

        broker = ConnectorBroker({"Table": InMemoryTableConnector})
        context = discovery_context(asset_store=AssetResolver("steward", "A1", catalog, broker))
        _run(ColumnClassifierService, context, "Column Classifier")

        store = context.annotation_store
        (address,) = store.get_new_data_fields()
        nested = store.get_nested_data_fields(address.guid)
        assert [f.data_field_name for f in nested] == ["street", "city"]
        assert all(f.parent_data_field_guid == address.guid for f in nested)

    def test_requires_tabular_connector(self, discovery_context):
        catalog = InMemoryAssetCatalog({"A1": Connection(qualified_name="plain", connector_provider="Plain")})
        broker = ConnectorBroker({"Plain": Connector})
        context = discovery_context(asset_store=AssetResolver("steward", "A1", catalog, broker))

        with pytest.raises(DiscoveryServiceError, match="needs a tabular connector"):
            _run(ColumnClassifierService, context, "Column Classifier")


class TestColumnProfilerService:
    def test_profiles_classified_columns(self, discovery_context):
        context = discovery_context()
        _run(ColumnClassifierService, context, "Column Classifier")
        _run(ColumnProfilerService, context, "Column Profiler")
        store = context.annotation_store

        top_level = store.get_new_annotations()
        assert _types(top_level) == [SCHEMA_ANALYSIS, DATA_SOURCE_MEASUREMENTS]
        assert top_level[1].properties == {"row_count": 4, "column_count": 4}

        (column_profile,) = store.get_extended_annotations(top_level[0].guid)
        assert column_profile.annotation_type == COLUMN_PROFILE
        balance = column_profile.properties["columns"]["balance"]
        assert balance["null_count"] == 1
        assert balance["value_count"] == 3
        assert (balance["min"], balance["max"]) == (3.25, 10.5)

        by_name = {f.data_field_name: f for f in store.get_new_data_fields()}
        field_types = _types(store.get_data_field_annotations(by_name["customer_id"].guid))
        assert field_types == [COLUMN_CLASSIFICATION, DATA_PROFILE]
        assert store.get_discovery_report().analysis_step == "profile"

    def test_without_classifier_only_measures(self, discovery_context):
        context = discovery_context()
        _run(ColumnProfilerService, context, "Column Profiler")
        assert _types(context.annotation_store.get_new_annotations()) == [DATA_SOURCE_MEASUREMENTS]

    def test_filter_skips_profiles(self, discovery_context):
        context = discovery_context(requested_annotation_types=[SCHEMA_ANALYSIS, DATA_SOURCE_MEASUREMENTS])
        _run(ColumnClassifierService, context, "Column Classifier")
        _run(ColumnProfilerService, context, "Column Profiler")
        store = context.annotation_store

        top_level = store.get_new_annotations()
        assert _types(top_level) == [SCHEMA_ANALYSIS, DATA_SOURCE_MEASUREMENTS]
        assert store.get_extended_annotations(top_level[0].guid) == []
        assert all(store.get_data_field_annotations(f.guid) == [] for f in store.get_new_data_fields())
