"""Unit tests for the connector broker and the tabular connectors."""

import pyarrow as pa
import pytest

from asset_discovery.connectors import (
    Connector,
    ConnectorBroker,
    CSVFileConnector,
    default_broker,
)
from asset_discovery.exceptions import (
    ConnectorError,
    InvalidConnectionError,
    InvalidConnectorError,
)
from asset_discovery.models import Connection


class _BrokenConnector(Connector):
    def __init__(self, connection, broker=None):
        raise RuntimeError("endpoint unreachable")


class TestConnectorBroker:
    def test_default_providers(self):
        assert default_broker().providers() == [
            "CSVFileConnector",
            "ColumnClassifierService",
            "ColumnProfilerService",
            "DiscoveryPipeline",
        ]

    def test_creates_fresh_connector_each_call(self, broker, csv_connection):
        first = broker.get_connector(csv_connection)
        second = broker.get_connector(csv_connection)
        assert isinstance(first, CSVFileConnector)
        assert first is not second
        assert first.broker is broker

    def test_unknown_provider(self, broker):
        connection = Connection(qualified_name="x", connector_provider="NoSuchProvider")
        with pytest.raises(InvalidConnectionError, match="Unknown connector provider"):
            broker.get_connector(connection)

    def test_not_a_connection(self, broker):
        with pytest.raises(InvalidConnectionError):
            broker.get_connector({"qualified_name": "x"})

    def test_provider_failure(self):
        broker = ConnectorBroker({"Broken": _BrokenConnector})
        with pytest.raises(InvalidConnectorError) as exc_info:
            broker.get_connector(Connection(qualified_name="x", connector_provider="Broken"))
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_register_rejects_non_connector(self):
        with pytest.raises(TypeError):
            ConnectorBroker().register("Dict", dict)


class TestCSVFileConnector:
    def test_read_table(self, broker, csv_connection, customers_table):
        connector = broker.get_connector(csv_connection)
        table = connector.read_table()
        assert table.column_names == customers_table.column_names
        assert table.num_rows == 4
        assert table.schema.field("customer_id").type == pa.int64()

    def test_custom_delimiter(self, tmp_path, broker):
        path = tmp_path / "semicolon.csv"
        path.write_text("a;b\n1;x\n2;y\n")
        connection = Connection(
            qualified_name="file:semicolon.csv",
            connector_provider="CSVFileConnector",
            endpoint_address=str(path),
            configuration_properties={"delimiter": ";"},
        )
        assert broker.get_connector(connection).read_table().column_names == ["a", "b"]

    def test_missing_file(self, tmp_path, broker):
        connection = Connection(
            qualified_name="file:missing.csv",
            connector_provider="CSVFileConnector",
            endpoint_address=str(tmp_path / "missing.csv"),
        )
        with pytest.raises(ConnectorError, match="Failed to read CSV file"):
            broker.get_connector(connection).read_table()

    def test_missing_endpoint(self, broker):
        connection = Connection(qualified_name="file:none", connector_provider="CSVFileConnector")
        with pytest.raises(ConnectorError, match="no endpoint address"):
            broker.get_connector(connection).read_table()

    def test_disconnect_is_repeatable(self, broker, csv_connection):
        connector = broker.get_connector(csv_connection)
        connector.start()
        assert connector.is_active
        connector.disconnect()
        connector.disconnect()
        assert not connector.is_active
