"""Connectors that expose an asset as a PyArrow table."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import pyarrow as pa
from pyarrow import csv

from asset_discovery.connectors.base import Connector
from asset_discovery.exceptions import ConnectorError

__all__ = ["TabularDataConnector", "CSVFileConnector"]

logger = logging.getLogger(__name__)


class TabularDataConnector(Connector, ABC):
    """Asset connector for row/column data."""

    @abstractmethod
    def read_table(self) -> pa.Table:
        """Read the whole asset into memory."""


class CSVFileConnector(TabularDataConnector):
    """
    Reads a delimited text file named by the connection's endpoint address.

    Configuration properties:
        delimiter: Field delimiter (default ",")
        encoding: File encoding (default "utf8")
    """

    def __init__(self, connection, broker=None) -> None:
        super().__init__(connection, broker)
        self._table: Optional[pa.Table] = None

    @property
    def path(self) -> Path:
        if not self.connection.endpoint_address:
            raise ConnectorError(
                f"Connection '{self.connection.qualified_name}' has no endpoint address",
                operation="read_table",
                context={"connection": self.connection.qualified_name},
            )
        return Path(self.connection.endpoint_address)

    def read_table(self) -> pa.Table:
        """Read the CSV file; the table is cached until disconnect."""
        if self._table is not None:
            return self._table

        path = self.path
        properties = self.connection.configuration_properties
        try:
            logger.info(f"Reading CSV file: {path}")
            self._table = csv.read_csv(
                str(path),
                parse_options=csv.ParseOptions(delimiter=properties.get("delimiter", ",")),
                read_options=csv.ReadOptions(
                    use_threads=True,
                    encoding=properties.get("encoding", "utf8"),
                ),
            )
        except (OSError, pa.ArrowInvalid) as e:
            raise ConnectorError(
                f"Failed to read CSV file '{path}': {e}",
                operation="read_table",
                context={"connection": self.connection.qualified_name, "path": str(path)},
            ) from e

        logger.info(f"Read {self._table.num_columns} columns, {self._table.num_rows} rows")
        return self._table

    def disconnect(self) -> None:
        self._table = None
        super().disconnect()
