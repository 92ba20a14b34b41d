"""
Connectors and the connector broker.

- Connector: Base class for everything built from a Connection
- TabularDataConnector / CSVFileConnector: Asset connectors returning PyArrow tables
- ConnectorBroker: Provider registry turning Connections into connectors
"""

from .base import Connector
from .broker import ConnectorBroker, default_broker
from .tabular import CSVFileConnector, TabularDataConnector

__all__ = [
    "Connector",
    "ConnectorBroker",
    "default_broker",
    "TabularDataConnector",
    "CSVFileConnector",
]
