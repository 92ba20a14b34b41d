"""
Result graph stores.

- ResultGraphStore: Abstract store implementing report and graph semantics
- InMemoryResultGraphStore: Process-local store (tests, single-node engines)
- MongoResultGraphStore: MongoDB-backed store
"""

from .base import ResultGraphStore
from .memory import InMemoryResultGraphStore
from .mongodb import MongoResultGraphStore

__all__ = [
    "ResultGraphStore",
    "InMemoryResultGraphStore",
    "MongoResultGraphStore",
]
