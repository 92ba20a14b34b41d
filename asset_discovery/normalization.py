"""Arrow type normalization for discovered data fields."""

import logging
from typing import TypedDict

import pyarrow as pa
import pyarrow.types as pat

from asset_discovery.models import DataField

__all__ = [
    "normalize_arrow_dtype",
    "normalize_arrow_schema",
    "data_fields_from_schema",
    "NormalizedType",
    "NUMERIC_TYPES",
]

logger = logging.getLogger(__name__)


class NormalizedType(TypedDict):
    """Normalized type information for a column."""

    type_name: str  # Canonical category: STRING, INTEGER, FLOAT, etc.
    logical_type: str  # Detailed type: int64, float32, timestamp[ns]
    nullable: bool


# Canonical type vocabulary
TYPE_STRING = "STRING"
TYPE_INTEGER = "INTEGER"
TYPE_FLOAT = "FLOAT"
TYPE_BOOLEAN = "BOOLEAN"
TYPE_TIMESTAMP = "TIMESTAMP"
TYPE_DATE = "DATE"
TYPE_TIME = "TIME"
TYPE_DECIMAL = "DECIMAL"
TYPE_BINARY = "BINARY"
TYPE_ARRAY = "ARRAY"
TYPE_STRUCT = "STRUCT"
TYPE_MAP = "MAP"
TYPE_NULL = "NULL"
TYPE_UNKNOWN = "UNKNOWN"

NUMERIC_TYPES = frozenset({TYPE_INTEGER, TYPE_FLOAT, TYPE_DECIMAL})


def normalize_arrow_schema(schema: pa.Schema) -> dict[str, NormalizedType]:
    """Normalize every field of a PyArrow schema, keyed by column name."""
    return {field.name: normalize_arrow_dtype(field) for field in schema}


def normalize_arrow_dtype(field: pa.Field) -> NormalizedType:
    """
    Normalize a PyArrow field to the canonical type vocabulary.

    Example:
        >>> field = pa.field("age", pa.int64(), nullable=False)
        >>> normalize_arrow_dtype(field)
        {'type_name': 'INTEGER', 'logical_type': 'int64', 'nullable': False}
    """
    dtype = field.type

    if pat.is_string(dtype) or pat.is_large_string(dtype):
        type_name = TYPE_STRING
    elif pat.is_integer(dtype):
        type_name = TYPE_INTEGER
    elif pat.is_floating(dtype):
        type_name = TYPE_FLOAT
    elif pat.is_boolean(dtype):
        type_name = TYPE_BOOLEAN
    elif pat.is_timestamp(dtype):
        type_name = TYPE_TIMESTAMP
    elif pat.is_date(dtype):
        type_name = TYPE_DATE
    elif pat.is_time(dtype):
        type_name = TYPE_TIME
    elif pat.is_decimal(dtype):
        type_name = TYPE_DECIMAL
    elif pat.is_binary(dtype) or pat.is_large_binary(dtype) or pat.is_fixed_size_binary(dtype):
        type_name = TYPE_BINARY
    elif pat.is_list(dtype) or pat.is_large_list(dtype) or pat.is_fixed_size_list(dtype):
        type_name = TYPE_ARRAY
    elif pat.is_struct(dtype):
        type_name = TYPE_STRUCT
    elif pat.is_map(dtype):
        type_name = TYPE_MAP
    elif pat.is_null(dtype):
        # CSV columns with no values at all are inferred as null
        type_name = TYPE_NULL
    else:
        logger.debug(f"No canonical type for column '{field.name}' ({dtype})")
        type_name = TYPE_UNKNOWN

    return NormalizedType(
        type_name=type_name,
        logical_type=_get_logical_type_string(dtype),
        nullable=field.nullable,
    )


def data_fields_from_schema(schema: pa.Schema) -> list[DataField]:
    """
    Build unsaved DataField models for the top-level columns of a schema.

    Nested struct members become ``children`` entries in the returned
    field's ``properties`` so callers can add them as nested data fields.

    Example:
        >>> schema = pa.schema([("id", pa.int64()), ("name", pa.string())])
        >>> [f.data_field_type for f in data_fields_from_schema(schema)]
        ['INTEGER', 'STRING']
    """
    data_fields = []
    for position, field in enumerate(schema):
        normalized = normalize_arrow_dtype(field)
        properties: dict = {
            "logical_type": normalized["logical_type"],
            "nullable": normalized["nullable"],
        }
        if pat.is_struct(field.type):
            properties["children"] = [
                field.type.field(i).name for i in range(field.type.num_fields)
            ]
        data_fields.append(
            DataField(
                data_field_name=field.name,
                data_field_type=normalized["type_name"],
                data_field_sort_order=position,
                properties=properties,
            )
        )
    return data_fields


def _get_logical_type_string(dtype: pa.DataType) -> str:
    """
    Get a stable logical type string, normalizing timezone representations.
    """
    type_str = str(dtype)

    # timestamp[us, tz=America/New_York] -> timestamp[us]
    if "timestamp" in type_str and ", tz=" in type_str:
        type_str = type_str.split(", tz=")[0] + "]"

    return type_str
