"""Unit tests for Arrow type normalization."""

import pyarrow as pa

from asset_discovery.normalization import (
    data_fields_from_schema,
    normalize_arrow_dtype,
    normalize_arrow_schema,
)


class TestNormalizeArrowDtype:
    """Test normalize_arrow_dtype function."""

    def test_string_types(self):
        result = normalize_arrow_dtype(pa.field("name", pa.string()))
        assert result["type_name"] == "STRING"
        assert result["logical_type"] == "string"
        assert result["nullable"] is True

    def test_integer_types(self):
        for dtype in [pa.int8(), pa.int32(), pa.int64(), pa.uint16()]:
            result = normalize_arrow_dtype(pa.field("num", dtype, nullable=False))
            assert result["type_name"] == "INTEGER"
            assert result["nullable"] is False

    def test_float_and_decimal(self):
        assert normalize_arrow_dtype(pa.field("v", pa.float32()))["type_name"] == "FLOAT"
        assert normalize_arrow_dtype(pa.field("v", pa.decimal128(10, 2)))["type_name"] == "DECIMAL"

    def test_temporal_types(self):
        assert normalize_arrow_dtype(pa.field("d", pa.date32()))["type_name"] == "DATE"
        assert normalize_arrow_dtype(pa.field("t", pa.time64("us")))["type_name"] == "TIME"

    def test_timestamp_timezone_stripped(self):
        result = normalize_arrow_dtype(pa.field("ts", pa.timestamp("us", tz="UTC")))
        assert result["type_name"] == "TIMESTAMP"
        assert result["logical_type"] == "timestamp[us]"

    def test_nested_types(self):
        assert normalize_arrow_dtype(pa.field("l", pa.list_(pa.int64())))["type_name"] == "ARRAY"
        assert normalize_arrow_dtype(pa.field("s", pa.struct([("a", pa.int64())])))["type_name"] == "STRUCT"
        assert normalize_arrow_dtype(pa.field("m", pa.map_(pa.string(), pa.int64())))["type_name"] == "MAP"

    def test_null_type(self):
        assert normalize_arrow_dtype(pa.field("empty", pa.null()))["type_name"] == "NULL"


class TestSchemaHelpers:
    def test_normalize_schema(self):
        schema = pa.schema([("id", pa.int64()), ("name", pa.string())])
        normalized = normalize_arrow_schema(schema)
        assert list(normalized) == ["id", "name"]
        assert normalized["id"]["type_name"] == "INTEGER"

    def test_data_fields_from_schema(self):
        schema = pa.schema(
            [
                ("id", pa.int64()),
                ("address", pa.struct([("street", pa.string()), ("city", pa.string())])),
            ]
        )
        fields = data_fields_from_schema(schema)

        assert [f.data_field_name for f in fields] == ["id", "address"]
        assert [f.data_field_sort_order for f in fields] == [0, 1]
        assert fields[0].data_field_type == "INTEGER"
        assert fields[0].properties == {"logical_type": "int64", "nullable": True}
        assert fields[1].properties["children"] == ["street", "city"]
        assert all(f.guid is None for f in fields)
