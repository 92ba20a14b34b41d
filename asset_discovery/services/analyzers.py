"""
Leaf discovery services for tabular assets.

- ColumnClassifierService: Records the schema as data fields and classifies each column
- ColumnProfilerService: Profiles the columns recorded by the classifier
"""

import datetime
import decimal
import logging
from collections import defaultdict
from typing import Any, Optional

import pyarrow as pa
import pyarrow.compute as pc
import pyarrow.types as pat

from asset_discovery.connectors import TabularDataConnector
from asset_discovery.exceptions import DiscoveryServiceError
from asset_discovery.models import Annotation, DataField, DataFieldLink
from asset_discovery.normalization import NUMERIC_TYPES, data_fields_from_schema, normalize_arrow_dtype
from asset_discovery.services.base import DiscoveryService

__all__ = [
    "ColumnClassifierService",
    "ColumnProfilerService",
    "ANNOTATION_TYPES",
    "SCHEMA_ANALYSIS",
    "COLUMN_CLASSIFICATION",
    "COLUMN_NAME_MATCH",
    "DATA_PROFILE",
    "COLUMN_PROFILE",
    "DATA_SOURCE_MEASUREMENTS",
    "profile_column",
]

logger = logging.getLogger(__name__)

SCHEMA_ANALYSIS = "Schema Analysis"
COLUMN_CLASSIFICATION = "Column Classification"
COLUMN_NAME_MATCH = "Column Name Match"
DATA_PROFILE = "Data Profile"
COLUMN_PROFILE = "Column Profile"
DATA_SOURCE_MEASUREMENTS = "Data Source Measurements"

ANNOTATION_TYPES: dict[str, str] = {
    SCHEMA_ANALYSIS: "Structure of the asset, anchoring one data field per column",
    COLUMN_CLASSIFICATION: "Semantic class of a column derived from its name and type",
    DATA_PROFILE: "Value statistics of one column",
    COLUMN_PROFILE: "Value statistics of every column, keyed by column name",
    DATA_SOURCE_MEASUREMENTS: "Size measurements of the asset",
}


def _read_table(service: DiscoveryService) -> pa.Table:
    connector = service.asset_store.connector_for_asset()
    if not isinstance(connector, TabularDataConnector):
        raise DiscoveryServiceError(
            f"Discovery service '{service.display_name}' needs a tabular connector, "
            f"got {type(connector).__name__}",
            operation="start",
            context={"service_name": service.display_name},
        )
    return connector.read_table()


# =============================================================================
# Column Classifier
# =============================================================================


def classify_column(name: str, type_name: str) -> tuple[str, int]:
    """
    Return (classification, confidence) for a column.

    Name-based matches are trusted more than type-based ones.
    """
    lowered = name.lower()
    if lowered == "id" or lowered.endswith("_id") or lowered.endswith("_key"):
        return "identifier", 90
    if type_name in ("TIMESTAMP", "DATE", "TIME"):
        return "temporal", 80
    if type_name == "BOOLEAN":
        return "flag", 80
    if type_name in NUMERIC_TYPES:
        return "measure", 70
    if type_name == "STRING":
        return "categorical", 60
    return "other", 30


def column_stem(name: str) -> Optional[str]:
    """First word of a snake_case column name, or None for single-word names."""
    parts = [part for part in name.lower().split("_") if part]
    if len(parts) < 2:
        return None
    return parts[0]


class ColumnClassifierService(DiscoveryService):
    """
    Records the asset's columns and classifies them.

    Writes a top-level "Schema Analysis" annotation, one data field per
    column under it, a "Column Classification" annotation on each data field
    and an undirected "Column Name Match" link between columns that share a
    name stem (``customer_id`` and ``customer_name``).
    """

    ANALYSIS_STEP = "classify"

    def start(self) -> None:
        super().start()
        self.set_analysis_step(self.ANALYSIS_STEP)

        if not self.is_annotation_type_requested(SCHEMA_ANALYSIS):
            logger.info(f"'{SCHEMA_ANALYSIS}' not requested, classifier has nothing to record")
            return

        table = _read_table(self)
        store = self.annotation_store

        schema_guid = store.add_annotation_to_discovery_report(
            Annotation(
                annotation_type=SCHEMA_ANALYSIS,
                summary=f"{table.num_columns} columns",
                confidence_level=100,
                explanation="Columns read from the asset's schema",
                analysis_step=self.ANALYSIS_STEP,
                additional_properties={"column_count": table.num_columns},
            )
        )

        field_guids: dict[str, str] = {}
        for data_field, arrow_field in zip(data_fields_from_schema(table.schema), table.schema):
            guid = store.add_data_field_to_discovery_report(schema_guid, data_field)
            field_guids[data_field.data_field_name] = guid

            if pat.is_struct(arrow_field.type):
                self._add_nested_fields(guid, arrow_field.type)

            if self.is_annotation_type_requested(COLUMN_CLASSIFICATION):
                classification, confidence = classify_column(
                    data_field.data_field_name, data_field.data_field_type or ""
                )
                store.add_annotation_to_data_field(
                    guid,
                    Annotation(
                        annotation_type=COLUMN_CLASSIFICATION,
                        summary=classification,
                        confidence_level=confidence,
                        analysis_step=self.ANALYSIS_STEP,
                        additional_properties={
                            "classification": classification,
                            "data_type": data_field.data_field_type,
                        },
                    ),
                )

        if self.is_annotation_type_requested(COLUMN_NAME_MATCH):
            self._link_matching_columns(field_guids)

        logger.info(f"Classified {len(field_guids)} columns for asset {self._require_context().asset_guid}")

    def _add_nested_fields(self, parent_guid: str, struct_type: pa.StructType) -> None:
        for position in range(struct_type.num_fields):
            child = struct_type.field(position)
            normalized = normalize_arrow_dtype(child)
            self.annotation_store.add_data_field_to_data_field(
                parent_guid,
                DataField(
                    data_field_name=child.name,
                    data_field_type=normalized["type_name"],
                    data_field_sort_order=position,
                    properties={"logical_type": normalized["logical_type"], "nullable": normalized["nullable"]},
                ),
            )

    def _link_matching_columns(self, field_guids: dict[str, str]) -> None:
        by_stem: dict[str, list[str]] = defaultdict(list)
        for name in field_guids:
            stem = column_stem(name)
            if stem:
                by_stem[stem].append(name)

        for stem, names in by_stem.items():
            for i, left in enumerate(names):
                for right in names[i + 1:]:
                    self.annotation_store.link_data_fields(
                        field_guids[left],
                        DataFieldLink(
                            name=COLUMN_NAME_MATCH,
                            type_name="ColumnNameMatch",
                            description=f"Columns share the name stem '{stem}'",
                            directed=False,
                            properties={"stem": stem},
                        ),
                        field_guids[right],
                    )


# =============================================================================
# Column Profiler
# =============================================================================


def _plain(value: Any) -> Any:
    """Convert a profile value to a type every store can hold."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, decimal.Decimal):
        return float(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    return str(value)


def profile_column(column: pa.ChunkedArray) -> dict[str, Any]:
    """
    Compute value statistics for one column.

    Returns:
        Dict with value_count, null_count, distinct_count, and min/max for
        orderable types (None when the column has no values)
    """
    dtype = column.type
    profile: dict[str, Any] = {
        "value_count": pc.count(column).as_py(),
        "null_count": column.null_count,
        "distinct_count": pc.count_distinct(column).as_py() if not pat.is_null(dtype) else 0,
        "min": None,
        "max": None,
    }

    orderable = (
        pat.is_integer(dtype)
        or pat.is_floating(dtype)
        or pat.is_decimal(dtype)
        or pat.is_temporal(dtype)
        or pat.is_string(dtype)
        or pat.is_large_string(dtype)
    )
    if orderable and profile["value_count"]:
        min_max = pc.min_max(column).as_py()
        profile["min"] = _plain(min_max["min"])
        profile["max"] = _plain(min_max["max"])
    return profile


class ColumnProfilerService(DiscoveryService):
    """
    Profiles the columns found by an earlier classifier run in the same report.

    Adds a "Data Profile" annotation to each data field, a "Column Profile"
    annotation nested under the "Schema Analysis" annotation, and a top-level
    "Data Source Measurements" annotation.
    """

    ANALYSIS_STEP = "profile"

    def start(self) -> None:
        super().start()
        self.set_analysis_step(self.ANALYSIS_STEP)

        table = _read_table(self)
        store = self.annotation_store
        schema_annotation = self._find_schema_annotation()

        if schema_annotation is None:
            logger.warning(
                f"No '{SCHEMA_ANALYSIS}' annotation in report {store.report_guid}; skipping column profiles"
            )
        else:
            profiles: dict[str, dict[str, Any]] = {}
            for data_field in store.iter_all(store.get_annotation_data_fields, schema_annotation.guid):
                name = data_field.data_field_name
                if name not in table.column_names:
                    logger.warning(f"Column '{name}' is no longer in the asset")
                    continue
                profile = profile_column(table.column(name))
                profiles[name] = profile

                if self.is_annotation_type_requested(DATA_PROFILE):
                    store.add_annotation_to_data_field(
                        data_field.guid,
                        Annotation(
                            annotation_type=DATA_PROFILE,
                            summary=f"{profile['value_count']} values, {profile['distinct_count']} distinct",
                            confidence_level=100,
                            analysis_step=self.ANALYSIS_STEP,
                            properties=profile,
                        ),
                    )

            if self.is_annotation_type_requested(COLUMN_PROFILE):
                store.add_annotation_to_annotation(
                    schema_annotation.guid,
                    Annotation(
                        annotation_type=COLUMN_PROFILE,
                        summary=f"Profiled {len(profiles)} columns",
                        confidence_level=100,
                        analysis_step=self.ANALYSIS_STEP,
                        properties={"columns": profiles},
                    ),
                )

        if self.is_annotation_type_requested(DATA_SOURCE_MEASUREMENTS):
            store.add_annotation_to_discovery_report(
                Annotation(
                    annotation_type=DATA_SOURCE_MEASUREMENTS,
                    summary=f"{table.num_rows} rows, {table.num_columns} columns",
                    confidence_level=100,
                    analysis_step=self.ANALYSIS_STEP,
                    additional_properties={"row_count": table.num_rows, "column_count": table.num_columns},
                    properties={"row_count": table.num_rows, "column_count": table.num_columns},
                )
            )

    def _find_schema_annotation(self) -> Optional[Annotation]:
        store = self.annotation_store
        found = None
        for annotation in store.iter_all(store.get_new_annotations):
            if annotation.annotation_type == SCHEMA_ANALYSIS:
                found = annotation
        return found
