# =============================================================================
# Discovery Context
# =============================================================================
# Per-request exchange object handed to every discovery service of a request:
# - DiscoveryAnnotationStore: ResultGraphStore bound to one user and report
# - DiscoveryContext: Immutable request aggregate (asset, caller, parameters,
#   annotation-type filter, store handles)
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Mapping, Optional

from asset_discovery.models import (
    Annotation,
    AnnotationStatus,
    DataField,
    DataFieldLink,
    DiscoveryReport,
    RelatedDataField,
    RequestStatus,
)
from asset_discovery.stores import ResultGraphStore

if TYPE_CHECKING:
    from asset_discovery.asset_resolver import AssetResolver
    from asset_discovery.catalog import AssetCatalog

__all__ = ["DiscoveryAnnotationStore", "DiscoveryContext"]


class DiscoveryAnnotationStore:
    """
    Report-scoped view of a ResultGraphStore.

    Every call is made on behalf of ``user_id`` and writes land in
    ``report_guid``. Several views may share one store; results written
    through any of them are visible to all.
    """

    def __init__(self, store: ResultGraphStore, user_id: str, report_guid: str) -> None:
        self.store = store
        self.user_id = user_id
        self.report_guid = report_guid

    # Report

    def get_discovery_report(self) -> DiscoveryReport:
        return self.store.get_discovery_report(self.user_id, self.report_guid)

    def get_discovery_status(self) -> RequestStatus:
        return self.store.get_discovery_status(self.user_id, self.report_guid)

    def set_discovery_status(self, status: RequestStatus) -> None:
        self.store.set_discovery_status(self.user_id, self.report_guid, status)

    def set_analysis_step(self, analysis_step: str) -> None:
        self.store.set_analysis_step(self.user_id, self.report_guid, analysis_step)

    def list_annotation_types(self) -> list[str]:
        return self.store.list_annotation_types(self.user_id)

    # Annotations

    def get_previous_annotations(
        self, status: Optional[AnnotationStatus] = None, offset: int = 0, limit: int = 0
    ) -> list[Annotation]:
        return self.store.get_previous_annotations(self.user_id, self.report_guid, status, offset, limit)

    def get_new_annotations(self, offset: int = 0, limit: int = 0) -> list[Annotation]:
        return self.store.get_new_annotations(self.user_id, self.report_guid, offset, limit)

    def get_extended_annotations(self, annotation_guid: str, offset: int = 0, limit: int = 0) -> list[Annotation]:
        return self.store.get_extended_annotations(self.user_id, annotation_guid, offset, limit)

    def get_data_field_annotations(self, data_field_guid: str, offset: int = 0, limit: int = 0) -> list[Annotation]:
        return self.store.get_data_field_annotations(self.user_id, data_field_guid, offset, limit)

    def get_annotation(self, annotation_guid: str) -> Annotation:
        return self.store.get_annotation(self.user_id, annotation_guid)

    def add_annotation_to_discovery_report(self, annotation: Annotation) -> str:
        return self.store.add_annotation_to_report(self.user_id, self.report_guid, annotation)

    def add_annotation_to_annotation(self, parent_annotation_guid: str, annotation: Annotation) -> str:
        return self.store.add_annotation_to_annotation(
            self.user_id, self.report_guid, parent_annotation_guid, annotation
        )

    def add_annotation_to_data_field(self, data_field_guid: str, annotation: Annotation) -> str:
        return self.store.add_annotation_to_data_field(self.user_id, self.report_guid, data_field_guid, annotation)

    def update_annotation(self, annotation: Annotation) -> None:
        self.store.update_annotation(self.user_id, annotation)

    def delete_annotation(self, annotation_guid: str) -> None:
        self.store.delete_annotation(self.user_id, annotation_guid)

    # Data fields

    def get_previous_data_fields(self, offset: int = 0, limit: int = 0) -> list[DataField]:
        return self.store.get_previous_data_fields(self.user_id, self.report_guid, offset, limit)

    def get_new_data_fields(self, offset: int = 0, limit: int = 0) -> list[DataField]:
        return self.store.get_new_data_fields(self.user_id, self.report_guid, offset, limit)

    def get_annotation_data_fields(self, annotation_guid: str, offset: int = 0, limit: int = 0) -> list[DataField]:
        return self.store.get_annotation_data_fields(self.user_id, annotation_guid, offset, limit)

    def get_nested_data_fields(self, parent_data_field_guid: str, offset: int = 0, limit: int = 0) -> list[DataField]:
        return self.store.get_nested_data_fields(self.user_id, parent_data_field_guid, offset, limit)

    def get_linked_data_fields(self, data_field_guid: str, offset: int = 0, limit: int = 0) -> list[RelatedDataField]:
        return self.store.get_linked_data_fields(self.user_id, data_field_guid, offset, limit)

    def get_data_field(self, data_field_guid: str) -> DataField:
        return self.store.get_data_field(self.user_id, data_field_guid)

    def add_data_field_to_discovery_report(self, annotation_guid: str, data_field: DataField) -> str:
        return self.store.add_data_field_to_annotation(self.user_id, self.report_guid, annotation_guid, data_field)

    def add_data_field_to_data_field(self, parent_data_field_guid: str, data_field: DataField) -> str:
        return self.store.add_data_field_to_data_field(
            self.user_id, self.report_guid, parent_data_field_guid, data_field
        )

    def link_data_fields(self, from_data_field_guid: str, link: DataFieldLink, to_data_field_guid: str) -> str:
        return self.store.link_data_fields(
            self.user_id, self.report_guid, from_data_field_guid, link, to_data_field_guid
        )

    def update_data_field(self, data_field: DataField) -> None:
        self.store.update_data_field(self.user_id, data_field)

    def delete_data_field(self, data_field_guid: str) -> None:
        self.store.delete_data_field(self.user_id, data_field_guid)

    def iter_all(self, fetch, *args: Any):
        """Yield every item of a paged query, one page at a time."""
        offset = 0
        page_size = self.store.max_page_size
        while True:
            page = fetch(*args, offset=offset, limit=page_size)
            yield from page
            if len(page) < page_size:
                return
            offset += page_size


@dataclass(frozen=True)
class DiscoveryContext:
    """
    Everything a discovery service needs to analyse one asset.

    Attributes:
        user_id: Caller the request runs on behalf of
        asset_guid: Asset being analysed
        report_guid: Discovery report collecting the results
        analysis_parameters: Request parameters (key -> value)
        requested_annotation_types: Annotation types to produce; None means all
        annotation_store: Report-scoped result graph store
        asset_store: Resolver for the asset's connector
        asset_catalog: Catalog the asset was resolved from
    """

    user_id: str
    asset_guid: str
    report_guid: str
    annotation_store: DiscoveryAnnotationStore
    asset_store: "AssetResolver"
    asset_catalog: Optional["AssetCatalog"] = None
    analysis_parameters: Mapping[str, str] = field(default_factory=dict)
    requested_annotation_types: Optional[frozenset[str]] = None

    def __post_init__(self) -> None:
        # Own copies of the caller-supplied collections
        object.__setattr__(self, "analysis_parameters", dict(self.analysis_parameters))
        if self.requested_annotation_types is not None:
            object.__setattr__(self, "requested_annotation_types", frozenset(self.requested_annotation_types))

    def is_annotation_type_requested(self, annotation_type: str) -> bool:
        if self.requested_annotation_types is None:
            return True
        return annotation_type in self.requested_annotation_types

    def get_parameter(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.analysis_parameters.get(name, default)

    def restricted(
        self,
        *,
        annotation_types: Optional[set[str]] = None,
        analysis_parameters: Optional[Mapping[str, str]] = None,
    ) -> "DiscoveryContext":
        """
        Return a clone with a narrower view.

        The annotation-type filter is intersected with the current one and
        the parameters are overlaid on the current ones. The clone shares the
        same stores, so results remain pooled across the request.
        """
        requested = self.requested_annotation_types
        if annotation_types is not None:
            requested = frozenset(annotation_types) if requested is None else requested & frozenset(annotation_types)

        parameters = dict(self.analysis_parameters)
        parameters.update(analysis_parameters or {})
        return replace(self, analysis_parameters=parameters, requested_annotation_types=requested)
