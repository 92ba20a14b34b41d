"""Result graph store - paged access to discovery reports, annotations and data fields."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from asset_discovery.exceptions import (
    ElementNotFoundError,
    InvalidParameterError,
)
from asset_discovery.models import (
    REVIEWED_ANNOTATION_STATUSES,
    Annotation,
    AnnotationStatus,
    DataField,
    DataFieldLink,
    DiscoveryReport,
    LinkDirection,
    RelatedDataField,
    RequestStatus,
)

__all__ = ["ResultGraphStore"]

ModelT = TypeVar("ModelT", bound=BaseModel)

_INACTIVE_REPORT_STATUSES = [
    RequestStatus.COMPLETE.value,
    RequestStatus.FAILED.value,
    RequestStatus.DISCONNECTED.value,
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_guid() -> str:
    return str(uuid.uuid4())


class ResultGraphStore(ABC):
    """
    Persistence façade for discovery reports and their result graphs.

    Subclasses supply a handful of document primitives (insert, find, count,
    update, delete, sequence); this class implements the graph semantics on
    top of them: identity assignment, anchoring rules, status monotonicity,
    paging and the previous/new split across runs.

    Every element carries a store-wide sequence number assigned at creation,
    and paged reads are ordered by it, so iterating offsets 0, P, 2P, ...
    returns each element exactly once.
    """

    REPORTS: ClassVar[str] = "discovery_reports"
    ANNOTATIONS: ClassVar[str] = "annotations"
    DATA_FIELDS: ClassVar[str] = "data_fields"
    LINKS: ClassVar[str] = "data_field_links"
    ANNOTATION_TYPES: ClassVar[str] = "annotation_types"
    SEQUENCE: ClassVar[str] = "result_graph"

    def __init__(self, max_page_size: int = 500, strict_annotation_types: bool = False) -> None:
        if max_page_size < 1:
            raise ValueError(f"max_page_size must be >= 1, got {max_page_size}")
        self.max_page_size = max_page_size
        self.strict_annotation_types = strict_annotation_types

    # ------------------------------------------------------------------
    # Document primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _insert(self, collection: str, document: dict[str, Any]) -> None:
        """Insert a document."""

    @abstractmethod
    def _find_one(self, collection: str, query: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Return the first document matching ``query`` or None."""

    @abstractmethod
    def _find(
        self, collection: str, query: dict[str, Any], offset: int = 0, limit: int = 0
    ) -> list[dict[str, Any]]:
        """Return matching documents ordered by ``seq``; ``limit=0`` means no limit."""

    @abstractmethod
    def _count(self, collection: str, query: dict[str, Any]) -> int:
        """Count matching documents."""

    @abstractmethod
    def _update(self, collection: str, query: dict[str, Any], fields: dict[str, Any]) -> int:
        """Set ``fields`` on the first matching document; return the matched count."""

    @abstractmethod
    def _delete(self, collection: str, query: dict[str, Any]) -> int:
        """Delete all matching documents; return the deleted count."""

    @abstractmethod
    def _next_sequence(self) -> int:
        """Return the next value of the store-wide creation sequence."""

    # ------------------------------------------------------------------
    # Conversion and validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_document(model: BaseModel) -> dict[str, Any]:
        document = model.model_dump()
        return {
            key: value.value if isinstance(value, Enum) else value
            for key, value in document.items()
        }

    @staticmethod
    def _from_document(model_cls: type[ModelT], document: dict[str, Any]) -> ModelT:
        stripped = dict(document)
        stripped.pop("_id", None)
        return model_cls.model_validate(stripped)

    @staticmethod
    def _coerce(model_cls: type[ModelT], value: Any, name: str, operation: str) -> ModelT:
        if isinstance(value, model_cls):
            return value
        if isinstance(value, dict):
            try:
                return model_cls.model_validate(value)
            except ValidationError as exc:
                raise InvalidParameterError(
                    f"{name} is invalid: {exc.errors()[0]['msg']}",
                    operation=operation,
                ) from exc
            except TypeError as exc:
                raise InvalidParameterError(f"{name} is invalid: {exc}", operation=operation) from exc
        raise InvalidParameterError(
            f"{name} must be a {model_cls.__name__}, got {type(value).__name__}",
            operation=operation,
        )

    @staticmethod
    def _validate_name(value: Optional[str], name: str, operation: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise InvalidParameterError(f"{name} must be a non-empty string", operation=operation)
        return value

    def _validate_paging(self, offset: int, limit: int, operation: str) -> int:
        """Check paging bounds; return the effective page size."""
        if not isinstance(offset, int) or offset < 0:
            raise InvalidParameterError(f"offset must be >= 0, got {offset}", operation=operation)
        if not isinstance(limit, int) or limit < 0:
            raise InvalidParameterError(f"limit must be >= 0, got {limit}", operation=operation)
        if limit > self.max_page_size:
            raise InvalidParameterError(
                f"limit {limit} exceeds the maximum page size {self.max_page_size}",
                operation=operation,
            )
        return limit or self.max_page_size

    def _check_annotation_type(self, annotation: Annotation, operation: str) -> None:
        if not self.strict_annotation_types:
            return
        if self._count(self.ANNOTATION_TYPES, {"type_name": annotation.annotation_type}) == 0:
            raise InvalidParameterError(
                f"Annotation type '{annotation.annotation_type}' is not registered",
                operation=operation,
            )

    def _get_report_or_raise(self, report_guid: str, operation: str) -> DiscoveryReport:
        self._validate_name(report_guid, "report_guid", operation)
        document = self._find_one(self.REPORTS, {"guid": report_guid})
        if document is None:
            raise ElementNotFoundError("DiscoveryReport", report_guid, operation=operation)
        return self._from_document(DiscoveryReport, document)

    def _get_writable_report(self, report_guid: str, operation: str) -> DiscoveryReport:
        report = self._get_report_or_raise(report_guid, operation)
        if report.discovery_request_status.is_terminal:
            raise InvalidParameterError(
                f"Discovery report '{report_guid}' is "
                f"{report.discovery_request_status.value} and can no longer be changed",
                operation=operation,
                context={"report_guid": report_guid},
            )
        return report

    def _get_annotation_or_raise(self, guid: str, operation: str) -> Annotation:
        self._validate_name(guid, "annotation_guid", operation)
        document = self._find_one(self.ANNOTATIONS, {"guid": guid})
        if document is None:
            raise ElementNotFoundError("Annotation", guid, operation=operation)
        return self._from_document(Annotation, document)

    def _get_data_field_or_raise(self, guid: str, operation: str) -> DataField:
        self._validate_name(guid, "data_field_guid", operation)
        document = self._find_one(self.DATA_FIELDS, {"guid": guid})
        if document is None:
            raise ElementNotFoundError("DataField", guid, operation=operation)
        return self._from_document(DataField, document)

    @staticmethod
    def _require_same_report(element: Any, report: DiscoveryReport, name: str, operation: str) -> None:
        if element.report_guid != report.guid:
            raise InvalidParameterError(
                f"{name} '{element.guid}' does not belong to discovery report '{report.guid}'",
                operation=operation,
                context={"report_guid": report.guid, "guid": element.guid},
            )

    def _page(
        self, model_cls: type[ModelT], collection: str, query: dict[str, Any], offset: int, limit: int, operation: str
    ) -> list[ModelT]:
        page_size = self._validate_paging(offset, limit, operation)
        documents = self._find(collection, query, offset, page_size)
        return [self._from_document(model_cls, document) for document in documents]

    def _other_report_guids(self, report: DiscoveryReport, statuses: Optional[list[str]] = None) -> list[str]:
        query: dict[str, Any] = {"asset_guid": report.asset_guid, "guid": {"$ne": report.guid}}
        if statuses is not None:
            query["discovery_request_status"] = {"$in": statuses}
        return [document["guid"] for document in self._find(self.REPORTS, query)]

    # ------------------------------------------------------------------
    # Annotation types
    # ------------------------------------------------------------------

    def register_annotation_type(self, user_id: str, type_name: str, description: str = "") -> None:
        """Register (or re-describe) a supported annotation type."""
        operation = "register_annotation_type"
        self._validate_name(user_id, "user_id", operation)
        self._validate_name(type_name, "type_name", operation)
        type_name = type_name.strip()
        updated = self._update(self.ANNOTATION_TYPES, {"type_name": type_name}, {"description": description})
        if not updated:
            self._insert(
                self.ANNOTATION_TYPES,
                {"type_name": type_name, "description": description, "seq": self._next_sequence()},
            )

    def list_annotation_types(self, user_id: str) -> list[str]:
        """Return the names of the supported annotation types."""
        return list(self.list_annotation_types_with_descriptions(user_id))

    def list_annotation_types_with_descriptions(self, user_id: str) -> dict[str, str]:
        """Return supported annotation types mapped to their descriptions."""
        self._validate_name(user_id, "user_id", "list_annotation_types")
        return {
            document["type_name"]: document.get("description", "")
            for document in self._find(self.ANNOTATION_TYPES, {})
        }

    # ------------------------------------------------------------------
    # Discovery reports
    # ------------------------------------------------------------------

    def create_discovery_report(self, user_id: str, report: DiscoveryReport) -> str:
        """Persist a new discovery report and return its GUID."""
        operation = "create_discovery_report"
        self._validate_name(user_id, "user_id", operation)
        report = self._coerce(DiscoveryReport, report, "report", operation)
        if report.discovery_request_status is RequestStatus.OTHER:
            raise InvalidParameterError("A new report cannot start in status OTHER", operation=operation)

        guid = _new_guid()
        stored = report.model_copy(update={"guid": guid, "user_id": report.user_id or user_id})
        document = self._to_document(stored)
        document["seq"] = self._next_sequence()
        self._insert(self.REPORTS, document)
        return guid

    def get_discovery_report(self, user_id: str, report_guid: str) -> DiscoveryReport:
        operation = "get_discovery_report"
        self._validate_name(user_id, "user_id", operation)
        return self._get_report_or_raise(report_guid, operation)

    def get_discovery_status(self, user_id: str, report_guid: str) -> RequestStatus:
        return self.get_discovery_report(user_id, report_guid).discovery_request_status

    def set_discovery_status(
        self,
        user_id: str,
        report_guid: str,
        status: RequestStatus,
        *,
        error_message: Optional[str] = None,
    ) -> None:
        """
        Move a report forward in its lifecycle.

        The update is a compare-and-set on the current status so concurrent
        writers can never move a report backward.

        Raises:
            InvalidParameterError: If the transition is not a forward step
            ElementNotFoundError: If the report does not exist
        """
        operation = "set_discovery_status"
        self._validate_name(user_id, "user_id", operation)
        status = RequestStatus(status)

        while True:
            report = self._get_report_or_raise(report_guid, operation)
            current = report.discovery_request_status
            if current is status:
                return
            if not current.can_transition_to(status):
                raise InvalidParameterError(
                    f"Discovery report '{report_guid}' cannot move from "
                    f"{current.value} to {status.value}",
                    operation=operation,
                    context={"report_guid": report_guid},
                )

            fields: dict[str, Any] = {"discovery_request_status": status.value}
            if status in (RequestStatus.COMPLETE, RequestStatus.FAILED):
                fields["completion_date"] = _now()
            if error_message:
                fields["error_message"] = error_message

            matched = self._update(
                self.REPORTS,
                {"guid": report_guid, "discovery_request_status": current.value},
                fields,
            )
            if matched:
                return

    def set_analysis_step(self, user_id: str, report_guid: str, analysis_step: str) -> None:
        """Record the analysis step currently running for a report."""
        operation = "set_analysis_step"
        self._validate_name(user_id, "user_id", operation)
        self._validate_name(analysis_step, "analysis_step", operation)
        self._get_writable_report(report_guid, operation)
        self._update(self.REPORTS, {"guid": report_guid}, {"analysis_step": analysis_step})

    # ------------------------------------------------------------------
    # Annotations - queries
    # ------------------------------------------------------------------

    def get_previous_annotations(
        self,
        user_id: str,
        report_guid: str,
        status: Optional[AnnotationStatus] = None,
        offset: int = 0,
        limit: int = 0,
    ) -> list[Annotation]:
        """
        Return annotations recorded by earlier runs against the same asset.

        With ``status=None`` only annotations that passed review (reviewed,
        approved, actioned) from reports that are no longer active are
        returned. An explicit status filters every other report of the asset.
        """
        operation = "get_previous_annotations"
        self._validate_name(user_id, "user_id", operation)
        report = self._get_report_or_raise(report_guid, operation)

        if status is None:
            report_guids = self._other_report_guids(report, _INACTIVE_REPORT_STATUSES)
            statuses = [s.value for s in REVIEWED_ANNOTATION_STATUSES]
        else:
            report_guids = self._other_report_guids(report)
            statuses = [AnnotationStatus(status).value]

        query = {"report_guid": {"$in": report_guids}, "annotation_status": {"$in": statuses}}
        return self._page(Annotation, self.ANNOTATIONS, query, offset, limit, operation)

    def get_new_annotations(self, user_id: str, report_guid: str, offset: int = 0, limit: int = 0) -> list[Annotation]:
        """Return the top-level annotations of the current report."""
        operation = "get_new_annotations"
        self._validate_name(user_id, "user_id", operation)
        self._get_report_or_raise(report_guid, operation)
        query = {"report_guid": report_guid, "parent_annotation_guid": None, "data_field_guid": None}
        return self._page(Annotation, self.ANNOTATIONS, query, offset, limit, operation)

    def get_extended_annotations(
        self, user_id: str, annotation_guid: str, offset: int = 0, limit: int = 0
    ) -> list[Annotation]:
        """Return the annotations nested directly under ``annotation_guid``."""
        operation = "get_extended_annotations"
        self._validate_name(user_id, "user_id", operation)
        self._get_annotation_or_raise(annotation_guid, operation)
        query = {"parent_annotation_guid": annotation_guid}
        return self._page(Annotation, self.ANNOTATIONS, query, offset, limit, operation)

    def get_data_field_annotations(
        self, user_id: str, data_field_guid: str, offset: int = 0, limit: int = 0
    ) -> list[Annotation]:
        """Return the annotations attached to a data field."""
        operation = "get_data_field_annotations"
        self._validate_name(user_id, "user_id", operation)
        self._get_data_field_or_raise(data_field_guid, operation)
        query = {"data_field_guid": data_field_guid}
        return self._page(Annotation, self.ANNOTATIONS, query, offset, limit, operation)

    def get_annotation(self, user_id: str, annotation_guid: str) -> Annotation:
        operation = "get_annotation"
        self._validate_name(user_id, "user_id", operation)
        return self._get_annotation_or_raise(annotation_guid, operation)

    # ------------------------------------------------------------------
    # Annotations - maintenance
    # ------------------------------------------------------------------

    def _create_annotation(
        self,
        user_id: str,
        report: DiscoveryReport,
        annotation: Annotation,
        operation: str,
        *,
        parent_annotation_guid: Optional[str] = None,
        data_field_guid: Optional[str] = None,
    ) -> str:
        self._check_annotation_type(annotation, operation)
        guid = _new_guid()
        stored = annotation.model_copy(
            update={
                "guid": guid,
                "report_guid": report.guid,
                "asset_guid": report.asset_guid,
                "parent_annotation_guid": parent_annotation_guid,
                "data_field_guid": data_field_guid,
                "created_at": _now(),
                "updated_at": None,
            }
        )
        document = self._to_document(stored)
        document["seq"] = self._next_sequence()
        document["created_by"] = user_id
        self._insert(self.ANNOTATIONS, document)
        return guid

    def add_annotation_to_report(self, user_id: str, report_guid: str, annotation: Annotation) -> str:
        """Attach a new top-level annotation to a report and return its GUID."""
        operation = "add_annotation_to_report"
        self._validate_name(user_id, "user_id", operation)
        annotation = self._coerce(Annotation, annotation, "annotation", operation)
        report = self._get_writable_report(report_guid, operation)
        return self._create_annotation(user_id, report, annotation, operation)

    def add_annotation_to_annotation(
        self, user_id: str, report_guid: str, parent_annotation_guid: str, annotation: Annotation
    ) -> str:
        """
        Nest a new annotation under an existing annotation of the same report.

        Raises:
            InvalidParameterError: If the parent is unknown or belongs to another report
        """
        operation = "add_annotation_to_annotation"
        self._validate_name(user_id, "user_id", operation)
        annotation = self._coerce(Annotation, annotation, "annotation", operation)
        report = self._get_writable_report(report_guid, operation)
        parent = self._get_annotation_or_raise(parent_annotation_guid, operation)
        self._require_same_report(parent, report, "Annotation", operation)
        return self._create_annotation(
            user_id, report, annotation, operation, parent_annotation_guid=parent.guid
        )

    def add_annotation_to_data_field(
        self, user_id: str, report_guid: str, data_field_guid: str, annotation: Annotation
    ) -> str:
        """Attach a new annotation to an existing data field of the same report."""
        operation = "add_annotation_to_data_field"
        self._validate_name(user_id, "user_id", operation)
        annotation = self._coerce(Annotation, annotation, "annotation", operation)
        report = self._get_writable_report(report_guid, operation)
        data_field = self._get_data_field_or_raise(data_field_guid, operation)
        self._require_same_report(data_field, report, "DataField", operation)
        return self._create_annotation(
            user_id, report, annotation, operation, data_field_guid=data_field.guid
        )

    def update_annotation(self, user_id: str, annotation: Annotation) -> None:
        """
        Replace the descriptive properties of an annotation.

        The anchoring (report, parent annotation, data field) and creation
        time are kept from the stored annotation.
        """
        operation = "update_annotation"
        self._validate_name(user_id, "user_id", operation)
        annotation = self._coerce(Annotation, annotation, "annotation", operation)
        existing = self._get_annotation_or_raise(annotation.guid, operation)
        self._check_annotation_type(annotation, operation)

        replacement = annotation.model_copy(
            update={
                "report_guid": existing.report_guid,
                "asset_guid": existing.asset_guid,
                "parent_annotation_guid": existing.parent_annotation_guid,
                "data_field_guid": existing.data_field_guid,
                "created_at": existing.created_at,
                "updated_at": _now(),
            }
        )
        fields = self._to_document(replacement)
        fields.pop("guid")
        self._update(self.ANNOTATIONS, {"guid": existing.guid}, fields)

    def delete_annotation(self, user_id: str, annotation_guid: str) -> None:
        """
        Delete an annotation.

        Deletes never cascade: an annotation that still has extended
        annotations or data fields is rejected.
        Annotations of a terminal report cannot be deleted.
        """
        operation = "delete_annotation"
        self._validate_name(user_id, "user_id", operation)
        existing = self._get_annotation_or_raise(annotation_guid, operation)
        self._get_writable_report(existing.report_guid, operation)

        children = self._count(self.ANNOTATIONS, {"parent_annotation_guid": existing.guid})
        fields = self._count(self.DATA_FIELDS, {"annotation_guid": existing.guid})
        if children or fields:
            raise InvalidParameterError(
                f"Annotation '{existing.guid}' still has {children} extended annotation(s) "
                f"and {fields} data field(s)",
                operation=operation,
                context={"guid": existing.guid},
            )
        self._delete(self.ANNOTATIONS, {"guid": existing.guid})

    # ------------------------------------------------------------------
    # Data fields - queries
    # ------------------------------------------------------------------

    def get_previous_data_fields(
        self, user_id: str, report_guid: str, offset: int = 0, limit: int = 0
    ) -> list[DataField]:
        """Return top-level data fields recorded by earlier reports on the same asset."""
        operation = "get_previous_data_fields"
        self._validate_name(user_id, "user_id", operation)
        report = self._get_report_or_raise(report_guid, operation)
        query = {
            "report_guid": {"$in": self._other_report_guids(report)},
            "parent_data_field_guid": None,
        }
        return self._page(DataField, self.DATA_FIELDS, query, offset, limit, operation)

    def get_new_data_fields(self, user_id: str, report_guid: str, offset: int = 0, limit: int = 0) -> list[DataField]:
        """Return the top-level data fields of the current report."""
        operation = "get_new_data_fields"
        self._validate_name(user_id, "user_id", operation)
        self._get_report_or_raise(report_guid, operation)
        query = {"report_guid": report_guid, "parent_data_field_guid": None}
        return self._page(DataField, self.DATA_FIELDS, query, offset, limit, operation)

    def get_annotation_data_fields(
        self, user_id: str, annotation_guid: str, offset: int = 0, limit: int = 0
    ) -> list[DataField]:
        """Return the data fields that originate from an annotation."""
        operation = "get_annotation_data_fields"
        self._validate_name(user_id, "user_id", operation)
        self._get_annotation_or_raise(annotation_guid, operation)
        query = {"annotation_guid": annotation_guid}
        return self._page(DataField, self.DATA_FIELDS, query, offset, limit, operation)

    def get_nested_data_fields(
        self, user_id: str, parent_data_field_guid: str, offset: int = 0, limit: int = 0
    ) -> list[DataField]:
        operation = "get_nested_data_fields"
        self._validate_name(user_id, "user_id", operation)
        self._get_data_field_or_raise(parent_data_field_guid, operation)
        query = {"parent_data_field_guid": parent_data_field_guid}
        return self._page(DataField, self.DATA_FIELDS, query, offset, limit, operation)

    def get_linked_data_fields(
        self, user_id: str, data_field_guid: str, offset: int = 0, limit: int = 0
    ) -> list[RelatedDataField]:
        """Return the peers of a data field with the link and its direction."""
        operation = "get_linked_data_fields"
        self._validate_name(user_id, "user_id", operation)
        self._get_data_field_or_raise(data_field_guid, operation)
        query = {
            "$or": [
                {"from_data_field_guid": data_field_guid},
                {"to_data_field_guid": data_field_guid},
            ]
        }
        related = []
        for link in self._page(DataFieldLink, self.LINKS, query, offset, limit, operation):
            outbound = link.from_data_field_guid == data_field_guid
            peer_guid = link.to_data_field_guid if outbound else link.from_data_field_guid
            peer = self._find_one(self.DATA_FIELDS, {"guid": peer_guid})
            if peer is None:
                continue
            if not link.directed:
                direction = LinkDirection.UNDIRECTED
            elif outbound:
                direction = LinkDirection.OUTBOUND
            else:
                direction = LinkDirection.INBOUND
            related.append(
                RelatedDataField(
                    data_field=self._from_document(DataField, peer),
                    link=link,
                    direction=direction,
                )
            )
        return related

    def get_data_field(self, user_id: str, data_field_guid: str) -> DataField:
        operation = "get_data_field"
        self._validate_name(user_id, "user_id", operation)
        return self._get_data_field_or_raise(data_field_guid, operation)

    # ------------------------------------------------------------------
    # Data fields - maintenance
    # ------------------------------------------------------------------

    def _create_data_field(
        self,
        user_id: str,
        report: DiscoveryReport,
        data_field: DataField,
        *,
        annotation_guid: Optional[str] = None,
        parent_data_field_guid: Optional[str] = None,
    ) -> str:
        guid = _new_guid()
        stored = data_field.model_copy(
            update={
                "guid": guid,
                "report_guid": report.guid,
                "asset_guid": report.asset_guid,
                "annotation_guid": annotation_guid,
                "parent_data_field_guid": parent_data_field_guid,
                "created_at": _now(),
                "updated_at": None,
            }
        )
        document = self._to_document(stored)
        document["seq"] = self._next_sequence()
        document["created_by"] = user_id
        self._insert(self.DATA_FIELDS, document)
        return guid

    def add_data_field_to_annotation(
        self, user_id: str, report_guid: str, annotation_guid: str, data_field: DataField
    ) -> str:
        """Create a top-level data field originating from an annotation of the report."""
        operation = "add_data_field_to_annotation"
        self._validate_name(user_id, "user_id", operation)
        data_field = self._coerce(DataField, data_field, "data_field", operation)
        report = self._get_writable_report(report_guid, operation)
        annotation = self._get_annotation_or_raise(annotation_guid, operation)
        self._require_same_report(annotation, report, "Annotation", operation)
        return self._create_data_field(user_id, report, data_field, annotation_guid=annotation.guid)

    add_data_field_to_discovery_report = add_data_field_to_annotation

    def add_data_field_to_data_field(
        self, user_id: str, report_guid: str, parent_data_field_guid: str, data_field: DataField
    ) -> str:
        """Nest a new data field under an existing data field of the report."""
        operation = "add_data_field_to_data_field"
        self._validate_name(user_id, "user_id", operation)
        data_field = self._coerce(DataField, data_field, "data_field", operation)
        report = self._get_writable_report(report_guid, operation)
        parent = self._get_data_field_or_raise(parent_data_field_guid, operation)
        self._require_same_report(parent, report, "DataField", operation)
        return self._create_data_field(user_id, report, data_field, parent_data_field_guid=parent.guid)

    def link_data_fields(
        self,
        user_id: str,
        report_guid: str,
        from_data_field_guid: str,
        link: DataFieldLink,
        to_data_field_guid: str,
    ) -> str:
        """Record a peer link between two existing data fields and return its GUID."""
        operation = "link_data_fields"
        self._validate_name(user_id, "user_id", operation)
        link = self._coerce(DataFieldLink, link, "link", operation)
        report = self._get_writable_report(report_guid, operation)
        source = self._get_data_field_or_raise(from_data_field_guid, operation)
        target = self._get_data_field_or_raise(to_data_field_guid, operation)
        if source.guid == target.guid:
            raise InvalidParameterError(
                f"Data field '{source.guid}' cannot be linked to itself", operation=operation
            )

        guid = _new_guid()
        stored = link.model_copy(
            update={
                "guid": guid,
                "from_data_field_guid": source.guid,
                "to_data_field_guid": target.guid,
                "report_guid": report.guid,
            }
        )
        document = self._to_document(stored)
        document["seq"] = self._next_sequence()
        self._insert(self.LINKS, document)
        return guid

    def update_data_field(self, user_id: str, data_field: DataField) -> None:
        """Replace the descriptive properties of a data field, keeping its anchoring."""
        operation = "update_data_field"
        self._validate_name(user_id, "user_id", operation)
        data_field = self._coerce(DataField, data_field, "data_field", operation)
        existing = self._get_data_field_or_raise(data_field.guid, operation)

        replacement = data_field.model_copy(
            update={
                "report_guid": existing.report_guid,
                "asset_guid": existing.asset_guid,
                "annotation_guid": existing.annotation_guid,
                "parent_data_field_guid": existing.parent_data_field_guid,
                "created_at": existing.created_at,
                "updated_at": _now(),
            }
        )
        fields = self._to_document(replacement)
        fields.pop("guid")
        self._update(self.DATA_FIELDS, {"guid": existing.guid}, fields)

    def delete_data_field(self, user_id: str, data_field_guid: str) -> None:
        """
        Delete a data field and the peer links that touch it.

        Deletes never cascade to nested data fields or attached annotations;
        a data field that still has either is rejected.
        Data fields of a terminal report cannot be deleted.
        """
        operation = "delete_data_field"
        self._validate_name(user_id, "user_id", operation)
        existing = self._get_data_field_or_raise(data_field_guid, operation)
        self._get_writable_report(existing.report_guid, operation)

        nested = self._count(self.DATA_FIELDS, {"parent_data_field_guid": existing.guid})
        annotations = self._count(self.ANNOTATIONS, {"data_field_guid": existing.guid})
        if nested or annotations:
            raise InvalidParameterError(
                f"Data field '{existing.guid}' still has {nested} nested data field(s) "
                f"and {annotations} annotation(s)",
                operation=operation,
                context={"guid": existing.guid},
            )
        self._delete(
            self.LINKS,
            {
                "$or": [
                    {"from_data_field_guid": existing.guid},
                    {"to_data_field_guid": existing.guid},
                ]
            },
        )
        self._delete(self.DATA_FIELDS, {"guid": existing.guid})
