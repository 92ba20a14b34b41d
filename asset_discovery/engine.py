"""
Discovery engine - accepts discovery requests and tracks them to completion.

Requests run asynchronously on a worker pool. Each request gets its own
report, context, service instance and asset resolver; the result graph
store and the catalog are shared.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

from pydantic import ValidationError

from asset_discovery.asset_resolver import AssetResolver
from asset_discovery.audit import AuditLog, LoggingAuditLog
from asset_discovery.catalog import AssetCatalog
from asset_discovery.connectors import ConnectorBroker, default_broker
from asset_discovery.context import DiscoveryAnnotationStore, DiscoveryContext
from asset_discovery.exceptions import (
    DiscoveryEngineError,
    DiscoveryError,
    InvalidConnectorError,
    InvalidParameterError,
)
from asset_discovery.models import (
    Annotation,
    Connection,
    DiscoveryEngineSettings,
    DiscoveryReport,
    RequestStatus,
)
from asset_discovery.services import DiscoveryService
from asset_discovery.services.analyzers import ANNOTATION_TYPES
from asset_discovery.stores import ResultGraphStore

__all__ = ["DiscoveryEngine"]

logger = logging.getLogger(__name__)

ServiceResolver = Callable[[str], Optional[Connection]]


class DiscoveryEngine:
    """
    Orchestration boundary for asset discovery.

    Every failure leaving the engine is a DiscoveryEngineError chained to
    the original error; ``cause_kind`` reports which layer failed.

    Args:
        store: Result graph store shared by all requests
        catalog: Asset GUID -> connection lookup
        resolve_service: Asset type -> discovery service connection lookup
        broker: Connector broker (default: connectors shipped with the package)
        audit_log: Audit sink (default: logging)
        settings: Engine settings (default: read from the environment)
    """

    def __init__(
        self,
        store: ResultGraphStore,
        catalog: AssetCatalog,
        resolve_service: ServiceResolver,
        *,
        broker: Optional[ConnectorBroker] = None,
        audit_log: Optional[AuditLog] = None,
        settings: Optional[DiscoveryEngineSettings] = None,
    ) -> None:
        self.settings = settings or DiscoveryEngineSettings()
        self.store = store
        self.catalog = catalog
        self.resolve_service = resolve_service
        self.broker = broker or default_broker()
        self.audit_log = audit_log or LoggingAuditLog()

        self._lock = threading.Lock()
        self._requests: dict[str, Future] = {}
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="discovery",
        )

        with self._engine_boundary("register_annotation_types"):
            for type_name, description in ANNOTATION_TYPES.items():
                self.store.register_annotation_type(self.settings.engine_guid, type_name, description)

    @property
    def engine_guid(self) -> str:
        return self.settings.engine_guid

    @contextmanager
    def _engine_boundary(self, operation: str, **context: Any) -> Iterator[None]:
        try:
            yield
        except DiscoveryEngineError:
            raise
        except DiscoveryError as e:
            raise DiscoveryEngineError(
                f"Discovery engine '{self.settings.engine_name}' failed: {e}",
                operation=operation,
                context=context,
            ) from e
        except Exception as e:
            logger.exception(f"Unexpected error in discovery engine operation {operation}")
            raise DiscoveryEngineError(
                f"Discovery engine '{self.settings.engine_name}' failed: {type(e).__name__}: {e}",
                operation=operation,
                context=context,
            ) from e

    def _check_open(self, operation: str) -> None:
        if self._closed:
            raise DiscoveryEngineError(
                f"Discovery engine '{self.settings.engine_name}' is disconnected",
                operation=operation,
            )

    @staticmethod
    def _require(value: Optional[str], name: str, operation: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise InvalidParameterError(f"{name} must be a non-empty string", operation=operation)

    # ------------------------------------------------------------------
    # Discovery requests
    # ------------------------------------------------------------------

    def discover_asset(
        self,
        user_id: str,
        asset_guid: str,
        asset_type: str,
        analysis_parameters: Optional[dict[str, str]] = None,
        annotation_types: Optional[list[str]] = None,
    ) -> str:
        """
        Start discovery of an asset and return the request GUID.

        The call returns once the report exists (status WAITING); the
        analysis runs on the worker pool. Poll ``get_discovery_status`` or
        block on ``wait_for_request`` for completion.

        Raises:
            DiscoveryEngineError: No service is registered for the asset type,
                the asset cannot be resolved, or the service cannot be created
        """
        operation = "discover_asset"
        self._check_open(operation)

        with self._engine_boundary(operation, asset_guid=asset_guid, asset_type=asset_type):
            self._require(user_id, "user_id", operation)
            self._require(asset_guid, "asset_guid", operation)
            self._require(asset_type, "asset_type", operation)

            connection = self.resolve_service(asset_type)
            if connection is None:
                raise InvalidParameterError(
                    f"No discovery service is registered for asset type '{asset_type}'",
                    operation=operation,
                    context={"asset_type": asset_type},
                )

            resolver = AssetResolver(user_id, asset_guid, self.catalog, self.broker)
            resolver.connection_for_asset()

            service = self.broker.get_connector(connection)
            if not isinstance(service, DiscoveryService):
                raise InvalidConnectorError(
                    f"Connection '{connection.qualified_name}' does not create a discovery service",
                    operation=operation,
                    context={"asset_type": asset_type},
                )

            report = self._new_report(user_id, asset_guid, asset_type, connection, analysis_parameters, annotation_types)

            # reports are only created while the engine is open; disconnect() holds the same lock
            with self._lock:
                self._check_open(operation)
                report_guid = self.store.create_discovery_report(user_id, report)
                future = self._executor.submit(self._run_request, user_id, report_guid, service, resolver, report)
                self._requests[report_guid] = future

        logger.info(
            f"Accepted discovery request {report_guid} for asset {asset_guid} "
            f"({asset_type}) using {connection.qualified_name}"
        )
        self.audit_log.log_asset_audit_message(
            user_id,
            asset_guid,
            connection.name,
            f"Discovery requested for asset type '{asset_type}'",
            action="discovery_requested",
            details={"report_guid": report_guid},
        )
        return report_guid

    def _new_report(
        self,
        user_id: str,
        asset_guid: str,
        asset_type: str,
        connection: Connection,
        analysis_parameters: Optional[dict[str, str]],
        annotation_types: Optional[list[str]],
    ) -> DiscoveryReport:
        now = datetime.now(timezone.utc)
        try:
            return DiscoveryReport(
                qualified_name=f"DiscoveryReport:{asset_guid}:{now.isoformat()}",
                display_name=f"{connection.name} report for {asset_guid}",
                description=f"Discovery of asset {asset_guid} by {self.settings.engine_name}",
                creation_date=now,
                asset_guid=asset_guid,
                asset_type=asset_type,
                user_id=user_id,
                discovery_engine_guid=self.settings.engine_guid,
                discovery_service=connection.qualified_name,
                analysis_parameters=analysis_parameters or {},
                requested_annotation_types=annotation_types,
            )
        except ValidationError as e:
            raise InvalidParameterError(
                f"Invalid discovery request: {e.errors()[0]['msg']}",
                operation="discover_asset",
                context={"asset_guid": asset_guid},
            ) from e

    def _run_request(
        self,
        user_id: str,
        report_guid: str,
        service: DiscoveryService,
        resolver: AssetResolver,
        report: DiscoveryReport,
    ) -> RequestStatus:
        """Execute one request on a worker thread and record its outcome."""
        annotation_store = DiscoveryAnnotationStore(self.store, user_id, report_guid)
        service_name = service.display_name
        try:
            annotation_store.set_discovery_status(RequestStatus.ACTIVATING)
            context = DiscoveryContext(
                user_id=user_id,
                asset_guid=report.asset_guid,
                report_guid=report_guid,
                annotation_store=annotation_store,
                asset_store=resolver,
                asset_catalog=self.catalog,
                analysis_parameters=report.analysis_parameters,
                requested_annotation_types=report.requested_annotation_types,
            )
            service.set_context(context)

            annotation_store.set_discovery_status(RequestStatus.IN_PROGRESS)
            self.audit_log.log_asset_audit_message(
                user_id, report.asset_guid, service_name, "Discovery started",
                action="discovery_started", details={"report_guid": report_guid},
            )
            service.start()

            annotation_store.set_discovery_status(RequestStatus.COMPLETE)
            self.audit_log.log_asset_audit_message(
                user_id, report.asset_guid, service_name, "Discovery complete",
                action="discovery_complete", details={"report_guid": report_guid},
            )
            logger.info(f"Discovery request {report_guid} complete")
            return RequestStatus.COMPLETE

        except Exception as e:
            logger.exception(f"Discovery request {report_guid} for asset {report.asset_guid} failed")
            self._mark_failed(user_id, report_guid, e)
            self.audit_log.log_asset_audit_message(
                user_id, report.asset_guid, service_name, f"Discovery failed: {e}",
                action="discovery_failed", details={"report_guid": report_guid},
            )
            return RequestStatus.FAILED

        finally:
            try:
                service.disconnect()
            finally:
                resolver.disconnect()

    def _mark_failed(self, user_id: str, report_guid: str, error: Exception) -> None:
        try:
            self.store.set_discovery_status(user_id, report_guid, RequestStatus.FAILED, error_message=str(error))
        except DiscoveryError as status_error:
            logger.error(f"Could not mark discovery request {report_guid} as failed: {status_error}")

    # ------------------------------------------------------------------
    # Request tracking
    # ------------------------------------------------------------------

    def list_requests(self) -> list[str]:
        """GUIDs of the requests accepted by this engine, oldest first."""
        with self._lock:
            return list(self._requests)

    def wait_for_request(self, request_guid: str, timeout: Optional[float] = None) -> RequestStatus:
        """
        Block until a request has finished and return its status.

        Raises:
            DiscoveryEngineError: Unknown request, or the timeout expired
        """
        operation = "wait_for_request"
        with self._lock:
            future = self._requests.get(request_guid)

        with self._engine_boundary(operation, request_guid=request_guid):
            if future is None:
                raise InvalidParameterError(
                    f"Discovery request '{request_guid}' is not tracked by this engine",
                    operation=operation,
                )
            try:
                future.result(timeout=timeout)
            except FutureTimeoutError as e:
                raise DiscoveryEngineError(
                    f"Discovery request '{request_guid}' did not finish within {timeout}s",
                    operation=operation,
                    context={"request_guid": request_guid},
                ) from e
            return self.store.get_discovery_status(self.settings.engine_guid, request_guid)

    def get_discovery_status(self, user_id: str, request_guid: str) -> RequestStatus:
        with self._engine_boundary("get_discovery_status", request_guid=request_guid):
            return self.store.get_discovery_status(user_id, request_guid)

    def get_discovery_report(self, user_id: str, request_guid: str) -> DiscoveryReport:
        with self._engine_boundary("get_discovery_report", request_guid=request_guid):
            return self.store.get_discovery_report(user_id, request_guid)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def get_discovery_report_annotations(
        self, user_id: str, request_guid: str, offset: int = 0, limit: int = 0
    ) -> list[Annotation]:
        """Top-level annotations recorded for a request."""
        with self._engine_boundary("get_discovery_report_annotations", request_guid=request_guid):
            return self.store.get_new_annotations(user_id, request_guid, offset, limit)

    def _annotation_in_request(self, user_id: str, request_guid: str, annotation_guid: str, operation: str) -> Annotation:
        annotation = self.store.get_annotation(user_id, annotation_guid)
        if annotation.report_guid != request_guid:
            raise InvalidParameterError(
                f"Annotation '{annotation_guid}' does not belong to request '{request_guid}'",
                operation=operation,
                context={"request_guid": request_guid},
            )
        return annotation

    def get_extended_annotations(
        self, user_id: str, request_guid: str, annotation_guid: str, offset: int = 0, limit: int = 0
    ) -> list[Annotation]:
        operation = "get_extended_annotations"
        with self._engine_boundary(operation, request_guid=request_guid, annotation_guid=annotation_guid):
            self._annotation_in_request(user_id, request_guid, annotation_guid, operation)
            return self.store.get_extended_annotations(user_id, annotation_guid, offset, limit)

    def get_annotation(self, user_id: str, request_guid: str, annotation_guid: str) -> Annotation:
        operation = "get_annotation"
        with self._engine_boundary(operation, request_guid=request_guid, annotation_guid=annotation_guid):
            return self._annotation_in_request(user_id, request_guid, annotation_guid, operation)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def disconnect(self, wait: bool = True) -> None:
        """
        Stop accepting requests and move every tracked request to DISCONNECTED.

        With ``wait=False`` queued requests are cancelled and running ones
        are not waited for.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            request_guids = list(self._requests)

        self._executor.shutdown(wait=wait, cancel_futures=not wait)

        for request_guid in request_guids:
            try:
                report = self.store.get_discovery_report(self.settings.engine_guid, request_guid)
                self.store.set_discovery_status(self.settings.engine_guid, request_guid, RequestStatus.DISCONNECTED)
            except DiscoveryError as e:
                logger.warning(f"Could not disconnect discovery request {request_guid}: {e}")
                continue
            self.audit_log.log_asset_audit_message(
                self.settings.engine_guid,
                report.asset_guid,
                report.discovery_service or self.settings.engine_name,
                "Discovery request disconnected",
                action="discovery_disconnected",
                details={"report_guid": request_guid},
            )
        logger.info(f"Discovery engine '{self.settings.engine_name}' disconnected")

    def __enter__(self) -> "DiscoveryEngine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()
