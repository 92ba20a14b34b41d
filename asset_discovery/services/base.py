# =============================================================================
# Base Class for Discovery Services
# =============================================================================
# A discovery service analyses one asset per invocation and leaves its
# findings in the discovery report through the discovery context.
# =============================================================================

import logging
import threading
from enum import Enum
from typing import Optional

from asset_discovery.asset_resolver import AssetResolver
from asset_discovery.connectors import Connector
from asset_discovery.context import DiscoveryAnnotationStore, DiscoveryContext
from asset_discovery.exceptions import DiscoveryServiceError, NullDiscoveryContextError

__all__ = ["ServiceState", "DiscoveryService"]

logger = logging.getLogger(__name__)


class ServiceState(str, Enum):
    """Lifecycle of a discovery service instance."""

    CREATED = "created"
    CONFIGURED = "configured"
    RUNNING = "running"
    TERMINATED = "terminated"


class DiscoveryService(Connector):
    """
    Base class for all discovery services.

    Lifecycle: CREATED -> CONFIGURED (``set_context``) -> RUNNING (``start``)
    -> TERMINATED (``disconnect``). Subclasses override ``start`` to perform
    their analysis and must call ``super().start()`` first.

    The context is guarded by a lock: it may be replaced until the service
    starts (last writer wins) and read at any time.
    """

    def __init__(self, connection, broker=None) -> None:
        super().__init__(connection, broker)
        self._context_lock = threading.RLock()
        self._context: Optional[DiscoveryContext] = None
        self._state = ServiceState.CREATED
        self.discovery_service_name: Optional[str] = None

    @property
    def state(self) -> ServiceState:
        with self._context_lock:
            return self._state

    def set_context(self, context: Optional[DiscoveryContext]) -> None:
        """
        Attach the discovery context.

        Raises:
            DiscoveryServiceError: If the service has already started
        """
        with self._context_lock:
            if self._state in (ServiceState.RUNNING, ServiceState.TERMINATED):
                raise DiscoveryServiceError(
                    f"Cannot set the context of discovery service '{self.display_name}' "
                    f"once it is {self._state.value}",
                    operation="set_context",
                    context={"service_name": self.display_name},
                )
            self._context = context
            self._state = ServiceState.CREATED if context is None else ServiceState.CONFIGURED

    def get_context(self) -> Optional[DiscoveryContext]:
        with self._context_lock:
            return self._context

    def start(self) -> None:
        """
        Begin analysis.

        Raises:
            NullDiscoveryContextError: If no context has been set
            DiscoveryServiceError: If the service was already started
        """
        with self._context_lock:
            if self._context is None:
                raise NullDiscoveryContextError(self.display_name)
            if self._state is not ServiceState.CONFIGURED:
                raise DiscoveryServiceError(
                    f"Discovery service '{self.display_name}' cannot start from state {self._state.value}",
                    operation="start",
                    context={"service_name": self.display_name},
                )
            self._state = ServiceState.RUNNING
            asset_guid = self._context.asset_guid

        self.discovery_service_name = self.display_name
        super().start()
        logger.info(f"Discovery service '{self.discovery_service_name}' started for asset {asset_guid}")

    def disconnect(self) -> None:
        with self._context_lock:
            self._state = ServiceState.TERMINATED
        super().disconnect()
        logger.debug(f"Discovery service '{self.display_name}' disconnected")

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def _require_context(self) -> DiscoveryContext:
        context = self.get_context()
        if context is None:
            raise NullDiscoveryContextError(self.display_name)
        return context

    @property
    def annotation_store(self) -> DiscoveryAnnotationStore:
        return self._require_context().annotation_store

    @property
    def asset_store(self) -> AssetResolver:
        return self._require_context().asset_store

    def set_analysis_step(self, analysis_step: str) -> None:
        self.annotation_store.set_analysis_step(analysis_step)

    def is_annotation_type_requested(self, annotation_type: str) -> bool:
        return self._require_context().is_annotation_type_requested(annotation_type)
