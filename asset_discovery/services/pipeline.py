"""Discovery pipeline - a discovery service composed of embedded services."""

import logging
from typing import Optional

from asset_discovery.exceptions import (
    DiscoveryError,
    DiscoveryServiceError,
    EmbeddedServiceError,
    NoEmbeddedServicesError,
)
from asset_discovery.models import RequestStatus
from asset_discovery.services.base import DiscoveryService

__all__ = ["DiscoveryPipeline", "FINAL_ANALYSIS_STEP"]

logger = logging.getLogger(__name__)

# Analysis parameter naming the step after which a pipeline stops
FINAL_ANALYSIS_STEP = "final_analysis_step"


class DiscoveryPipeline(DiscoveryService):
    """
    Runs embedded discovery services one after another.

    The embedded services come from ``connection.embedded_connections``
    (built through the broker) unless passed in explicitly. Every embedded
    service receives the pipeline's own context, so all of them write into
    the same report.
    """

    def __init__(self, connection, broker=None, embedded_services: Optional[list[DiscoveryService]] = None) -> None:
        super().__init__(connection, broker)
        self._embedded_services = embedded_services

    def start(self) -> None:
        super().start()

        services = self.get_embedded_services()
        if services is None:
            raise NoEmbeddedServicesError(self.display_name)

        self.run_discovery_pipeline(services)

    def get_embedded_services(self) -> Optional[list[DiscoveryService]]:
        """Return the embedded services in execution order, or None if there are none."""
        if self._embedded_services is not None:
            return list(self._embedded_services)
        if not self.connection.embedded_connections or self.broker is None:
            return None

        services = []
        for embedded_connection in self.connection.embedded_connections:
            try:
                service = self.broker.get_connector(embedded_connection)
            except DiscoveryError as e:
                raise EmbeddedServiceError(self.display_name, embedded_connection.name, e) from e
            if not isinstance(service, DiscoveryService):
                raise DiscoveryServiceError(
                    f"Embedded connection '{embedded_connection.qualified_name}' of pipeline "
                    f"'{self.display_name}' is not a discovery service",
                    operation="get_embedded_services",
                    context={"pipeline_name": self.display_name},
                )
            services.append(service)
        return services

    def run_discovery_pipeline(self, services: list[DiscoveryService]) -> None:
        """
        Run each embedded service to completion before starting the next.

        The first failure stops the pipeline and is raised as an
        EmbeddedServiceError chained to the service's error. If the
        ``final_analysis_step`` parameter is set, the pipeline stops after the
        service that recorded that step.

        Once its embedded services have finished, an in-progress request moves
        to WAITING_TO_COMPLETE until the engine records the outcome.
        """
        context = self._require_context()
        final_step = context.get_parameter(FINAL_ANALYSIS_STEP)

        for position, service in enumerate(services, start=1):
            name = service.display_name
            logger.info(f"Pipeline '{self.display_name}' running service {position}/{len(services)}: {name}")
            try:
                service.set_context(context)
                service.start()
            except Exception as e:
                logger.error(f"Pipeline '{self.display_name}' stopped: service '{name}' failed: {e}")
                raise EmbeddedServiceError(self.display_name, name, e) from e
            finally:
                service.disconnect()

            if final_step and context.annotation_store.get_discovery_report().analysis_step == final_step:
                logger.info(f"Pipeline '{self.display_name}' reached final analysis step '{final_step}'")
                break

        if context.annotation_store.get_discovery_status() is RequestStatus.IN_PROGRESS:
            context.annotation_store.set_discovery_status(RequestStatus.WAITING_TO_COMPLETE)
