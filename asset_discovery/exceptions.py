# =============================================================================
# Discovery Errors
# =============================================================================
# One error family for the discovery engine. Every error carries a kind
# discriminator, the failing operation and a diagnostic context dict, and is
# chained to its root cause with `raise ... from exc`.
# =============================================================================

from enum import Enum
from typing import Any, Optional

__all__ = [
    "ErrorKind",
    "DiscoveryError",
    "InvalidParameterError",
    "ElementNotFoundError",
    "UserNotAuthorizedError",
    "PropertyServerError",
    "ConnectorError",
    "InvalidConnectionError",
    "InvalidConnectorError",
    "DiscoveryServiceError",
    "NullDiscoveryContextError",
    "NoEmbeddedServicesError",
    "EmbeddedServiceError",
    "DiscoveryEngineError",
    "root_cause",
]


class ErrorKind(str, Enum):
    """Failure taxonomy shared by every layer of the engine."""

    INVALID_PARAMETER = "invalid_parameter"
    USER_NOT_AUTHORIZED = "user_not_authorized"
    PROPERTY_SERVER = "property_server"
    CONNECTOR = "connector"
    DISCOVERY_SERVICE = "discovery_service"
    DISCOVERY_ENGINE = "discovery_engine"


class DiscoveryError(Exception):
    """
    Base class for all discovery engine errors.

    Attributes:
        kind: Error kind discriminator
        operation: Name of the operation that failed (e.g. "add_annotation_to_report")
        context: Diagnostic values such as asset_guid, report_guid or service name
    """

    default_kind: ErrorKind = ErrorKind.DISCOVERY_ENGINE

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.context: dict[str, Any] = dict(context or {})

    @property
    def kind(self) -> ErrorKind:
        return self.default_kind

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class InvalidParameterError(DiscoveryError):
    """Malformed or missing caller-supplied argument. Never retried."""

    default_kind = ErrorKind.INVALID_PARAMETER


class ElementNotFoundError(InvalidParameterError):
    """A GUID did not resolve to a stored element."""

    def __init__(self, element_type: str, guid: str, *, operation: Optional[str] = None) -> None:
        super().__init__(
            f"{element_type} '{guid}' not found",
            operation=operation,
            context={"guid": guid, "element_type": element_type},
        )
        self.element_type = element_type
        self.guid = guid


class UserNotAuthorizedError(DiscoveryError):
    """Caller lacks rights for the requested operation or asset."""

    default_kind = ErrorKind.USER_NOT_AUTHORIZED


class PropertyServerError(DiscoveryError):
    """Backing store or catalog unreachable, or an internal store failure."""

    default_kind = ErrorKind.PROPERTY_SERVER


class ConnectorError(DiscoveryError):
    """An asset connector could not be created or misbehaved during use."""

    default_kind = ErrorKind.CONNECTOR


class InvalidConnectionError(ConnectorError):
    """The connection descriptor is unusable (unknown provider, missing fields)."""


class InvalidConnectorError(ConnectorError):
    """The connector implementation failed to initialize or has the wrong type."""


class DiscoveryServiceError(DiscoveryError):
    """Service-level precondition violation, fatal to the invocation."""

    default_kind = ErrorKind.DISCOVERY_SERVICE


class NullDiscoveryContextError(DiscoveryServiceError):
    """A discovery service was started without a discovery context."""

    def __init__(self, service_name: str) -> None:
        super().__init__(
            f"Discovery service '{service_name}' was started without a discovery context",
            operation="start",
            context={"service_name": service_name},
        )
        self.service_name = service_name


class NoEmbeddedServicesError(DiscoveryServiceError):
    """A discovery pipeline has no list of embedded discovery services."""

    def __init__(self, pipeline_name: str) -> None:
        super().__init__(
            f"Discovery pipeline '{pipeline_name}' has no embedded discovery services",
            operation="start",
            context={"pipeline_name": pipeline_name},
        )
        self.pipeline_name = pipeline_name


class EmbeddedServiceError(DiscoveryServiceError):
    """
    An embedded service failed inside a pipeline.

    The child's error is kept as ``__cause__`` and its kind is reported as this
    error's kind, so a pipeline adds context without downgrading the failure.
    """

    def __init__(self, pipeline_name: str, service_name: str, cause: BaseException) -> None:
        super().__init__(
            f"Discovery pipeline '{pipeline_name}' failed in embedded service "
            f"'{service_name}': {cause}",
            operation="run_discovery_pipeline",
            context={"pipeline_name": pipeline_name, "service_name": service_name},
        )
        self.pipeline_name = pipeline_name
        self.service_name = service_name
        self.__cause__ = cause

    @property
    def kind(self) -> ErrorKind:
        if isinstance(self.__cause__, DiscoveryError):
            return self.__cause__.kind
        return self.default_kind


class DiscoveryEngineError(DiscoveryError):
    """Single failure surface of the engine, wrapping the original cause."""

    default_kind = ErrorKind.DISCOVERY_ENGINE

    @property
    def cause_kind(self) -> ErrorKind:
        """Kind of the wrapped error, or DISCOVERY_ENGINE if the engine failed itself."""
        cause = self.__cause__
        if isinstance(cause, DiscoveryError):
            return cause.kind
        return self.default_kind


def root_cause(exc: BaseException) -> BaseException:
    """Follow the ``__cause__`` chain to the innermost exception."""
    seen: set[int] = set()
    while exc.__cause__ is not None and id(exc) not in seen:
        seen.add(id(exc))
        exc = exc.__cause__
    return exc
