"""Unit tests for the discovery error family."""

from asset_discovery.exceptions import (
    DiscoveryEngineError,
    DiscoveryServiceError,
    ElementNotFoundError,
    EmbeddedServiceError,
    ErrorKind,
    InvalidConnectionError,
    InvalidParameterError,
    NoEmbeddedServicesError,
    NullDiscoveryContextError,
    PropertyServerError,
    root_cause,
)


class TestErrorKinds:
    def test_kinds(self):
        assert InvalidParameterError("x").kind is ErrorKind.INVALID_PARAMETER
        assert PropertyServerError("x").kind is ErrorKind.PROPERTY_SERVER
        assert InvalidConnectionError("x").kind is ErrorKind.CONNECTOR
        assert NullDiscoveryContextError("svc").kind is ErrorKind.DISCOVERY_SERVICE
        assert DiscoveryEngineError("x").kind is ErrorKind.DISCOVERY_ENGINE

    def test_element_not_found_is_invalid_parameter(self):
        error = ElementNotFoundError("Annotation", "g-1", operation="get_annotation")
        assert isinstance(error, InvalidParameterError)
        assert error.guid == "g-1"
        assert str(error) == "get_annotation: Annotation 'g-1' not found"

    def test_named_service_errors(self):
        assert NullDiscoveryContextError("Classifier").context["service_name"] == "Classifier"
        assert NoEmbeddedServicesError("Schema Scan").pipeline_name == "Schema Scan"


class TestCauseChain:
    def test_embedded_error_keeps_child_kind(self):
        child = PropertyServerError("store down")
        error = EmbeddedServiceError("Schema Scan", "Profiler", child)
        assert error.__cause__ is child
        assert error.kind is ErrorKind.PROPERTY_SERVER
        assert "Profiler" in str(error)

    def test_embedded_error_with_foreign_cause(self):
        error = EmbeddedServiceError("Schema Scan", "Profiler", RuntimeError("boom"))
        assert error.kind is ErrorKind.DISCOVERY_SERVICE

    def test_engine_error_cause_kind(self):
        try:
            try:
                raise DiscoveryServiceError("bad state")
            except DiscoveryServiceError as e:
                raise DiscoveryEngineError("request failed") from e
        except DiscoveryEngineError as engine_error:
            assert engine_error.cause_kind is ErrorKind.DISCOVERY_SERVICE

    def test_engine_error_without_cause(self):
        assert DiscoveryEngineError("x").cause_kind is ErrorKind.DISCOVERY_ENGINE

    def test_root_cause_walks_chain(self):
        inner = ValueError("root")
        middle = EmbeddedServiceError("P", "S", inner)
        outer = DiscoveryEngineError("outer")
        outer.__cause__ = middle
        assert root_cause(outer) is inner
