"""
Tests for the exporter service.
"""

import pytest
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from instrumenting.config import get_settings
from instrumenting.errors import InvalidConfigError
from instrumenting.metrics import RedisReqProperties
from service_exporter.app.main import ExporterService, create_app
from tests.helpers import label_items, parse_samples


@pytest.fixture
def registry():
    """Create an isolated registry."""
    return CollectorRegistry()


@pytest.fixture
def service(registry):
    """Create exporter service."""
    service = ExporterService(get_settings(application_name="test-app"), registry)
    yield service
    service.recorder.unregister()


@pytest.fixture
def client(service):
    """Create test client."""
    return TestClient(service.app)


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "exporter"
    assert data["application"] == "test-app"


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["dependencies"] == {"recorder": "ok"}


def test_metrics_endpoint(service, client):
    """Recorded calls are served in the text exposition format."""
    properties = RedisReqProperties(keyspace="example", command="SET", code="ok")
    service.recorder.collect(properties, 0.01)
    service.recorder.collect(properties, 0.025)
    service.recorder.collect(properties, 0.08)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    samples = parse_samples(response.text)
    assert samples[("app_redis_requests_total", label_items(properties))] == 3
    assert samples[("app_redis_request_duration_seconds_bucket", label_items(properties, le="0.025"))] == 2
    assert samples[("app_redis_request_duration_seconds_bucket", label_items(properties, le="0.1"))] == 3
    assert samples[("app_redis_request_duration_seconds_count", label_items(properties))] == 3
    assert samples[("app_redis_request_duration_seconds_sum", label_items(properties))] == pytest.approx(0.115)


def test_metrics_endpoint_after_unregister(service, client):
    service.recorder.unregister()

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "app_redis_requests_total" not in response.text


def test_lifespan_unregisters_recorder(service):
    """Shutting the app down releases the metric families."""
    with TestClient(service.app) as client:
        assert client.get("/health").json()["dependencies"] == {"recorder": "ok"}

    assert service.recorder.registered is False


def test_disabled_metrics(registry):
    app = create_app(get_settings(metrics_enabled=False), registry)
    client = TestClient(app)

    assert client.get("/health").json()["dependencies"] == {"recorder": "disabled"}
    assert client.get("/metrics").text == ""


def test_instrumenting_error_response(service):
    """Instrumentation errors raised by a route are returned as 400 with an error body."""

    @service.app.get("/reconfigure")
    async def reconfigure():
        raise InvalidConfigError("Duration buckets must be strictly ascending", {"bucket": 1.0})

    client = TestClient(service.app)
    response = client.get("/reconfigure")

    assert response.status_code == 400
    assert response.json() == {
        "code": "INVALID_CONFIG",
        "message": "Duration buckets must be strictly ascending",
        "details": {"bucket": 1.0},
    }
