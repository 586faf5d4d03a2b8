"""
Redis instrumentation for Prometheus.

This package aggregates the building blocks used to measure calls made to a
Redis backend:

- config: Settings via pydantic-settings
- logging: Structured logging with structlog
- errors: Canonical error types and responses
- metrics: Recorder interface, Redis recorder and exposition helpers
- redis: Instrumented asyncio Redis client

Exporter wiring lives in service_exporter/. Do not import from
service_exporter into instrumenting/.
"""

__version__ = "1.0.0"
