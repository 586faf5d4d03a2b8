"""
Exporter service for Redis instrumentation.
"""

import time
from contextlib import asynccontextmanager
from typing import Dict, Any, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import REGISTRY, CollectorRegistry

from instrumenting.config import InstrumentingSettings, get_settings
from instrumenting.errors import InstrumentingException
from instrumenting.logging import configure_logging, get_logger
from instrumenting.metrics.exposition import CONTENT_TYPE, render
from instrumenting.metrics.redis import get_redis_recorder

SERVICE_NAME = "exporter"


class ExporterService:
    """Serves the metrics of one Redis recorder.

    The service is meant to be embedded in the process that talks to Redis:
    callers instrument their client with ``service.recorder`` and mount or run
    ``service.app``. Started on its own, it serves empty metric families.
    """

    def __init__(
        self,
        settings: Optional[InstrumentingSettings] = None,
        registry: Optional[CollectorRegistry] = None
    ):
        self.settings = settings or get_settings()
        self.registry = registry if registry is not None else REGISTRY

        configure_logging(SERVICE_NAME, self.settings.log_level)
        self.logger = get_logger("exporter.service")

        self.recorder = get_redis_recorder(self.settings, self.registry)
        self._start_time = time.time()

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            self.logger.info("Exporter service started", application=self.settings.application_name)
            yield
            self.recorder.unregister()
            self.logger.info("Exporter service stopped")

        return FastAPI(
            title="Redis Metrics Exporter",
            description="Prometheus exposition of Redis call metrics",
            version="1.0.0",
            docs_url="/docs" if self.settings.env == "local" else None,
            redoc_url=None,
            lifespan=lifespan,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            start_time = time.time()
            response = await call_next(request)
            duration = time.time() - start_time

            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2)
            )
            return response

    def _setup_routes(self):
        """Set up routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "application": self.settings.application_name,
                "version": "1.0.0",
            }

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {
                "service": SERVICE_NAME,
                "status": "ok",
                "uptime_seconds": time.time() - self._start_time,
                "dependencies": self._check_dependencies(),
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(content=render(self.registry), media_type=CONTENT_TYPE)

        @self.app.exception_handler(InstrumentingException)
        async def instrumenting_exception_handler(request: Request, exc: InstrumentingException):
            """Handle InstrumentingException."""
            self.logger.error(
                "Instrumentation error",
                code=exc.code,
                message=exc.message,
                details=exc.details
            )
            return JSONResponse(
                status_code=400,
                content=exc.to_response().model_dump()
            )

    def _check_dependencies(self) -> Dict[str, Any]:
        """Report the recorder state."""
        registered = getattr(self.recorder, "registered", None)
        if registered is None:
            return {"recorder": "disabled"}
        return {"recorder": "ok" if registered else "unregistered"}

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower()
        )


def create_app(
    settings: Optional[InstrumentingSettings] = None,
    registry: Optional[CollectorRegistry] = None
) -> FastAPI:
    """Create exporter service application."""
    service = ExporterService(settings, registry)
    return service.app


if __name__ == "__main__":
    service = ExporterService()
    service.run()
