import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import CollectorRegistry

from atlas_client.api_client import AtlasAPIClient
from atlas_client.config import ExporterConfig
from routes.metrics_routes import router as metrics_router
from services.exporter_service import BillingExporter
from services.metrics_service import MetricPublisher, RequestMetrics

UNMATCHED_PATH = "unmatched"


def create_app(
    config: ExporterConfig,
    registry: CollectorRegistry = None,
    api_client: AtlasAPIClient = None,
) -> FastAPI:
    if registry is None:
        registry = CollectorRegistry()
    api_client = api_client or AtlasAPIClient(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await api_client.close()

    app = FastAPI(
        title="Atlas Billing Exporter",
        description="Exports MongoDB Atlas pending invoice data as Prometheus metrics",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.registry = registry
    app.state.exporter = BillingExporter(api_client, MetricPublisher(registry))
    request_metrics = RequestMetrics(registry)

    @app.middleware("http")
    async def track_metrics(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        path = route.path if route is not None else UNMATCHED_PATH
        request_metrics.observe(request.method, path, response.status_code, time.perf_counter() - start)
        return response

    @app.exception_handler(404)
    async def handler_404(request: Request, exc):
        return PlainTextResponse("nothing to see here", status_code=404)

    app.include_router(metrics_router)
    return app
