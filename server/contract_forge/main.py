# ─────────────────────────────────────────────────────────────────────────────
# FastAPI Application Factory + Lifespan
# ─────────────────────────────────────────────────────────────────────────────
# Entrypoint: uvicorn contract_forge.main:create_app --factory --port 8080
# The --factory flag tells uvicorn to call create_app() for the app instance.
# ─────────────────────────────────────────────────────────────────────────────

from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contract_forge.config import Settings, get_settings
from contract_forge.exceptions import register_exception_handlers
from contract_forge.generators.cairo import CairoContractGenerator
from contract_forge.generators.dojo import DojoContractGenerator
from contract_forge.generators.registry import GeneratorRegistry
from contract_forge.logging_config import configure_logging
from contract_forge.persistence.store import SqlContractStore
from contract_forge.routes import generate, health
from contract_forge.schemas import Blockchain
from contract_forge.services.orchestrator import StreamOrchestrator

logger = structlog.get_logger(__name__)


def _configure_otel(exporter_type: str) -> None:
    """Configure OpenTelemetry tracing. Only "console" is built in."""
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    if exporter_type != "console":
        logger.warning("unknown_otel_exporter", exporter=exporter_type)
        return

    from opentelemetry import trace
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter

    provider = TracerProvider()
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    logger.info("otel_configured", exporter=exporter_type)


def build_registry(client: httpx.AsyncClient, settings: Settings) -> GeneratorRegistry:
    """One generator instance per supported blockchain."""
    return GeneratorRegistry(
        {
            Blockchain.CAIRO: CairoContractGenerator(client, settings),
            Blockchain.DOJO: DojoContractGenerator(client, settings),
        }
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create stateful collaborators and store them in app.state.

    Accessed per request via the providers in dependencies.py.
    """
    settings = get_settings()

    if settings.otel_exporter:
        _configure_otel(settings.otel_exporter)

    store = SqlContractStore(settings.database_url)
    await store.connect()

    llm_client = httpx.AsyncClient(timeout=settings.llm_request_timeout_seconds)
    registry = build_registry(llm_client, settings)
    orchestrator = StreamOrchestrator(registry, store, settings)

    app.state.settings = settings
    app.state.contract_store = store
    app.state.generator_registry = registry
    app.state.stream_orchestrator = orchestrator

    yield

    await llm_client.aclose()
    await store.disconnect()


def _parse_origins(allowed_origins: str) -> list[str]:
    """Comma-separated origins; ``["*"]`` when empty (development)."""
    if not allowed_origins.strip():
        return ["*"]
    return [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]


def create_app() -> FastAPI:
    """Application factory. Invoked by uvicorn with --factory and by tests."""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Contract Forge",
        description="Streams smart-contract source generated from workflow graphs",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.allowed_origins),
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(generate.router, tags=["generate"])

    return app
