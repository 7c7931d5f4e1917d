# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → Depends() injects.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from contract_forge.generators.registry import GeneratorRegistry
from contract_forge.persistence.store import SqlContractStore
from contract_forge.services.orchestrator import StreamOrchestrator


def get_generator_registry(request: Request) -> GeneratorRegistry:
    return request.app.state.generator_registry


def get_contract_store(request: Request) -> SqlContractStore:
    return request.app.state.contract_store


def get_stream_orchestrator(request: Request) -> StreamOrchestrator:
    return request.app.state.stream_orchestrator
