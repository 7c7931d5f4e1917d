# ─────────────────────────────────────────────────────────────────────────────
# Health Check Routes — liveness and readiness
# ─────────────────────────────────────────────────────────────────────────────
#   /health        → Liveness. Returns 200 while the process is up.
#   /health/ready  → Readiness. 503 until the contract store is connected
#                    and at least one generator is registered.
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from contract_forge.dependencies import get_contract_store, get_generator_registry
from contract_forge.generators.registry import GeneratorRegistry
from contract_forge.persistence.store import SqlContractStore
from contract_forge.schemas import LivenessResponse, ReadinessResponse

router = APIRouter()


@router.get("/health", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe. No dependencies, no I/O."""
    return LivenessResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness(
    registry: GeneratorRegistry = Depends(get_generator_registry),
    store: SqlContractStore = Depends(get_contract_store),
) -> JSONResponse:
    blockchains = registry.supported
    ready = store.is_connected and len(blockchains) > 0

    response = ReadinessResponse(
        status="ready" if ready else "not_ready",
        store_connected=store.is_connected,
        blockchains=blockchains,
    )
    return JSONResponse(
        status_code=200 if ready else 503,
        content=response.model_dump(),
    )
