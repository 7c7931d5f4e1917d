# ─────────────────────────────────────────────────────────────────────────────
# POST /generate-contract — streaming contract generation endpoint (THIN)
# ─────────────────────────────────────────────────────────────────────────────


import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from contract_forge.dependencies import get_stream_orchestrator
from contract_forge.exceptions import MalformedBodyError
from contract_forge.services.orchestrator import StreamOrchestrator
from contract_forge.validation import parse_generation_request

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.post("/generate-contract")
async def generate_contract(
    request: Request,
    orchestrator: StreamOrchestrator = Depends(get_stream_orchestrator),
) -> StreamingResponse:
    """Stream generated contract source, then one terminal JSON line.

    Shape errors are raised before the response starts (HTTP 400).
    Everything after that is reported in-band by the orchestrator.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedBodyError(str(e)) from e

    generation_request = parse_generation_request(body)

    return StreamingResponse(
        orchestrator.stream(generation_request),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
