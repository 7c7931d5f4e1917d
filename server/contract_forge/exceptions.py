# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────
# Two reporting channels:
#   - before the stream opens: handlers below turn errors into JSON + status
#   - after the stream opens: the orchestrator turns them into an in-band
#     {"type": "error"} line (headers are already committed)
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ──────────────────────────────────────────────────────


class ContractForgeError(Exception):
    """Base exception for all contract generation errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class RequestShapeError(ContractForgeError):
    """Raised when nodes / edges / flowSummary are not arrays."""

    def __init__(self, received: dict[str, str]):
        super().__init__(
            "Invalid input format. Expected arrays for nodes, edges and flowSummary.",
            status_code=400,
        )
        self.received = received


class MalformedBodyError(ContractForgeError):
    """Raised when the request body cannot be decoded as JSON."""

    def __init__(self, reason: str):
        super().__init__(f"Could not parse request body: {reason}", status_code=500)


class UnsupportedBlockchainError(ContractForgeError):
    """Raised when no generator is registered for the requested blockchain."""

    def __init__(self, blockchain: object, supported: list[str]):
        super().__init__(
            f"Unsupported blockchain '{blockchain}'. Supported: {', '.join(supported)}",
            status_code=400,
        )
        self.blockchain = blockchain


class GenerationFailedError(ContractForgeError):
    """Raised when a generator backend fails."""

    def __init__(self, reason: str):
        super().__init__(f"Contract generation failed: {reason}", status_code=502)


class EmptySourceCodeError(ContractForgeError):
    """Raised when a generator finishes without producing source code."""

    def __init__(self):
        super().__init__("Failed to generate source code.", status_code=502)


class GenerationTimeoutError(ContractForgeError):
    """Raised when generate + persist exceeds the request deadline."""

    def __init__(self, timeout_s: float):
        super().__init__(
            f"Contract generation timed out after {timeout_s:g}s",
            status_code=504,
        )


class PersistenceError(ContractForgeError):
    """Raised when the user lookup or contract write fails."""

    def __init__(self, operation: str, reason: str):
        super().__init__(f"Failed to {operation}: {reason}", status_code=500)
        self.operation = operation


# ── Handler registration ────────────────────────────────────────────────────


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers on the FastAPI app.

    Only errors raised before a stream opens reach these handlers.
    """

    @app.exception_handler(RequestShapeError)
    async def shape_error_handler(request: Request, exc: RequestShapeError) -> JSONResponse:
        logger.warning("request_shape_rejected", path=request.url.path, received=exc.received)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "received": exc.received},
        )

    @app.exception_handler(ContractForgeError)
    async def forge_error_handler(request: Request, exc: ContractForgeError) -> JSONResponse:
        logger.error("contract_forge_error", error=exc.message, error_type=type(exc).__name__, exc_info=exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": str(exc) or "An unexpected error occurred"},
        )
