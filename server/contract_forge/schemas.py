# ─────────────────────────────────────────────────────────────────────────────
# Schemas — request model, blockchain ids, health responses
# ─────────────────────────────────────────────────────────────────────────────


from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class Blockchain(str, Enum):
    """Blockchain identifiers accepted in the ``blockchain`` field."""

    CAIRO = "blockchain1"
    DOJO = "blockchain4"


class GenerationRequest(BaseModel):
    """Validated, immutable view of one POST /generate-contract body.

    ``blockchain`` stays a raw value here: an unknown id is reported
    in-band once the stream is open, not as a 400.
    """

    model_config = ConfigDict(frozen=True)

    nodes: tuple[Any, ...]
    edges: tuple[Any, ...]
    flow_summary: tuple[Any, ...]
    user_id: str | None = None
    blockchain: Any = None


class LivenessResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    status: str
    store_connected: bool
    blockchains: list[str]
