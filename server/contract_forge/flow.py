# ─────────────────────────────────────────────────────────────────────────────
# Flow Descriptor — flattened text handed to the generator backends
# ─────────────────────────────────────────────────────────────────────────────


import json
from dataclasses import dataclass
from typing import Any

from contract_forge.schemas import GenerationRequest


@dataclass(frozen=True)
class FlowDescriptor:
    """Immutable flattened representation of ``{nodes, edges, summary}``."""

    text: str
    node_count: int
    edge_count: int


def _render_item(item: Any) -> str:
    if isinstance(item, str):
        return item
    return json.dumps(item, separators=(",", ":"), default=str)


def _render_section(key: str, items: tuple[Any, ...]) -> str:
    return f"{key}: [{', '.join(_render_item(item) for item in items)}]"


def build_flow_descriptor(request: GenerationRequest) -> FlowDescriptor:
    """Flatten a validated request into ``nodes: [..], edges: [..], summary: [..]``.

    Strings are kept verbatim; nodes and edges (usually objects) are
    rendered as compact JSON so the generator sees their fields.
    """
    sections = (
        ("nodes", request.nodes),
        ("edges", request.edges),
        ("summary", request.flow_summary),
    )
    return FlowDescriptor(
        text=", ".join(_render_section(key, items) for key, items in sections),
        node_count=len(request.nodes),
        edge_count=len(request.edges),
    )
