# ─────────────────────────────────────────────────────────────────────────────
# Request Validation — shape checks on the raw JSON body
# ─────────────────────────────────────────────────────────────────────────────
# Runs before any stream is opened. Failures surface as HTTP 400 via the
# RequestShapeError handler in exceptions.py.
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

from contract_forge.exceptions import RequestShapeError
from contract_forge.schemas import GenerationRequest

_ARRAY_FIELDS: tuple[str, ...] = ("nodes", "edges", "flowSummary")

_MISSING = object()


def json_type_name(value: Any) -> str:
    """Name the JSON runtime type of a decoded value.

    Absent fields report as ``"undefined"`` so clients can tell a missing
    key from an explicit ``null``.
    """
    if value is _MISSING:
        return "undefined"
    if value is None:
        return "null"
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def parse_generation_request(body: Any) -> GenerationRequest:
    """Shape-check a decoded body and build a GenerationRequest.

    Only ``nodes``, ``edges`` and ``flowSummary`` are checked. Raises
    RequestShapeError carrying the runtime type of all three fields.
    """
    fields = body if isinstance(body, dict) else {}
    values = {name: fields.get(name, _MISSING) for name in _ARRAY_FIELDS}

    if not all(isinstance(value, list) for value in values.values()):
        raise RequestShapeError(
            received={name: json_type_name(value) for name, value in values.items()}
        )

    user_id = fields.get("userId")
    return GenerationRequest(
        nodes=tuple(values["nodes"]),
        edges=tuple(values["edges"]),
        flow_summary=tuple(values["flowSummary"]),
        user_id=None if user_id is None else str(user_id),
        blockchain=fields.get("blockchain"),
    )
