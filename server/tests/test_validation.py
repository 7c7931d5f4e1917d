# ─────────────────────────────────────────────────────────────────────────────
# Tests — request shape validation
# ─────────────────────────────────────────────────────────────────────────────

import pytest

from contract_forge.exceptions import RequestShapeError
from contract_forge.validation import json_type_name, parse_generation_request


def _body(**overrides):
    body = {
        "nodes": [{"id": "n1"}],
        "edges": [{"source": "n1", "target": "n2"}],
        "flowSummary": ["x"],
        "userId": "u1",
        "blockchain": "blockchain1",
    }
    body.update(overrides)
    return body


class TestParseGenerationRequest:
    def test_valid_body_builds_request(self):
        request = parse_generation_request(_body())
        assert request.nodes == ({"id": "n1"},)
        assert request.flow_summary == ("x",)
        assert request.user_id == "u1"
        assert request.blockchain == "blockchain1"

    def test_nodes_as_string_reports_string(self):
        with pytest.raises(RequestShapeError) as exc_info:
            parse_generation_request(_body(nodes="n1"))
        assert exc_info.value.status_code == 400
        assert exc_info.value.received == {
            "nodes": "string",
            "edges": "array",
            "flowSummary": "array",
        }

    def test_missing_field_reports_undefined(self):
        body = _body()
        del body["edges"]
        with pytest.raises(RequestShapeError) as exc_info:
            parse_generation_request(body)
        assert exc_info.value.received["edges"] == "undefined"

    def test_flow_summary_as_string_is_rejected(self):
        with pytest.raises(RequestShapeError) as exc_info:
            parse_generation_request(_body(flowSummary="do a swap"))
        assert exc_info.value.received["flowSummary"] == "string"

    def test_non_object_body_reports_all_undefined(self):
        with pytest.raises(RequestShapeError) as exc_info:
            parse_generation_request(["not", "an", "object"])
        assert set(exc_info.value.received.values()) == {"undefined"}

    def test_unknown_blockchain_passes_validation(self):
        request = parse_generation_request(_body(blockchain="unknown"))
        assert request.blockchain == "unknown"

    def test_missing_user_id_is_none(self):
        body = _body()
        del body["userId"]
        assert parse_generation_request(body).user_id is None

    def test_request_is_immutable(self):
        request = parse_generation_request(_body())
        with pytest.raises(Exception):
            request.user_id = "other"


class TestJsonTypeName:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ([], "array"),
            ({}, "object"),
            ("s", "string"),
            (1, "number"),
            (1.5, "number"),
            (True, "boolean"),
            (None, "null"),
        ],
    )
    def test_json_types(self, value, expected):
        assert json_type_name(value) == expected
