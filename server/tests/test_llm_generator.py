# ─────────────────────────────────────────────────────────────────────────────
# Tests — LLM-backed generators over a mocked chat-completions endpoint
# ─────────────────────────────────────────────────────────────────────────────

import asyncio
import json
from pathlib import Path

import httpx
import pytest

from contract_forge.exceptions import GenerationFailedError
from contract_forge.generators.base import GenerationOptions
from contract_forge.generators.cairo import CairoContractGenerator
from contract_forge.generators.dojo import DojoContractGenerator
from contract_forge.generators.llm import extract_source_code


def _sse(*deltas: str) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": delta}}]})
        for delta in deltas
    ]
    lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode()


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestExtractSourceCode:
    def test_fenced_block(self):
        text = "Here you go:\n```cairo\n#[starknet::contract]\nmod C {}\n```\nDone."
        assert extract_source_code(text) == "#[starknet::contract]\nmod C {}"

    def test_largest_block_wins(self):
        text = "```\nshort\n```\n```cairo\nmod Longer { fn x() {} }\n```"
        assert extract_source_code(text) == "mod Longer { fn x() {} }"

    def test_unfenced_text_is_stripped(self):
        assert extract_source_code("  mod C {}\n") == "mod C {}"

    def test_empty(self):
        assert extract_source_code("") == ""


class TestCairoGenerator:
    async def test_streams_deltas_and_extracts_code(self, test_settings):
        seen_bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen_bodies.append(json.loads(request.content))
            return httpx.Response(
                200,
                content=_sse("```cairo\n", "mod C {}", "\n```"),
                headers={"content-type": "text/event-stream"},
            )

        progress: list[str] = []
        async with _client(handler) as client:
            generator = CairoContractGenerator(client, test_settings)
            result = await generator.generate_contract(
                "nodes: [a]", GenerationOptions(on_progress=progress.append)
            )

        assert progress == ["```cairo\n", "mod C {}", "\n```"]
        assert result.source_code == "mod C {}"
        body = seen_bodies[0]
        assert body["stream"] is True
        assert body["messages"][0]["role"] == "system"
        assert "nodes: [a]" in body["messages"][1]["content"]

    async def test_http_error_becomes_generation_failure(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, content=b"overloaded")

        async with _client(handler) as client:
            generator = CairoContractGenerator(client, test_settings)
            with pytest.raises(GenerationFailedError) as exc_info:
                await generator.generate_contract(
                    "flow", GenerationOptions(on_progress=lambda chunk: None)
                )
        assert "503" in exc_info.value.message

    async def test_connection_error_becomes_generation_failure(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            generator = CairoContractGenerator(client, test_settings)
            with pytest.raises(GenerationFailedError):
                await generator.generate_contract(
                    "flow", GenerationOptions(on_progress=lambda chunk: None)
                )

    async def test_abort_signal_stops_stream(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=_sse("a", "b"))

        abort = asyncio.Event()
        abort.set()
        async with _client(handler) as client:
            generator = CairoContractGenerator(client, test_settings)
            with pytest.raises(GenerationFailedError):
                await generator.generate_contract(
                    "flow", GenerationOptions(on_progress=lambda chunk: None, abort_signal=abort)
                )

    async def test_empty_completion_yields_no_source(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=_sse())

        async with _client(handler) as client:
            generator = CairoContractGenerator(client, test_settings)
            result = await generator.generate_contract(
                "flow", GenerationOptions(on_progress=lambda chunk: None)
            )
        assert result.source_code is None


class TestSaveContract:
    async def test_writes_under_hint_directory(self, test_settings):
        async with httpx.AsyncClient() as client:
            generator = DojoContractGenerator(client, test_settings)
            path = Path(await generator.save_contract("mod C {}", "lib"))

        assert path.parent == Path(test_settings.contracts_dir) / "lib"
        assert path.name.startswith("dojo_contract_")
        assert path.suffix == ".cairo"
        assert path.read_text(encoding="utf-8") == "mod C {}"

    async def test_hint_cannot_escape_contracts_dir(self, test_settings):
        async with httpx.AsyncClient() as client:
            generator = CairoContractGenerator(client, test_settings)
            path = Path(await generator.save_contract("x", "../../etc"))

        assert Path(test_settings.contracts_dir) in path.parents
