# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from contract_forge.config import Settings
from contract_forge.generators.base import (
    ContractGenerator,
    GenerationOptions,
    GenerationResult,
)
from contract_forge.generators.registry import GeneratorRegistry
from contract_forge.persistence.models import GeneratedContract
from contract_forge.persistence.store import SqlContractStore
from contract_forge.schemas import Blockchain, GenerationRequest
from contract_forge.services.orchestrator import StreamOrchestrator


class ScriptedGenerator(ContractGenerator):
    """Generator double: emits fixed chunks, then returns / raises / hangs."""

    name = "scripted"

    def __init__(
        self,
        chunks: list[str] | None = None,
        source_code: str | None = "contract C {}",
        error: Exception | None = None,
        hang: bool = False,
        save_path: str = "generated/lib/contract.cairo",
    ) -> None:
        self.chunks = chunks if chunks is not None else ["fn a() ", "{ ", "}"]
        self.source_code = source_code
        self.error = error
        self.hang = hang
        self.save_path = save_path
        self.flows: list[str] = []
        self.saved: list[tuple[str, str]] = []
        self.abort_signal: asyncio.Event | None = None
        self.cancelled = False

    async def generate_contract(
        self, flow: str, options: GenerationOptions
    ) -> GenerationResult:
        self.flows.append(flow)
        self.abort_signal = options.abort_signal
        for chunk in self.chunks:
            options.on_progress(chunk)
            await asyncio.sleep(0)
        if self.hang:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return GenerationResult(source_code=self.source_code)

    async def save_contract(self, source_code: str, destination_hint: str) -> str:
        self.saved.append((source_code, destination_hint))
        return self.save_path


def count_contracts(database_url: str, user_id: str) -> int:
    """Count persisted contract rows for a user, straight from the database."""
    engine = create_engine(database_url)
    try:
        with Session(engine) as session:
            stmt = select(func.count()).select_from(GeneratedContract).where(
                GeneratedContract.user_id == user_id
            )
            return session.scalar(stmt) or 0
    finally:
        engine.dispose()


def split_body(body: bytes) -> tuple[bytes, dict]:
    """Split a response body into (progress bytes, terminal event)."""
    head, _, last = body.rstrip(b"\n").rpartition(b"\n")
    return head, json.loads(last)


async def collect(orchestrator: StreamOrchestrator, request: GenerationRequest) -> list[bytes]:
    return [data async for data in orchestrator.stream(request)]


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings for tests — SQLite under tmp_path, no real LLM."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'contracts.db'}",
        contracts_dir=str(tmp_path / "contracts"),
        llm_base_url="http://llm.test/v1",
        generation_timeout_seconds=2.0,
        log_json=False,
        log_level="DEBUG",
    )


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def registry(generator: ScriptedGenerator) -> GeneratorRegistry:
    return GeneratorRegistry({Blockchain.CAIRO: generator})


@pytest.fixture
def mock_store() -> SqlContractStore:
    """SqlContractStore with async methods mocked."""
    store = MagicMock(spec=SqlContractStore)
    store.ensure_user = AsyncMock()
    store.record_contract = AsyncMock()
    store.connect = AsyncMock()
    store.disconnect = AsyncMock()
    store.is_connected = True
    return store


@pytest.fixture
def orchestrator(
    registry: GeneratorRegistry, mock_store: SqlContractStore, test_settings: Settings
) -> StreamOrchestrator:
    return StreamOrchestrator(registry, mock_store, test_settings)


@pytest.fixture
def valid_request() -> GenerationRequest:
    return GenerationRequest(
        nodes=({"id": "n1", "type": "swap"},),
        edges=({"source": "n1", "target": "n2"},),
        flow_summary=("x",),
        user_id="u1",
        blockchain="blockchain1",
    )
