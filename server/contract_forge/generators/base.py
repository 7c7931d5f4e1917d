# ─────────────────────────────────────────────────────────────────────────────
# Generator capability contract
# ─────────────────────────────────────────────────────────────────────────────
# Every backend registered in GeneratorRegistry implements exactly two
# async operations: generate_contract() and save_contract().
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

ProgressCallback = Callable[[str], None]


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call options passed into generate_contract().

    ``abort_signal`` is advisory: it is set when the request deadline
    expires or the request ends, and backends that run work outside the
    awaiting task (threads, subprocesses) should stop when they see it.
    """

    on_progress: ProgressCallback
    abort_signal: asyncio.Event = field(default_factory=asyncio.Event)


@dataclass
class GenerationResult:
    """Output of one generation. Empty ``source_code`` counts as a failure."""

    source_code: str | None
    metadata: dict[str, Any] = field(default_factory=dict)


class ContractGenerator(ABC):
    """Pluggable contract generation backend."""

    name: str = "generator"

    @abstractmethod
    async def generate_contract(
        self, flow: str, options: GenerationOptions
    ) -> GenerationResult:
        """Generate contract source from a flattened flow description."""

    @abstractmethod
    async def save_contract(self, source_code: str, destination_hint: str) -> str:
        """Store generated source and return its path."""
