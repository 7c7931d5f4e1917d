# ─────────────────────────────────────────────────────────────────────────────
# Stream Orchestrator — streaming contract generation business logic
# ─────────────────────────────────────────────────────────────────────────────
# The route opens the response and hands the body iterator to stream().
# This owns:
#   - Flow descriptor build + generator selection
#   - Progress relay (generator callback → response body, in order)
#   - One deadline over generate + persist, with abort on expiry
#   - Persistence sequencing: save file → ensure user → record contract
#   - Exactly one terminal event, exactly one close
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
import contextlib
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum

import structlog
from opentelemetry import trace

from contract_forge.config import Settings
from contract_forge.exceptions import (
    ContractForgeError,
    EmptySourceCodeError,
    GenerationTimeoutError,
)
from contract_forge.flow import FlowDescriptor, build_flow_descriptor
from contract_forge.generators.base import GenerationOptions
from contract_forge.generators.registry import GeneratorRegistry
from contract_forge.logging_config import bind_generation_context, clear_generation_context
from contract_forge.persistence.gateway import CommitGate, PersistenceGateway
from contract_forge.schemas import GenerationRequest
from contract_forge.streaming import EventStream

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

CONTRACT_NAME = "Generated Contract"
CONTRACT_DESTINATION = "lib"
COMPLETE_MESSAGE = "Contract generated and saved successfully."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"
CANCELLED_MESSAGE = "Contract generation was cancelled"


class GenerationState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    GENERATING = "generating"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass
class GenerationRun:
    """Private state of one request: its stream, abort signal and state."""

    request: GenerationRequest
    events: EventStream = field(default_factory=EventStream)
    abort_signal: asyncio.Event = field(default_factory=asyncio.Event)
    commit_gate: CommitGate = field(default_factory=CommitGate)
    saved_path: str | None = None
    state: GenerationState = GenerationState.IDLE
    started: float = field(default_factory=time.perf_counter)

    def advance(self, state: GenerationState) -> None:
        logger.debug("generation_state", previous=self.state.value, state=state.value)
        self.state = state

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)


def error_message(exc: BaseException) -> str:
    """Best-effort client-facing message for an in-band error event."""
    if isinstance(exc, ContractForgeError):
        return exc.message
    return str(exc) or UNEXPECTED_ERROR_MESSAGE


class StreamOrchestrator:
    """Drives one generation per call to stream().

    Nothing here is shared between requests except the registry and the
    store, which are read-only / externally synchronized collaborators.
    """

    def __init__(
        self,
        registry: GeneratorRegistry,
        store: PersistenceGateway,
        settings: Settings,
    ) -> None:
        self._registry = registry
        self._store = store
        self._settings = settings

    @property
    def timeout_seconds(self) -> float:
        return self._settings.generation_timeout_seconds

    async def stream(self, request: GenerationRequest) -> AsyncIterator[bytes]:
        """Response body: progress chunks, then one terminal JSON line.

        Generation runs in its own task so progress reaches the client as
        it is produced. If the client goes away the task is cancelled.
        """
        run = GenerationRun(request=request)
        producer = asyncio.create_task(self._produce(run))
        try:
            async for data in run.events:
                yield data
        finally:
            if not producer.done():
                logger.info("client_disconnected", state=run.state.value)
                producer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await producer

    async def _produce(self, run: GenerationRun) -> None:
        """Run the state machine. Never raises except on cancellation."""
        request = run.request
        bind_generation_context(request.user_id, request.blockchain)
        deadline = asyncio.timeout(self.timeout_seconds)
        logger.info(
            "contract_generation_started",
            timeout_s=self.timeout_seconds,
        )
        try:
            with tracer.start_as_current_span("generate_contract") as span:
                span.set_attribute("blockchain", str(request.blockchain))
                async with deadline:
                    path = await self._generate_and_persist(run)
                span.set_attribute("path", path)

            self._complete(run, path)
        except TimeoutError as e:
            if deadline.expired() and not run.commit_gate.abort():
                # The record committed on its worker thread as the deadline hit.
                self._complete(run, run.saved_path)
                return
            failed_in = run.state.value
            if deadline.expired():
                run.advance(GenerationState.ABORTED)
                run.abort_signal.set()
                exc: BaseException = GenerationTimeoutError(self.timeout_seconds)
            else:
                run.advance(GenerationState.FAILED)
                exc = e
            logger.warning(
                "contract_generation_timed_out" if deadline.expired() else "contract_generation_failed",
                state=failed_in,
                error=error_message(exc),
                time_ms=run.elapsed_ms,
            )
            run.events.error(error_message(exc))
        except asyncio.CancelledError:
            logger.info("contract_generation_cancelled", state=run.state.value)
            run.advance(GenerationState.FAILED)
            run.events.error(CANCELLED_MESSAGE)
            raise
        except Exception as e:
            logger.error(
                "contract_generation_failed",
                state=run.state.value,
                error=error_message(e),
                error_type=type(e).__name__,
                time_ms=run.elapsed_ms,
                exc_info=not isinstance(e, ContractForgeError),
            )
            run.advance(GenerationState.FAILED)
            run.events.error(error_message(e))
        finally:
            run.commit_gate.abort()
            run.abort_signal.set()
            if not run.events.terminal_sent:
                run.events.error(UNEXPECTED_ERROR_MESSAGE)
            run.events.close()
            clear_generation_context()

    def _complete(self, run: GenerationRun, path: str) -> None:
        run.advance(GenerationState.COMPLETED)
        run.events.complete(COMPLETE_MESSAGE, path)
        logger.info(
            "contract_generation_completed",
            path=path,
            progress_chunks=run.events.progress_count,
            time_ms=run.elapsed_ms,
        )

    async def _generate_and_persist(self, run: GenerationRun) -> str:
        request = run.request

        # 1. Idle → Building
        run.advance(GenerationState.BUILDING)
        flow: FlowDescriptor = build_flow_descriptor(request)
        logger.debug(
            "flow_descriptor_built",
            nodes=flow.node_count,
            edges=flow.edge_count,
            chars=len(flow.text),
        )

        # 2. Building → Generating (unknown blockchain fails here, in-band)
        generator = self._registry.select(request.blockchain)
        run.advance(GenerationState.GENERATING)
        options = GenerationOptions(
            on_progress=run.events.progress,
            abort_signal=run.abort_signal,
        )
        with tracer.start_as_current_span("generator_call") as span:
            span.set_attribute("generator", generator.name)
            result = await generator.generate_contract(flow.text, options)

        if not result.source_code:
            raise EmptySourceCodeError()

        # 3. Generating → Persisting
        run.advance(GenerationState.PERSISTING)
        with tracer.start_as_current_span("persist_contract"):
            path = await generator.save_contract(result.source_code, CONTRACT_DESTINATION)
            run.saved_path = path
            await self._store.ensure_user(request.user_id)
            await self._store.record_contract(
                name=CONTRACT_NAME,
                source_code=result.source_code,
                user_id=request.user_id,
                gate=run.commit_gate,
            )
        return path
