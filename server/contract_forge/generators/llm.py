# ─────────────────────────────────────────────────────────────────────────────
# LLM-backed contract generator — OpenAI-compatible /chat/completions
# ─────────────────────────────────────────────────────────────────────────────
# Streams the completion (SSE "data:" lines), forwards every content delta
# as a progress chunk, then extracts the fenced code block as the contract
# source. Works with LM Studio, vLLM, LocalAI, OpenRouter and OpenAI.
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
import json
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

import httpx
import structlog

from contract_forge.config import Settings
from contract_forge.exceptions import GenerationFailedError
from contract_forge.generators.base import (
    ContractGenerator,
    GenerationOptions,
    GenerationResult,
)

logger = structlog.get_logger(__name__)

_FENCED_BLOCK = re.compile(r"```[\w+-]*[^\S\n]*\n(.*?)```", re.DOTALL)
_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def extract_source_code(completion: str) -> str:
    """Return the largest fenced code block, or the stripped text if unfenced."""
    blocks = [block.strip() for block in _FENCED_BLOCK.findall(completion)]
    blocks = [block for block in blocks if block]
    if blocks:
        return max(blocks, key=len)
    return completion.strip()


class LLMContractGenerator(ContractGenerator):
    """Base class for generators that prompt a chat-completions endpoint.

    Subclasses set ``name``, ``system_prompt`` and the artifact naming.
    """

    name = "llm"
    system_prompt = "You are an expert smart contract engineer."
    file_prefix = "contract"
    file_extension = ".cairo"

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings
        self._base_url = settings.llm_base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        api_key = settings.llm_api_key.get_secret_value()
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"

    def build_messages(self, flow: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {
                "role": "user",
                "content": (
                    "Generate a complete contract implementing the following "
                    "workflow. Return the code in a single fenced block.\n\n"
                    f"{flow}"
                ),
            },
        ]

    async def generate_contract(
        self, flow: str, options: GenerationOptions
    ) -> GenerationResult:
        body = {
            "model": self._settings.llm_model,
            "messages": self.build_messages(flow),
            "temperature": self._settings.llm_temperature,
            "stream": True,
        }
        parts: list[str] = []

        try:
            async with self._client.stream(
                "POST",
                f"{self._base_url}/chat/completions",
                json=body,
                headers=self._headers,
            ) as resp:
                if resp.status_code >= 400:
                    err_text = (await resp.aread()).decode("utf-8", errors="replace")
                    logger.error(
                        "llm_api_error",
                        generator=self.name,
                        status_code=resp.status_code,
                        body=err_text[:500],
                    )
                    raise GenerationFailedError(
                        f"LLM API error {resp.status_code}: {err_text[:200]}"
                    )

                async for line in resp.aiter_lines():
                    if options.abort_signal.is_set():
                        raise GenerationFailedError("generation aborted")
                    if not line.startswith("data: "):
                        continue
                    payload = line[6:]
                    if payload.strip() == "[DONE]":
                        break
                    try:
                        data = json.loads(payload)
                    except json.JSONDecodeError:
                        logger.debug("llm_malformed_chunk", chunk=payload[:100])
                        continue
                    delta = (data.get("choices") or [{}])[0].get("delta", {})
                    if content := delta.get("content"):
                        parts.append(content)
                        options.on_progress(content)
        except httpx.HTTPError as e:
            raise GenerationFailedError(f"{type(e).__name__}: {e}") from e

        completion = "".join(parts)
        source_code = extract_source_code(completion)
        logger.info(
            "llm_generation_finished",
            generator=self.name,
            completion_chars=len(completion),
            source_chars=len(source_code),
        )
        return GenerationResult(
            source_code=source_code or None,
            metadata={"model": self._settings.llm_model, "completion": completion},
        )

    async def save_contract(self, source_code: str, destination_hint: str) -> str:
        """Write the source under ``contracts_dir/<hint>/`` in a worker thread."""
        subdir = _UNSAFE_PATH_CHARS.sub("_", destination_hint).strip("_") or "lib"
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        filename = f"{self.file_prefix}_{stamp}_{uuid.uuid4().hex[:8]}{self.file_extension}"
        path = Path(self._settings.contracts_dir) / subdir / filename

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write_sync, path, source_code)
        logger.info("contract_saved", generator=self.name, path=str(path))
        return str(path)

    @staticmethod
    def _write_sync(path: Path, source_code: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source_code, encoding="utf-8")
