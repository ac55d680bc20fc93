from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional, Sequence

from openai import AsyncOpenAI

from cvmatch.ai.types import ChatMessage
from cvmatch.core.errors import EmbeddingFailure
from cvmatch.semantic.embeddings import prepare_embedding_input
from cvmatch.semantic.vectors import zero_vector

logger = logging.getLogger(__name__)


def _build_client(
    api_key: Optional[str],
    base_url: Optional[str],
    timeout_s: float,
    max_retries: int,
) -> AsyncOpenAI:
    key = (api_key or os.getenv("OPENAI_API_KEY") or "").strip()
    if not key:
        raise RuntimeError("OPENAI_API_KEY is missing")
    return AsyncOpenAI(
        api_key=key,
        base_url=(base_url or os.getenv("OPENAI_BASE_URL") or None),
        timeout=timeout_s,
        max_retries=max_retries,
    )


class OpenAIProvider:
    """JSON-mode chat completions."""

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        max_retries: int = 2,
    ):
        self._model = model
        self._client = _build_client(api_key, base_url, timeout_s, max_retries)

    @property
    def model(self) -> str:
        return self._model

    async def complete_json(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float = 0.2,
        max_output_tokens: int = 900,
    ) -> dict[str, Any] | None:
        payload = [{"role": m.role, "content": m.content} for m in messages]
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=payload,
            temperature=temperature,
            response_format={"type": "json_object"},
            max_tokens=max_output_tokens,
        )
        content = response.choices[0].message.content if response.choices else ""
        if not content:
            return None
        parsed = json.loads(content)
        return parsed if isinstance(parsed, dict) else None


class OpenAIEmbeddingProvider:
    def __init__(
        self,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        max_retries: int = 2,
    ):
        self._model = model
        self.dimension = dimension
        self._client = _build_client(api_key, base_url, timeout_s, max_retries)

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        prepared = [prepare_embedding_input(text) for text in texts]
        results: list[list[float]] = [zero_vector(self.dimension) for _ in prepared]
        pending = [(idx, text) for idx, text in enumerate(prepared) if text]
        if not pending:
            return results

        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=[text for _, text in pending],
            )
        except Exception as exc:
            logger.warning("embedding_request_failed model=%s batch=%s: %s", self._model, len(pending), exc)
            raise EmbeddingFailure(f"Embedding request failed: {exc}") from exc

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(pending):
            raise EmbeddingFailure(
                f"Embedding provider returned {len(data)} vectors for {len(pending)} inputs.",
                code="embedding_invalid",
            )
        for (idx, _), item in zip(pending, data):
            vector = list(item.embedding)
            if len(vector) != self.dimension:
                raise EmbeddingFailure(
                    f"Embedding dimension {len(vector)} does not match configured {self.dimension}.",
                    code="embedding_invalid",
                )
            results[idx] = vector
        return results
