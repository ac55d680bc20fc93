from __future__ import annotations

import asyncio
import hashlib
import logging
import math
import re
from typing import Protocol

from cvmatch.core.errors import EmbeddingFailure

from .vectors import zero_vector

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r"[a-z0-9\+#]+")

MAX_EMBEDDING_INPUT_CHARS = 8000


class EmbeddingProvider(Protocol):
    dimension: int

    async def embed(self, text: str) -> list[float]:
        """Return the vector embedding of one text; empty text maps to a zero vector."""

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Return vector embeddings for input texts, in order."""


def prepare_embedding_input(text: str | None) -> str:
    cleaned = (text or "").strip()
    return cleaned[:MAX_EMBEDDING_INPUT_CHARS]


class SimpleEmbeddingProvider:
    """Deterministic hashed bag-of-words embeddings for offline runs and tests."""

    def __init__(self, dimension: int = 256) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be greater than 0")
        self.dimension = dimension

    async def embed(self, text: str) -> list[float]:
        return self._embed_single(prepare_embedding_input(text))

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self._embed_single(prepare_embedding_input(text)) for text in texts]

    def _embed_single(self, text: str) -> list[float]:
        if not text:
            return zero_vector(self.dimension)
        vector = [0.0] * self.dimension
        tokens = _TOKEN_PATTERN.findall(text.lower())
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
            index = int(digest[:8], 16) % self.dimension
            vector[index] += 1.0

        norm = math.sqrt(sum(value * value for value in vector))
        if norm <= 0:
            return vector
        return [value / norm for value in vector]


class CachedEmbedder:
    """Memoises embeddings per text for the lifetime of one analysis."""

    def __init__(self, provider: EmbeddingProvider, timeout_s: float | None = None) -> None:
        self.provider = provider
        self.timeout_s = timeout_s
        self._cache: dict[str, list[float]] = {}

    @property
    def dimension(self) -> int:
        return self.provider.dimension

    async def embed(self, text: str) -> list[float]:
        key = prepare_embedding_input(text)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        vector = await embed_with_timeout(self.provider, key, self.timeout_s)
        self._cache[key] = vector
        return vector

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed(text) for text in texts]


async def embed_with_timeout(provider: EmbeddingProvider, text: str, timeout_s: float | None) -> list[float]:
    try:
        if timeout_s is None:
            return await provider.embed(text)
        return await asyncio.wait_for(provider.embed(text), timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        logger.warning("embedding_timeout timeout_s=%s text_len=%s", timeout_s, len(text))
        raise EmbeddingFailure("Embedding provider timed out.", code="embedding_timeout") from exc
