import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str
    embedding_provider: str
    embedding_model: str
    embedding_dimensions: int
    timeout_s: float
    max_retries: int


def load_ai_config() -> AIConfig:
    provider = os.getenv("AI_PROVIDER", "openai").strip().lower()
    model = (os.getenv("AI_MODEL") or os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip()
    embedding_provider = os.getenv("EMBEDDING_PROVIDER", "openai").strip().lower()
    embedding_model = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small").strip()
    embedding_dimensions = int(os.getenv("EMBEDDING_DIMENSIONS", "1536"))
    timeout_s = float(os.getenv("OPENAI_TIMEOUT_S", "30"))
    max_retries = int(os.getenv("OPENAI_MAX_RETRIES", "2"))
    return AIConfig(
        provider=provider,
        model=model,
        embedding_provider=embedding_provider,
        embedding_model=embedding_model,
        embedding_dimensions=embedding_dimensions,
        timeout_s=timeout_s,
        max_retries=max_retries,
    )
