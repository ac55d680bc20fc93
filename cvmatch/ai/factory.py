from cvmatch.ai.config import load_ai_config
from cvmatch.ai.providers.openai_provider import OpenAIEmbeddingProvider, OpenAIProvider
from cvmatch.ai.types import JSONCompletionClient
from cvmatch.semantic.embeddings import EmbeddingProvider, SimpleEmbeddingProvider


def get_ai_client() -> JSONCompletionClient:
    cfg = load_ai_config()

    if cfg.provider == "openai":
        return OpenAIProvider(model=cfg.model, timeout_s=cfg.timeout_s, max_retries=cfg.max_retries)

    raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")


def get_embedding_provider() -> EmbeddingProvider:
    cfg = load_ai_config()

    if cfg.embedding_provider == "openai":
        return OpenAIEmbeddingProvider(
            model=cfg.embedding_model,
            dimension=cfg.embedding_dimensions,
            timeout_s=cfg.timeout_s,
            max_retries=cfg.max_retries,
        )

    if cfg.embedding_provider == "simple":
        return SimpleEmbeddingProvider(dimension=cfg.embedding_dimensions)

    raise ValueError(f"Unsupported EMBEDDING_PROVIDER='{cfg.embedding_provider}'")
