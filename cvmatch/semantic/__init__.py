from .embeddings import EmbeddingProvider, SimpleEmbeddingProvider
from .vectors import cosine_similarity

__all__ = ["EmbeddingProvider", "SimpleEmbeddingProvider", "cosine_similarity"]
