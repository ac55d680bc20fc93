from .base import Extractor, ResilientExtractor
from .heuristic import HeuristicExtractor
from .llm_extractor import LLMExtractor


def build_default_extractor() -> ResilientExtractor:
    return ResilientExtractor(primary=LLMExtractor(), fallback=HeuristicExtractor())


__all__ = ["Extractor", "HeuristicExtractor", "LLMExtractor", "ResilientExtractor", "build_default_extractor"]
