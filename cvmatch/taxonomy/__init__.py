import os
from functools import lru_cache

from .local_taxonomy import LocalTaxonomy
from .provider import TaxonomyProvider


@lru_cache(maxsize=1)
def get_default_taxonomy_provider() -> TaxonomyProvider:
    """Bundled keyword dictionaries; KEYWORD_TAXONOMY_PATH points at a replacement file."""
    return LocalTaxonomy(os.getenv("KEYWORD_TAXONOMY_PATH") or None)


__all__ = ["LocalTaxonomy", "TaxonomyProvider", "get_default_taxonomy_provider"]
