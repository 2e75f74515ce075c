"""
Team catalog: normalization, alias index and deterministic extraction

Usage:
    from src.catalog import AliasIndex, TeamExtractor, load_catalog

    index = AliasIndex.build(load_catalog(CATALOG_PATH))
    extractor = TeamExtractor(index)
    extractor.extract_slugs("ארסנל נגד ליברפול")
"""

from .normalizer import normalize
from .alias_index import AliasIndex, CatalogEntry, CatalogConfigurationError, load_catalog
from .team_extractor import TeamExtractor, TokenMatch, dynamic_threshold, build_match_slug

__all__ = [
    "normalize",
    "AliasIndex",
    "CatalogEntry",
    "CatalogConfigurationError",
    "load_catalog",
    "TeamExtractor",
    "TokenMatch",
    "dynamic_threshold",
    "build_match_slug",
]
