"""
Team catalog and alias index

Loads the static team list and builds an immutable alias -> slug index
with an approximate-matching universe over the same normalized aliases.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from src.catalog.normalizer import normalize
from src.utils.logger import setup_logger

logger = setup_logger(__name__)


class CatalogConfigurationError(Exception):
    """Raised when the catalog data is inconsistent (fatal at startup)"""


@dataclass(frozen=True)
class CatalogEntry:
    """Single team in the catalog"""
    id: str
    name_he: str
    slug: str
    aliases: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data: Dict) -> "CatalogEntry":
        try:
            return cls(
                id=str(data["id"]),
                name_he=data["name_he"],
                slug=data["slug"],
                aliases=frozenset(data.get("aliases", [])),
            )
        except KeyError as e:
            raise CatalogConfigurationError(f"Catalog entry missing field {e}: {data}") from e


def load_catalog(path: Union[str, Path]) -> List[CatalogEntry]:
    """
    Load catalog entries from a JSON file.

    Args:
        path: Path to a JSON list of {id, name_he, slug, aliases}

    Returns:
        Entries in file order (file order is the registration order)
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogConfigurationError(f"Cannot load catalog from {path}: {e}") from e

    if not isinstance(raw, list):
        raise CatalogConfigurationError(f"Catalog {path} must be a JSON list")

    entries = [CatalogEntry.from_dict(item) for item in raw]
    logger.info(f"Loaded {len(entries)} catalog entries from {path.name}")
    return entries


class AliasIndex:
    """
    Read-only alias index over the catalog.

    Example:
        index = AliasIndex.build(load_catalog("data/teams.json"))
        index.lookup("ליברפול")          # 'liverpool'
        index.best_match("ליברפוול")     # ('ליברפול', 'liverpool', 0.875)
    """

    def __init__(self, entries: List[CatalogEntry], alias_map: Dict[str, str], aliases: List[str]):
        self._entries = tuple(entries)
        self._by_slug = MappingProxyType({e.slug: e for e in entries})
        self._alias_map = MappingProxyType(dict(alias_map))
        # Registration order; the position is the fuzzy tie-break
        self._aliases: Tuple[str, ...] = tuple(aliases)

    @classmethod
    def build(cls, entries: List[CatalogEntry]) -> "AliasIndex":
        """
        Build the index, failing fast on conflicting data.

        Raises:
            CatalogConfigurationError: duplicate slug, or a normalized alias
                that maps to two different slugs
        """
        alias_map: Dict[str, str] = {}
        aliases: List[str] = []
        seen_slugs = set()

        for entry in entries:
            if entry.slug in seen_slugs:
                raise CatalogConfigurationError(f"Duplicate slug in catalog: {entry.slug}")
            seen_slugs.add(entry.slug)

            # Explicit aliases in sorted order keep registration deterministic
            for alias in [*sorted(entry.aliases), entry.name_he, entry.slug]:
                normalized = normalize(alias)
                if not normalized:
                    continue
                existing = alias_map.get(normalized)
                if existing is None:
                    alias_map[normalized] = entry.slug
                    aliases.append(normalized)
                elif existing != entry.slug:
                    raise CatalogConfigurationError(
                        f"Alias '{alias}' (normalized '{normalized}') maps to both "
                        f"'{existing}' and '{entry.slug}'"
                    )

        logger.info(f"Alias index built: {len(entries)} teams, {len(aliases)} aliases")
        return cls(entries, alias_map, aliases)

    def lookup(self, normalized_alias: str) -> Optional[str]:
        """Exact lookup of an already-normalized alias"""
        return self._alias_map.get(normalized_alias)

    def best_match(self, normalized_candidate: str) -> Optional[Tuple[str, str, float]]:
        """
        Fuzzy lookup against the whole alias universe.

        Similarity is normalized Levenshtein similarity in [0, 1]. When
        several aliases share the top score the first registered one wins.

        Returns:
            (alias, slug, score) or None for an empty candidate/universe
        """
        if not normalized_candidate or not self._aliases:
            return None

        results = process.extract(
            normalized_candidate,
            self._aliases,
            scorer=Levenshtein.normalized_similarity,
            limit=None,
        )
        if not results:
            return None

        top_score = max(score for _, score, _ in results)
        alias, score, _ = min(
            (r for r in results if r[1] == top_score),
            key=lambda r: r[2],
        )
        return alias, self._alias_map[alias], float(score)

    def display_name(self, slug: str) -> str:
        """Canonical (Hebrew) name for a slug, or the slug itself when unknown"""
        entry = self._by_slug.get(slug)
        return entry.name_he if entry else slug

    def available_teams(self) -> List[Dict[str, str]]:
        """[{slug, name_he}] in catalog order"""
        return [{"slug": e.slug, "name_he": e.name_he} for e in self._entries]

    def has_slug(self, slug: str) -> bool:
        return slug in self._by_slug

    @property
    def slugs(self) -> List[str]:
        return [e.slug for e in self._entries]

    @property
    def aliases(self) -> Tuple[str, ...]:
        return self._aliases

    def __len__(self) -> int:
        return len(self._entries)
