"""
Deterministic team extraction

Finds team slugs in free text using the alias index:
exact -> Hebrew prefix strip -> fuzzy -> prefix strip + fuzzy,
with two-word phrases checked before single words.
"""
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from config.messages import HEBREW_PREFIXES
from src.catalog.alias_index import AliasIndex
from src.catalog.normalizer import normalize
from src.utils.logger import setup_logger

logger = setup_logger(__name__)

MIN_CANDIDATE_LENGTH = 2


def dynamic_threshold(candidate: str) -> float:
    """
    Similarity cutoff for a normalized candidate.

    Shorter strings need a stricter match to avoid false positives.
    """
    if len(candidate) <= 3:
        return 0.90
    if len(candidate) <= 5:
        return 0.85
    return 0.75


def build_match_slug(slug_a: str, slug_b: str) -> str:
    """'home-vs-away' fixture slug"""
    return f"{slug_a.strip().lower()}-vs-{slug_b.strip().lower()}"


@dataclass
class TokenMatch:
    """A slug found at a token span"""
    slug: str
    start_idx: int
    end_idx: int
    method: str = ""


class TeamExtractor:
    """
    Extracts team slugs from user messages.

    Example:
        extractor = TeamExtractor(index)
        extractor.extract_slugs("ארסנל נגד ליברפול")
        # Returns: ['arsenal', 'liverpool']
    """

    def __init__(self, index: AliasIndex, prefixes: Sequence[str] = HEBREW_PREFIXES):
        self.index = index
        self.prefixes = tuple(prefixes)

    def _stripped_variants(self, normalized: str) -> List[str]:
        if len(normalized) <= 3:
            return []
        return [normalized[1:] for p in self.prefixes if normalized.startswith(p)]

    def _fuzzy(self, candidate: str, threshold: float) -> Optional[tuple]:
        match = self.index.best_match(candidate)
        if match and match[2] >= threshold:
            return match
        return None

    def match_token(self, candidate: str) -> Optional[str]:
        """
        Resolve a single word or two-word phrase to a slug.

        Returns:
            The slug, or None when nothing passes the thresholds
        """
        normalized = normalize(candidate)
        if len(normalized) < MIN_CANDIDATE_LENGTH:
            return None

        threshold = dynamic_threshold(normalized)
        stripped = self._stripped_variants(normalized)

        # 1. Exact
        slug = self.index.lookup(normalized)
        if slug:
            logger.debug(f"[Match] '{candidate}' -> {slug} (Exact)")
            return slug

        # 2. Prefix strip + exact
        for variant in stripped:
            slug = self.index.lookup(variant)
            if slug:
                logger.debug(f"[Match] '{candidate}' -> {slug} (Prefix+Exact)")
                return slug

        # 3. Fuzzy
        match = self._fuzzy(normalized, threshold)
        if match:
            logger.debug(f"[Match] '{candidate}' -> {match[1]} (Fuzzy {match[2]:.2f} / T: {threshold})")
            return match[1]

        # 4. Prefix strip + fuzzy
        for variant in stripped:
            match = self._fuzzy(variant, threshold)
            if match:
                logger.debug(
                    f"[Match] '{candidate}' -> {match[1]} (Prefix+Fuzzy {match[2]:.2f} / T: {threshold})"
                )
                return match[1]

        return None

    def extract_slugs(self, text: str) -> List[str]:
        """
        Extract unique team slugs in order of first mention.

        The text is normalized once before tokenizing. Two-word phrases
        are resolved first; single words already covered by a phrase match
        are skipped.
        """
        if not text or not text.strip():
            return []

        start = time.perf_counter()
        words = normalize(text).split()
        matches: List[TokenMatch] = []

        # Bigram pass
        for i in range(len(words) - 1):
            slug = self.match_token(f"{words[i]} {words[i + 1]}")
            if slug:
                matches.append(TokenMatch(slug=slug, start_idx=i, end_idx=i + 1, method="bigram"))

        # Unigram pass
        for i, word in enumerate(words):
            if any(m.start_idx <= i <= m.end_idx for m in matches):
                continue
            slug = self.match_token(word)
            if slug:
                matches.append(TokenMatch(slug=slug, start_idx=i, end_idx=i, method="unigram"))

        # First mentioned = home team
        matches.sort(key=lambda m: m.start_idx)
        slugs = list(dict.fromkeys(m.slug for m in matches))

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Extracted {slugs} from {len(words)} tokens in {elapsed_ms:.2f}ms")
        return slugs

    def build_match_slug(self, slugs: Sequence[str]) -> Optional[str]:
        """Fixture slug from the first two slugs, None when fewer"""
        if len(slugs) < 2:
            return None
        return build_match_slug(slugs[0], slugs[1])

    def team_name(self, slug: str) -> str:
        return self.index.display_name(slug)
