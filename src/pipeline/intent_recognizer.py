"""
Intent recognition

Fast deterministic checks (reset command, explicit search marker,
plain greeting) before falling back to the two-stage LLM analysis.
"""
from typing import List, Optional, Sequence

from config.messages import EXPLICIT_SEARCH_MARKERS, GREETING_KEYWORDS, RESET_KEYWORD
from src.catalog.normalizer import normalize
from src.llm.message_analyzer import AnalysisResult, Intent, MessageAnalyzer
from src.session.session_store import UserSession
from src.utils.logger import setup_logger

logger = setup_logger(__name__)


class IntentRecognizer:
    """
    Classifies a user message.

    Example:
        recognizer = IntentRecognizer(analyzer)
        result = await recognizer.recognize("שלום", session)
        # Returns: AnalysisResult(intent=GREETING, message="", slugs=[])
    """

    def __init__(
        self,
        analyzer: MessageAnalyzer,
        reset_keyword: str = RESET_KEYWORD,
        search_markers: Sequence[str] = EXPLICIT_SEARCH_MARKERS,
        greeting_keywords: Sequence[str] = GREETING_KEYWORDS,
    ):
        self.analyzer = analyzer
        self.reset_keyword = normalize(reset_keyword)
        self.search_markers: List[str] = [normalize(m) for m in search_markers]
        self.greeting_keywords = {normalize(k) for k in greeting_keywords}

    def is_reset(self, result: Optional[AnalysisResult]) -> bool:
        """True for the reset-command signal"""
        return (
            result is not None
            and result.intent == Intent.SUPPORT
            and result.message == self.reset_keyword
        )

    async def recognize(
        self,
        text: str,
        session: UserSession,
        known_slugs: Sequence[str] = ()
    ) -> Optional[AnalysisResult]:
        """
        Recognize intent for one message.

        Args:
            text: Raw user message
            session: The user's session (history is sent to the LLM)
            known_slugs: Slugs the deterministic extractor already found

        Returns:
            AnalysisResult, or None when there is nothing to act on
        """
        normalized = normalize(text)
        if not normalized:
            logger.debug("Empty message, nothing to recognize")
            return None

        # Priority 1: reset command
        if normalized == self.reset_keyword:
            return AnalysisResult(intent=Intent.SUPPORT, message=self.reset_keyword, slugs=[])

        history = session.get_history()

        # Priority 2: explicit search request, skip LLM classification
        if any(normalized.startswith(marker) for marker in self.search_markers):
            logger.info("Explicit search marker, forcing SEARCH intent")
            return await self.analyzer.analyze(
                text, history, forced_intent=Intent.SEARCH, known_slugs=known_slugs
            )

        # Priority 3: plain greeting
        if normalized in self.greeting_keywords:
            return AnalysisResult(intent=Intent.GREETING, message="", slugs=[])

        # Fallback: full LLM analysis
        return await self.analyzer.analyze(text, history, known_slugs=known_slugs)
