"""
Two-stage LLM message analysis

Stage 1 classifies the message (intent + short reply + slugs from the
closed catalog). Stage 2 runs for SEARCH messages that still lack a full
pair, and always for an explicitly forced search; it asks the model for
exactly two slugs from the catalog.

Each stage returns a tagged outcome (Classified / NeedsSecondPass /
Failed). Any failure collapses into the degraded SEARCH result, so
callers never see an exception.
"""
import asyncio
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from src.catalog.alias_index import AliasIndex
from src.llm.ollama_client import LLMClientError
from src.llm.prompts import build_slug_extraction_prompt, build_system_prompt
from src.utils.logger import setup_logger

logger = setup_logger(__name__)

MAX_SLUGS = 2
_CODE_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class Intent(Enum):
    """Message intents"""
    GREETING = "GREETING"
    SEARCH = "SEARCH"
    SUPPORT = "SUPPORT"
    UNCLEAR = "UNCLEAR"


@dataclass
class AnalysisResult:
    """Classifier output consumed by the message handler"""
    intent: Intent
    message: str = ""
    slugs: List[str] = field(default_factory=list)

    @classmethod
    def degraded(cls) -> "AnalysisResult":
        """Result used whenever the LLM path fails"""
        return cls(intent=Intent.SEARCH, message="", slugs=[])


@dataclass
class Classified:
    result: AnalysisResult


@dataclass
class NeedsSecondPass:
    result: AnalysisResult


@dataclass
class Failed:
    reason: str


StageOutcome = Union[Classified, NeedsSecondPass, Failed]


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers around model output"""
    return _CODE_FENCE_RE.sub("", text or "").strip()


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Parse model output into a dict.

    Raises:
        ValueError: output is not a JSON object (json.JSONDecodeError is a ValueError)
    """
    data = json.loads(strip_code_fences(text) or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class MessageAnalyzer:
    """
    Runs the two-stage analysis against a text-generation client.

    The client only needs an async `chat(messages, system=None,
    json_mode=True) -> str` that raises on transport failure.
    """

    def __init__(self, llm_client, index: AliasIndex, history_limit: int = 6):
        """
        Args:
            llm_client: Text-generation client (None = degraded mode)
            index: Alias index, source of the closed slug list
            history_limit: Prior turns sent with stage 1
        """
        self.llm_client = llm_client
        self.index = index
        self.history_limit = history_limit

    # ------------------------------------------------------------------
    # Parsing helpers
    # ------------------------------------------------------------------

    def _parse_intent(self, value: Any) -> Intent:
        try:
            return Intent(str(value).strip().upper())
        except ValueError:
            return Intent.SEARCH

    def _parse_slugs(self, value: Any) -> List[str]:
        """Keep only catalog slugs, unique, at most two"""
        if not isinstance(value, list):
            return []
        valid = [s for s in value if isinstance(s, str) and self.index.has_slug(s)]
        return list(dict.fromkeys(valid))[:MAX_SLUGS]

    def _parse_message(self, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    def _needs_second_pass(self, result: AnalysisResult, known_slugs: Sequence[str]) -> bool:
        if result.intent != Intent.SEARCH:
            return False
        return len(set(result.slugs) | set(known_slugs)) < MAX_SLUGS

    def _build_contents(self, text: str, history: Sequence) -> List[Dict[str, str]]:
        recent = list(history)[-self.history_limit:] if self.history_limit > 0 else []
        contents = [
            {"role": "user" if m.role == "user" else "assistant", "content": m.text}
            for m in recent
        ]
        contents.append({"role": "user", "content": text})
        return contents

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _route(self, result: AnalysisResult, known_slugs: Sequence[str]) -> StageOutcome:
        if self._needs_second_pass(result, known_slugs):
            return NeedsSecondPass(result)
        return Classified(result)

    async def _stage1(self, contents: List[Dict[str, str]], known_slugs: Sequence[str]) -> StageOutcome:
        logger.info("[LLM Step 1] Classifying message...")
        try:
            raw = await self.llm_client.chat(
                contents, system=build_system_prompt(self.index.slugs), json_mode=True
            )
            data = parse_json_object(raw)
        except (LLMClientError, asyncio.TimeoutError) as e:
            return Failed(f"stage 1 transport: {e}")
        except ValueError as e:
            return Failed(f"stage 1 parse: {e}")

        result = AnalysisResult(
            intent=self._parse_intent(data.get("intent", Intent.SEARCH.value)),
            message=self._parse_message(data.get("message")),
            slugs=self._parse_slugs(data.get("slugs")),
        )
        logger.info(f"[LLM Result] Intent: {result.intent.value}, slugs: {result.slugs}")
        return self._route(result, known_slugs)

    async def _stage2(
        self,
        text: str,
        contents: List[Dict[str, str]],
        first: AnalysisResult
    ) -> StageOutcome:
        logger.info("[LLM Step 2] Extracting slugs from catalog...")
        prompt = build_slug_extraction_prompt(text, self.index.available_teams())
        try:
            raw = await self.llm_client.chat(
                contents + [{"role": "user", "content": prompt}],
                system=build_system_prompt(self.index.slugs),
                json_mode=True,
            )
            data = parse_json_object(raw)
        except (LLMClientError, asyncio.TimeoutError) as e:
            return Failed(f"stage 2 transport: {e}")
        except ValueError as e:
            return Failed(f"stage 2 parse: {e}")

        slugs = self._parse_slugs(data.get("slugs")) or first.slugs
        message = self._parse_message(data.get("message")) or first.message
        logger.info(f"[LLM Step 2] slugs: {slugs}")
        return Classified(AnalysisResult(intent=first.intent, message=message, slugs=slugs))

    async def analyze(
        self,
        text: str,
        history: Sequence = (),
        forced_intent: Optional[Intent] = None,
        known_slugs: Sequence[str] = ()
    ) -> AnalysisResult:
        """
        Analyze a message.

        Args:
            text: Raw user message
            history: Prior ChatMessage turns (oldest first)
            forced_intent: Skip stage 1, use this intent and run stage 2
            known_slugs: Slugs already found deterministically

        Returns:
            AnalysisResult; the degraded SEARCH result on any failure
        """
        if self.llm_client is None:
            logger.warning("No LLM client configured, using degraded analysis")
            return AnalysisResult.degraded()

        contents = self._build_contents(text, history)

        if forced_intent is not None:
            # Forced intent: skip classification, always ask for the pair
            outcome = NeedsSecondPass(AnalysisResult(intent=forced_intent))
        else:
            outcome = await self._stage1(contents, known_slugs)

        if isinstance(outcome, NeedsSecondPass):
            outcome = await self._stage2(text, contents, outcome.result)

        if isinstance(outcome, Failed):
            logger.warning(f"[LLM Error] {outcome.reason}; falling back to degraded result")
            return AnalysisResult.degraded()

        return outcome.result
