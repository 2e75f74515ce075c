"""
Message handler - one conversation turn

Flow per incoming message (under the user's session lock):
1. Deterministic team extraction
2. Intent recognition (keywords, then two-stage LLM analysis)
3. Reset command short-circuit
4. Slot merge + completion from session memory
5. Persist slugs
6. Handoff on a full pair, otherwise pick a reply
"""
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from config import messages
from src.catalog.team_extractor import TeamExtractor
from src.llm.message_analyzer import AnalysisResult, Intent
from src.pipeline.handoff import LoggingSearchHandoff
from src.pipeline.intent_recognizer import IntentRecognizer
from src.session.session_store import SessionStore, UserSession
from src.utils.logger import setup_logger

logger = setup_logger(__name__)


class TurnDecision(Enum):
    HANDOFF = "HANDOFF"
    REPLY = "REPLY"
    RESET = "RESET"
    IGNORED = "IGNORED"
    ERROR = "ERROR"


class ConversationState(Enum):
    NEW = "NEW"
    AWAITING_SECOND_TEAM = "AWAITING_SECOND_TEAM"
    READY = "READY"
    RESET = "RESET"


@dataclass
class IncomingMessage:
    """A user message as delivered by the transport"""
    user_id: str
    text: str
    message_id: Optional[str] = None


@dataclass
class TurnResult:
    """What the transport should do after a turn"""
    decision: TurnDecision
    reply: str = ""
    slugs: List[str] = field(default_factory=list)
    intent: Optional[Intent] = None
    state: ConversationState = ConversationState.NEW

    def to_dict(self) -> Dict:
        return {
            "decision": self.decision.value,
            "reply": self.reply,
            "slugs": list(self.slugs),
            "intent": self.intent.value if self.intent else None,
            "state": self.state.value,
        }


def merge_slugs(deterministic: Sequence[str], ai_slugs: Sequence[str]) -> List[str]:
    """Deterministic slugs first, then AI slugs not already present"""
    merged = list(dict.fromkeys(deterministic))
    merged.extend(s for s in dict.fromkeys(ai_slugs) if s not in merged)
    return merged


def complete_from_memory(merged: Sequence[str], memory: Sequence[str]) -> List[str]:
    """
    Pair a single new slug with the most recent remembered one.

    Example:
        complete_from_memory(["liverpool"], ["arsenal"])
        # Returns: ['arsenal', 'liverpool']
    """
    if len(merged) != 1:
        return list(merged)
    new_slug = merged[0]
    for remembered in reversed(memory):
        if remembered != new_slug:
            logger.info(f"[Context] Completed {new_slug} with {remembered} from memory")
            return [remembered, new_slug]
    return list(merged)


class MessageHandler:
    """
    Orchestrates a single turn.

    Example:
        handler = MessageHandler(extractor, recognizer, store, handoff)
        result = await handler.handle_message(IncomingMessage("+972501234567", "ארסנל נגד ליברפול"))
        # result.decision == TurnDecision.HANDOFF
    """

    def __init__(
        self,
        extractor: TeamExtractor,
        recognizer: IntentRecognizer,
        store: SessionStore,
        handoff=None,
        rng: Optional[random.Random] = None,
    ):
        self.extractor = extractor
        self.recognizer = recognizer
        self.store = store
        self.handoff = handoff or LoggingSearchHandoff()
        self.rng = rng or random.Random()

    def state_for(self, user_id: str) -> ConversationState:
        """Conversation state between turns"""
        session = self.store.get(user_id)
        if session is None or not session.identified_slugs:
            return ConversationState.NEW
        return ConversationState.AWAITING_SECOND_TEAM

    async def handle_message(self, msg: IncomingMessage) -> TurnResult:
        """
        Process one incoming message.

        Never raises: internal failures come back as an ERROR result.
        """
        logger.info(f"[Turn] {msg.user_id}: {msg.text!r}")
        try:
            async with self.store.session(msg.user_id) as session:
                return await self._run_turn(msg, session)
        except Exception as e:
            logger.error(f"Error handling message from {msg.user_id}: {e}", exc_info=True)
            return TurnResult(
                decision=TurnDecision.ERROR,
                reply=messages.ERROR,
                state=self.state_for(msg.user_id),
            )

    async def _run_turn(self, msg: IncomingMessage, session: UserSession) -> TurnResult:
        user_id = msg.user_id

        if msg.message_id is not None:
            if msg.message_id == session.last_message_id:
                logger.info(f"[Turn] Duplicate message {msg.message_id} from {user_id}, ignoring")
                return self._ignored(session)
            session.last_message_id = msg.message_id

        deterministic = self.extractor.extract_slugs(msg.text)
        analysis = await self.recognizer.recognize(msg.text, session, known_slugs=deterministic)
        if analysis is None:
            return self._ignored(session)

        if self.recognizer.is_reset(analysis):
            self.store.clear(user_id)
            return TurnResult(
                decision=TurnDecision.RESET,
                reply=messages.RESET_DONE,
                intent=analysis.intent,
                state=ConversationState.RESET,
            )

        self.store.add_message(user_id, "user", msg.text)

        merged = merge_slugs(deterministic, analysis.slugs)
        merged = complete_from_memory(merged, session.identified_slugs)
        known = self.store.update_slugs(user_id, merged)
        logger.info(
            f"[Slots] deterministic={deterministic} ai={analysis.slugs} merged={merged} stored={known}"
        )

        if len(merged) >= 2:
            slug_a, slug_b = merged[0], merged[1]
            reply = analysis.message or messages.search_success(
                self.extractor.team_name(slug_a), self.extractor.team_name(slug_b)
            )
            await self._handoff(user_id, slug_a, slug_b, reply)
            self.store.add_message(user_id, "bot", reply)
            return TurnResult(
                decision=TurnDecision.HANDOFF,
                reply=reply,
                slugs=[slug_a, slug_b],
                intent=analysis.intent,
                state=ConversationState.READY,
            )

        reply = self._select_reply(user_id, analysis, known)
        self.store.add_message(user_id, "bot", reply)
        return TurnResult(
            decision=TurnDecision.REPLY,
            reply=reply,
            slugs=known,
            intent=analysis.intent,
            state=ConversationState.AWAITING_SECOND_TEAM if known else ConversationState.NEW,
        )

    def _ignored(self, session: UserSession) -> TurnResult:
        return TurnResult(
            decision=TurnDecision.IGNORED,
            slugs=list(session.identified_slugs),
            state=(
                ConversationState.AWAITING_SECOND_TEAM
                if session.identified_slugs else ConversationState.NEW
            ),
        )

    def _select_reply(self, user_id: str, analysis: AnalysisResult, known: Sequence[str]) -> str:
        if analysis.intent == Intent.UNCLEAR:
            return messages.UNCLEAR

        if analysis.intent == Intent.GREETING:
            if self.store.should_send_primary_greeting(user_id):
                self.store.set_greeting_time(user_id)
                return self.rng.choice(messages.GREETING_PRIMARY_LIST)
            return analysis.message or messages.GREETING_SECONDARY

        if analysis.message:
            return analysis.message

        if len(known) == 1:
            return messages.search_single_team(self.extractor.team_name(known[0]))
        return self.rng.choice(messages.GREETING_PRIMARY_LIST)

    async def _handoff(self, user_id: str, slug_a: str, slug_b: str, message: str) -> None:
        try:
            delivered = await self.handoff.handoff(user_id, slug_a, slug_b, message)
        except Exception as e:
            logger.error(f"[Search] Handoff failed for {user_id}: {e}", exc_info=True)
            return
        if not delivered:
            logger.warning(f"[Search] Handoff not delivered for {user_id}")
