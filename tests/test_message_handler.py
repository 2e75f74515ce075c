"""
Tests for the message handler (full conversation turns)

The LLM is a scripted fake; with no scripted response it fails like a
timed-out backend, which exercises the degraded path.
"""

import asyncio

import pytest

from config import messages
from src.llm.message_analyzer import Intent
from src.pipeline.message_handler import (
    ConversationState,
    IncomingMessage,
    TurnDecision,
    TurnResult,
    complete_from_memory,
    merge_slugs,
)
from tests.conftest import FakeLLMClient, RecordingHandoff

USER = "+972501234567"


def _msg(text, message_id=None, user_id=USER):
    return IncomingMessage(user_id=user_id, text=text, message_id=message_id)


class TestSlotHelpers:
    """Pure merge / completion rules"""

    def test_merge_deterministic_first(self):
        assert merge_slugs(["arsenal"], ["liverpool", "arsenal"]) == ["arsenal", "liverpool"]

    def test_merge_dedupes(self):
        assert merge_slugs(["arsenal", "arsenal"], ["arsenal"]) == ["arsenal"]

    def test_complete_single_slug(self):
        assert complete_from_memory(["liverpool"], ["arsenal"]) == ["arsenal", "liverpool"]

    def test_complete_uses_most_recent_distinct(self):
        assert complete_from_memory(["chelsea"], ["arsenal", "liverpool"]) == ["liverpool", "chelsea"]
        assert complete_from_memory(["liverpool"], ["arsenal", "liverpool"]) == ["arsenal", "liverpool"]

    def test_no_completion_for_same_slug(self):
        assert complete_from_memory(["arsenal"], ["arsenal"]) == ["arsenal"]

    def test_no_completion_for_pairs_or_empty(self):
        assert complete_from_memory([], ["arsenal"]) == []
        assert complete_from_memory(["arsenal", "liverpool"], ["chelsea"]) == ["arsenal", "liverpool"]


class TestScenarios:
    """End-to-end conversation scenarios"""

    @pytest.mark.asyncio
    async def test_pair_in_one_message(self, handler, fake_llm, recording_handoff, store):
        fake_llm.responses = [{"intent": "SEARCH", "message": "", "slugs": ["arsenal", "liverpool"]}]

        result = await handler.handle_message(_msg("ארסנל נגד ליברפול"))

        expected_reply = messages.search_success("ארסנל", "ליברפול")
        assert result == TurnResult(
            decision=TurnDecision.HANDOFF,
            reply=expected_reply,
            slugs=["arsenal", "liverpool"],
            intent=Intent.SEARCH,
            state=ConversationState.READY,
        )
        assert recording_handoff.calls == [(USER, "arsenal", "liverpool", expected_reply)]
        session = store.get(USER)
        assert session.identified_slugs == ["arsenal", "liverpool"]
        assert [(m.role, m.text) for m in session.messages] == [
            ("user", "ארסנל נגד ליברפול"),
            ("bot", expected_reply),
        ]

    @pytest.mark.asyncio
    async def test_pair_without_llm(self, handler, recording_handoff):
        result = await handler.handle_message(_msg("ARSENAL vs. Liverpool!!"))

        assert result.decision == TurnDecision.HANDOFF
        assert recording_handoff.calls[0][1:3] == ("arsenal", "liverpool")

    @pytest.mark.asyncio
    async def test_ambiguous_word_matches_nothing(self, handler, recording_handoff):
        result = await handler.handle_message(_msg("וילה"))

        assert result.decision == TurnDecision.REPLY
        assert result.slugs == []
        assert result.state == ConversationState.NEW
        assert result.reply in messages.GREETING_PRIMARY_LIST
        assert recording_handoff.calls == []

    @pytest.mark.asyncio
    async def test_second_team_completes_from_memory(self, handler, recording_handoff, store):
        first = await handler.handle_message(_msg("ארסנל"))
        assert first.state == ConversationState.AWAITING_SECOND_TEAM

        result = await handler.handle_message(_msg("ליברפול"))

        assert result.decision == TurnDecision.HANDOFF
        assert result.slugs == ["arsenal", "liverpool"]
        assert recording_handoff.calls[0][1:3] == ("arsenal", "liverpool")
        assert store.get(USER).identified_slugs == ["arsenal", "liverpool"]

    @pytest.mark.asyncio
    async def test_slugs_persisted_before_handoff(self, handler, store):
        seen = []

        class SnapshotHandoff(RecordingHandoff):
            async def handoff(self, user_id, slug_a, slug_b, message):
                seen.append(list(store.get(user_id).identified_slugs))
                return True

        handler.handoff = SnapshotHandoff()
        store.update_slugs(USER, ["arsenal"])

        await handler.handle_message(_msg("ליברפול"))

        assert seen == [["arsenal", "liverpool"]]

    @pytest.mark.asyncio
    async def test_llm_timeout_with_one_team(self, handler, fake_llm, recording_handoff):
        fake_llm.responses = [asyncio.TimeoutError()]

        result = await handler.handle_message(_msg("ארסנל"))

        assert result.decision == TurnDecision.REPLY
        assert result.reply == messages.search_single_team("ארסנל")
        assert result.slugs == ["arsenal"]
        assert result.state == ConversationState.AWAITING_SECOND_TEAM
        assert recording_handoff.calls == []

    @pytest.mark.asyncio
    async def test_reset(self, handler, store, fake_llm):
        store.update_slugs(USER, ["arsenal"])
        store.add_message(USER, "user", "ארסנל")

        result = await handler.handle_message(_msg("מחק"))

        assert result.decision == TurnDecision.RESET
        assert result.reply == messages.RESET_DONE
        assert result.state == ConversationState.RESET
        assert store.get(USER) is None
        assert handler.state_for(USER) == ConversationState.NEW
        assert fake_llm.calls == []


class TestReplySelection:
    """Replies when no full pair is known"""

    @pytest.mark.asyncio
    async def test_unclear(self, handler, fake_llm):
        fake_llm.responses = [{"intent": "UNCLEAR", "message": "לא הבנתי", "slugs": []}]

        result = await handler.handle_message(_msg("asdkjh qwe"))

        assert result.reply == messages.UNCLEAR
        assert result.intent == Intent.UNCLEAR

    @pytest.mark.asyncio
    async def test_ai_message_used(self, handler, fake_llm):
        fake_llm.responses = [
            {"intent": "SEARCH", "message": "איזה משחק מעניין אותך?", "slugs": []},
            {"slugs": [], "message": ""},
        ]

        result = await handler.handle_message(_msg("יש משחקים בסוף השבוע?"))

        assert result.reply == "איזה משחק מעניין אותך?"
        assert len(fake_llm.calls) == 2

    @pytest.mark.asyncio
    async def test_remembered_team_prompts_for_opponent(self, handler, store, fake_llm, recording_handoff):
        store.update_slugs(USER, ["arsenal"])
        fake_llm.responses = [
            {"intent": "SEARCH", "message": "", "slugs": []},
            {"slugs": [], "message": ""},
        ]

        result = await handler.handle_message(_msg("מה המחיר?"))

        assert result.decision == TurnDecision.REPLY
        assert result.reply == messages.search_single_team("ארסנל")
        assert result.slugs == ["arsenal"]
        assert result.state == ConversationState.AWAITING_SECOND_TEAM
        assert recording_handoff.calls == []

    @pytest.mark.asyncio
    async def test_ai_confirmation_used_for_handoff(self, handler, fake_llm, recording_handoff):
        fake_llm.responses = [{"intent": "SEARCH", "message": "מחפש!", "slugs": ["arsenal", "liverpool"]}]

        result = await handler.handle_message(_msg("ארסנל נגד ליברפול"))

        assert result.reply == "מחפש!"
        assert recording_handoff.calls[0][3] == "מחפש!"

    @pytest.mark.asyncio
    async def test_deterministic_slugs_come_first(self, handler, fake_llm, recording_handoff):
        fake_llm.responses = [{"intent": "SEARCH", "message": "", "slugs": ["liverpool", "arsenal"]}]

        await handler.handle_message(_msg("ארסנל נגד האדומים"))

        assert recording_handoff.calls[0][1:3] == ("arsenal", "liverpool")

    @pytest.mark.asyncio
    async def test_new_team_pairs_with_latest_remembered(self, handler, store, recording_handoff):
        store.update_slugs(USER, ["arsenal", "liverpool"])

        result = await handler.handle_message(_msg("צ'לסי"))

        assert result.slugs == ["liverpool", "chelsea"]
        assert store.get(USER).identified_slugs == ["liverpool", "chelsea"]


class TestGreeting:
    """Branded greeting cool-down"""

    @pytest.mark.asyncio
    async def test_first_greeting_is_branded(self, handler, store, clock):
        result = await handler.handle_message(_msg("שלום"))

        assert result.intent == Intent.GREETING
        assert result.reply in messages.GREETING_PRIMARY_LIST
        assert store.get(USER).last_greeting_at == clock.now

    @pytest.mark.asyncio
    async def test_repeat_within_cooldown(self, handler, clock):
        await handler.handle_message(_msg("שלום"))
        clock.advance(minutes=5)

        result = await handler.handle_message(_msg("היי"))

        assert result.reply == messages.GREETING_SECONDARY

    @pytest.mark.asyncio
    async def test_ai_greeting_within_cooldown(self, handler, fake_llm, clock):
        await handler.handle_message(_msg("שלום"))
        clock.advance(minutes=5)
        fake_llm.responses = [{"intent": "GREETING", "message": "שוב היי!", "slugs": []}]

        result = await handler.handle_message(_msg("שלום, מה נשמע היום?"))

        assert result.reply == "שוב היי!"

    @pytest.mark.asyncio
    async def test_branded_again_after_cooldown(self, handler, store, clock):
        await handler.handle_message(_msg("שלום"))
        clock.advance(minutes=16)

        result = await handler.handle_message(_msg("היי"))

        assert result.reply in messages.GREETING_PRIMARY_LIST
        assert store.get(USER).last_greeting_at == clock.now


class TestRobustness:
    """Redelivery, empty input, failures"""

    @pytest.mark.asyncio
    async def test_duplicate_message_id_ignored(self, handler, store):
        await handler.handle_message(_msg("ארסנל", message_id="wamid.1"))

        result = await handler.handle_message(_msg("ארסנל", message_id="wamid.1"))

        assert result.decision == TurnDecision.IGNORED
        assert result.slugs == ["arsenal"]
        assert len(store.get(USER).messages) == 2

    @pytest.mark.asyncio
    async def test_new_message_id_processed(self, handler):
        await handler.handle_message(_msg("ארסנל", message_id="wamid.1"))

        result = await handler.handle_message(_msg("ליברפול", message_id="wamid.2"))

        assert result.decision == TurnDecision.HANDOFF

    @pytest.mark.asyncio
    async def test_empty_message_ignored(self, handler, store):
        result = await handler.handle_message(_msg("   "))

        assert result.decision == TurnDecision.IGNORED
        assert result.state == ConversationState.NEW
        assert store.get(USER).messages == []

    @pytest.mark.asyncio
    async def test_handoff_failure_keeps_result(self, handler):
        handler.handoff = RecordingHandoff(error=RuntimeError("search service down"))

        result = await handler.handle_message(_msg("ארסנל נגד ליברפול"))

        assert result.decision == TurnDecision.HANDOFF
        assert result.state == ConversationState.READY

    @pytest.mark.asyncio
    async def test_internal_error(self, handler, store):
        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        handler.recognizer.recognize = broken

        result = await handler.handle_message(_msg("ארסנל"))

        assert result.decision == TurnDecision.ERROR
        assert result.reply == messages.ERROR
        assert not store.is_in_use(USER)

    @pytest.mark.asyncio
    async def test_state_after_handoff(self, handler):
        await handler.handle_message(_msg("ארסנל נגד ליברפול"))

        assert handler.state_for(USER) == ConversationState.AWAITING_SECOND_TEAM
        assert handler.state_for("someone-else") == ConversationState.NEW

    @pytest.mark.asyncio
    async def test_concurrent_turns_same_user(self, handler, recording_handoff):
        first, second = await asyncio.gather(
            handler.handle_message(_msg("ארסנל")),
            handler.handle_message(_msg("ליברפול")),
        )

        assert first.decision == TurnDecision.REPLY
        assert second.decision == TurnDecision.HANDOFF
        assert recording_handoff.calls[0][1:3] == ("arsenal", "liverpool")

    @pytest.mark.asyncio
    async def test_reset_waits_for_in_flight_turn(self, handler, store, recording_handoff):
        class GatedLLMClient(FakeLLMClient):
            def __init__(self, responses):
                super().__init__(responses)
                self.entered = asyncio.Event()
                self.release = asyncio.Event()

            async def chat(self, messages, system=None, json_mode=True):
                self.entered.set()
                await self.release.wait()
                return await super().chat(messages, system=system, json_mode=json_mode)

        gated = GatedLLMClient([{"intent": "SEARCH", "message": "", "slugs": ["liverpool"]}])
        handler.recognizer.analyzer.llm_client = gated
        store.update_slugs(USER, ["arsenal"])

        turn = asyncio.create_task(handler.handle_message(_msg("ליברפול")))
        await asyncio.wait_for(gated.entered.wait(), timeout=1)
        reset = asyncio.create_task(store.reset(USER))
        await asyncio.sleep(0)

        assert not reset.done()

        gated.release.set()
        result = await asyncio.wait_for(turn, timeout=1)
        cleared = await asyncio.wait_for(reset, timeout=1)

        assert result.decision == TurnDecision.HANDOFF
        assert result.slugs == ["arsenal", "liverpool"]
        assert cleared is True
        assert store.get(USER) is None
        assert not store.is_in_use(USER)

    @pytest.mark.asyncio
    async def test_users_are_independent(self, handler):
        await handler.handle_message(_msg("ארסנל", user_id="u1"))

        result = await handler.handle_message(_msg("ליברפול", user_id="u2"))

        assert result.decision == TurnDecision.REPLY
        assert result.slugs == ["liverpool"]


class TestTurnResult:

    def test_to_dict(self):
        result = TurnResult(
            decision=TurnDecision.HANDOFF,
            reply="ok",
            slugs=["arsenal", "liverpool"],
            intent=Intent.SEARCH,
            state=ConversationState.READY,
        )
        assert result.to_dict() == {
            "decision": "HANDOFF",
            "reply": "ok",
            "slugs": ["arsenal", "liverpool"],
            "intent": "SEARCH",
            "state": "READY",
        }
