"""
Pytest Configuration for TicketAgent Assistant Tests
====================================================
Shared fixtures: catalog, extractor, session store with a controllable
clock, a scripted LLM client and a recording search handoff.
"""

import json
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import CATALOG_PATH  # noqa: E402
from src.catalog.alias_index import AliasIndex, load_catalog  # noqa: E402
from src.catalog.team_extractor import TeamExtractor  # noqa: E402
from src.llm.message_analyzer import MessageAnalyzer  # noqa: E402
from src.llm.ollama_client import LLMClientError  # noqa: E402
from src.pipeline.handoff import LoggingSearchHandoff  # noqa: E402
from src.pipeline.intent_recognizer import IntentRecognizer  # noqa: E402
from src.pipeline.message_handler import MessageHandler  # noqa: E402
from src.session.session_store import SessionStore  # noqa: E402


# =============================================================================
# TEST DOUBLES
# =============================================================================

class FakeClock:
    """Manually advanced time source"""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeLLMClient:
    """
    Scripted text-generation client.

    Each call pops the next response; dicts are JSON-encoded, exceptions
    are raised. Runs out -> LLMClientError.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def chat(self, messages, system=None, json_mode=True):
        self.calls.append({"messages": list(messages), "system": system, "json_mode": json_mode})
        if not self.responses:
            raise LLMClientError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response, ensure_ascii=False)
        return response


class RecordingHandoff(LoggingSearchHandoff):
    """Collects handoff calls instead of sending them"""

    def __init__(self, result: bool = True, error: Exception = None):
        self.calls = []
        self.result = result
        self.error = error

    async def handoff(self, user_id, slug_a, slug_b, message):
        self.calls.append((user_id, slug_a, slug_b, message))
        if self.error is not None:
            raise self.error
        return self.result


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(scope="session")
def catalog_entries():
    """Entries from the shipped catalog"""
    return load_catalog(CATALOG_PATH)


@pytest.fixture(scope="session")
def catalog_data():
    """Raw catalog JSON"""
    with open(CATALOG_PATH, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture(scope="session")
def index(catalog_entries):
    return AliasIndex.build(catalog_entries)


@pytest.fixture(scope="session")
def extractor(index):
    return TeamExtractor(index)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(
        max_sessions=500,
        ttl_hours=24,
        history_limit=6,
        greeting_cooldown_minutes=15,
        clock=clock,
    )


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def recording_handoff():
    return RecordingHandoff()


@pytest.fixture
def handler(extractor, index, store, fake_llm, recording_handoff):
    """Fully wired handler around the fake LLM and handoff"""
    analyzer = MessageAnalyzer(fake_llm, index, history_limit=6)
    recognizer = IntentRecognizer(analyzer)
    return MessageHandler(extractor, recognizer, store, recording_handoff, rng=random.Random(7))


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers"""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that wire several components together"
    )
