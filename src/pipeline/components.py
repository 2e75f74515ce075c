"""
Component wiring

Builds the catalog, session store, LLM client and handler once at
startup. Callers own the returned objects; nothing here is a
module-level singleton.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from config.settings import CATALOG_PATH, LLM_ENABLED, SEARCH_HANDOFF_URL, SESSION_HISTORY_LIMIT
from src.catalog.alias_index import AliasIndex, load_catalog
from src.catalog.team_extractor import TeamExtractor
from src.llm.message_analyzer import MessageAnalyzer
from src.llm.ollama_client import OllamaClient
from src.pipeline.handoff import create_handoff
from src.pipeline.intent_recognizer import IntentRecognizer
from src.pipeline.message_handler import MessageHandler
from src.session.session_store import SessionStore
from src.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class Components:
    index: AliasIndex
    extractor: TeamExtractor
    store: SessionStore
    llm_client: Any
    analyzer: MessageAnalyzer
    recognizer: IntentRecognizer
    handoff: Any
    handler: MessageHandler

    async def close(self) -> None:
        """Release network resources held by the LLM client"""
        aclose = getattr(self.llm_client, "aclose", None)
        if aclose is not None:
            await aclose()


def build_components(
    catalog_path: Union[str, Path] = CATALOG_PATH,
    llm_client=None,
    llm_enabled: bool = LLM_ENABLED,
    store: Optional[SessionStore] = None,
    handoff=None,
) -> Components:
    """
    Build every collaborator of the message handler.

    Args:
        catalog_path: Team catalog JSON
        llm_client: Text-generation client; an OllamaClient is created when
            omitted and the LLM is enabled
        llm_enabled: False runs the deterministic matcher only
        store: Session store (a default one when omitted)
        handoff: Search handoff (from SEARCH_HANDOFF_URL when omitted)

    Raises:
        CatalogConfigurationError: the catalog is missing or inconsistent
    """
    index = AliasIndex.build(load_catalog(catalog_path))
    extractor = TeamExtractor(index)
    if store is None:
        store = SessionStore()

    if llm_client is None and llm_enabled:
        llm_client = OllamaClient()
    if llm_client is None:
        logger.warning("LLM disabled, running with deterministic extraction only")

    analyzer = MessageAnalyzer(llm_client, index, history_limit=SESSION_HISTORY_LIMIT)
    recognizer = IntentRecognizer(analyzer)
    handoff = handoff or create_handoff(SEARCH_HANDOFF_URL)
    handler = MessageHandler(extractor, recognizer, store, handoff)

    logger.info(f"Components ready: {len(index)} teams, handoff={type(handoff).__name__}")
    return Components(
        index=index,
        extractor=extractor,
        store=store,
        llm_client=llm_client,
        analyzer=analyzer,
        recognizer=recognizer,
        handoff=handoff,
        handler=handler,
    )
