"""
Search handoff

Receives a complete team pair once the conversation has one.
Fetching and delivering offers happens downstream.
"""
from typing import Optional

from config.settings import SEARCH_HANDOFF_URL
from src.catalog.team_extractor import build_match_slug
from src.utils.http_client import AsyncHTTPClient
from src.utils.logger import setup_logger

logger = setup_logger(__name__)


class LoggingSearchHandoff:
    """Default handoff: log only"""

    async def handoff(self, user_id: str, slug_a: str, slug_b: str, message: str) -> bool:
        logger.info(f"[Search] Triggered for {user_id}: {build_match_slug(slug_a, slug_b)}")
        return True


class HttpSearchHandoff(LoggingSearchHandoff):
    """POSTs the pair to the search service"""

    def __init__(self, url: str = SEARCH_HANDOFF_URL, http_client: Optional[AsyncHTTPClient] = None):
        self.url = url
        self._http_client = http_client

    async def handoff(self, user_id: str, slug_a: str, slug_b: str, message: str) -> bool:
        payload = {
            "user_id": user_id,
            "match_slug": build_match_slug(slug_a, slug_b),
            "home": slug_a,
            "away": slug_b,
            "message": message,
        }
        logger.info(f"[Search] Handing off {payload['match_slug']} for {user_id} to {self.url}")

        if self._http_client is not None:
            return await self._http_client.post_json(self.url, payload)

        async with AsyncHTTPClient() as client:
            return await client.post_json(self.url, payload)


def create_handoff(url: str = SEARCH_HANDOFF_URL) -> LoggingSearchHandoff:
    """HTTP handoff when a URL is configured, log-only otherwise"""
    if url:
        return HttpSearchHandoff(url)
    return LoggingSearchHandoff()
