"""
Async HTTP client utilities
"""
import asyncio
from typing import Any, Dict, Optional
import aiohttp
from config import USER_AGENT, REQUEST_TIMEOUT, MAX_CONCURRENT_REQUESTS
from src.utils.logger import setup_logger

logger = setup_logger(__name__)


class AsyncHTTPClient:
    """Async HTTP client with concurrency limiting and error handling"""

    def __init__(
        self,
        timeout: int = REQUEST_TIMEOUT,
        max_concurrent: int = MAX_CONCURRENT_REQUESTS,
        user_agent: str = USER_AGENT
    ):
        """
        Initialize HTTP client

        Args:
            timeout: Request timeout in seconds
            max_concurrent: Maximum concurrent requests
            user_agent: User agent string
        """
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = {'User-Agent': user_agent}
        self.session: Optional[aiohttp.ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.stats = {
            'total': 0,
            'success': 0,
            'failed': 0
        }

    async def __aenter__(self):
        """Async context manager entry"""
        self.session = aiohttp.ClientSession(
            timeout=self.timeout,
            headers=self.headers
        )
        return self

    async def __aexit__(self, *args):
        """Async context manager exit"""
        if self.session:
            await self.session.close()
            self.session = None
            logger.info(f"HTTP Stats: {self.stats['success']} success, {self.stats['failed']} failed, {self.stats['total']} total")

    async def post_json(self, url: str, payload: Dict[str, Any], retry: int = 2) -> bool:
        """
        POST a JSON payload with retry logic

        Args:
            url: Target URL
            payload: JSON-serializable body
            retry: Number of attempts

        Returns:
            True when the server answered with a 2xx status
        """
        if self.session is None:
            raise RuntimeError("AsyncHTTPClient must be used as an async context manager")

        async with self.semaphore:
            self.stats['total'] += 1

            for attempt in range(retry):
                try:
                    async with self.session.post(url, json=payload) as response:
                        if 200 <= response.status < 300:
                            self.stats['success'] += 1
                            return True
                        elif response.status == 429:
                            wait_time = 2 * (attempt + 1)
                            logger.warning(f"HTTP 429 (Rate Limited) for {url}, waiting {wait_time}s...")
                            await asyncio.sleep(wait_time)
                        else:
                            logger.warning(f"HTTP {response.status} for {url}")
                except asyncio.TimeoutError:
                    logger.warning(f"Timeout posting to {url} (attempt {attempt + 1}/{retry})")
                except aiohttp.ClientError as e:
                    logger.error(f"Error posting to {url}: {e}")

                if attempt < retry - 1:
                    await asyncio.sleep(1)

            self.stats['failed'] += 1
            logger.error(f"Failed to post to {url} after {retry} attempts")
            return False
