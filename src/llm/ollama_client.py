"""
Ollama LLM Client
Async interface to a local Ollama instance
"""
import httpx
from typing import Dict, List, Optional
from config.settings import (
    OLLAMA_BASE_URL,
    OLLAMA_MODEL,
    OLLAMA_TEMPERATURE,
    OLLAMA_TIMEOUT,
)
from src.utils.logger import setup_logger

logger = setup_logger(__name__)


class LLMClientError(Exception):
    """Timeout, network or HTTP failure while talking to the LLM backend"""


class OllamaClient:
    """Async client for the Ollama chat API"""

    def __init__(
        self,
        base_url: str = OLLAMA_BASE_URL,
        model: str = OLLAMA_MODEL,
        temperature: float = OLLAMA_TEMPERATURE,
        timeout: float = OLLAMA_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize Ollama client

        Args:
            base_url: Ollama API base URL
            model: Model name
            temperature: Sampling temperature
            timeout: Request timeout in seconds
            http_client: Optional shared httpx client (tests pass a mocked one)
        """
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

        logger.info(f"Ollama client initialized: {self.base_url} (model: {model})")

    async def is_available(self) -> bool:
        """Check that Ollama answers and the model is pulled"""
        try:
            response = await self._client.get(f"{self.base_url}/api/tags", timeout=5)
        except httpx.HTTPError as e:
            logger.error(f"Cannot connect to Ollama at {self.base_url}: {e}")
            return False

        if response.status_code != 200:
            logger.warning(f"Ollama connection test failed: {response.status_code}")
            return False

        model_names = [m.get("name") for m in response.json().get("models", [])]
        if self.model not in model_names:
            logger.warning(f"Model '{self.model}' not found. Available: {model_names}")
        return True

    async def chat(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        json_mode: bool = True,
        temperature: Optional[float] = None
    ) -> str:
        """
        Chat completion (multi-turn conversation)

        Args:
            messages: List of message dicts with 'role' and 'content'
            system: System instruction, sent as the first message
            json_mode: Ask Ollama to constrain output to JSON
            temperature: Override default temperature

        Returns:
            Generated text

        Raises:
            LLMClientError: on timeout, network error or non-200 response
        """
        payload_messages = list(messages)
        if system:
            payload_messages.insert(0, {"role": "system", "content": system})

        payload = {
            "model": self.model,
            "messages": payload_messages,
            "stream": False,
            "options": {
                "temperature": self.temperature if temperature is None else temperature,
            }
        }
        if json_mode:
            payload["format"] = "json"

        try:
            response = await self._client.post(
                f"{self.base_url}/api/chat",
                json=payload,
                timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise LLMClientError(f"Ollama request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMClientError(f"Ollama request failed: {e}") from e

        if response.status_code != 200:
            raise LLMClientError(f"Ollama chat error: {response.status_code} - {response.text[:200]}")

        try:
            return response.json().get("message", {}).get("content", "")
        except ValueError as e:
            raise LLMClientError("Ollama returned a non-JSON envelope") from e

    async def aclose(self) -> None:
        await self._client.aclose()
