"""Gemini embedding API client with retry logic."""

import asyncio

import httpx

from app.core.errors import EmbeddingUnavailable, RateLimited
from app.logging import get_logger

logger = get_logger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-embedding-001"
DEFAULT_DIMENSIONS = 768
DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 3
BASE_BACKOFF = 1.0


def _parse_retry_after(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class EmbeddingClient:
    """Async client for the Gemini ``embedContent`` endpoint.

    Throttling (HTTP 429) is surfaced immediately as RateLimited so the
    caller decides when to retry. Server errors, timeouts and transport
    errors are retried with exponential backoff before giving up with
    EmbeddingUnavailable.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        dimensions: int = DEFAULT_DIMENSIONS,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the embedding client.

        Args:
            api_key: Google AI API key
            model: Embedding model name
            dimensions: Requested output dimensionality
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used in tests)
        """
        self.api_key = api_key
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=GEMINI_BASE_URL,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _extract_vector(self, data: dict) -> list[float]:
        values = (data.get("embedding") or {}).get("values")
        if not values:
            raise EmbeddingUnavailable("No embedding returned")
        if len(values) != self.dimensions:
            raise EmbeddingUnavailable(
                f"Embedding has {len(values)} dimensions, expected {self.dimensions}"
            )
        return [float(v) for v in values]

    async def embed(self, text: str) -> list[float]:
        """Embed a piece of text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector of the configured dimension

        Raises:
            RateLimited: The API signalled throttling
            EmbeddingUnavailable: Missing key, API failure or empty vector
        """
        if not self.api_key:
            raise EmbeddingUnavailable("GOOGLE_AI_API_KEY is not configured")

        client = await self._get_client()
        path = f"/models/{self.model}:embedContent"
        payload = {
            "content": {"parts": [{"text": text}]},
            "output_dimensionality": self.dimensions,
        }

        last_error: str | None = None

        for attempt in range(MAX_RETRIES):
            try:
                response = await client.post(path, params={"key": self.api_key}, json=payload)

                if response.status_code == 200:
                    return self._extract_vector(response.json())

                if response.status_code == 429:
                    logger.warning("Embedding API rate limited")
                    raise RateLimited(
                        retry_after=_parse_retry_after(response.headers.get("Retry-After"))
                    )

                if response.status_code >= 500:
                    wait_time = BASE_BACKOFF * (2 ** attempt)
                    logger.warning(
                        f"Embedding server error {response.status_code}, "
                        f"retry in {wait_time}s (attempt {attempt + 1}/{MAX_RETRIES})"
                    )
                    last_error = f"HTTP {response.status_code}"
                    if attempt < MAX_RETRIES - 1:
                        await asyncio.sleep(wait_time)
                    continue

                # Client error (4xx except 429)
                logger.error(f"Embedding error: {response.status_code} - {response.text[:200]}")
                raise EmbeddingUnavailable(
                    f"Embedding generation failed: {response.status_code}"
                )

            except httpx.TimeoutException as e:
                wait_time = BASE_BACKOFF * (2 ** attempt)
                logger.warning(
                    f"Embedding timeout, retry in {wait_time}s "
                    f"(attempt {attempt + 1}/{MAX_RETRIES})"
                )
                last_error = f"timeout: {e}"
                if attempt < MAX_RETRIES - 1:
                    await asyncio.sleep(wait_time)

            except httpx.RequestError as e:
                wait_time = BASE_BACKOFF * (2 ** attempt)
                logger.warning(
                    f"Embedding request error: {e}, retry in {wait_time}s "
                    f"(attempt {attempt + 1}/{MAX_RETRIES})"
                )
                last_error = str(e)
                if attempt < MAX_RETRIES - 1:
                    await asyncio.sleep(wait_time)

        raise EmbeddingUnavailable(f"Embedding generation failed: {last_error}")
