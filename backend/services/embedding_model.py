"""Embedding model integration with an OpenAI-compatible embeddings API."""
import time
import logging
from typing import List, Optional
import httpx
from config import EMBEDDING_API_KEY, EMBEDDING_API_URL, EMBEDDING_MODEL

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class EmbeddingProviderError(RuntimeError):
    """The embedding provider failed or returned an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class EmbeddingModel:
    """Wrapper for an OpenAI-compatible ``/embeddings`` endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = EMBEDDING_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        api_url: str = EMBEDDING_API_URL,
        max_retries: int = 5,
        initial_delay: float = 2.0,
        timeout: float = 60.0
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Bearer token for the provider
            model_name: Model identifier (default: text-embedding-3-small)
            api_url: Full URL of the embeddings endpoint
            max_retries: Maximum attempts for timeouts, network errors, 429 and 5xx
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("EMBEDDING_API_KEY (or OPENAI_API_KEY) environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.api_url = api_url
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            EmbeddingProviderError: If the request fails after all retries
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        return self._embed_with_retry([text])[0]

    def embed_query(self, text: str) -> List[float]:
        """Embed a search query. Same model and endpoint as the stored chunks."""
        return self.embed_text(text)

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in a single API call.

        Results line up with ``texts``, so empty strings are rejected
        rather than dropped.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors, one per input, same order

        Raises:
            ValueError: If texts list is empty or contains empty strings
            EmbeddingProviderError: If the request fails after all retries
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        empty = [i for i, t in enumerate(texts) if not t or not t.strip()]
        if empty:
            raise ValueError(f"Batch contains {len(empty)} empty texts (first at position {empty[0]})")

        return self._embed_with_retry(texts)

    def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """
        Internal method to call the provider with exponential backoff.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors

        Raises:
            EmbeddingProviderError: If the request fails after all retries
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "model": self.model_name,
            "input": texts
        }

        delay = self.initial_delay
        last_error = None

        for attempt in range(1, self.max_retries + 1):
            start_time = time.time()
            try:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.api_url, headers=headers, json=payload)
            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
            else:
                if response.status_code == 200:
                    try:
                        body = response.json()
                    except ValueError as e:
                        raise EmbeddingProviderError(f"Malformed embedding response: {str(e)}", status_code=200)
                    embeddings = self._parse_embeddings(body, len(texts))
                    logger.debug(
                        f"Embedded {len(texts)} texts in {time.time() - start_time:.2f}s"
                    )
                    return embeddings

                if response.status_code == 401:
                    logger.error("Authentication failed for embedding provider")
                    raise EmbeddingProviderError("Invalid API key", status_code=401)

                if response.status_code not in RETRYABLE_STATUS_CODES:
                    error_msg = f"Embedding request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise EmbeddingProviderError(error_msg, status_code=response.status_code)

                last_error = f"HTTP {response.status_code}: {response.text[:200]}"

            logger.warning(f"Embedding attempt {attempt}/{self.max_retries} failed: {last_error}")
            if attempt < self.max_retries:
                time.sleep(delay)
                delay = min(delay * 2, 60.0)  # exponential backoff, capped

        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise EmbeddingProviderError(error_msg)

    @staticmethod
    def _parse_embeddings(body: dict, expected: int) -> List[List[float]]:
        """Pull vectors out of ``{"data": [{"index": i, "embedding": [...]}, ...]}`` in input order."""
        try:
            items = sorted(body["data"], key=lambda item: item.get("index", 0))
            embeddings = [[float(x) for x in item["embedding"]] for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise EmbeddingProviderError(f"Malformed embedding response: {str(e)}")

        if len(embeddings) != expected:
            raise EmbeddingProviderError(
                f"Provider returned {len(embeddings)} embeddings for {expected} inputs"
            )
        return embeddings

    def warmup(self) -> bool:
        """
        Send one tiny request to check credentials and connectivity.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except (EmbeddingProviderError, ValueError) as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
