"""
Embedding Service

Turns a piece of text into a fixed-dimension vector.

Backends:
---------
1. OpenAIEmbeddingClient (default)
   - Model: text-embedding-3-small
   - 1536 dimensions
   - Network call through the async OpenAI SDK

2. SentenceTransformerEmbeddingClient (optional `local` extra)
   - Any sentence-transformers model, run in a worker thread
   - Free (no API costs), needs torch

Features:
---------
- One async `embed(text)` contract for every backend
- Retry with exponential backoff on transient failures
- Dimension and value check on every response
- Every failure surfaces as EmbeddingError

Usage:
------
client = create_embedding_client(settings)
vector = await client.embed("Deep Work Focus techniques for knowledge workers")
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np
import openai
from openai import AsyncOpenAI

from recall.core.config import Settings
from recall.core.errors import EmbeddingError
from recall.core.logging import get_logger


logger = get_logger(__name__)


class EmbeddingClient(ABC):
    """
    Base class for embedding backends.

    Subclasses implement `_embed()` (one raw call) and, where the backend
    can tell, `is_retryable()`. `embed()` wraps both with the retry loop and
    the response check.
    """

    def __init__(
        self,
        dimension: int,
        max_retries: int = 0,
        retry_backoff_seconds: float = 0.5,
    ):
        self.dimension = dimension
        self.max_retries = max(0, max_retries)
        self.retry_backoff_seconds = retry_backoff_seconds

    @abstractmethod
    async def _embed(self, text: str) -> Any:
        """Return the raw vector for one text."""

    def is_retryable(self, exc: Exception) -> bool:
        return False

    async def embed(self, text: str) -> list[float]:
        """
        Generate the embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats (self.dimension long)

        Raises:
            EmbeddingError: Timeout, quota, transport error, or a response
                of the wrong shape, after retries are used up
        """
        attempt = 0
        while True:
            try:
                raw = await self._embed(text)
            except EmbeddingError:
                raise
            except Exception as exc:
                if attempt < self.max_retries and self.is_retryable(exc):
                    delay = self.retry_backoff_seconds * (2 ** attempt)
                    attempt += 1
                    logger.warning(
                        "embedding_retry",
                        attempt=attempt,
                        delay_seconds=delay,
                        error=type(exc).__name__,
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(
                    "embedding_failed",
                    attempts=attempt + 1,
                    error=type(exc).__name__,
                    detail=str(exc),
                )
                raise EmbeddingError(f"{type(exc).__name__}: {exc}") from exc

            return self._check_vector(raw)

    def _check_vector(self, raw: Any) -> list[float]:
        """Reject responses that are not a finite vector of the configured size."""
        try:
            vector = np.asarray(raw, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise EmbeddingError("Malformed embedding response") from exc

        if vector.ndim != 1 or vector.shape[0] != self.dimension:
            logger.error(
                "embedding_wrong_dimension",
                expected=self.dimension,
                got=list(vector.shape),
            )
            raise EmbeddingError(
                f"Expected {self.dimension} dimensions, got shape {vector.shape}"
            )
        if not np.all(np.isfinite(vector)):
            raise EmbeddingError("Embedding contains non-finite values")

        return vector.tolist()

    async def close(self) -> None:
        """Release network clients or models held by the backend."""


# ========================================
# OpenAI
# ========================================

class OpenAIEmbeddingClient(EmbeddingClient):
    """
    Embeddings from the OpenAI API.

    The SDK's own retries are turned off so that retry policy lives in one
    place (EmbeddingClient.embed).
    """

    RETRYABLE_ERRORS = (
        openai.APITimeoutError,
        openai.APIConnectionError,
        openai.RateLimitError,
        openai.InternalServerError,
    )

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        timeout: float = 20.0,
        base_url: Optional[str] = None,
        max_retries: int = 2,
        retry_backoff_seconds: float = 0.5,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(dimension, max_retries, retry_backoff_seconds)
        self.model = model
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    def is_retryable(self, exc: Exception) -> bool:
        return isinstance(exc, self.RETRYABLE_ERRORS)

    async def _embed(self, text: str) -> Any:
        response = await self.client.embeddings.create(model=self.model, input=text)
        if not response.data:
            raise EmbeddingError("Embedding response contained no data")
        return response.data[0].embedding

    async def close(self) -> None:
        await self.client.close()


# ========================================
# Local sentence-transformers model
# ========================================

class SentenceTransformerEmbeddingClient(EmbeddingClient):
    """
    Embeddings from a local sentence-transformers model.

    Requires the `local` extra (sentence-transformers, torch). The model is
    loaded on first use in a worker thread, since loading and encoding are
    CPU-bound.
    """

    def __init__(
        self,
        model_name: str,
        dimension: int,
        device: str = "cpu",
        normalize: bool = True,
    ):
        super().__init__(dimension, max_retries=0)
        self.model_name = model_name
        self.device = device
        self.normalize = normalize
        self.model = None
        self._lock = asyncio.Lock()

    def _load_model(self):
        import torch
        from sentence_transformers import SentenceTransformer

        if self.device == "cuda" and not torch.cuda.is_available():
            logger.warning("cuda_unavailable_falling_back_to_cpu")
            self.device = "cpu"
        elif self.device == "mps" and not torch.backends.mps.is_available():
            logger.warning("mps_unavailable_falling_back_to_cpu")
            self.device = "cpu"

        logger.info("loading_embedding_model", model=self.model_name, device=self.device)
        return SentenceTransformer(self.model_name, device=self.device)

    async def initialize(self) -> None:
        """Load the model once. Safe to call concurrently."""
        async with self._lock:
            if self.model is None:
                self.model = await asyncio.to_thread(self._load_model)

    async def _embed(self, text: str) -> Any:
        await self.initialize()
        return await asyncio.to_thread(
            self.model.encode,
            text,
            normalize_embeddings=self.normalize,
            show_progress_bar=False,
        )

    async def close(self) -> None:
        if self.model is not None and self.device == "cuda":
            import torch

            torch.cuda.empty_cache()
        self.model = None


# ========================================
# Factory
# ========================================

def create_embedding_client(settings: Settings) -> EmbeddingClient:
    """Build the embedding backend selected by EMBEDDING_PROVIDER."""
    if settings.EMBEDDING_PROVIDER == "local":
        return SentenceTransformerEmbeddingClient(
            model_name=settings.EMBEDDING_MODEL,
            dimension=settings.EMBEDDING_DIMENSION,
            device=settings.EMBEDDING_DEVICE,
        )

    return OpenAIEmbeddingClient(
        api_key=settings.OPENAI_API_KEY,
        model=settings.EMBEDDING_MODEL,
        dimension=settings.EMBEDDING_DIMENSION,
        timeout=settings.EMBEDDING_TIMEOUT_SECONDS,
        base_url=settings.OPENAI_BASE_URL,
        max_retries=settings.EMBEDDING_MAX_RETRIES,
        retry_backoff_seconds=settings.EMBEDDING_RETRY_BACKOFF_SECONDS,
    )
