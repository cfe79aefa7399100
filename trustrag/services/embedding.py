"""OpenAI embedding generation service."""

import logging
from typing import List, Optional

from openai import AsyncOpenAI

from trustrag.core.config import settings
from trustrag.core.exceptions import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Service for generating embeddings using OpenAI."""

    def __init__(self, client: Optional[AsyncOpenAI] = None) -> None:
        """Initialize the embedding service."""
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = settings.embedding_model
        self.dimensions = settings.embedding_dimensions
        self.batch_size = settings.embedding_batch_size

    async def _create(self, texts: List[str]) -> List[List[float]]:
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=texts,
                dimensions=self.dimensions,
            )
            return [item.embedding for item in response.data]
        except Exception as e:
            raise EmbeddingUnavailableError(
                f"Failed to generate embeddings: {str(e)}") from e

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts, in provider-sized batches.

        Args:
            texts: List of text strings to embed.

        Returns:
            List of embedding vectors, in input order.

        Raises:
            EmbeddingUnavailableError: If embedding generation fails.
        """
        embeddings: List[List[float]] = []
        total_batches = (len(texts) + self.batch_size - 1) // self.batch_size
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start:start + self.batch_size]
            logger.debug(
                f"Embedding batch {start // self.batch_size + 1}/{total_batches}")
            embeddings.extend(await self._create(batch))

        if len(embeddings) != len(texts):
            raise EmbeddingUnavailableError(
                f"Expected {len(texts)} embeddings, got {len(embeddings)}")
        return embeddings

    async def embed(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text string to embed.

        Returns:
            Embedding vector.
        """
        embeddings = await self._create([text])
        if not embeddings:
            raise EmbeddingUnavailableError("Empty embedding response")
        return embeddings[0]
