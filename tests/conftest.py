"""Shared fakes and fixtures for the unit tests."""

import asyncio
from typing import Dict, List, Optional

import pytest

from trustrag.core.exceptions import (
    EmbeddingUnavailableError,
    GenerationProviderError,
    StorageError,
)
from trustrag.services.document_store import InMemoryDocumentRepository
from trustrag.services.memory_index import InMemoryVectorIndex

VOCABULARY = ["literacy", "housing", "budget", "youth", "health"]


class FakeEmbedder:
    """Bag-of-keywords embedder over a tiny fixed vocabulary."""

    def __init__(self, fail: bool = False, delay: float = 0.0) -> None:
        self.fail = fail
        self.delay = delay
        self.calls = 0

    def vector(self, text: str) -> List[float]:
        lowered = text.lower()
        return [float(lowered.count(word)) for word in VOCABULARY]

    async def embed(self, text: str) -> List[float]:
        return (await self.embed_batch([text]))[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise EmbeddingUnavailableError("embedding provider down")
        return [self.vector(text) for text in texts]


class FakeStorage:
    """Object storage backed by a dict, failing the first ``failures`` reads."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None, failures: int = 0) -> None:
        self.objects = objects or {}
        self.failures = failures
        self.calls = 0

    async def get(self, key: str) -> bytes:
        self.calls += 1
        if self.calls <= self.failures:
            raise StorageError(f"Failed to read {key}: connection reset")
        if key not in self.objects:
            raise StorageError(f"Failed to read {key}: not found")
        return self.objects[key]


class FakeCompletionModel:
    """Returns canned content and records the prompts it saw."""

    def __init__(self, content: str = "", error: Optional[str] = None) -> None:
        self.content = content
        self.error = error
        self.prompts: List[tuple] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append((system_prompt, user_prompt))
        if self.error:
            raise GenerationProviderError(self.error)
        return self.content


@pytest.fixture
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def make_embedder():
    return FakeEmbedder


@pytest.fixture
def make_storage():
    return FakeStorage


@pytest.fixture
def make_model():
    return FakeCompletionModel
