"""Dependency injection for services."""

from trustrag.services.chunking import ChunkingService
from trustrag.services.database import DatabaseService
from trustrag.services.dlq import DLQService
from trustrag.services.embedding import EmbeddingService
from trustrag.services.event_processor import EventProcessor
from trustrag.services.generation import DraftGenerator
from trustrag.services.llm import LLMService
from trustrag.services.parser import DocumentParser
from trustrag.services.pipeline import DocumentPipeline
from trustrag.services.retrieval import RetrievalClient
from trustrag.services.storage import LocalObjectStorage
from trustrag.services.sweeper import StuckDocumentSweeper
from trustrag.services.vector_db import VectorDBService


class ServiceContainer:
    """Container for service instances."""

    def __init__(self) -> None:
        """Initialize service container."""
        self.vector_db = VectorDBService()
        self.embedding_service = EmbeddingService()
        self.llm_service = LLMService()
        self.dlq_service = DLQService()
        self.database = DatabaseService()
        self.storage = LocalObjectStorage()

        self.retrieval = RetrievalClient(self.embedding_service, self.vector_db)
        self.draft_generator = DraftGenerator(self.retrieval, self.llm_service)
        self.pipeline = DocumentPipeline(
            repository=self.database,
            storage=self.storage,
            embedder=self.embedding_service,
            index=self.vector_db,
            parser=DocumentParser(),
            chunking=ChunkingService(),
            dlq_service=self.dlq_service,
        )
        self.sweeper = StuckDocumentSweeper(self.database, dlq_service=self.dlq_service)
        self.event_processor = EventProcessor(self.database, self.pipeline)

    async def initialize(self, with_database: bool = True) -> None:
        """
        Initialize all services.

        Args:
            with_database: Whether to open the PostgreSQL pool and DLQ producer.
        """
        await self.vector_db.connect()
        if with_database:
            await self.database.connect()
            if self.dlq_service.enabled:
                await self.dlq_service.connect()

    async def shutdown(self) -> None:
        """Shutdown all services."""
        if self.dlq_service.enabled:
            await self.dlq_service.disconnect()
        await self.database.disconnect()
        await self.vector_db.disconnect()


services = ServiceContainer()
