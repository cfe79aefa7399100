"""Draft generation: retrieve, complete, score and gate."""

import logging
from typing import List, Optional, Tuple

from trustrag.core.exceptions import GenerationProviderError
from trustrag.core.protocols import CompletionModel
from trustrag.models.generation import DraftRequest, GenerationResult
from trustrag.models.retrieval import RetrievalMatch
from trustrag.models.trust import GatedDraft
from trustrag.monitoring.metrics import drafts_total, generation_confidence, generation_errors_total
from trustrag.services.confidence import (
    DEFAULT_GENERATION_WEIGHTS,
    GenerationSignals,
    GenerationWeights,
    generation_confidence as score_generation,
)
from trustrag.services.retrieval import RetrievalClient
from trustrag.services.trust_gate import gate_draft

logger = logging.getLogger(__name__)

MAX_CONTEXT_TOKENS = 8000
MAX_CONTEXT_CHARS = MAX_CONTEXT_TOKENS * 4
SOURCE_SEPARATOR = "\n\n---\n\n"

DEFAULT_SYSTEM_PROMPT = (
    "You write content grounded in an organization's own documents. "
    "Only use information from the provided sources, do not invent statistics, "
    "dates, programs or facts, and acknowledge when the sources do not cover a point."
)
NO_SOURCES_TEXT = (
    "No relevant organizational content found. "
    "Write based on general best practices for this type of content."
)


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def build_context(matches: List[RetrievalMatch]) -> Tuple[str, List[RetrievalMatch]]:
    """
    Render matches as attributed source blocks within the context budget.

    Args:
        matches: Matches ordered best first.

    Returns:
        Tuple of (context string, matches actually included).
    """
    parts = []
    used = []
    total_chars = 0

    for position, match in enumerate(matches, start=1):
        block = (
            f"[Source {position}: {match.document_name}, chunk {match.chunk_index}, "
            f"relevance: {round(match.score * 100)}%]\n{match.text}"
        )
        separator_length = len(SOURCE_SEPARATOR) if parts else 0
        if total_chars + separator_length + len(block) > MAX_CONTEXT_CHARS:
            break
        parts.append(block)
        used.append(match)
        total_chars += separator_length + len(block)

    return SOURCE_SEPARATOR.join(parts), used


def build_system_prompt(request: DraftRequest) -> str:
    sections = [request.system_prompt or DEFAULT_SYSTEM_PROMPT]
    if request.section_name:
        sections.append(f"You are drafting the {request.section_name} section.")
    if _present(request.funder_context):
        sections.append(f"FUNDER CONTEXT:\n{request.funder_context}")
    if _present(request.voice_profile):
        sections.append(f"VOICE PROFILE:\n{request.voice_profile}")
    if request.target_words:
        sections.append(f"Target length: approximately {request.target_words} words.")
    return "\n\n".join(sections)


def build_user_prompt(request: DraftRequest, context: str) -> str:
    sections = [f"ORGANIZATIONAL MEMORY SOURCES:\n\n{context or NO_SOURCES_TEXT}"]
    if _present(request.existing_content):
        sections.append(f"EXISTING CONTENT TO CONTINUE/IMPROVE:\n{request.existing_content}")
    sections.append(f"USER REQUEST:\n{request.prompt}")
    return "\n\n---\n\n".join(sections)


class DraftGenerator:
    """Produces scored drafts and gates them by trust tier."""

    def __init__(
        self,
        retrieval: RetrievalClient,
        model: CompletionModel,
        weights: Optional[GenerationWeights] = None,
    ) -> None:
        """
        Initialize draft generator.

        Args:
            retrieval: Organization-scoped retrieval client.
            model: Completion model.
            weights: Generation confidence weight table.
        """
        self.retrieval = retrieval
        self.model = model
        self.weights = weights or DEFAULT_GENERATION_WEIGHTS

    async def generate(self, request: DraftRequest) -> GenerationResult:
        """
        Retrieve context, generate content and score it.

        Args:
            request: Draft request.

        Returns:
            Content, confidence score and the sources it was given.

        Raises:
            GenerationProviderError: If the model fails. No score is computed.
        """
        matches = await self.retrieval.search(
            request.organization_id, request.retrieval_query, request.top_k)
        context, used = build_context(matches)

        try:
            content = await self.model.complete(
                build_system_prompt(request), build_user_prompt(request, context))
        except GenerationProviderError:
            generation_errors_total.inc()
            logger.error(
                f"Generation failed for organization {request.organization_id} "
                f"with {len(used)} sources")
            raise

        signals = GenerationSignals(
            match_scores=tuple(match.score for match in used),
            has_funder_context=_present(request.funder_context),
            has_voice_profile=_present(request.voice_profile),
            has_prior_draft=_present(request.existing_content),
            content_length=len(content),
            target_words=request.target_words,
        )
        score = score_generation(signals, self.weights)
        generation_confidence.observe(score)

        return GenerationResult(content=content, confidence_score=score, sources_used=used)

    async def draft(self, request: DraftRequest) -> GatedDraft:
        """
        Generate a draft and apply the trust gate.

        Args:
            request: Draft request.

        Returns:
            Gated draft; content is withheld in the low tier.
        """
        gated = gate_draft(await self.generate(request))
        drafts_total.labels(tier=gated.tier.value).inc()
        logger.info(
            f"Draft for organization {request.organization_id}: "
            f"{gated.confidence_score}% confidence, tier {gated.tier.value}, "
            f"{len(gated.sources)} sources")
        return gated
