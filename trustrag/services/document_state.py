"""Document status machine."""

import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from trustrag.core.exceptions import InvalidTransitionError
from trustrag.models.document import Document, DocumentStatus, utcnow
from trustrag.models.trust import TrustTier
from trustrag.services.trust_gate import classify

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({DocumentStatus.PROCESSING, DocumentStatus.FAILED}),
    DocumentStatus.PROCESSING: frozenset({
        DocumentStatus.COMPLETED,
        DocumentStatus.NEEDS_REVIEW,
        DocumentStatus.FAILED,
    }),
    # Terminal states only leave through reprocessing, which starts a new cycle
    DocumentStatus.COMPLETED: frozenset({DocumentStatus.PENDING}),
    DocumentStatus.NEEDS_REVIEW: frozenset({DocumentStatus.PENDING}),
    DocumentStatus.FAILED: frozenset({DocumentStatus.PENDING}),
}

TERMINAL_STATUSES = frozenset({
    DocumentStatus.COMPLETED,
    DocumentStatus.NEEDS_REVIEW,
    DocumentStatus.FAILED,
})


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(
    document: Document, target: DocumentStatus, now: Optional[datetime] = None
) -> Document:
    """
    Move a document to a new status.

    Args:
        document: Document to update in place.
        target: Requested status.
        now: Timestamp to record.

    Returns:
        The same document.

    Raises:
        InvalidTransitionError: If the table does not allow the change.
    """
    if not can_transition(document.status, target):
        raise InvalidTransitionError(document.status.value, target.value)

    now = now or utcnow()
    logger.info(f"Document {document.id}: {document.status.value} -> {target.value}")
    document.status = target
    document.updated_at = now
    if target in TERMINAL_STATUSES:
        document.processed_at = now
    return document


def status_for_parse_confidence(confidence: int) -> DocumentStatus:
    """
    Final status for a successfully parsed document.

    Only the high tier completes without review; warnings alone never
    change the outcome.
    """
    if classify(confidence) is TrustTier.HIGH:
        return DocumentStatus.COMPLETED
    return DocumentStatus.NEEDS_REVIEW
