"""Custom exceptions for the application."""


class UnsupportedFormatError(Exception):
    """Raised when a document's media type has no parser."""

    def __init__(self, mime_type: str) -> None:
        self.mime_type = mime_type
        super().__init__(f"Unsupported media type: {mime_type}")


class ParseFailureError(Exception):
    """Raised when a text extraction engine fails on a document."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class EmbeddingUnavailableError(Exception):
    """Raised when embedding generation fails."""

    pass


class IndexUnavailableError(Exception):
    """Raised when vector index operations fail."""

    pass


class GenerationProviderError(Exception):
    """Raised when the completion model fails to produce content."""

    pass


class StorageError(Exception):
    """Raised when raw document bytes cannot be fetched."""

    pass


class InvalidTransitionError(Exception):
    """Raised when a document status change is not in the transition table."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid document status transition: {current} -> {target}")


class StaleDocumentError(Exception):
    """Raised when a document changed status since it was read."""

    def __init__(self, document_id: str, expected: str, actual: str) -> None:
        self.document_id = document_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Document {document_id} is {actual}, expected {expected}")


class DocumentNotFoundError(Exception):
    """Raised when a document id is unknown to the repository."""

    pass


class DLQError(Exception):
    """Raised when Dead Letter Queue operations fail."""

    pass


class DatabaseError(Exception):
    """Raised when database operations fail."""

    pass
