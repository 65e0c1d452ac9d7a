from __future__ import annotations


class AltWordsError(Exception):
    """Base class for every error raised by the engine and its collaborators."""


class MalformedInput(AltWordsError, ValueError):
    """Caller passed arguments the engine cannot interpret. Not retryable."""


class InvalidRange(MalformedInput):
    """Query offsets do not describe a slice of the sentence."""

    def __init__(self, start: int, end: int, length: int) -> None:
        super().__init__(f"invalid query range [{start}:{end}] for sentence of length {length}")
        self.start = start
        self.end = end
        self.length = length


class UnknownDocument(AltWordsError, LookupError):
    """Term frequency was requested for a document with no records at all."""

    def __init__(self, document_id: int) -> None:
        super().__init__(f"no frequency records for document {document_id}")
        self.document_id = document_id


class StorageUnavailable(AltWordsError, RuntimeError):
    """Backend failure while reading or writing paragraphs or frequencies."""


class QueryCancelled(AltWordsError, RuntimeError):
    """The caller abandoned a query between paragraph fetches."""
