"""
Error taxonomy for the import pipeline.

Extraction failures are recoverable only in degraded mode; empty batches
and unusable customer lists are hard stops.
"""


class QuoteError(Exception):
    """Base class for all pipeline errors."""


class EmptyExtraction(QuoteError):
    """A batch had zero candidates after extraction."""

    def __init__(self, message: str = "No part numbers could be extracted from the file"):
        super().__init__(message)


class ExtractionFailed(QuoteError):
    """A document or workbook could not be parsed."""


class ExtractionUnavailable(ExtractionFailed):
    """No reader exists for the declared document kind."""


class NoValidData(QuoteError):
    """Every row of a customer-supplied list failed to yield an identifier."""

    def __init__(self, message: str = "No valid part data found, check the file format"):
        super().__init__(message)


class CandidateProcessingError(QuoteError):
    """A single candidate failed during matching or synthesis."""

    def __init__(self, identifier: str, cause: Exception):
        self.identifier = identifier
        self.cause = cause
        super().__init__(f"Failed to process part {identifier!r}: {cause}")


class EntryNotFound(QuoteError, KeyError):
    """No selection entry has the given id."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"No quotation entry with id {entry_id!r}")

    def __str__(self) -> str:
        return self.args[0]
