class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class DocumentNotFoundError(ProcessorError):
    """Raised when a document cannot be found in the database."""


class UnsupportedStorageDiskError(ProcessorError):
    """Raised when a storage path points outside the configured blob store."""


class FileReadError(ProcessorError):
    """Raised when a file cannot be read from the blob store."""


class UnsupportedFormatError(ProcessorError):
    """Raised when a document's media type is not CSV, spreadsheet or PDF."""


class InvalidStatusTransitionError(ProcessorError):
    """Raised when a document status change violates the lifecycle."""


class DocumentAlreadyClaimedError(ProcessorError):
    """Raised when a document is no longer queued at claim time."""


class ExtractionFailedError(ProcessorError):
    """Raised when no transactions could be extracted from any chunk."""


class NothingToRetryError(ProcessorError):
    """Raised when a document has no failed months or no cached text to retry from."""
