class ExtractionError(Exception):
    """Raised when transaction extraction fails."""


class ExtractionValidationError(ExtractionError):
    """Raised when the extraction response fails domain validation."""


class ExtractionNetworkError(ExtractionError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
