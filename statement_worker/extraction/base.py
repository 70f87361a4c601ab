from abc import ABC, abstractmethod

from statement_worker.extraction.models import ExtractedTransaction, ExtractionRequest


class BaseExtractor(ABC):
    """Contract for the transaction extraction capability."""

    @abstractmethod
    def extract(self, request: ExtractionRequest) -> list[ExtractedTransaction]:
        """Turn statement text or page images into transactions.

        Args:
            request: Chunk text or page images, optional date bounds and the
                chunk's position within the document.

        Returns:
            Transactions in the order the provider returned them. When the
            request is bounded, transactions outside the bounds are dropped.

        Raises:
            ExtractionError: on any failure.
        """
