from statement_worker.extraction.base import BaseExtractor
from statement_worker.extraction.extractor import Extractor
from statement_worker.extraction.factory import ExtractorFactory
from statement_worker.extraction.models import ExtractedTransaction, ExtractionRequest

__all__ = [
    "BaseExtractor",
    "ExtractedTransaction",
    "ExtractionRequest",
    "Extractor",
    "ExtractorFactory",
]
