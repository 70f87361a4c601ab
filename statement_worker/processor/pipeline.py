from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from statement_worker.processor.models import (
    DocumentFormat,
    NormalizedDocument,
    OrchestrationResult,
    StatementDocument,
)


@dataclass(slots=True)
class PipelineContext:
    document_id: str
    document: StatementDocument | None = None
    claimed: bool = False
    transactions_written: bool = False
    raw_bytes: bytes = b""
    file_hash: str | None = None
    format: DocumentFormat | None = None
    normalized: NormalizedDocument | None = None
    result: OrchestrationResult | None = None
    pipeline: str | None = None
    duplicate_of: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    transaction_count: int = 0
    completed: bool = False
    error_message: str = ""


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
