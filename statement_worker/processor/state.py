"""Document lifecycle: queued -> processing -> complete | error.

``error -> queued`` is the only backwards edge and is reserved for an
external retry action. Every status write in the repositories goes through
:func:`transition` so an illegal move fails loudly instead of silently
corrupting the queue.
"""

from enum import StrEnum

from statement_worker.processor.exceptions import InvalidStatusTransitionError


class DocumentStatus(StrEnum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


ALLOWED_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.QUEUED: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.COMPLETE, DocumentStatus.ERROR}),
    DocumentStatus.COMPLETE: frozenset(),
    DocumentStatus.ERROR: frozenset({DocumentStatus.QUEUED}),
}


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(current: DocumentStatus | str, target: DocumentStatus | str) -> DocumentStatus:
    """Validate a status change and return the target status.

    Raises:
        InvalidStatusTransitionError: if the move is not allowed or either
            status is unknown.
    """
    try:
        current_status = DocumentStatus(current)
        target_status = DocumentStatus(target)
    except ValueError as exc:
        raise InvalidStatusTransitionError(f"Unknown document status: {exc}") from exc
    if not can_transition(current_status, target_status):
        raise InvalidStatusTransitionError(
            f"Illegal status transition {current_status.value} -> {target_status.value}"
        )
    return target_status


def allowed_sources(target: DocumentStatus) -> list[str]:
    """Statuses from which ``target`` may be entered, for conditional UPDATEs."""
    return sorted(
        status.value for status, targets in ALLOWED_TRANSITIONS.items() if target in targets
    )
