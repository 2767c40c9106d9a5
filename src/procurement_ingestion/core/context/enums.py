# ============================================================================
# src/procurement_ingestion/core/context/enums.py
# ============================================================================
"""
Processing Enums
- Document extraction status (monotonic state machine)
- Classification method
"""

from enum import Enum

class DocumentStatus(str, Enum):
    PENDING_EXTRACTION = "PENDING_EXTRACTION"
    EXTRACTING = "EXTRACTING"
    EXTRACTED = "EXTRACTED"     # terminal, payload written
    FAILED = "FAILED"           # terminal, error message written

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({DocumentStatus.EXTRACTED, DocumentStatus.FAILED})

ALLOWED_TRANSITIONS = {
    DocumentStatus.PENDING_EXTRACTION: frozenset({DocumentStatus.EXTRACTING, DocumentStatus.FAILED}),
    DocumentStatus.EXTRACTING: frozenset({DocumentStatus.EXTRACTED, DocumentStatus.FAILED}),
    DocumentStatus.EXTRACTED: frozenset(),
    DocumentStatus.FAILED: frozenset(),
}


def can_transition(current: DocumentStatus, requested: DocumentStatus) -> bool:
    """True if the state machine allows moving from current to requested."""
    return requested in ALLOWED_TRANSITIONS[DocumentStatus(current)]


class ClassificationMethod(str, Enum):
    VISION = "vision"       # vision model answered with a known type
    FILENAME = "filename"   # heuristic fallback
    DEFAULT = "default"     # caller / configured default
