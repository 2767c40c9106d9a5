# ============================================================================
# src/procurement_ingestion/utils/__init__.py
# ============================================================================
"""
Utility modules for the procurement ingestion engine.
"""

from .exceptions import (
    ProcurementIngestionError,
    DocumentProcessingError,
    ConversionError,
    ConversionTimeoutError,
    ClassificationDegraded,
    ExtractionParseFailure,
    ExtractionTransportError,
    ExtractionTimeoutError,
    ModelError,
    VisionTransportError,
    VisionTimeoutError,
    InvalidStatusTransition,
    DocumentTypeAlreadyResolved,
    ConfigurationError,
    DocumentNotFound,
)

from .logging import (
    setup_logging,
    JsonFormatter,
    LogAdapter,
    job_logger,
)

__all__ = [
    # Exceptions
    'ProcurementIngestionError',
    'DocumentProcessingError',
    'ConversionError',
    'ConversionTimeoutError',
    'ClassificationDegraded',
    'ExtractionParseFailure',
    'ExtractionTransportError',
    'ExtractionTimeoutError',
    'ModelError',
    'VisionTransportError',
    'VisionTimeoutError',
    'InvalidStatusTransition',
    'DocumentTypeAlreadyResolved',
    'ConfigurationError',
    'DocumentNotFound',
    # Logging
    'setup_logging',
    'JsonFormatter',
    'LogAdapter',
    'job_logger',
]
