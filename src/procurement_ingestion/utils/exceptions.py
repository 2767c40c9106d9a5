# ============================================================================
# src/procurement_ingestion/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the procurement ingestion engine.

Fatal (job ends FAILED):
- ConversionError and subclasses
- ExtractionTransportError and subclasses

Non-fatal (absorbed, only lower the output quality):
- ClassificationDegraded
- ExtractionParseFailure
"""


class ProcurementIngestionError(Exception):
    """Base exception for all procurement ingestion errors."""
    pass


class DocumentProcessingError(ProcurementIngestionError):
    """Error during document processing."""
    pass


class ConversionError(DocumentProcessingError):
    """Rasterizer or image converter produced no usable output."""
    pass


class ConversionTimeoutError(ConversionError):
    """Rasterizer did not finish within its timeout."""
    pass


class ClassificationDegraded(ProcurementIngestionError):
    """Vision classification failed or returned nothing parsable."""
    pass


class ExtractionParseFailure(ProcurementIngestionError):
    """Neither JSON nor markdown parsing yielded any field."""
    pass


class ExtractionTransportError(DocumentProcessingError):
    """Vision model call failed during extraction."""
    pass


class ExtractionTimeoutError(ExtractionTransportError):
    """Vision model call exceeded its timeout during extraction."""
    pass


class ModelError(ProcurementIngestionError):
    """Error talking to the vision model backend."""
    pass


class VisionTransportError(ModelError):
    """Connection failure or error status from the vision backend."""
    pass


class VisionTimeoutError(VisionTransportError):
    """Vision backend request timed out."""
    pass


class InvalidStatusTransition(ProcurementIngestionError):
    """Attempted a document status change that is not allowed."""
    def __init__(self, message: str, current: str = None, requested: str = None):
        super().__init__(message)
        self.current = current
        self.requested = requested


class DocumentTypeAlreadyResolved(ProcurementIngestionError):
    """The job's document type was already resolved once."""
    pass


class ConfigurationError(ProcurementIngestionError):
    """Invalid configuration."""
    pass


class DocumentNotFound(ProcurementIngestionError):
    """No procurement document with the given id in the store."""
    pass
