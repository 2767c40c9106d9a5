# src/procurement_ingestion/core/context/__init__.py

from .enums import DocumentStatus, ClassificationMethod, ALLOWED_TRANSITIONS, TERMINAL_STATUSES, can_transition
from .extraction_job import ExtractionJob, ClassificationResult
from .extracted_data import (
    LineItem,
    ExtractedDocumentData,
    QuotationData,
    InvoiceData,
    PurchaseOrderData,
    VariationOrderData,
    GenericDocumentData,
    data_model_for,
    build_extracted_data,
    empty_extracted_data,
    load_extracted_data,
)

__all__ = [
    "DocumentStatus",
    "ClassificationMethod",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "can_transition",
    "ExtractionJob",
    "ClassificationResult",
    "LineItem",
    "ExtractedDocumentData",
    "QuotationData",
    "InvoiceData",
    "PurchaseOrderData",
    "VariationOrderData",
    "GenericDocumentData",
    "data_model_for",
    "build_extracted_data",
    "empty_extracted_data",
    "load_extracted_data",
]
