# ============================================================================
# src/procurement_ingestion/constants/document_types.py
# ============================================================================
"""
Procurement Document Types
- Supported document types for classification and extraction
- Filename heuristics (prefixes and keywords) per type
- One-line descriptions used in the classification prompt
"""

from enum import Enum
from typing import Optional

class DocumentType(str, Enum):
    """
    Procurement document types a job can be classified into.
    Each type selects an extraction prompt and a payload variant.
    """
    SUPPLIER_QUOTATION = "SUPPLIER_QUOTATION"
    SUPPLIER_INVOICE = "SUPPLIER_INVOICE"
    SUPPLIER_PO = "SUPPLIER_PO"
    CUSTOMER_PO = "CUSTOMER_PO"
    CLIENT_INVOICE = "CLIENT_INVOICE"
    VARIATION_ORDER = "VARIATION_ORDER"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value) -> Optional["DocumentType"]:
        """Lenient lookup: 'supplier invoice', 'SUPPLIER-INVOICE' etc. Returns None if unknown."""
        if isinstance(value, DocumentType):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().upper().replace(" ", "_").replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            return None


# Caller hint meaning "no default type, let the pipeline decide"
AUTO_DETECT = "AUTO"

# Types the vision classifier may choose from
CLASSIFIABLE_TYPES = [
    DocumentType.SUPPLIER_QUOTATION,
    DocumentType.SUPPLIER_INVOICE,
    DocumentType.SUPPLIER_PO,
    DocumentType.CUSTOMER_PO,
    DocumentType.CLIENT_INVOICE,
    DocumentType.VARIATION_ORDER,
]

DOCUMENT_TYPE_DESCRIPTIONS = {
    DocumentType.SUPPLIER_QUOTATION: "quotation from supplier to us",
    DocumentType.SUPPLIER_INVOICE: "invoice from supplier to us",
    DocumentType.SUPPLIER_PO: "purchase order from us to a supplier",
    DocumentType.CUSTOMER_PO: "purchase order from a customer to us",
    DocumentType.CLIENT_INVOICE: "invoice from us to a client",
    DocumentType.VARIATION_ORDER: "variation order / change order",
}

# Checked in order against the lower-cased base filename
FILENAME_PREFIXES = [
    ("quot", DocumentType.SUPPLIER_QUOTATION),
    ("inv", DocumentType.SUPPLIER_INVOICE),
    ("po", DocumentType.SUPPLIER_PO),
    ("vo", DocumentType.VARIATION_ORDER),
]

# Substring keywords, checked after prefixes; separators are normalised to spaces first
FILENAME_KEYWORDS = [
    ("quotation", DocumentType.SUPPLIER_QUOTATION),
    ("quote", DocumentType.SUPPLIER_QUOTATION),
    ("invoice", DocumentType.SUPPLIER_INVOICE),
    ("purchase order", DocumentType.SUPPLIER_PO),
    ("variation", DocumentType.VARIATION_ORDER),
]
