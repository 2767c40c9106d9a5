# ============================================================================
# src/procurement_ingestion/vision/prompts.py
# ============================================================================
"""
Vision Prompt Templates

Provides:
- Per-document-type extraction prompts with an embedded JSON schema
- The document type classification prompt
- Prompt formatting utilities
"""

from typing import Dict, List, Optional
from enum import Enum
from dataclasses import dataclass

from ..constants.document_types import (
    DocumentType,
    CLASSIFIABLE_TYPES,
    DOCUMENT_TYPE_DESCRIPTIONS,
)


class PromptTask(Enum):
    """Vision tasks"""
    EXTRACTION = "extraction"
    CLASSIFICATION = "classification"


@dataclass
class PromptTemplate:
    """Prompt template"""
    name: str
    task: PromptTask
    template: str
    description: str
    required_fields: List[str]
    optional_fields: List[str] = None

    def __post_init__(self):
        if self.optional_fields is None:
            self.optional_fields = []

    def format(self, **kwargs) -> str:
        """
        Format template with provided values.

        Raises:
            ValueError: if a required field is missing
        """
        missing = [f for f in self.required_fields if f not in kwargs]
        if missing:
            raise ValueError(f"Missing required fields: {missing}")

        for optional in self.optional_fields:
            kwargs.setdefault(optional, "")

        return self.template.format(**kwargs)


# Shared tail: surface any project reference so it can be checked against the
# project the document was uploaded to.
_PROJECT_CHECK = """IMPORTANT: Look carefully for any project name, project reference, or site address mentioned in the document.
Report it in "projectName" / "projectReference" even if it differs from the current project.
The current project this document is uploaded to is: "{project_name}"

Only return valid JSON, no additional text."""

_LINE_ITEMS = """  "lineItems": [
    {{
      "description": "item description",
      "quantity": numeric value,
      "unitPrice": numeric value,
      "unit": "unit of measurement",
      "amount": numeric value
    }}
  ],"""


class ProcurementPrompts:
    """
    Collection of vision prompt templates.
    """

    # Quotations carry no tax breakdown
    QUOTATION_TEMPLATE = PromptTemplate(
        name="quotation_extraction",
        task=PromptTask.EXTRACTION,
        template="""Analyze this quotation image and extract the following information in JSON format:
{{
  "documentNumber": "quotation number",
  "documentDate": "date in YYYY-MM-DD format",
  "supplierName": "supplier company name",
  "projectName": "project name or reference if mentioned",
  "projectReference": "project reference number if mentioned",
  "totalAmount": numeric value only,
  "currency": "currency code (SGD, USD, etc.)",
""" + _LINE_ITEMS + """
  "paymentTerms": "payment terms",
  "termsAndConditions": "terms and conditions"
}}

""" + _PROJECT_CHECK,
        description="Extract a supplier quotation",
        required_fields=["project_name"],
    )

    INVOICE_TEMPLATE = PromptTemplate(
        name="invoice_extraction",
        task=PromptTask.EXTRACTION,
        template="""Analyze this invoice image and extract the following information in JSON format:
{{
  "documentNumber": "invoice number",
  "documentDate": "date in YYYY-MM-DD format",
  "supplierName": "{issuer_label}",
  "customerName": "billed-to company name",
  "projectName": "project name or reference if mentioned",
  "projectReference": "project reference number if mentioned",
  "totalAmount": numeric value only,
  "taxAmount": numeric value only,
  "subtotalAmount": numeric value only,
  "currency": "currency code (SGD, USD, etc.)",
""" + _LINE_ITEMS + """
  "paymentTerms": "payment terms",
  "dueDate": "due date in YYYY-MM-DD format"
}}

""" + _PROJECT_CHECK,
        description="Extract a supplier or client invoice",
        required_fields=["project_name", "issuer_label"],
    )

    PURCHASE_ORDER_TEMPLATE = PromptTemplate(
        name="purchase_order_extraction",
        task=PromptTask.EXTRACTION,
        template="""Analyze this purchase order image and extract the following information in JSON format:
{{
  "documentNumber": "PO number",
  "documentDate": "date in YYYY-MM-DD format",
  "supplierName": "supplier company name",
  "customerName": "customer (buyer) company name",
  "projectName": "project name or reference if mentioned",
  "projectReference": "project reference number if mentioned",
  "totalAmount": numeric value only,
  "currency": "currency code (SGD, USD, etc.)",
  "deliveryDate": "delivery date in YYYY-MM-DD format",
""" + _LINE_ITEMS + """
  "paymentTerms": "payment terms",
  "termsAndConditions": "terms and conditions"
}}

""" + _PROJECT_CHECK,
        description="Extract a supplier or customer purchase order",
        required_fields=["project_name"],
    )

    VARIATION_ORDER_TEMPLATE = PromptTemplate(
        name="variation_order_extraction",
        task=PromptTask.EXTRACTION,
        template="""Analyze this variation order image and extract the following information in JSON format:
{{
  "documentNumber": "VO number",
  "documentDate": "date in YYYY-MM-DD format",
  "supplierName": "supplier or customer company name",
  "projectName": "project name or reference if mentioned",
  "projectReference": "project reference number if mentioned",
  "totalAmount": numeric value only,
  "taxAmount": numeric value only,
  "subtotalAmount": numeric value only,
  "currency": "currency code (SGD, USD, etc.)",
  "variationDescription": "description of the variations",
""" + _LINE_ITEMS + """
  "termsAndConditions": "terms and conditions"
}}

""" + _PROJECT_CHECK,
        description="Extract a variation / change order",
        required_fields=["project_name"],
    )

    GENERIC_TEMPLATE = PromptTemplate(
        name="generic_extraction",
        task=PromptTask.EXTRACTION,
        template="""Analyze this document image and extract key information in JSON format:
{{
  "documentNumber": "document number if present",
  "documentDate": "date in YYYY-MM-DD format if present",
  "supplierName": "company name if present",
  "projectName": "project name or reference if mentioned",
  "projectReference": "project reference number if mentioned",
  "totalAmount": numeric value if present,
  "currency": "currency code if present"
}}

""" + _PROJECT_CHECK,
        description="Extract key fields from an unrecognised document",
        required_fields=["project_name"],
    )

    CLASSIFICATION_TEMPLATE = PromptTemplate(
        name="document_classification",
        task=PromptTask.CLASSIFICATION,
        template="""You are analyzing a procurement document image. Determine which of these types it is:
{type_list}

Return ONLY valid JSON in this format:
{{"documentType": "<one of the exact type strings above>", "confidence": <number from 0 to 100>}}
{filename_hint}""",
        description="Pick the document type from a fixed enumeration",
        required_fields=["type_list"],
        optional_fields=["filename_hint"],
    )


_EXTRACTION_TEMPLATES: Dict[DocumentType, PromptTemplate] = {
    DocumentType.SUPPLIER_QUOTATION: ProcurementPrompts.QUOTATION_TEMPLATE,
    DocumentType.SUPPLIER_INVOICE: ProcurementPrompts.INVOICE_TEMPLATE,
    DocumentType.CLIENT_INVOICE: ProcurementPrompts.INVOICE_TEMPLATE,
    DocumentType.SUPPLIER_PO: ProcurementPrompts.PURCHASE_ORDER_TEMPLATE,
    DocumentType.CUSTOMER_PO: ProcurementPrompts.PURCHASE_ORDER_TEMPLATE,
    DocumentType.VARIATION_ORDER: ProcurementPrompts.VARIATION_ORDER_TEMPLATE,
}


def get_extraction_template(document_type: Optional[DocumentType]) -> PromptTemplate:
    """Extraction template for a document type (generic when unknown)."""
    return _EXTRACTION_TEMPLATES.get(document_type, ProcurementPrompts.GENERIC_TEMPLATE)


def create_extraction_prompt(document_type: Optional[DocumentType], project_name: str) -> str:
    """
    Build the extraction instruction for a document type.

    Args:
        document_type: Resolved document type
        project_name: Name of the project the document was uploaded to

    Returns:
        Formatted prompt
    """
    template = get_extraction_template(document_type)
    issuer_label = (
        "issuing company name (us)"
        if document_type == DocumentType.CLIENT_INVOICE
        else "supplier company name"
    )
    return template.format(project_name=project_name, issuer_label=issuer_label)


def create_classification_prompt(file_name: Optional[str] = None) -> str:
    """Classification instruction listing the allowed document types."""
    type_list = "\n".join(
        f"- {doc_type.value} ({DOCUMENT_TYPE_DESCRIPTIONS[doc_type]})"
        for doc_type in CLASSIFIABLE_TYPES
    )
    filename_hint = f"\nThe uploaded file is named: \"{file_name}\"" if file_name else ""
    return ProcurementPrompts.CLASSIFICATION_TEMPLATE.format(
        type_list=type_list,
        filename_hint=filename_hint,
    )
