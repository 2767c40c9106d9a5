# ============================================================================
# src/procurement_ingestion/core/context/extracted_data.py
# ============================================================================
"""
Extracted procurement payload
- Tagged union keyed by document type (quotation, invoice, PO, VO, generic)
- Lenient coercion of model output: never raises on malformed values
- camelCase on the wire, snake_case in Python
"""

import logging
import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Type, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from ...constants.document_types import DocumentType

logger = logging.getLogger(__name__)

_NUMBER_TOKEN = re.compile(r'-?\d[\d.,]*')
_PLAIN_NUMBER = re.compile(r'-?\d+(?:\.\d+)?$')
# Comma is only accepted as a thousands separator
_COMMA_THOUSANDS = re.compile(r'-?\d{1,3}(?:,\d{3})+(?:\.\d+)?$')


def coerce_number(value: Any) -> Optional[float]:
    """
    Best-effort numeric coercion.

    "S$ 1,250.00" -> 1250.0, 42 -> 42.0, "n/a" -> None, True -> None
    "1.234,56" -> None: decimal commas are not guessed at
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER_TOKEN.search(value)
        if match:
            token = match.group().rstrip(".,")
            if _PLAIN_NUMBER.match(token) or _COMMA_THOUSANDS.match(token):
                return float(token.replace(",", ""))
    return None


def coerce_text(value: Any) -> Optional[str]:
    """Strings are stripped (blank -> None); scalars are stringified; containers dropped."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def is_present(value: Any) -> bool:
    """A field counts as present unless it is None or blank text. Zero is present."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class LineItem(_WireModel):
    description: str = ""
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    unit: Optional[str] = None
    amount: Optional[float] = None

    @field_validator('quantity', 'unit_price', 'amount', mode='before')
    @classmethod
    def _numbers(cls, value):
        return coerce_number(value)

    @field_validator('unit', mode='before')
    @classmethod
    def _unit(cls, value):
        return coerce_text(value)

    @field_validator('description', mode='before')
    @classmethod
    def _description(cls, value):
        return coerce_text(value) or ""


class ExtractedDocumentData(_WireModel):
    """
    Fields shared by every procurement document.

    All fields are optional; absence is meaningful and lowers confidence.
    """
    document_type: str = DocumentType.UNKNOWN.value

    document_number: Optional[str] = None
    document_date: Optional[str] = None
    supplier_name: Optional[str] = None
    customer_name: Optional[str] = None
    project_name: Optional[str] = None
    project_reference: Optional[str] = None
    total_amount: Optional[float] = None
    tax_amount: Optional[float] = None
    subtotal_amount: Optional[float] = None
    currency: Optional[str] = None
    payment_terms: Optional[str] = None
    due_date: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    line_items: List[LineItem] = Field(default_factory=list)

    @field_validator('total_amount', 'tax_amount', 'subtotal_amount', mode='before')
    @classmethod
    def _amounts(cls, value):
        return coerce_number(value)

    @field_validator(
        'document_number', 'document_date', 'supplier_name', 'customer_name',
        'project_name', 'project_reference', 'currency', 'payment_terms',
        'due_date', 'terms_and_conditions',
        mode='before'
    )
    @classmethod
    def _texts(cls, value):
        return coerce_text(value)

    @field_validator('line_items', mode='before')
    @classmethod
    def _line_items(cls, value):
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @property
    def project_hint(self) -> Optional[str]:
        """Project name as printed on the document, else its project reference."""
        return self.project_name or self.project_reference

    def is_empty(self) -> bool:
        return not self.populated_fields()

    def populated_fields(self) -> List[str]:
        """camelCase names of the fields that carry a value."""
        populated = []
        for name, info in type(self).model_fields.items():
            if name == 'document_type':
                continue
            value = getattr(self, name)
            if name == 'line_items':
                if value:
                    populated.append(info.alias)
            elif is_present(value):
                populated.append(info.alias)
        return populated

    def to_payload(self) -> Dict[str, Any]:
        """Persisted form: camelCase keys, absent fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class QuotationData(ExtractedDocumentData):
    document_type: Literal["SUPPLIER_QUOTATION"] = "SUPPLIER_QUOTATION"


class InvoiceData(ExtractedDocumentData):
    document_type: Literal["SUPPLIER_INVOICE", "CLIENT_INVOICE"] = "SUPPLIER_INVOICE"


class PurchaseOrderData(ExtractedDocumentData):
    document_type: Literal["SUPPLIER_PO", "CUSTOMER_PO"] = "SUPPLIER_PO"
    delivery_date: Optional[str] = None

    @field_validator('delivery_date', mode='before')
    @classmethod
    def _delivery_date(cls, value):
        return coerce_text(value)


class VariationOrderData(ExtractedDocumentData):
    document_type: Literal["VARIATION_ORDER"] = "VARIATION_ORDER"
    variation_description: Optional[str] = None

    @field_validator('variation_description', mode='before')
    @classmethod
    def _variation_description(cls, value):
        return coerce_text(value)


class GenericDocumentData(ExtractedDocumentData):
    document_type: Literal["UNKNOWN"] = "UNKNOWN"


AnyExtractedData = Annotated[
    Union[QuotationData, InvoiceData, PurchaseOrderData, VariationOrderData, GenericDocumentData],
    Field(discriminator='document_type'),
]

_payload_adapter = TypeAdapter(AnyExtractedData)

DATA_MODELS: Dict[DocumentType, Type[ExtractedDocumentData]] = {
    DocumentType.SUPPLIER_QUOTATION: QuotationData,
    DocumentType.SUPPLIER_INVOICE: InvoiceData,
    DocumentType.CLIENT_INVOICE: InvoiceData,
    DocumentType.SUPPLIER_PO: PurchaseOrderData,
    DocumentType.CUSTOMER_PO: PurchaseOrderData,
    DocumentType.VARIATION_ORDER: VariationOrderData,
    DocumentType.UNKNOWN: GenericDocumentData,
}


def data_model_for(document_type: Optional[DocumentType]) -> Type[ExtractedDocumentData]:
    """Payload variant for a document type (generic for unknown/None)."""
    parsed = DocumentType.parse(document_type)
    return DATA_MODELS.get(parsed, GenericDocumentData)


def empty_extracted_data(document_type: Optional[DocumentType]) -> ExtractedDocumentData:
    parsed = DocumentType.parse(document_type) or DocumentType.UNKNOWN
    model = data_model_for(parsed)
    return model(document_type=parsed.value)


def build_extracted_data(
    document_type: Optional[DocumentType],
    fields: Dict[str, Any]
) -> ExtractedDocumentData:
    """
    Build the typed payload for a document type from raw model fields.

    Keys may be camelCase or snake_case; unknown keys are ignored.
    Never raises: values the coercers cannot fix are dropped.
    """
    parsed = DocumentType.parse(document_type) or DocumentType.UNKNOWN
    model = data_model_for(parsed)

    raw = {k: v for k, v in (fields or {}).items()
           if k not in ('documentType', 'document_type')}
    raw['document_type'] = parsed.value

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Discarding unusable extracted fields for {parsed.value}: {e.error_count()} errors")
        return model(document_type=parsed.value)


def load_extracted_data(payload: Dict[str, Any]) -> ExtractedDocumentData:
    """Load a persisted payload back into its variant (keyed on documentType)."""
    return _payload_adapter.validate_python(payload)
