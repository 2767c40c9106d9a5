# ============================================================================
# src/procurement_ingestion/extractors/markdown_fields.py
# ============================================================================
"""
Markdown field fallback

Vision models asked for JSON sometimes answer with a markdown summary
instead:

    **Invoice Number**: INV-2024-001
    **Date**: 15/03/2024
    - **Total Amount:** S$ 1,250.00

parse_markdown_fields() reads that shape with a fixed label grammar:
one bolded label followed by a colon and a value, one pair per line.
Only labels listed in LABEL_FIELDS are recognised. Dates written
DD/MM/YYYY are rewritten as YYYY-MM-DD; a currency marker anywhere in
the text fills `currency` when no Currency label is present.

Pure function: no I/O, no logging, never raises.
"""

from datetime import date
from typing import Any, Dict, Optional
import re

from ..core.context.extracted_data import coerce_number


# Normalised label -> camelCase field
LABEL_FIELDS = {
    # documentNumber
    'document number': 'documentNumber',
    'document no': 'documentNumber',
    'quotation number': 'documentNumber',
    'quotation no': 'documentNumber',
    'quote number': 'documentNumber',
    'invoice number': 'documentNumber',
    'invoice no': 'documentNumber',
    'po number': 'documentNumber',
    'po no': 'documentNumber',
    'purchase order number': 'documentNumber',
    'vo number': 'documentNumber',
    'vo no': 'documentNumber',
    # documentDate
    'document date': 'documentDate',
    'date': 'documentDate',
    'quotation date': 'documentDate',
    'invoice date': 'documentDate',
    'po date': 'documentDate',
    'vo date': 'documentDate',
    # parties
    'supplier name': 'supplierName',
    'supplier': 'supplierName',
    'vendor': 'supplierName',
    'vendor name': 'supplierName',
    'customer name': 'customerName',
    'customer': 'customerName',
    'client': 'customerName',
    'bill to': 'customerName',
    # project
    'project name': 'projectName',
    'project': 'projectName',
    'project reference': 'projectReference',
    'project ref': 'projectReference',
    'project no': 'projectReference',
    'project number': 'projectReference',
    # amounts
    'total amount': 'totalAmount',
    'total': 'totalAmount',
    'grand total': 'totalAmount',
    'amount due': 'totalAmount',
    'tax amount': 'taxAmount',
    'tax': 'taxAmount',
    'gst': 'taxAmount',
    'gst amount': 'taxAmount',
    'subtotal amount': 'subtotalAmount',
    'subtotal': 'subtotalAmount',
    'sub total': 'subtotalAmount',
    'currency': 'currency',
    # terms
    'payment terms': 'paymentTerms',
    'terms of payment': 'paymentTerms',
    'due date': 'dueDate',
    'terms and conditions': 'termsAndConditions',
    'delivery date': 'deliveryDate',
    'variation description': 'variationDescription',
    'description of variations': 'variationDescription',
}

DATE_FIELDS = {'documentDate', 'dueDate', 'deliveryDate'}
AMOUNT_FIELDS = {'totalAmount', 'taxAmount', 'subtotalAmount'}

# Marker -> ISO code. Alternation order matters: US$ must win over S$.
CURRENCY_MARKERS = {
    'US$': 'USD',
    'S$': 'SGD',
    'SGD': 'SGD',
    'USD': 'USD',
    'MYR': 'MYR',
}

_CURRENCY_PATTERN = re.compile(
    r'(?<![A-Za-z])('
    + '|'.join(re.escape(m) for m in sorted(CURRENCY_MARKERS, key=len, reverse=True))
    + r')(?![A-Za-z])'
)

# "**Label**: value", "**Label:** value", optional list bullet
_PAIR_PATTERN = re.compile(
    r'^\s*(?:[-*+]\s+)?\*\*\s*([^*\n]+?)\s*\*\*\s*:?\s*(.*?)\s*$'
)

_DMY_PATTERN = re.compile(r'\b(\d{1,2})/(\d{1,2})/(\d{4})\b')


def _normalize_label(label: str) -> str:
    label = label.strip().rstrip(':').strip().lower()
    label = label.replace('.', '').replace('#', ' no ')
    return re.sub(r'\s+', ' ', label).strip()


def to_iso_date(value: str) -> str:
    """Rewrite the first DD/MM/YYYY date in value as YYYY-MM-DD; otherwise unchanged."""
    match = _DMY_PATTERN.search(value)
    if not match:
        return value
    day, month, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return value


def detect_currency(text: str) -> Optional[str]:
    """ISO code of the first currency marker in text order, or None."""
    match = _CURRENCY_PATTERN.search(text or '')
    if match:
        return CURRENCY_MARKERS[match.group(1)]
    return None


def parse_markdown_fields(text: str) -> Dict[str, Any]:
    """
    Extract bolded label/value pairs from a markdown answer.

    Returns:
        camelCase field dict; empty when no recognised label was found.
        The first occurrence of a field wins.
    """
    if not text:
        return {}

    fields: Dict[str, Any] = {}
    for line in text.splitlines():
        match = _PAIR_PATTERN.match(line)
        if not match:
            continue

        field = LABEL_FIELDS.get(_normalize_label(match.group(1)))
        value = match.group(2).strip().strip('*').strip()
        if field is None or not value or field in fields:
            continue

        if field in DATE_FIELDS:
            fields[field] = to_iso_date(value)
        elif field in AMOUNT_FIELDS:
            amount = coerce_number(value)
            if amount is not None:
                fields[field] = amount
        elif field == 'currency':
            fields[field] = detect_currency(value) or value.upper()
        else:
            fields[field] = value

    if fields and 'currency' not in fields:
        currency = detect_currency(text)
        if currency:
            fields['currency'] = currency

    return fields
