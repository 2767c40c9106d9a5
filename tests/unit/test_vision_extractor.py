# ============================================================================
# tests/unit/test_vision_extractor.py
# ============================================================================
"""
Unit tests for the vision extraction engine
"""

import pytest

from procurement_ingestion.constants import DocumentType
from procurement_ingestion.core.context import (
    InvoiceData,
    PurchaseOrderData,
    QuotationData,
    GenericDocumentData,
)
from procurement_ingestion.extractors import vision_extractor
from procurement_ingestion.extractors.vision_extractor import (
    VisionExtractionEngine,
    PARSE_JSON,
    PARSE_MARKDOWN,
    PARSE_NONE,
)
from procurement_ingestion.utils.exceptions import (
    ExtractionTimeoutError,
    ExtractionTransportError,
    VisionTimeoutError,
    VisionTransportError,
)

from conftest import extraction_json


IMAGE = "aW1hZ2U="


@pytest.fixture
def engine(pipeline_config, fake_vision):
    return VisionExtractionEngine(pipeline_config, vision_client=fake_vision)


class TestPromptBuilding:

    def test_project_name_embedded(self, engine):
        prompt = engine.build_prompt(DocumentType.SUPPLIER_INVOICE, "Marina Bay Tower")
        assert 'The current project this document is uploaded to is: "Marina Bay Tower"' in prompt
        assert "projectReference" in prompt

    def test_quotation_has_no_tax_breakdown(self, engine):
        prompt = engine.build_prompt(DocumentType.SUPPLIER_QUOTATION, "P")
        assert "taxAmount" not in prompt
        assert "subtotalAmount" not in prompt
        assert "termsAndConditions" in prompt

    def test_invoice_has_tax_breakdown(self, engine):
        prompt = engine.build_prompt(DocumentType.SUPPLIER_INVOICE, "P")
        assert "taxAmount" in prompt
        assert "subtotalAmount" in prompt
        assert "dueDate" in prompt

    def test_purchase_order_adds_customer_and_delivery(self, engine):
        for doc_type in (DocumentType.SUPPLIER_PO, DocumentType.CUSTOMER_PO):
            prompt = engine.build_prompt(doc_type, "P")
            assert "customerName" in prompt
            assert "deliveryDate" in prompt

    def test_variation_order_asks_for_description(self, engine):
        assert "variationDescription" in engine.build_prompt(DocumentType.VARIATION_ORDER, "P")

    def test_unknown_type_gets_generic_prompt(self, engine):
        prompt = engine.build_prompt(DocumentType.UNKNOWN, "P")
        assert "Analyze this document image" in prompt
        assert "lineItems" not in prompt

    def test_project_name_with_braces_is_safe(self, engine):
        prompt = engine.build_prompt(DocumentType.SUPPLIER_INVOICE, "Block {A}")
        assert '"Block {A}"' in prompt


class TestResponseParsing:

    def test_json_inside_prose(self, engine):
        text = extraction_json(documentNumber="INV-1", totalAmount="S$ 1,250.00", supplierName="Acme")

        data, method = engine.parse_response(text, DocumentType.SUPPLIER_INVOICE)

        assert method == PARSE_JSON
        assert isinstance(data, InvoiceData)
        assert data.total_amount == 1250.0

    def test_json_path_skips_markdown_parser(self, engine, monkeypatch):
        def fail(_text):
            raise AssertionError("markdown fallback must not run")
        monkeypatch.setattr(vision_extractor, "parse_markdown_fields", fail)

        text = extraction_json(documentNumber="Q-1", totalAmount=10, supplierName="Acme")
        data, method = engine.parse_response(text, DocumentType.SUPPLIER_QUOTATION)

        assert method == PARSE_JSON
        assert isinstance(data, QuotationData)

    def test_first_balanced_block_wins(self, engine):
        text = 'First {"documentNumber": "A-1", "note": "uses } inside"} then {"documentNumber": "B-2"}'

        data, _ = engine.parse_response(text, DocumentType.SUPPLIER_INVOICE)

        assert data.document_number == "A-1"

    def test_repairs_sloppy_json(self, engine):
        text = "{'documentNumber': 'PO-7', 'totalAmount': 99.5,}"

        data, method = engine.parse_response(text, DocumentType.SUPPLIER_PO)

        assert method == PARSE_JSON
        assert isinstance(data, PurchaseOrderData)
        assert data.document_number == "PO-7"

    def test_markdown_fallback(self, engine):
        text = "**PO Number**: PO-55\n**Date**: 02/01/2024\n**Total**: S$ 300"

        data, method = engine.parse_response(text, DocumentType.SUPPLIER_PO)

        assert method == PARSE_MARKDOWN
        assert data.document_number == "PO-55"
        assert data.document_date == "2024-01-02"
        assert data.currency == "SGD"

    def test_nothing_parsable_gives_empty_payload(self, engine):
        data, method = engine.parse_response("I cannot read this image.", DocumentType.SUPPLIER_INVOICE)

        assert method == PARSE_NONE
        assert data.is_empty()
        assert isinstance(data, InvoiceData)

    def test_empty_response(self, engine):
        data, method = engine.parse_response("", None)
        assert method == PARSE_NONE
        assert isinstance(data, GenericDocumentData)


class TestExtract:

    @pytest.mark.asyncio
    async def test_sampling_parameters(self, engine, fake_vision):
        fake_vision.extraction_text = extraction_json(documentNumber="INV-1")

        await engine.extract(IMAGE, DocumentType.SUPPLIER_INVOICE, "Marina Bay Tower")

        call = fake_vision.extraction_calls[0]
        assert call["temperature"] == 0.1
        assert call["top_p"] == 0.9
        assert call["image_base64"] == IMAGE
        assert "Marina Bay Tower" in call["prompt"]

    @pytest.mark.asyncio
    async def test_outcome(self, engine, fake_vision):
        fake_vision.extraction_text = extraction_json(
            documentNumber="INV-1", totalAmount=100, supplierName="Acme",
            lineItems=[{"description": "Cement", "quantity": "10", "unitPrice": 10, "amount": 100}, "junk"],
        )

        outcome = await engine.extract(IMAGE, DocumentType.SUPPLIER_INVOICE, "P")

        assert outcome.parse_method == PARSE_JSON
        assert outcome.model == "fake-vision"
        assert outcome.warnings == []
        assert len(outcome.data.line_items) == 1
        assert outcome.data.line_items[0].quantity == 10.0

    @pytest.mark.asyncio
    async def test_unparsable_answer_is_not_an_error(self, engine, fake_vision):
        fake_vision.extraction_text = "Sorry, the image is blurry."

        outcome = await engine.extract(IMAGE, DocumentType.SUPPLIER_INVOICE, "P")

        assert outcome.parse_method == PARSE_NONE
        assert outcome.warnings

    @pytest.mark.asyncio
    async def test_timeout_maps_to_extraction_timeout(self, engine, fake_vision):
        fake_vision.extraction_error = VisionTimeoutError("Vision model request timed out after 180.0s")

        with pytest.raises(ExtractionTimeoutError, match=r"^Vision model request timed out after 180.0s$"):
            await engine.extract(IMAGE, DocumentType.SUPPLIER_INVOICE, "P")

    @pytest.mark.asyncio
    async def test_transport_error_maps_to_extraction_transport(self, engine, fake_vision):
        fake_vision.extraction_error = VisionTransportError("Ollama error (500): out of memory")

        with pytest.raises(ExtractionTransportError) as exc_info:
            await engine.extract(IMAGE, DocumentType.SUPPLIER_INVOICE, "P")

        assert str(exc_info.value) == "Ollama error (500): out of memory"
        assert not isinstance(exc_info.value, ExtractionTimeoutError)
