# ============================================================================
# tests/unit/test_document_store.py
# ============================================================================
"""
Tests for the SQLite procurement document store
"""

import pytest

from procurement_ingestion.constants import DocumentType
from procurement_ingestion.core.context import DocumentStatus, build_extracted_data
from procurement_ingestion.utils.exceptions import DocumentNotFound, InvalidStatusTransition


@pytest.fixture
def registered(store):
    store.register_project("proj-1", "Marina Bay Tower")
    store.register_document("doc-1", "proj-1", "/uploads/INV-1.pdf", "application/pdf")
    return store


def sample_data():
    return build_extracted_data(DocumentType.SUPPLIER_INVOICE, {
        "documentNumber": "INV-1", "supplierName": "Acme", "totalAmount": "S$ 250",
    })


class TestRegistration:

    def test_new_document_is_pending(self, registered):
        row = registered.get("doc-1")

        assert row["status"] == "PENDING_EXTRACTION"
        assert row["fileName"] == "INV-1.pdf"
        assert row["extractedData"] is None
        assert row["extractionConfidence"] is None
        assert row["projectMismatch"] is None

    def test_project_name(self, registered):
        assert registered.get_project_name_sync("proj-1") == "Marina Bay Tower"
        assert registered.get_project_name_sync("nope") is None

    def test_project_rename(self, registered):
        registered.register_project("proj-1", "Marina Bay Tower Phase 2")
        assert registered.get_project_name_sync("proj-1") == "Marina Bay Tower Phase 2"

    def test_unknown_document(self, store):
        assert store.get("missing") is None


class TestTransitions:

    @pytest.mark.asyncio
    async def test_happy_path(self, registered):
        await registered.set_status("doc-1", DocumentStatus.EXTRACTING)
        assert registered.get("doc-1")["status"] == "EXTRACTING"

        await registered.write_extraction_result("doc-1", sample_data(), 100.0, False)

        row = registered.get("doc-1")
        assert row["status"] == "EXTRACTED"
        assert row["extractionConfidence"] == 100.0
        assert row["projectMismatch"] is False
        assert row["documentType"] == "SUPPLIER_INVOICE"
        assert row["extractedData"]["totalAmount"] == 250.0
        assert row["errorMessage"] is None

    @pytest.mark.asyncio
    async def test_failure(self, registered):
        await registered.set_status("doc-1", "EXTRACTING")
        await registered.write_failure("doc-1", "PDF conversion failed: no output image produced for INV-1.pdf")

        row = registered.get("doc-1")
        assert row["status"] == "FAILED"
        assert row["errorMessage"].startswith("PDF conversion failed")
        assert row["extractedData"] is None
        assert row["extractionConfidence"] is None

    def test_pending_may_fail_directly(self, registered):
        registered.write_failure_sync("doc-1", "Source file not found")
        assert registered.get("doc-1")["status"] == "FAILED"

    def test_payload_requires_extracting(self, registered):
        with pytest.raises(InvalidStatusTransition) as exc_info:
            registered.write_extraction_result_sync("doc-1", sample_data(), 100.0, False)

        assert exc_info.value.current == "PENDING_EXTRACTION"
        assert registered.get("doc-1")["extractedData"] is None

    def test_terminal_status_via_set_status_rejected(self, registered):
        registered.set_status_sync("doc-1", DocumentStatus.EXTRACTING)
        with pytest.raises(InvalidStatusTransition):
            registered.set_status_sync("doc-1", DocumentStatus.EXTRACTED)
        assert registered.get("doc-1")["status"] == "EXTRACTING"

    def test_extracting_twice_rejected(self, registered):
        registered.set_status_sync("doc-1", DocumentStatus.EXTRACTING)
        with pytest.raises(InvalidStatusTransition):
            registered.set_status_sync("doc-1", DocumentStatus.EXTRACTING)

    def test_terminal_rows_are_immutable(self, registered):
        registered.set_status_sync("doc-1", DocumentStatus.EXTRACTING)
        registered.write_extraction_result_sync("doc-1", sample_data(), 66.67, True)
        before = registered.get("doc-1")

        with pytest.raises(InvalidStatusTransition):
            registered.write_failure_sync("doc-1", "late failure")
        with pytest.raises(InvalidStatusTransition):
            registered.set_status_sync("doc-1", DocumentStatus.EXTRACTING)
        with pytest.raises(InvalidStatusTransition):
            registered.write_extraction_result_sync("doc-1", sample_data(), 0.0, False)

        assert registered.get("doc-1") == before

    def test_confidence_range_checked(self, registered):
        registered.set_status_sync("doc-1", DocumentStatus.EXTRACTING)
        with pytest.raises(ValueError):
            registered.write_extraction_result_sync("doc-1", sample_data(), 120.0, False)
        assert registered.get("doc-1")["status"] == "EXTRACTING"

    def test_unknown_document_transition(self, store):
        with pytest.raises(DocumentNotFound):
            store.set_status_sync("missing", DocumentStatus.EXTRACTING)

    def test_registered_type_kept_when_payload_has_none(self, store):
        store.register_document("doc-2", "proj-1", "a.png", "image/png", document_type="VARIATION_ORDER")
        store.set_status_sync("doc-2", DocumentStatus.EXTRACTING)
        store.write_extraction_result_sync("doc-2", {"documentNumber": "VO-1"}, 33.33, False)

        row = store.get("doc-2")
        assert row["documentType"] == "VARIATION_ORDER"
        assert row["extractedData"] == {"documentNumber": "VO-1"}


class TestListing:

    def test_filters(self, registered):
        registered.register_document("doc-2", "proj-1", "b.pdf", "application/pdf")
        registered.register_document("doc-3", "proj-2", "c.pdf", "application/pdf")
        registered.write_failure_sync("doc-2", "boom")

        assert {r["documentId"] for r in registered.list_documents(project_id="proj-1")} == {"doc-1", "doc-2"}
        assert [r["documentId"] for r in registered.list_documents(status="FAILED")] == ["doc-2"]
        assert len(registered.list_documents(limit=1)) == 1
