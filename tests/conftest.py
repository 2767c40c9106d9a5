# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.

No network and no poppler needed: the vision model and the PDF
rasterizer are replaced by fakes.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from procurement_ingestion.core.document_store import ProcurementDocumentStore
from procurement_ingestion.preprocessors.format_normalizer import FormatNormalizer
from procurement_ingestion.preprocessors.rasterizer import Rasterizer, expected_output
from procurement_ingestion.utils.exceptions import ConversionError
from procurement_ingestion.vision.base import BaseVisionClient, BackendType


CLASSIFICATION_MARKER = "Determine which of these types"


class FakeVisionClient(BaseVisionClient):
    """
    Scripted vision backend.

    Classification and extraction calls are told apart by prompt text.
    Errors are raised instead of answering when set.
    """

    def __init__(
        self,
        extraction_text: str = "{}",
        classification_text: Optional[str] = None,
        extraction_error: Optional[Exception] = None,
        classification_error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        super().__init__({})
        self.extraction_text = extraction_text
        self.classification_text = classification_text
        self.extraction_error = extraction_error
        self.classification_error = classification_error
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    @property
    def model_name(self) -> str:
        return "fake-vision"

    @property
    def extraction_calls(self) -> List[Dict[str, Any]]:
        return [c for c in self.calls if not c["classification"]]

    @property
    def classification_calls(self) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["classification"]]

    async def generate(self, prompt, image_base64, max_tokens=None, temperature=None, top_p=None):
        is_classification = CLASSIFICATION_MARKER in prompt
        self.calls.append({
            "prompt": prompt,
            "image_base64": image_base64,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "top_p": top_p,
            "classification": is_classification,
        })

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        if is_classification:
            if self.classification_error:
                raise self.classification_error
            text = self.classification_text
            if text is None:
                raise ConnectionError("no classification scripted")
        else:
            if self.extraction_error:
                raise self.extraction_error
            text = self.extraction_text

        return {"text": text, "model": self.model_name, "backend": "ollama", "inference_time": 0.0}

    async def health_check(self) -> Dict[str, Any]:
        return {"healthy": True, "backend": "ollama", "model": self.model_name, "details": "fake"}


class FakeRasterizer(Rasterizer):
    """Writes a blank PNG where pdftoppm would, or nothing at all."""

    def __init__(self, produce_output: bool = True, size=(1414, 2000)):
        self.produce_output = produce_output
        self.size = size
        self.calls = []

    async def rasterize(self, input_path: Path, output_prefix: Path, resolution: int) -> Path:
        self.calls.append((Path(input_path), Path(output_prefix), resolution))
        output = expected_output(output_prefix)
        if self.produce_output:
            output.parent.mkdir(parents=True, exist_ok=True)
            Image.new("RGB", self.size, "white").save(output, format="PNG")
        if not output.exists():
            raise ConversionError(
                f"PDF conversion failed: no output image produced for {Path(input_path).name}"
            )
        return output


def make_image(path: Path, size=(800, 600), fmt="PNG", mode="RGB") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, "white").save(path, format=fmt)
    return path


def extraction_json(**fields) -> str:
    """Model answer wrapping a JSON object in prose, the way vision models do."""
    return "Here is the extracted data:\n```json\n" + json.dumps(fields) + "\n```"


@pytest.fixture
def work_dir(tmp_path):
    return tmp_path / "work"


@pytest.fixture
def pipeline_config(work_dir):
    return {
        "work_dir": str(work_dir),
        "use_vision_classification": True,
        "default_document_type": "SUPPLIER_INVOICE",
        "max_image_dimension": 2000,
        "rasterizer_resolution": 2000,
    }


@pytest.fixture
def store(tmp_path):
    return ProcurementDocumentStore(tmp_path / "procurement.db")


@pytest.fixture
def fake_vision():
    return FakeVisionClient()


@pytest.fixture
def fake_rasterizer():
    return FakeRasterizer()


@pytest.fixture
def normalizer(pipeline_config, fake_rasterizer):
    return FormatNormalizer(pipeline_config, rasterizer=fake_rasterizer)


@pytest.fixture
def uploads(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def png_file(uploads):
    return make_image(uploads / "scan.png", size=(1000, 1400))


@pytest.fixture
def jpeg_file(uploads):
    return make_image(uploads / "photo.jpg", size=(800, 600), fmt="JPEG")


@pytest.fixture
def large_jpeg_file(uploads):
    return make_image(uploads / "large.jpg", size=(3000, 1500), fmt="JPEG")


@pytest.fixture
def pdf_file(uploads):
    path = uploads / "document.pdf"
    path.write_bytes(b"%PDF-1.4\n% test fixture, never parsed\n%%EOF\n")
    return path
