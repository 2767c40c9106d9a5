# ============================================================================
# tests/unit/test_format_normalizer.py
# ============================================================================
"""
Tests for the format normalizer
"""

import base64
import io

import pytest
from PIL import Image

from procurement_ingestion.preprocessors.format_normalizer import FormatNormalizer
from procurement_ingestion.utils.exceptions import ConversionError
from procurement_ingestion.utils.image_utils import PNG_SIGNATURE, fit_within

from conftest import FakeRasterizer, make_image


def decode(normalized) -> Image.Image:
    return Image.open(io.BytesIO(base64.b64decode(normalized.image_base64)))


class TestPngPassthrough:

    @pytest.mark.asyncio
    async def test_png_bytes_unchanged(self, normalizer, png_file):
        normalized = await normalizer.normalize(png_file, "image/png", "job-1")

        assert base64.b64decode(normalized.image_base64) == png_file.read_bytes()
        assert normalized.passthrough is True
        assert normalized.image_path == png_file
        assert normalized.size == (1000, 1400)

    @pytest.mark.asyncio
    async def test_passthrough_writes_nothing(self, normalizer, png_file):
        await normalizer.normalize(png_file, "image/png", "job-1")
        assert not normalizer.job_dir("job-1").exists()

    @pytest.mark.asyncio
    async def test_normalizing_twice_is_idempotent(self, normalizer, png_file):
        first = await normalizer.normalize(png_file, "image/png", "job-1")
        second = await normalizer.normalize(png_file, "image/png", "job-2")
        assert first.image_base64 == second.image_base64

    @pytest.mark.asyncio
    async def test_png_label_on_jpeg_bytes_is_reencoded(self, normalizer, uploads):
        fake_png = make_image(uploads / "mislabelled.png", fmt="JPEG")

        normalized = await normalizer.normalize(fake_png, "image/png", "job-1")

        assert normalized.passthrough is False
        assert base64.b64decode(normalized.image_base64).startswith(PNG_SIGNATURE)


class TestRasterReencode:

    @pytest.mark.asyncio
    async def test_jpeg_becomes_png(self, normalizer, jpeg_file):
        normalized = await normalizer.normalize(jpeg_file, "image/jpeg", "job-1")

        assert base64.b64decode(normalized.image_base64).startswith(PNG_SIGNATURE)
        assert decode(normalized).format == "PNG"
        assert normalized.image_path.parent == normalizer.job_dir("job-1")

    @pytest.mark.asyncio
    async def test_small_image_not_upscaled(self, normalizer, jpeg_file):
        normalized = await normalizer.normalize(jpeg_file, "image/jpeg", "job-1")
        assert decode(normalized).size == (800, 600)

    @pytest.mark.asyncio
    async def test_large_image_bounded_keeping_aspect(self, normalizer, large_jpeg_file):
        normalized = await normalizer.normalize(large_jpeg_file, "image/jpeg", "job-1")

        assert decode(normalized).size == (2000, 1000)
        assert normalized.size == (2000, 1000)

    @pytest.mark.asyncio
    async def test_cmyk_image_converted(self, normalizer, uploads):
        cmyk = make_image(uploads / "print.jpg", size=(300, 200), fmt="JPEG", mode="CMYK")

        normalized = await normalizer.normalize(cmyk, "image/jpeg", "job-1")

        assert decode(normalized).mode == "RGB"

    @pytest.mark.asyncio
    async def test_unreadable_image_is_conversion_error(self, normalizer, uploads):
        broken = uploads / "broken.jpg"
        broken.write_bytes(b"not an image at all")

        with pytest.raises(ConversionError):
            await normalizer.normalize(broken, "image/jpeg", "job-1")


class TestPdf:

    @pytest.mark.asyncio
    async def test_pdf_rasterized_into_job_dir(self, normalizer, fake_rasterizer, pdf_file):
        normalized = await normalizer.normalize(pdf_file, "application/pdf", "job-1")

        input_path, prefix, resolution = fake_rasterizer.calls[0]
        assert input_path == pdf_file
        assert prefix.parent == normalizer.job_dir("job-1")
        assert resolution == 2000
        assert decode(normalized).size == (1414, 2000)

    @pytest.mark.asyncio
    async def test_oversized_raster_output_is_bounded(self, pipeline_config, pdf_file):
        normalizer = FormatNormalizer(pipeline_config, rasterizer=FakeRasterizer(size=(2400, 3000)))

        normalized = await normalizer.normalize(pdf_file, "application/pdf", "job-1")

        assert decode(normalized).size == (1600, 2000)

    @pytest.mark.asyncio
    async def test_no_rasterizer_output_is_conversion_error(self, pipeline_config, pdf_file):
        normalizer = FormatNormalizer(pipeline_config, rasterizer=FakeRasterizer(produce_output=False))

        with pytest.raises(ConversionError, match="no output image"):
            await normalizer.normalize(pdf_file, "application/pdf", "job-1")

    @pytest.mark.asyncio
    async def test_pdf_detected_from_extension_without_mime(self, normalizer, fake_rasterizer, pdf_file):
        await normalizer.normalize(pdf_file, "application/octet-stream", "job-1")
        assert len(fake_rasterizer.calls) == 1


class TestErrorsAndCleanup:

    @pytest.mark.asyncio
    async def test_unsupported_mime_type(self, normalizer, uploads):
        sheet = uploads / "budget.xlsx"
        sheet.write_bytes(b"PK\x03\x04")

        with pytest.raises(ConversionError, match="Unsupported"):
            await normalizer.normalize(sheet, "application/vnd.ms-excel", "job-1")

    @pytest.mark.asyncio
    async def test_missing_source_file(self, normalizer, uploads):
        with pytest.raises(ConversionError, match="not found"):
            await normalizer.normalize(uploads / "gone.pdf", "application/pdf", "job-1")

    @pytest.mark.asyncio
    async def test_release_removes_job_dir_but_not_source(self, normalizer, pdf_file):
        normalized = await normalizer.normalize(pdf_file, "application/pdf", "job-1")
        assert normalizer.job_dir("job-1").exists()

        normalizer.release(normalized)

        assert not normalizer.job_dir("job-1").exists()
        assert pdf_file.exists()

    def test_cleanup_of_unknown_job_is_noop(self, normalizer):
        normalizer.cleanup_job("never-ran")


@pytest.mark.parametrize("size,expected", [
    ((800, 600), (800, 600)),
    ((2000, 2000), (2000, 2000)),
    ((4000, 1000), (2000, 500)),
    ((1000, 5000), (400, 2000)),
])
def test_fit_within(size, expected):
    assert fit_within(size, 2000) == expected
