# ============================================================================
# src/procurement_ingestion/preprocessors/format_normalizer.py
# ============================================================================
"""
Format Normalizer

Turns an uploaded document into a single PNG, base64-encoded for the
vision model:
- PDF: first page rasterized, then bounded to max_image_dimension
- PNG: passed through byte-for-byte (nothing re-encoded or written)
- Other rasters (JPEG, WebP, TIFF, BMP, GIF): EXIF-corrected, downscaled
  to fit max_image_dimension (never upscaled), re-encoded as PNG

Intermediate files live in a job-scoped directory <work_dir>/<job_id>/
that is removed once the job is terminal.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import asyncio
import logging
import shutil

from PIL import Image

from .rasterizer import Rasterizer, PdftoppmRasterizer
from ..utils.exceptions import ConversionError
from ..utils.image_utils import (
    detect_image_type,
    encode_base64,
    fit_within,
    is_image_file,
    save_bounded_png,
)

logger = logging.getLogger(__name__)

PDF_MIME_TYPES = {'application/pdf', 'application/x-pdf'}


@dataclass
class NormalizedImage:
    """Vision-ready PNG for one job."""
    job_id: str
    image_base64: str
    source_path: Path
    image_path: Path                    # source itself on passthrough
    size: Optional[Tuple[int, int]]     # (width, height) when known
    passthrough: bool = False
    mime_type: str = 'image/png'


def _read_size(path: Path) -> Optional[Tuple[int, int]]:
    try:
        with Image.open(path) as img:
            return img.size
    except OSError:
        return None


class FormatNormalizer:
    """
    Converts PDFs and raster images into a bounded PNG.

    Config options:
        work_dir: Root for job-scoped intermediates (default: data/work)
        rasterizer_resolution: pdftoppm -scale-to value (default: 2000)
        max_image_dimension: Bounding box edge in pixels (default: 2000)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, rasterizer: Optional[Rasterizer] = None):
        self.config = config or {}
        self.work_dir = Path(self.config.get('work_dir', 'data/work'))
        self.resolution = int(self.config.get('rasterizer_resolution', 2000))
        self.max_dimension = int(self.config.get('max_image_dimension', 2000))
        self.rasterizer = rasterizer or PdftoppmRasterizer(self.config)

    def job_dir(self, job_id: str) -> Path:
        return self.work_dir / job_id

    def _source_kind(self, file_path: Path, mime_type: str) -> str:
        """'pdf', 'image' or '' (unsupported)."""
        mime = (mime_type or '').split(';')[0].strip().lower()
        if mime in PDF_MIME_TYPES:
            return 'pdf'
        if mime.startswith('image/'):
            return 'image'
        # Browsers sometimes send no type or application/octet-stream
        if mime in ('', 'application/octet-stream'):
            if file_path.suffix.lower() == '.pdf':
                return 'pdf'
            if is_image_file(file_path):
                return 'image'
        return ''

    async def normalize(self, file_path: Path, mime_type: str, job_id: str) -> NormalizedImage:
        """
        Produce the base64 PNG for a job.

        Raises:
            ConversionError: unsupported type, unreadable image, or the
                rasterizer produced no output (fatal for the job)
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConversionError(f"Source file not found: {file_path.name}")

        kind = self._source_kind(file_path, mime_type)
        if kind == 'pdf':
            return await self._normalize_pdf(file_path, job_id)
        if kind == 'image':
            if detect_image_type(file_path) == 'png':
                return await self._passthrough(file_path, job_id)
            return await self._reencode(file_path, job_id)

        raise ConversionError(f"Unsupported document type '{mime_type}' for {file_path.name}")

    async def _passthrough(self, file_path: Path, job_id: str) -> NormalizedImage:
        data = await asyncio.to_thread(file_path.read_bytes)
        size = await asyncio.to_thread(_read_size, file_path)
        logger.debug(f"PNG passthrough for {file_path.name} ({len(data)} bytes)")
        return NormalizedImage(
            job_id=job_id,
            image_base64=encode_base64(data),
            source_path=file_path,
            image_path=file_path,
            size=size,
            passthrough=True,
        )

    async def _reencode(self, file_path: Path, job_id: str) -> NormalizedImage:
        target = self.job_dir(job_id) / 'normalized.png'
        try:
            size = await asyncio.to_thread(save_bounded_png, file_path, target, self.max_dimension)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise ConversionError(f"Could not read image {file_path.name}: {e}") from e

        data = await asyncio.to_thread(target.read_bytes)
        return NormalizedImage(
            job_id=job_id,
            image_base64=encode_base64(data),
            source_path=file_path,
            image_path=target,
            size=size,
        )

    async def _normalize_pdf(self, file_path: Path, job_id: str) -> NormalizedImage:
        job_dir = self.job_dir(job_id)
        page_png = await self.rasterizer.rasterize(file_path, job_dir / 'page', self.resolution)

        image_path = page_png
        size = await asyncio.to_thread(_read_size, page_png)
        if size is None:
            raise ConversionError(f"PDF conversion produced an unreadable image for {file_path.name}")

        if fit_within(size, self.max_dimension) != size:
            image_path = job_dir / 'normalized.png'
            try:
                size = await asyncio.to_thread(save_bounded_png, page_png, image_path, self.max_dimension)
            except (OSError, ValueError) as e:
                raise ConversionError(f"Could not bound rasterized page of {file_path.name}: {e}") from e

        data = await asyncio.to_thread(image_path.read_bytes)
        logger.info(f"Rasterized {file_path.name} -> {size[0]}x{size[1]} PNG")
        return NormalizedImage(
            job_id=job_id,
            image_base64=encode_base64(data),
            source_path=file_path,
            image_path=image_path,
            size=size,
        )

    def release(self, normalized: NormalizedImage) -> None:
        """Delete the intermediates of a normalized image (never the upload)."""
        self.cleanup_job(normalized.job_id)

    def cleanup_job(self, job_id: str) -> None:
        """Remove <work_dir>/<job_id>/ if it exists."""
        job_dir = self.job_dir(job_id)
        if not job_dir.exists():
            return
        try:
            shutil.rmtree(job_dir)
        except OSError as e:
            logger.warning(f"Could not remove work directory {job_dir}: {e}")
