# ============================================================================
# src/procurement_ingestion/utils/image_utils.py
# ============================================================================
"""
Image utilities for the procurement ingestion engine.

Provides:
- Image format detection by magic bytes
- Bounded PNG re-encoding for vision model input
- Base64 encoding helpers
"""

from pathlib import Path
from typing import Optional, Tuple
import base64
import logging

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

# Raster formats the normalizer can re-encode
IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.tiff', '.tif', '.bmp', '.webp', '.gif'}

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'


def is_image_file(file_path: Path) -> bool:
    """Check if a file is an image based on extension."""
    return Path(file_path).suffix.lower() in IMAGE_EXTENSIONS


def detect_image_type(file_path: Path) -> Optional[str]:
    """
    Detect image type by reading magic bytes.

    Returns:
        Image type string ('png', 'jpeg', 'gif', 'tiff', 'bmp', 'webp') or None
    """
    try:
        with open(file_path, 'rb') as f:
            header = f.read(32)
    except OSError:
        return None

    if header.startswith(PNG_SIGNATURE):
        return 'png'
    if header.startswith(b'\xff\xd8\xff'):
        return 'jpeg'
    if header.startswith(b'GIF87a') or header.startswith(b'GIF89a'):
        return 'gif'
    if header.startswith(b'II*\x00') or header.startswith(b'MM\x00*'):
        return 'tiff'
    if header.startswith(b'BM'):
        return 'bmp'
    if header.startswith(b'RIFF') and header[8:12] == b'WEBP':
        return 'webp'
    return None


def fit_within(size: Tuple[int, int], max_dimension: int) -> Tuple[int, int]:
    """
    Target size that fits inside max_dimension x max_dimension.

    Aspect ratio is preserved and images are never enlarged.
    """
    width, height = size
    if width <= max_dimension and height <= max_dimension:
        return width, height
    ratio = min(max_dimension / width, max_dimension / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def save_bounded_png(source: Path, target: Path, max_dimension: int) -> Tuple[int, int]:
    """
    Re-encode a raster image as PNG bounded to max_dimension.

    Applies EXIF orientation first so phone photos come out upright.

    Returns:
        (width, height) of the written PNG
    """
    with Image.open(source) as img:
        img = ImageOps.exif_transpose(img)

        # PNG cannot store CMYK; palette images keep transparency via RGBA
        if img.mode == 'CMYK':
            img = img.convert('RGB')
        elif img.mode == 'P':
            img = img.convert('RGBA')

        new_size = fit_within(img.size, max_dimension)
        if new_size != img.size:
            logger.info(f"Resizing image {img.size[0]}x{img.size[1]} -> {new_size[0]}x{new_size[1]}")
            img = img.resize(new_size, Image.Resampling.LANCZOS)

        target.parent.mkdir(parents=True, exist_ok=True)
        img.save(target, format='PNG')
        return img.size


def encode_base64(data: bytes) -> str:
    """Base64-encode raw bytes for the vision model API."""
    return base64.b64encode(data).decode('utf-8')
