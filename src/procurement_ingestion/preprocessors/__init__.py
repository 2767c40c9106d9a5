# ============================================================================
# src/procurement_ingestion/preprocessors/__init__.py
# ============================================================================
"""
Document preprocessing: PDF rasterization and PNG normalization.
"""

from .rasterizer import Rasterizer, PdftoppmRasterizer, expected_output, find_output
from .format_normalizer import FormatNormalizer, NormalizedImage

__all__ = [
    'Rasterizer',
    'PdftoppmRasterizer',
    'expected_output',
    'find_output',
    'FormatNormalizer',
    'NormalizedImage',
]
