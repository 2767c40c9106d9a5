# ============================================================================
# src/procurement_ingestion/vision/__init__.py
# ============================================================================
"""
Vision model integration: backend clients and prompt templates.
"""

from .base import BaseVisionClient, BackendType, find_json_object, parse_json_object
from .ollama_client import OllamaVisionClient, DEFAULT_VISION_MODEL
from .client import create_client, clear_client_cache
from .prompts import (
    PromptTemplate,
    ProcurementPrompts,
    create_extraction_prompt,
    create_classification_prompt,
)

__all__ = [
    'BaseVisionClient',
    'BackendType',
    'find_json_object',
    'parse_json_object',
    'OllamaVisionClient',
    'DEFAULT_VISION_MODEL',
    'create_client',
    'clear_client_cache',
    'PromptTemplate',
    'ProcurementPrompts',
    'create_extraction_prompt',
    'create_classification_prompt',
]
