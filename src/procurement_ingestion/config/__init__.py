# ============================================================================
# src/procurement_ingestion/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .vision_config import vision_settings
from .thresholds_config import threshold_settings
from .logging_config import logging_settings
