# ============================================================================
# src/procurement_ingestion/core/__init__.py
# ============================================================================
"""
Core components for the procurement ingestion engine.
"""

from .context import ExtractionJob, ClassificationResult, DocumentStatus
from .agent_base import Agent
from .evaluator import ConfidenceEvaluator, EvaluationResult, ReviewThresholds
from .document_store import ProcurementDocumentStore
