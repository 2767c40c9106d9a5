# ============================================================================
# src/procurement_ingestion/core/agent_base.py
# ============================================================================
"""
Abstract Base Agent Class

Pipeline stages that make decisions (classifier, extraction engine) inherit
from this base class.

Every agent gets:
- Configuration merged over the .env defaults
- A named logger
- Execution timing statistics
"""

from abc import ABC, abstractmethod
from typing import Dict, Any
from datetime import datetime
import logging

from ..core.config import merge_config


class Agent(ABC):
    """
    Abstract base class for pipeline agents.

    Agents never own job state: they receive what they need and return a
    result. Fatal errors propagate to the pipeline; degradations are
    handled inside the agent.
    """

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize agent with configuration.

        Args:
            config: Configuration dictionary (passed config overrides env defaults)
        """
        self.config = merge_config(config)
        self.logger = logging.getLogger(f"{__name__}.{self.get_name()}")
        self._execution_count = 0
        self._total_duration = 0.0

    @abstractmethod
    def get_name(self) -> str:
        """
        Return agent name for logging.

        Example: "DocumentClassifier"
        """
        pass

    def _record_execution(self, start_time: datetime) -> float:
        """Update timing metrics; returns the duration in seconds."""
        duration = (datetime.now() - start_time).total_seconds()
        self._execution_count += 1
        self._total_duration += duration
        return duration

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "agent": self.get_name(),
            "execution_count": self._execution_count,
            "total_duration": self._total_duration,
            "average_duration": (
                self._total_duration / self._execution_count
                if self._execution_count > 0
                else 0.0
            ),
        }
