# ============================================================================
# src/procurement_ingestion/vision/base.py
# ============================================================================
"""
Base Vision Client Interface

Defines the abstract interface that all vision-model backends must implement.
The pipeline treats the backend as an opaque text generator: an image plus a
prompt in, free-form text out. No schema is enforced by the transport.

Supported backends:
- ollama: Ollama server (/api/generate with images)
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from enum import Enum
import logging
import json

from json_repair import repair_json


class BackendType(Enum):
    """Supported inference backends."""
    OLLAMA = "ollama"    # Ollama server


def find_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} block in text, or None.

    Braces inside JSON string literals are ignored. An unterminated block
    (truncated generation) returns everything from the first '{' so the
    caller can still try to repair it.
    """
    if not text:
        return None

    start_idx = text.find('{')
    if start_idx == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start_idx, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return text[start_idx:i + 1]

    return text[start_idx:]


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse the first JSON object embedded in model output.

    Vision models often wrap JSON in prose or code fences:
    "Here is the extracted data: ```json {"key": "value"} ```"

    The first balanced block is parsed directly, then with json_repair
    (single quotes, trailing commas, truncation). Only a non-empty dict
    counts as success.
    """
    json_str = find_json_object(text)
    if json_str is None:
        return None

    try:
        parsed = json.loads(json_str)
        if isinstance(parsed, dict) and parsed:
            return parsed
    except json.JSONDecodeError:
        pass

    try:
        repaired = repair_json(json_str, return_objects=True)
    except Exception:
        # json_repair raises assorted errors on pathological input
        return None
    if isinstance(repaired, dict) and repaired:
        return repaired
    return None


class BaseVisionClient(ABC):
    """
    Abstract base class for vision-model inference clients.

    All backends must implement:
    - generate(): Async image + prompt generation
    - health_check(): Verify backend is available
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        # Common statistics
        self._inference_count = 0
        self._failure_count = 0
        self._total_inference_time = 0.0

    @property
    @abstractmethod
    def backend_type(self) -> BackendType:
        """Return the backend type."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier."""
        pass

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        image_base64: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Generate a response for a prompt about one image.

        Args:
            prompt: Instruction text
            image_base64: Base64-encoded PNG
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            top_p: Nucleus sampling bound

        Returns:
            {
                "text": str,              # Generated text
                "model": str,             # Model identifier
                "backend": str,           # Backend type
                "inference_time": float,  # Seconds
            }

        Raises:
            VisionTimeoutError: request exceeded the configured timeout
            VisionTransportError: connection failure or error status
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Check if the backend is available and ready.

        Returns:
            {
                "healthy": bool,
                "backend": str,
                "model": str,
                "details": str
            }
        """
        pass

    async def close(self):
        """Release transport resources."""
        pass

    def get_statistics(self) -> Dict[str, Any]:
        """Get inference statistics."""
        avg_time = (
            self._total_inference_time / self._inference_count
            if self._inference_count > 0
            else 0.0
        )

        return {
            "backend": self.backend_type.value,
            "model": self.model_name,
            "inference_count": self._inference_count,
            "failure_count": self._failure_count,
            "total_inference_time": self._total_inference_time,
            "average_inference_time": avg_time,
        }
