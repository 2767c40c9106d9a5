# ============================================================================
# src/procurement_ingestion/vision/client.py
# ============================================================================
"""
Vision Client Factory

Usage:
    from procurement_ingestion.vision.client import create_client

    client = create_client({'ollama_host': 'http://gpu-box:11434'})
    result = await client.generate("What document is this?", image_b64)
"""

from typing import Dict, Any, Optional
import logging

from .base import BaseVisionClient
from .ollama_client import OllamaVisionClient
from ..core.config import merge_config
from ..utils.exceptions import ConfigurationError


# Default backend
DEFAULT_BACKEND = "ollama"

# Cache keyed by every setting the client reads, so clients sharing a host,
# model, timeout and sampling defaults share one HTTP session.
_client_cache: Dict[tuple, BaseVisionClient] = {}

_logger = logging.getLogger(__name__)


def create_client(config: Optional[Dict[str, Any]] = None) -> BaseVisionClient:
    """
    Factory function to create a vision client.

    Configuration is loaded from .env and merged with any passed config.
    Passed config values take precedence over .env values.

    Args:
        config: Configuration dict:
            - backend: "ollama" (default)
            - ollama_host: Server URL
            - vision_model: Model name
            - vision_timeout: Per-request timeout in seconds

    Returns:
        Configured vision client instance (cached per settings)

    Raises:
        ConfigurationError: If backend type is not supported
    """
    config = merge_config(config)
    backend = str(config.get('backend', DEFAULT_BACKEND)).lower()

    if backend != "ollama":
        raise ConfigurationError(
            f"Unknown vision backend: {backend}. Supported backends: ollama"
        )

    cache_key = (
        backend,
        config.get('ollama_host'),
        config.get('vision_model'),
        config.get('vision_timeout'),
        config.get('max_tokens'),
        config.get('temperature'),
        config.get('top_p'),
    )
    if cache_key in _client_cache:
        _logger.debug(f"Reusing cached {backend} client: {cache_key}")
        return _client_cache[cache_key]

    client = OllamaVisionClient(config)
    _client_cache[cache_key] = client
    return client


def clear_client_cache():
    """Forget cached clients (tests, config reload)."""
    _client_cache.clear()
