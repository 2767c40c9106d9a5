# ============================================================================
# src/procurement_ingestion/core/config.py
# ============================================================================
"""
Centralized Configuration Management

Loads runtime configuration from environment variables (.env file) with
sensible defaults. Sampling and threshold tuning lives in the
``procurement_ingestion.config`` settings groups.

Usage:
    from procurement_ingestion.core.config import get_config, Config

    # Get full config dict
    config = get_config()
"""

import os
from pathlib import Path
from typing import Dict, Any
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv


def _load_dotenv() -> bool:
    """Load .env file if it exists (project root first, then cwd)."""
    env_path = Path(__file__).parent.parent.parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
        return True

    cwd_env = Path.cwd() / '.env'
    if cwd_env.exists():
        load_dotenv(cwd_env)
        return True

    return False


def _get_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes', 'on')


def _get_int(key: str, default: int = 0) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(key: str, default: float = 0.0) -> float:
    """Get float from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Config:
    """
    Configuration container with attribute access.

    All values are loaded from environment variables with defaults.
    """

    # General
    data_dir: str = field(default_factory=lambda: os.getenv('DATA_DIR', 'data'))

    # Vision backend (Ollama)
    backend: str = field(default_factory=lambda: os.getenv('BACKEND', 'ollama'))
    ollama_host: str = field(default_factory=lambda: os.getenv('OLLAMA_HOST', 'http://localhost:11434'))
    vision_model: str = field(default_factory=lambda: os.getenv('VISION_MODEL', 'llama3.2-vision'))
    # Per-call bound on the vision model request, classification and extraction alike
    vision_timeout: float = field(default_factory=lambda: _get_float('VISION_TIMEOUT', 180.0))

    # Rasterizer (poppler pdftoppm)
    rasterizer_command: str = field(default_factory=lambda: os.getenv('RASTERIZER_COMMAND', 'pdftoppm'))
    rasterizer_timeout: float = field(default_factory=lambda: _get_float('RASTERIZER_TIMEOUT', 60.0))
    rasterizer_resolution: int = field(default_factory=lambda: _get_int('RASTERIZER_RESOLUTION', 2000))

    # Normalization
    max_image_dimension: int = field(default_factory=lambda: _get_int('MAX_IMAGE_DIMENSION', 2000))
    work_dir: str = field(default_factory=lambda: os.getenv('WORK_DIR', 'data/work'))

    # Persistence
    db_path: str = field(default_factory=lambda: os.getenv('DB_PATH', 'data/procurement.db'))

    # Pipeline
    max_concurrent_jobs: int = field(default_factory=lambda: _get_int('MAX_CONCURRENT_JOBS', 4))
    use_vision_classification: bool = field(default_factory=lambda: _get_bool('USE_VISION_CLASSIFICATION', True))
    default_document_type: str = field(default_factory=lambda: os.getenv('DEFAULT_DOCUMENT_TYPE', 'SUPPLIER_INVOICE'))
    unknown_project_name: str = field(default_factory=lambda: os.getenv('UNKNOWN_PROJECT_NAME', 'Unknown Project'))

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for passing to components."""
        return {
            # General
            'data_dir': self.data_dir,

            # Vision backend
            'backend': self.backend,
            'ollama_host': self.ollama_host,
            'vision_model': self.vision_model,
            'vision_timeout': self.vision_timeout,

            # Rasterizer
            'rasterizer_command': self.rasterizer_command,
            'rasterizer_timeout': self.rasterizer_timeout,
            'rasterizer_resolution': self.rasterizer_resolution,

            # Normalization
            'max_image_dimension': self.max_image_dimension,
            'work_dir': self.work_dir,

            # Persistence
            'db_path': self.db_path,

            # Pipeline
            'max_concurrent_jobs': self.max_concurrent_jobs,
            'use_vision_classification': self.use_vision_classification,
            'default_document_type': self.default_document_type,
            'unknown_project_name': self.unknown_project_name,
        }


@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    """
    Get configuration dictionary.

    Cached for performance - call once and pass to components.
    Never mutate the returned dict; copy it first.

    Returns:
        Configuration dictionary with all settings
    """
    _load_dotenv()
    return Config().to_dict()


def merge_config(config: Dict[str, Any] = None) -> Dict[str, Any]:
    """Env defaults overlaid with a component's passed config (passed wins)."""
    return {**get_config(), **(config or {})}
