# ============================================================================
# src/procurement_ingestion/vision/ollama_client.py
# ============================================================================
"""
Ollama Vision Client

Uses Ollama's /api/generate endpoint with an attached image. Ollama handles
model management and quantization and provides a simple HTTP API.

Setup:
    1. Install Ollama: https://ollama.ai
    2. Pull model: ollama pull llama3.2-vision
    3. Start server: ollama serve (or it runs automatically)
"""

import aiohttp
import asyncio
from typing import Dict, Any, Optional
from datetime import datetime

from .base import BaseVisionClient, BackendType
from ..config import vision_settings
from ..utils.exceptions import VisionTimeoutError, VisionTransportError


# Default Ollama vision model
DEFAULT_VISION_MODEL = "llama3.2-vision"


class OllamaVisionClient(BaseVisionClient):
    """
    Ollama-based vision inference client.

    Config options:
        ollama_host: Ollama server URL (default: http://localhost:11434)
        vision_model: Model name (default: llama3.2-vision)
        vision_timeout: Per-request timeout in seconds (default: 180)
        temperature / top_p / max_tokens: sampling defaults (see VisionSettings)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        # Ollama configuration
        self.host = self.config.get('ollama_host', 'http://localhost:11434').rstrip('/')
        self._model_name = self.config.get('vision_model', DEFAULT_VISION_MODEL)

        # Generation defaults
        self.default_max_tokens = self.config.get('max_tokens', vision_settings.VISION_MAX_TOKENS)
        self.default_temperature = self.config.get('temperature', vision_settings.VISION_TEMPERATURE)
        self.default_top_p = self.config.get('top_p', vision_settings.VISION_TOP_P)
        self.request_timeout = float(self.config.get('vision_timeout', 180))

        # HTTP session (created lazily, tied to event loop)
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.logger.info(f"Initialized Ollama vision client: {self.host} / {self._model_name}")

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    @property
    def model_name(self) -> str:
        return self._model_name

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session for current event loop."""
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        # Check if we need a new session (none exists, closed, or different event loop)
        needs_new_session = (
            self._session is None
            or self._session.closed
            or self._session_loop is None
            or self._session_loop != current_loop
            or (self._session_loop is not None and self._session_loop.is_closed())
        )

        if needs_new_session:
            if self._session is not None and not self._session.closed:
                try:
                    await self._session.close()
                except Exception as e:
                    self.logger.debug(f"Ignoring error closing stale session: {e}")

            # Overall bound is enforced per request with asyncio.wait_for
            timeout = aiohttp.ClientTimeout(total=None, sock_connect=30)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._session_loop = current_loop

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    async def health_check(self) -> Dict[str, Any]:
        """
        Check if Ollama server is running and the vision model is available.
        """
        try:
            session = await self._get_session()

            async def _list_models():
                async with session.get(f"{self.host}/api/tags") as response:
                    if response.status != 200:
                        return response.status, None
                    return response.status, await response.json()

            status, data = await asyncio.wait_for(_list_models(), timeout=min(self.request_timeout, 10))

            if data is None:
                return {
                    "healthy": False,
                    "backend": "ollama",
                    "model": self._model_name,
                    "details": f"Ollama server returned status {status}"
                }

            models = [m.get('name', '') for m in data.get('models', [])]
            model_available = any(self._model_name in m for m in models)

            if not model_available:
                return {
                    "healthy": False,
                    "backend": "ollama",
                    "model": self._model_name,
                    "details": f"Model not found. Available: {models}. Run: ollama pull {self._model_name}"
                }

            return {
                "healthy": True,
                "backend": "ollama",
                "model": self._model_name,
                "details": "Ollama server running and model available"
            }

        except aiohttp.ClientConnectorError:
            return {
                "healthy": False,
                "backend": "ollama",
                "model": self._model_name,
                "details": f"Cannot connect to Ollama at {self.host}. Is it running? Try: ollama serve"
            }
        except asyncio.TimeoutError:
            return {
                "healthy": False,
                "backend": "ollama",
                "model": self._model_name,
                "details": f"Ollama at {self.host} did not answer the health check in time"
            }
        except Exception as e:
            return {
                "healthy": False,
                "backend": "ollama",
                "model": self._model_name,
                "details": f"Health check failed: {str(e)}"
            }

    def build_payload(
        self,
        prompt: str,
        image_base64: str,
        max_tokens: int,
        temperature: float,
        top_p: float
    ) -> Dict[str, Any]:
        """Request body for /api/generate."""
        return {
            "model": self._model_name,
            "prompt": prompt,
            "images": [image_base64],
            "stream": False,
            "options": {
                "num_predict": max_tokens,
                "temperature": temperature,
                "top_p": top_p,
            }
        }

    async def generate(
        self,
        prompt: str,
        image_base64: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Generate a response about one image using Ollama.

        Returns:
            Response dict with text, tokens, timing info
        """
        start_time = datetime.now()

        max_tokens = max_tokens or self.default_max_tokens
        temperature = temperature if temperature is not None else self.default_temperature
        top_p = top_p if top_p is not None else self.default_top_p

        payload = self.build_payload(prompt, image_base64, max_tokens, temperature, top_p)

        try:
            session = await self._get_session()

            async def _do_request():
                async with session.post(
                    f"{self.host}/api/generate",
                    json=payload
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise VisionTransportError(f"Ollama error ({response.status}): {error_text}")
                    try:
                        body = await response.json()
                    except ValueError as e:
                        raise VisionTransportError(f"Ollama returned a malformed response body: {e}") from e
                    if not isinstance(body, dict):
                        raise VisionTransportError(
                            f"Ollama returned an unexpected response body: {type(body).__name__}"
                        )
                    return body

            data = await asyncio.wait_for(_do_request(), timeout=self.request_timeout)

        except asyncio.TimeoutError:
            self._failure_count += 1
            self.logger.error(
                f"Ollama request timed out after {self.request_timeout}s "
                f"(model={self._model_name}, max_tokens={max_tokens})"
            )
            raise VisionTimeoutError(
                f"Vision model request timed out after {self.request_timeout}s"
            )
        except aiohttp.ClientConnectorError:
            self._failure_count += 1
            raise VisionTransportError(
                f"Cannot connect to Ollama at {self.host}. "
                "Make sure Ollama is running: ollama serve"
            )
        except VisionTransportError:
            self._failure_count += 1
            raise
        except aiohttp.ClientError as e:
            self._failure_count += 1
            self.logger.error(f"Ollama inference failed: {e}")
            raise VisionTransportError(f"Ollama request failed: {e}") from e

        generated_text = data.get('response', '') or ''
        inference_time = (datetime.now() - start_time).total_seconds()

        prompt_tokens = data.get('prompt_eval_count', 0)
        generated_tokens = data.get('eval_count', 0)

        self._inference_count += 1
        self._total_inference_time += inference_time

        self.logger.info(
            f"Generated {generated_tokens} tokens in {inference_time:.2f}s "
            f"(model={self._model_name})"
        )

        return {
            "text": generated_text.strip(),
            "prompt_tokens": prompt_tokens,
            "generated_tokens": generated_tokens,
            "model": self._model_name,
            "backend": "ollama",
            "inference_time": inference_time,
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Get inference statistics."""
        stats = super().get_statistics()
        stats["ollama_host"] = self.host
        stats["request_timeout"] = self.request_timeout
        return stats
