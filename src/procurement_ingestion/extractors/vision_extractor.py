# ============================================================================
# src/procurement_ingestion/extractors/vision_extractor.py
# ============================================================================
"""
Vision Extraction Engine

Extracts structured commercial data from a normalized document image:

1. Build a document-type-specific prompt that embeds the JSON schema and
   the name of the project the document was uploaded to
2. Call the vision model (low temperature, bounded top-p)
3. Parse the answer:
   - primary: first balanced {...} block as JSON (json_repair as backup)
   - fallback: bolded markdown label/value pairs
   - neither: empty payload (low confidence downstream, not an error)

Transport failures and timeouts are fatal for the job and surface as
ExtractionTransportError / ExtractionTimeoutError with the model
client's message preserved.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..core.agent_base import Agent
from ..core.context.extracted_data import (
    ExtractedDocumentData,
    build_extracted_data,
    empty_extracted_data,
)
from ..constants import DocumentType
from ..config import vision_settings
from ..utils.exceptions import (
    ExtractionParseFailure,
    ExtractionTimeoutError,
    ExtractionTransportError,
    VisionTimeoutError,
    VisionTransportError,
)
from ..vision.base import BaseVisionClient, parse_json_object
from ..vision.client import create_client
from ..vision.prompts import create_extraction_prompt
from .markdown_fields import parse_markdown_fields

PARSE_JSON = "json"
PARSE_MARKDOWN = "markdown"
PARSE_NONE = "none"


@dataclass
class ExtractionOutcome:
    """Result from vision extraction."""
    data: ExtractedDocumentData
    parse_method: str                   # json | markdown | none
    raw_response: str
    model: str
    extraction_time: float
    warnings: List[str] = field(default_factory=list)


class VisionExtractionEngine(Agent):
    """
    Prompt building, model invocation and two-path response parsing.

    Config options:
        temperature: Sampling temperature (default: 0.1)
        top_p: Nucleus sampling bound (default: 0.9)
        max_tokens: Generation cap (default: 2048)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, vision_client: Optional[BaseVisionClient] = None):
        super().__init__(config)
        self.vision = vision_client or create_client(self.config)
        self.temperature = self.config.get('temperature', vision_settings.VISION_TEMPERATURE)
        self.top_p = self.config.get('top_p', vision_settings.VISION_TOP_P)
        self.max_tokens = self.config.get('max_tokens', vision_settings.VISION_MAX_TOKENS)

    def get_name(self) -> str:
        return "VisionExtractionEngine"

    def build_prompt(self, document_type: Optional[DocumentType], project_name: str) -> str:
        return create_extraction_prompt(document_type, project_name)

    def parse_fields(self, response_text: str) -> Tuple[Dict[str, Any], str]:
        """
        Raw fields from the model's answer and the path that produced them.

        Raises:
            ExtractionParseFailure: neither JSON nor markdown yielded a field
        """
        parsed = parse_json_object(response_text)
        if parsed:
            return parsed, PARSE_JSON

        fields = parse_markdown_fields(response_text)
        if fields:
            return fields, PARSE_MARKDOWN

        raise ExtractionParseFailure(
            f"No JSON object or labelled fields in model response ({len(response_text or '')} chars)"
        )

    def parse_response(
        self,
        response_text: str,
        document_type: Optional[DocumentType]
    ) -> Tuple[ExtractedDocumentData, str]:
        """
        Typed payload from the model's answer. Never raises.

        Returns:
            (data, parse_method); data is empty when nothing could be parsed
        """
        try:
            fields, method = self.parse_fields(response_text)
        except ExtractionParseFailure as e:
            self.logger.warning(f"Extraction parse failure: {e}")
            return empty_extracted_data(document_type), PARSE_NONE

        data = build_extracted_data(document_type, fields)
        if method == PARSE_JSON and data.is_empty():
            # JSON with only unknown or unusable keys; markdown may still hold fields
            fallback = parse_markdown_fields(response_text)
            if fallback:
                return build_extracted_data(document_type, fallback), PARSE_MARKDOWN
        return data, method

    async def extract(
        self,
        image_base64: str,
        document_type: Optional[DocumentType],
        project_name: str
    ) -> ExtractionOutcome:
        """
        Run extraction for one normalized image.

        Raises:
            ExtractionTimeoutError: the model call exceeded its timeout
            ExtractionTransportError: the model call failed
        """
        start_time = datetime.now()
        prompt = self.build_prompt(document_type, project_name)

        try:
            result = await self.vision.generate(
                prompt,
                image_base64,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                top_p=self.top_p,
            )
        except VisionTimeoutError as e:
            raise ExtractionTimeoutError(str(e)) from e
        except VisionTransportError as e:
            raise ExtractionTransportError(str(e)) from e

        response_text = result.get('text', '') or ''
        data, parse_method = self.parse_response(response_text, document_type)

        warnings = []
        if parse_method == PARSE_MARKDOWN:
            warnings.append("Model did not return JSON; fields read from markdown fallback")
        elif parse_method == PARSE_NONE:
            warnings.append("No fields could be parsed from the model response")

        duration = self._record_execution(start_time)
        self.logger.info(
            f"Extracted {len(data.populated_fields())} fields via {parse_method} "
            f"in {duration:.2f}s"
        )

        return ExtractionOutcome(
            data=data,
            parse_method=parse_method,
            raw_response=response_text,
            model=result.get('model', self.vision.model_name),
            extraction_time=duration,
            warnings=warnings,
        )
