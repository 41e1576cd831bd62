"""
Paid-path card extraction with a vision model.

One request per scan: the compressed card photo plus an extraction prompt go
out in a single messages.create round trip, and the first JSON object in the
text reply is parsed into a CardExtraction. Retries are disabled; the caller
decides whether to resubmit.
"""

import base64
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import anthropic
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cardscan.config import ANTHROPIC_API_KEY, ANTHROPIC_MODEL, ANTHROPIC_MAX_TOKENS

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r'\{.*\}', re.DOTALL)

DEFAULT_PROMPT = """You are reading a collectible trading card. Extract the following:

1. CARD NUMBER - bottom left corner (bottom right on some editions).
   Format: letters + dash + numbers, e.g. "BLBF-84", "BF-108".
   This is NOT the power value in the top right badge.
2. HERO - the character name printed near the top, usually all caps.
3. YEAR - e.g. "2024".
4. SET - the set or edition name.
5. POSE - the parallel/variant label, or "Base".
6. WEAPON - the weapon name, or "None".
7. POWER - the number in the top right badge.

Return ONLY valid JSON, no markdown and no explanation:
{"cardNumber": "BLBF-84", "hero": "NAME", "year": "2024", "set": "Set Name", "pose": "Base", "weapon": "None", "power": "125"}"""


class ExtractionError(Exception):
    """Base class for paid extraction failures."""


class NetworkFailure(ExtractionError):
    """Transport error or non-success status from the extraction service."""


class InvalidResponse(ExtractionError):
    """Reply could not be parsed or carried no card number."""


class CardExtraction(BaseModel):
    """Structured fields read from a card photo"""
    model_config = ConfigDict(populate_by_name=True)

    card_number: Optional[str] = Field(default=None, alias='cardNumber')
    hero: Optional[str] = None
    year: Optional[str] = None
    set_name: Optional[str] = Field(default=None, alias='set')
    pose: Optional[str] = None
    weapon: Optional[str] = None
    power: Optional[str] = None

    @field_validator('*', mode='before')
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        # Models often return year/power as JSON numbers
        if value is None:
            return None
        text = str(value).strip()
        return text or None


def parse_extraction_text(text: str) -> CardExtraction:
    """
    Parse the first JSON object out of a model reply.

    Raises:
        InvalidResponse: If no JSON object is found, it does not validate,
            or it has no card number
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise InvalidResponse(f"No JSON object in reply: {(text or '')[:200]!r}")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise InvalidResponse(f"Reply JSON is malformed: {e}") from e

    if not isinstance(data, dict):
        raise InvalidResponse("Reply JSON is not an object")

    try:
        extraction = CardExtraction.model_validate(data)
    except ValidationError as e:
        raise InvalidResponse(f"Reply JSON has unexpected fields: {e}") from e

    if not extraction.card_number:
        raise InvalidResponse("Reply has no card number")

    return extraction


class BaseExtractor(ABC):
    """
    Abstract paid extraction capability.

    Example usage:
        extractor = AnthropicExtractor()
        if extractor.is_available():
            extraction = await extractor.extract(jpeg_bytes)
    """

    @abstractmethod
    async def extract(self, image_jpeg: bytes) -> CardExtraction:
        """
        Extract card fields from a compressed JPEG.

        Raises:
            NetworkFailure: Transport or non-success status
            InvalidResponse: Unusable reply
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the extractor is configured and usable."""
        pass


class AnthropicExtractor(BaseExtractor):
    """Vision-model extractor backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: Optional[str] = ANTHROPIC_API_KEY,
        model: str = ANTHROPIC_MODEL,
        max_tokens: int = ANTHROPIC_MAX_TOKENS,
        prompt: str = DEFAULT_PROMPT,
        client=None
    ):
        """
        Args:
            api_key: Anthropic API key; extractor is unavailable without one
            model: Model name
            max_tokens: Reply token limit
            prompt: Extraction prompt sent with the image
            client: Preconfigured async client (tests)
        """
        self.model = model
        self.max_tokens = max_tokens
        self.prompt = prompt
        self._client = client

        if self._client is None and api_key:
            self._client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    def is_available(self) -> bool:
        return self._client is not None

    async def extract(self, image_jpeg: bytes) -> CardExtraction:
        if not self.is_available():
            raise NetworkFailure("Anthropic client is not configured")

        image_data = base64.standard_b64encode(image_jpeg).decode('utf-8')
        logger.info(f"Calling {self.model} with {len(image_jpeg)} byte image")

        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": "image/jpeg",
                                "data": image_data
                            }
                        },
                        {
                            "type": "text",
                            "text": self.prompt
                        }
                    ]
                }]
            )
        except anthropic.APIStatusError as e:
            raise NetworkFailure(f"Extraction service returned {e.status_code}: {e.message}") from e
        except anthropic.APIConnectionError as e:
            raise NetworkFailure(f"Extraction service unreachable: {e}") from e
        except anthropic.APIError as e:
            raise NetworkFailure(f"Extraction service error: {e}") from e

        text = "".join(
            block.text for block in response.content
            if getattr(block, 'type', None) == 'text'
        )
        extraction = parse_extraction_text(text)
        logger.info(f"AI extraction: card number {extraction.card_number}, hero {extraction.hero!r}")
        return extraction
