"""
Source interfaces for text and keyword extraction.
Concrete implementations live in gemini_service.py; tests substitute their own.
"""

import json
import logging
import math
import numbers
from abc import ABC, abstractmethod
from typing import Any, List

from config import KEYWORD_CONFIG
from errors import SchemaViolation
from models import ImageFile, Word

logger = logging.getLogger(__name__)


class TextExtractionSource(ABC):
    """Turns a worksheet image into plain text."""

    @abstractmethod
    def extract_text(self, image: ImageFile) -> str:
        """Extract text from the image. An empty string is a valid answer."""
        pass


class KeywordSource(ABC):
    """Turns text into a ranked keyword list."""

    def __init__(self, max_keywords: int = KEYWORD_CONFIG["max_keywords"]):
        self.max_keywords = max_keywords

    @abstractmethod
    def request_keywords(self, text: str) -> str:
        """Ask the backend for keywords and return its raw JSON response."""
        pass

    def extract_keywords(self, text: str) -> List[Word]:
        """
        Extract keywords from text.

        Errors raised by request_keywords propagate. A malformed response is
        logged and yields an empty list.
        """
        raw = self.request_keywords(text)
        try:
            return parse_keyword_response(raw, self.max_keywords)
        except SchemaViolation as e:
            logger.warning("Failed to parse keywords JSON: %s", e)
            return []


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def parse_keyword_response(raw: str, max_keywords: int = KEYWORD_CONFIG["max_keywords"]) -> List[Word]:
    """
    Validate a keyword response and convert it to words.

    Args:
        raw: JSON text, expected to be an array of {"text": str, "value": number}
        max_keywords: Maximum number of words kept, in response order

    Returns:
        List of Word objects

    Raises:
        SchemaViolation: If the response is not valid JSON or any item is malformed
    """
    if raw is None:
        raise SchemaViolation("Empty keyword response")

    try:
        result = json.loads(raw.strip())
    except (ValueError, AttributeError) as e:
        raise SchemaViolation(f"Keyword response is not valid JSON: {e}") from e

    if not isinstance(result, list):
        raise SchemaViolation(f"Expected a JSON array, got {type(result).__name__}")

    words = []
    for index, item in enumerate(result):
        if not isinstance(item, dict) or "text" not in item or "value" not in item:
            raise SchemaViolation(f"Item {index} is missing 'text' or 'value'")

        text, value = item["text"], item["value"]
        if not isinstance(text, str) or not text.strip():
            raise SchemaViolation(f"Item {index} has an invalid 'text': {text!r}")
        if not _is_number(value):
            raise SchemaViolation(f"Item {index} has an invalid 'value': {value!r}")
        try:
            number = float(value)
        except OverflowError as e:
            raise SchemaViolation(f"Item {index} has an out of range 'value'") from e
        if not math.isfinite(number) or number <= 0:
            raise SchemaViolation(f"Item {index} has an invalid 'value': {value!r}")

        words.append(Word(text=text.strip(), value=number))

    if len(words) > max_keywords:
        logger.debug("Keeping %d of %d keywords", max_keywords, len(words))
        words = words[:max_keywords]

    return words
