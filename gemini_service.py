"""
Gemini Services
Uses Google's Gemini to read worksheet images and to rank their keywords.
Both calls share one client with retry logic for transient errors.
"""

import logging
import os
import random
import time
from typing import Any, Callable, Dict, List, Optional

import google.generativeai as genai

from config import GEMINI_CONFIG, KEYWORD_CONFIG, PROMPTS
from models import ImageFile
from sources import KeywordSource, TextExtractionSource

logger = logging.getLogger(__name__)

KEYWORD_RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "text": {
                "type": "STRING",
                "description": "The keyword or concept.",
            },
            "value": {
                "type": "NUMBER",
                "description": "A numerical score from 10 to 100 representing importance.",
            },
        },
        "required": ["text", "value"],
    },
}


def load_api_key(
    api_key_file: Optional[str] = None, env_vars: Optional[List[str]] = None
) -> str:
    """Load the API key from the environment, falling back to a key file."""
    for name in env_vars or GEMINI_CONFIG["api_key_env_vars"]:
        if value := os.environ.get(name, "").strip():
            return value

    api_key_file = api_key_file or GEMINI_CONFIG["api_key_file"]
    try:
        with open(api_key_file, "r", encoding="utf-8") as f:
            api_key = f.read().strip()
    except FileNotFoundError as e:
        raise FileNotFoundError(
            f"No Gemini API key: set GEMINI_API_KEY or create {api_key_file}"
        ) from e
    if not api_key:
        raise ValueError("API key file is empty")
    return api_key


def classify_error(error: Exception) -> str:
    """Sort an API error into one of the tracked categories."""
    error_msg = str(error).lower()
    if "api key" in error_msg or "authentication" in error_msg or "expired" in error_msg:
        return "api_key_errors"
    if "quota" in error_msg or "rate" in error_msg or "limit" in error_msg:
        return "rate_limit_errors"
    if "network" in error_msg or "connection" in error_msg or "timeout" in error_msg:
        return "network_errors"
    return "other_errors"


RETRYABLE_ERRORS = {"rate_limit_errors", "network_errors"}


class GeminiClient:
    """Thin wrapper around a Gemini model with retry and error statistics."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = GEMINI_CONFIG["model_name"],
        retry_attempts: int = GEMINI_CONFIG["retry_attempts"],
        base_retry_delay: float = GEMINI_CONFIG["base_retry_delay"],
        model: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the Gemini client.

        Args:
            api_key: Gemini API key (default: environment or key file)
            model_name: Gemini model to use
            retry_attempts: Attempts per request for rate limit and network errors
            base_retry_delay: Base delay for exponential backoff
            model: Pre-built model object, used instead of configuring genai
            sleep: Function used to wait between retries
        """
        if model is None:
            genai.configure(api_key=api_key or load_api_key())
            model = genai.GenerativeModel(model_name)

        self.model = model
        self.model_name = model_name
        self.retry_attempts = max(1, retry_attempts)
        self.base_retry_delay = base_retry_delay
        self._sleep = sleep

        self.error_stats = {
            "api_key_errors": 0,
            "rate_limit_errors": 0,
            "network_errors": 0,
            "other_errors": 0,
            "total_retries": 0,
        }

    def generate(self, contents: Any, **kwargs) -> Any:
        """
        Call generate_content, retrying transient failures.

        Raises:
            The last error once retries are exhausted, or immediately for
            errors that retrying can't fix.
        """
        for attempt in range(self.retry_attempts):
            try:
                return self.model.generate_content(contents, **kwargs)
            except Exception as e:
                category = classify_error(e)
                self.error_stats[category] += 1
                logger.warning(
                    "Gemini request failed (%s, attempt %d/%d): %s",
                    category,
                    attempt + 1,
                    self.retry_attempts,
                    e,
                )

                if category not in RETRYABLE_ERRORS or attempt == self.retry_attempts - 1:
                    raise

                # Exponential backoff with jitter
                self.error_stats["total_retries"] += 1
                delay = self.base_retry_delay * (2**attempt) + random.uniform(0, 1)
                logger.info("Retrying in %.1fs...", delay)
                self._sleep(delay)

    @staticmethod
    def response_text(response: Any) -> str:
        """Return the text of a response, or an empty string if it has none."""
        # Blocked prompts come back without candidates, and .parts raises for those
        if not getattr(response, "candidates", None):
            return ""
        if not response.parts:
            return ""
        return response.text or ""

    def total_errors(self) -> int:
        return sum(self.error_stats.values()) - self.error_stats["total_retries"]

    def log_error_stats(self) -> None:
        """Log error statistics for debugging."""
        if self.total_errors() == 0:
            return
        logger.info(
            "Gemini errors: api_key=%d rate_limit=%d network=%d other=%d retries=%d",
            self.error_stats["api_key_errors"],
            self.error_stats["rate_limit_errors"],
            self.error_stats["network_errors"],
            self.error_stats["other_errors"],
            self.error_stats["total_retries"],
        )
        if self.error_stats["api_key_errors"] > self.error_stats["rate_limit_errors"]:
            logger.warning(
                "High API key errors detected. Check that the key is valid and billing is set up."
            )


class GeminiTextExtractor(TextExtractionSource):
    """Reads worksheet text with a multimodal Gemini call."""

    def __init__(self, client: GeminiClient, prompt: str = PROMPTS["extract_text"]):
        self.client = client
        self.prompt = prompt

    def extract_text(self, image: ImageFile) -> str:
        logger.info("Extracting text from %s (%d bytes)", image.name, len(image.data))
        image_part = {"mime_type": image.mime_type, "data": image.data}
        response = self.client.generate([image_part, self.prompt])
        text = self.client.response_text(response)
        logger.debug("Extracted %d characters", len(text))
        return text


class GeminiKeywordExtractor(KeywordSource):
    """Ranks worksheet keywords with a JSON-constrained Gemini call."""

    def __init__(
        self,
        client: GeminiClient,
        max_keywords: int = KEYWORD_CONFIG["max_keywords"],
        prompt_template: str = PROMPTS["extract_keywords"],
    ):
        super().__init__(max_keywords)
        self.client = client
        self.prompt_template = prompt_template

    def build_prompt(self, text: str) -> str:
        return self.prompt_template.format(max_keywords=self.max_keywords, text=text)

    def generation_config(self) -> Dict[str, Any]:
        return {
            "response_mime_type": "application/json",
            "response_schema": KEYWORD_RESPONSE_SCHEMA,
        }

    def request_keywords(self, text: str) -> str:
        logger.info("Identifying keywords in %d characters of text", len(text))
        response = self.client.generate(
            self.build_prompt(text), generation_config=self.generation_config()
        )
        return self.client.response_text(response)


def create_gemini_sources(api_key: Optional[str] = None, api_key_file: Optional[str] = None):
    """Build the text and keyword sources sharing a single Gemini client."""
    client = GeminiClient(api_key=api_key or load_api_key(api_key_file))
    return GeminiTextExtractor(client), GeminiKeywordExtractor(client)
