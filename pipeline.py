"""
Pipeline stages from worksheet image to word cloud placement.

Each stage returns a StageResult instead of raising, so the controller can
decide whether a result is still wanted before applying it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from errors import AnalysisError, ExtractionEmpty, SourceFault
from models import ImageFile, LayoutConfig, Word
from sources import KeywordSource, TextExtractionSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageResult:
    """Outcome of one pipeline stage: a value on success, an error otherwise."""

    value: Any = None
    error: Optional[AnalysisError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "StageResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AnalysisError) -> "StageResult":
        return cls(error=error)


def run_text_extraction(source: TextExtractionSource, image: ImageFile) -> StageResult:
    """Extract text from the image. Empty or whitespace-only text is a failure."""
    try:
        text = source.extract_text(image)
    except Exception as e:
        logger.exception("Text extraction failed")
        return StageResult.failure(SourceFault(e))

    if not text or not text.strip():
        return StageResult.failure(ExtractionEmpty())
    return StageResult.success(text)


def run_keyword_extraction(source: KeywordSource, text: str) -> StageResult:
    """Extract keywords. Success carries a tuple of words, possibly empty."""
    try:
        words = source.extract_keywords(text)
    except Exception as e:
        logger.exception("Keyword extraction failed")
        return StageResult.failure(SourceFault(e))
    return StageResult.success(tuple(words))


def run_layout(engine, words: Sequence[Word], config: LayoutConfig) -> StageResult:
    """Lay out the words. Success carries the list of placed words."""
    return StageResult.success(engine.layout(tuple(words), config))
