"""
Error types raised while turning a worksheet image into a word cloud.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for failures shown to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = message


class InputError(AnalysisError):
    """No usable file was selected."""

    def __init__(self, message: str = "Please upload a file first."):
        super().__init__(message)


class ExtractionEmpty(AnalysisError):
    """Text extraction succeeded but returned nothing usable."""

    def __init__(self):
        super().__init__(
            "No text could be extracted from the image. "
            "The image might be blurry or contain no text."
        )


class SourceFault(AnalysisError):
    """A remote source failed or raised."""

    def __init__(self, cause: Optional[BaseException] = None):
        detail = str(cause) if cause is not None and str(cause) else "Unknown error"
        super().__init__(f"An error occurred during analysis: {detail}")
        self.cause = cause


class SchemaViolation(Exception):
    """The keyword response did not match the expected shape.

    Never shown to the user; callers downgrade it to an empty keyword list.
    """
