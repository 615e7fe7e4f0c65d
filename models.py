"""
Data model for the worksheet word cloud.
Words come out of keyword extraction, placed words come out of the layout engine.
"""

import mimetypes
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple

from config import GEMINI_CONFIG, LAYOUT_CONFIG

SPIRALS = ("archimedean", "rectangular")


@dataclass(frozen=True)
class Word:
    """A keyword and its relative importance."""

    text: str
    value: float

    def __post_init__(self):
        if not self.text:
            raise ValueError("Word text must be non-empty")
        if self.value <= 0:
            raise ValueError(f"Word value must be positive, got {self.value}")


@dataclass(frozen=True)
class PlacedWord:
    """A word positioned on the canvas.

    (x, y) is the centre of the label in canvas pixels, origin top-left.
    width and height describe the label box after rotation.
    """

    text: str
    font_size: float
    x: int
    y: int
    rotation: int
    color_index: int
    width: int = 0
    height: int = 0

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """Occupied box as (left, top, right, bottom), right/bottom exclusive."""
        left = self.x - self.width // 2
        top = self.y - self.height // 2
        return left, top, left + self.width, top + self.height


@dataclass(frozen=True)
class LayoutConfig:
    """Canvas and typography settings for a single layout run."""

    canvas_width: int
    canvas_height: int
    font_size_range: Tuple[float, float] = (
        LAYOUT_CONFIG["min_font_size"],
        LAYOUT_CONFIG["max_font_size"],
    )
    padding: int = LAYOUT_CONFIG["padding"]
    font_family: str = LAYOUT_CONFIG["font_family"]
    spiral: str = LAYOUT_CONFIG["spiral"]
    max_steps: int = LAYOUT_CONFIG["max_steps"]
    seed: Optional[int] = None

    def __post_init__(self):
        if self.canvas_width <= 0 or self.canvas_height <= 0:
            raise ValueError(
                f"Canvas dimensions must be positive, got {self.canvas_width}x{self.canvas_height}"
            )
        min_px, max_px = self.font_size_range
        if min_px <= 0 or min_px >= max_px:
            raise ValueError(
                f"Font size range must satisfy 0 < min < max, got {self.font_size_range}"
            )
        if self.padding < 0:
            raise ValueError("Padding must not be negative")
        if self.spiral not in SPIRALS:
            raise ValueError(f"Unknown spiral: {self.spiral}")
        if self.max_steps <= 0:
            raise ValueError("max_steps must be positive")

    @property
    def min_font_size(self) -> float:
        return self.font_size_range[0]

    @property
    def max_font_size(self) -> float:
        return self.font_size_range[1]

    @classmethod
    def for_viewport(cls, width: int, **kwargs) -> "LayoutConfig":
        """Derive canvas height and font range from the available width."""
        height = int(
            min(width * LAYOUT_CONFIG["height_ratio"], LAYOUT_CONFIG["max_height"])
        )
        max_font = min(
            width / LAYOUT_CONFIG["viewport_font_divisor"],
            LAYOUT_CONFIG["max_font_size"],
        )
        min_font = LAYOUT_CONFIG["min_font_size"]
        # Very narrow viewports would invert the range
        max_font = max(max_font, min_font + 1)
        return cls(
            canvas_width=int(width),
            canvas_height=max(1, height),
            font_size_range=(min_font, max_font),
            **kwargs,
        )


@dataclass(frozen=True)
class ImageFile:
    """A worksheet image held in memory."""

    name: str
    data: bytes
    mime_type: str = GEMINI_CONFIG["default_mime_type"]

    @classmethod
    def from_path(cls, path: str) -> "ImageFile":
        with open(path, "rb") as f:
            data = f.read()
        mime_type, _ = mimetypes.guess_type(path)
        if not mime_type or not mime_type.startswith("image/"):
            mime_type = GEMINI_CONFIG["default_mime_type"]
        return cls(name=os.path.basename(path), data=data, mime_type=mime_type)


class SessionState(Enum):
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    EXTRACTING = "extracting"
    KEYWORD_EXTRACTION = "keyword_extraction"
    READY = "ready"
    ERROR = "error"


LOADING_STATES = frozenset({SessionState.EXTRACTING, SessionState.KEYWORD_EXTRACTION})


@dataclass
class UploadSession:
    """Everything the controller knows about the current upload."""

    image: Optional[ImageFile] = None
    preview: Any = None
    state: SessionState = SessionState.IDLE
    status: str = ""
    error: Optional[str] = None
    words: Tuple[Word, ...] = field(default_factory=tuple)
    generation: int = 0

    @property
    def is_loading(self) -> bool:
        return self.state in LOADING_STATES
