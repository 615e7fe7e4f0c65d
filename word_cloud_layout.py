"""
Word Cloud Layout Engine
Places weighted words on a fixed canvas without overlaps.
Labels are sized by importance, randomly turned upright or sideways, and
packed largest first along a spiral that starts at the canvas centre.
"""

import logging
import math
import random
from typing import Dict, List, Sequence, Tuple

import cv2
import numpy as np
from PIL import ImageFont

from config import FONT_CANDIDATES
from models import LayoutConfig, PlacedWord, Word

logger = logging.getLogger(__name__)


class FontManager:
    """Handles font loading and text size calculations for one font family."""

    def __init__(self, family: str = "sans-serif"):
        self.family = family
        self._font_cache = {}

    def get_font(self, font_size: int):
        """Get a font of the specified size with caching."""
        if font_size in self._font_cache:
            return self._font_cache[font_size]

        font = None
        for font_name in FONT_CANDIDATES.get(self.family, FONT_CANDIDATES["sans-serif"]):
            try:
                font = ImageFont.truetype(font_name, font_size)
                break
            except OSError:
                continue
        if font is None:
            # Pillow's bundled font scales when FreeType is available
            font = ImageFont.load_default(size=font_size)

        self._font_cache[font_size] = font
        return font

    def text_bbox(self, text: str, font_size: int) -> Tuple[int, int, int, int]:
        """Bounding box of the text drawn at the origin, as (left, top, right, bottom)."""
        return self.get_font(font_size).getbbox(text)

    def measure(self, text: str, font_size: int) -> Tuple[int, int]:
        """Width and height in pixels of the upright label."""
        left, top, right, bottom = self.text_bbox(text, font_size)
        return max(1, int(math.ceil(right - left))), max(1, int(math.ceil(bottom - top)))


def pixel_font_size(font_size: float) -> int:
    """Font size actually used to load a font."""
    return max(1, int(round(font_size)))


def scale_font_sizes(
    values: Sequence[float], min_px: float, max_px: float
) -> List[float]:
    """
    Map word values linearly onto a font size range.

    The smallest value maps to min_px and the largest to max_px. When every
    value is the same the domain is empty and every label gets max_px.
    """
    if not values:
        return []

    low, high = min(values), max(values)
    if high == low:
        return [float(max_px)] * len(values)

    span = max_px - min_px
    return [min_px + (value - low) / (high - low) * span for value in values]


def archimedean_spiral(width: int, height: int, steps: int) -> np.ndarray:
    """Offsets from the centre along an Archimedean spiral stretched to the canvas aspect."""
    aspect = width / height
    t = np.arange(steps, dtype=np.float64) * 0.1
    return np.column_stack((aspect * t * np.cos(t), t * np.sin(t)))


def rectangular_spiral(width: int, height: int, steps: int) -> np.ndarray:
    """Offsets from the centre along a rectangular spiral stretched to the canvas aspect."""
    dy = 4.0
    dx = dy * width / height

    t = np.arange(1, steps, dtype=np.float64)
    direction = (np.sqrt(1 + 4 * t) - 1).astype(np.int64) & 3
    step_x = np.where(direction == 0, dx, np.where(direction == 2, -dx, 0.0))
    step_y = np.where(direction == 1, dy, np.where(direction == 3, -dy, 0.0))

    offsets = np.zeros((steps, 2), dtype=np.float64)
    offsets[1:, 0] = np.cumsum(step_x)
    offsets[1:, 1] = np.cumsum(step_y)
    return offsets


SPIRAL_FUNCTIONS = {
    "archimedean": archimedean_spiral,
    "rectangular": rectangular_spiral,
}


class OccupancyMask:
    """Pixel mask of the canvas area already taken by placed labels plus padding."""

    def __init__(self, width: int, height: int, padding: int):
        self.width = width
        self.height = height
        self.padding = padding
        self.mask = np.zeros((height, width), dtype=np.uint8)
        self._integral = cv2.integral(self.mask)

    def occupied_counts(
        self, left: np.ndarray, top: np.ndarray, right: np.ndarray, bottom: np.ndarray
    ) -> np.ndarray:
        """Number of taken pixels inside each box, using the summed-area table."""
        integral = self._integral
        return (
            integral[bottom, right]
            - integral[top, right]
            - integral[bottom, left]
            + integral[top, left]
        )

    def add(self, left: int, top: int, right: int, bottom: int) -> None:
        """Mark a label box and its padding as taken."""
        p = self.padding
        cv2.rectangle(
            self.mask,
            (int(left) - p, int(top) - p),
            (int(right) - 1 + p, int(bottom) - 1 + p),
            1,
            thickness=cv2.FILLED,
        )
        self._integral = cv2.integral(self.mask)


class WordCloudLayoutEngine:
    """Computes collision-free word cloud placements."""

    def __init__(self):
        self._font_managers: Dict[str, FontManager] = {}

    def font_manager(self, family: str) -> FontManager:
        if family not in self._font_managers:
            self._font_managers[family] = FontManager(family)
        return self._font_managers[family]

    def layout(self, words: Sequence[Word], config: LayoutConfig) -> List[PlacedWord]:
        """
        Place words on the canvas described by config.

        Args:
            words: Words to place; never modified
            config: Canvas size, font range, padding and spiral settings

        Returns:
            One PlacedWord per word that found a free spot. Words that don't
            fit within config.max_steps spiral steps are left out.
        """
        if not words:
            return []

        rng = random.Random(config.seed)
        fonts = self.font_manager(config.font_family)
        sizes = scale_font_sizes(
            [word.value for word in words], config.min_font_size, config.max_font_size
        )

        labels = []
        for word, size in zip(words, sizes):
            rotation = 0 if rng.random() > 0.5 else 90
            width, height = fonts.measure(word.text, pixel_font_size(size))
            if rotation == 90:
                width, height = height, width
            labels.append((word.text, size, rotation, width, height))

        # Largest first
        labels.sort(key=lambda label: label[1], reverse=True)

        offsets = self._spiral_offsets(config)
        mask = OccupancyMask(config.canvas_width, config.canvas_height, config.padding)
        placed: List[PlacedWord] = []
        failed = []

        for text, size, rotation, width, height in labels:
            position = self._find_position(offsets, mask, config, width, height)
            if position is None:
                failed.append(text)
                continue

            x, y = position
            word = PlacedWord(
                text=text,
                font_size=size,
                x=x,
                y=y,
                rotation=rotation,
                color_index=len(placed),
                width=width,
                height=height,
            )
            mask.add(*word.box)
            placed.append(word)

        logger.info("Placed %d of %d words", len(placed), len(labels))
        if failed:
            logger.debug("Could not place: %s", ", ".join(failed))

        return placed

    def _spiral_offsets(self, config: LayoutConfig) -> np.ndarray:
        """Integer spiral offsets, cut where the spiral has left the canvas on both axes."""
        width, height = config.canvas_width, config.canvas_height
        offsets = SPIRAL_FUNCTIONS[config.spiral](width, height, config.max_steps)

        max_delta = math.hypot(width, height)
        outside = np.minimum(np.abs(offsets[:, 0]), np.abs(offsets[:, 1])) >= max_delta
        if outside.any():
            offsets = offsets[: int(np.argmax(outside))]

        return np.rint(offsets).astype(np.int64)

    def _find_position(
        self,
        offsets: np.ndarray,
        mask: OccupancyMask,
        config: LayoutConfig,
        width: int,
        height: int,
    ):
        """First spiral position where the box is inside the canvas and free."""
        canvas_width, canvas_height = config.canvas_width, config.canvas_height
        if width > canvas_width or height > canvas_height:
            return None

        xs = canvas_width // 2 + offsets[:, 0]
        ys = canvas_height // 2 + offsets[:, 1]
        left = xs - width // 2
        top = ys - height // 2
        right = left + width
        bottom = top + height

        inside = np.flatnonzero(
            (left >= 0) & (top >= 0) & (right <= canvas_width) & (bottom <= canvas_height)
        )
        if inside.size == 0:
            return None

        counts = mask.occupied_counts(
            left[inside], top[inside], right[inside], bottom[inside]
        )
        free = np.flatnonzero(counts == 0)
        if free.size == 0:
            return None

        step = inside[free[0]]
        return int(xs[step]), int(ys[step])
