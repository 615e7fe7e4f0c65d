"""
Draws word cloud placements onto Pillow images.
"""

import logging
from typing import List, Optional, Sequence

import matplotlib.colors as mcolors
from PIL import Image, ImageDraw

from config import LAYOUT_CONFIG, RENDER_CONFIG
from models import PlacedWord
from word_cloud_layout import FontManager, pixel_font_size

logger = logging.getLogger(__name__)

# Tableau 10, the same categorical palette as d3's schemeCategory10
CATEGORY_COLORS: List[str] = list(mcolors.TABLEAU_COLORS.values())


def color_for(color_index: int) -> str:
    """Categorical color for a placement rank, cycling through the palette."""
    palette_size = min(RENDER_CONFIG["palette_size"], len(CATEGORY_COLORS))
    return CATEGORY_COLORS[color_index % palette_size]


class WordCloudRenderer:
    """Handles the actual drawing of word clouds."""

    def __init__(
        self,
        font_family: str = LAYOUT_CONFIG["font_family"],
        background: str = RENDER_CONFIG["background"],
        font_manager: Optional[FontManager] = None,
    ):
        self.background = background
        self.font_manager = font_manager or FontManager(font_family)

    def render(
        self, placed_words: Sequence[PlacedWord], width: int, height: int
    ) -> Image.Image:
        """Draw the words onto a new blank image of the given size."""
        image = Image.new("RGB", (width, height), self.background)
        for word in placed_words:
            self._draw_word(image, word)
        logger.debug("Rendered %d words on %dx%d canvas", len(placed_words), width, height)
        return image

    def _draw_word(self, image: Image.Image, word: PlacedWord) -> None:
        """Draw a single label so that it fills its placed box."""
        font_size = pixel_font_size(word.font_size)
        font = self.font_manager.get_font(font_size)
        left, top, _, _ = self.font_manager.text_bbox(word.text, font_size)
        tile_width, tile_height = self.font_manager.measure(word.text, font_size)

        # Draw upright on a transparent tile, then turn it clockwise if needed
        tile = Image.new("RGBA", (tile_width, tile_height), (0, 0, 0, 0))
        ImageDraw.Draw(tile).text(
            (-left, -top), word.text, fill=color_for(word.color_index), font=font
        )
        if word.rotation == 90:
            tile = tile.transpose(Image.Transpose.ROTATE_270)

        box_left, box_top, _, _ = word.box
        image.paste(tile, (box_left, box_top), tile)

    @staticmethod
    def save(image: Image.Image, output_path: str) -> None:
        """Save a rendered word cloud as PNG."""
        image.save(output_path, "PNG", optimize=True)
        logger.info("Word cloud saved to: %s", output_path)

