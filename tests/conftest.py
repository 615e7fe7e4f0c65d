"""
Pytest configuration and shared fixtures for the word cloud tests.
"""

import io
import os
import sys

import pytest
from PIL import Image, ImageDraw

# Add parent directory to path for imports
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from models import ImageFile, Word


@pytest.fixture
def png_bytes():
    """A small worksheet-like PNG image."""
    image = Image.new("RGB", (120, 80), "white")
    ImageDraw.Draw(image).rectangle((10, 30, 110, 40), fill="black")
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def worksheet_image(png_bytes):
    return ImageFile(name="worksheet.png", data=png_bytes, mime_type="image/png")


@pytest.fixture
def sample_words():
    """Keywords shaped like a typical Gemini answer."""
    terms = [
        ("photosynthesis", 100), ("chlorophyll", 92), ("sunlight", 85),
        ("glucose", 80), ("oxygen", 74), ("carbon dioxide", 70), ("water", 65),
        ("leaf", 60), ("stomata", 55), ("energy", 50), ("plant", 47),
        ("cell", 44), ("chloroplast", 40), ("roots", 36), ("xylem", 33),
        ("phloem", 30), ("light", 27), ("reaction", 24), ("starch", 20),
        ("respiration", 18), ("biology", 15), ("process", 12), ("food", 10),
    ]
    return [Word(text, value) for text, value in terms]


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line(
        "markers", "quality: marks tests as quality assurance tests"
    )
