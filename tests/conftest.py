"""Pytest configuration to make the package importable from a plain checkout.

This ensures that ``import image_stream_gang`` works when tests are run from
the repository root without installing the project first.
"""

import os
import sys

import pytest
from PIL import Image as PILImage

# Project root = parent directory of this tests/ folder
SRC_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


@pytest.fixture
def image_files(tmp_path):
    """Two small images on disk, returned as file:// URLs."""
    src = tmp_path / "src"
    src.mkdir()
    red = src / "red.png"
    PILImage.new("RGB", (8, 6), (200, 30, 30)).save(red)
    blue = src / "blue.jpg"
    PILImage.new("RGB", (5, 5), (20, 40, 220)).save(blue)
    return [red.as_uri(), blue.as_uri()]
