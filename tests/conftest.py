"""
Pytest configuration and shared fixtures for Table Grid OCR tests.

Provides sample images, a stand-in recognition engine and quiet logging
for all test modules.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from typing import Callable, Generator

import cv2
import numpy as np
import pytest

from table_grid_ocr.config import Config, get_default_config
from table_grid_ocr.grid import Grid
from table_grid_ocr.utils.logging_utils import setup_logging

FAKE_ENGINE = Path(__file__).parent / "fake_engine.py"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_image() -> np.ndarray:
    """
    400x200 RGBA image whose pixels encode their own position.

    Red is ``x // 2``, green is ``y`` (row from the top), alpha is opaque.
    """
    height, width = 200, 400
    image = np.zeros((height, width, 4), dtype=np.uint8)
    image[:, :, 0] = (np.arange(width) // 2)[np.newaxis, :]
    image[:, :, 1] = np.arange(height)[:, np.newaxis]
    image[:, :, 3] = 255
    return image


@pytest.fixture
def image_file(temp_dir: Path, sample_image: np.ndarray) -> Path:
    """Sample image written as a PNG."""
    path = temp_dir / "table.png"
    cv2.imwrite(str(path), cv2.cvtColor(sample_image, cv2.COLOR_RGBA2BGRA))
    return path


@pytest.fixture
def full_grid() -> Grid:
    """Grid covering the whole image with two rows and two columns."""
    return Grid(horizontals=[0.0, 0.5, 1.0], verticals=[0.0, 0.5, 1.0])


@pytest.fixture
def engine_command() -> Callable[..., str]:
    """Build a command template that runs the fake engine with extra flags."""
    def build(*flags: str) -> str:
        parts = [sys.executable, str(FAKE_ENGINE), *flags, "%img_in%", "%txt_out%"]
        return " ".join(parts)
    return build


@pytest.fixture
def sample_config(temp_dir: Path, engine_command) -> Config:
    """Configuration pointing at the fake engine and the test temp dir."""
    config = get_default_config()
    config.ocr.command_template = engine_command()
    config.ocr.temp_dir = str(temp_dir / "work")
    config.logging.use_rich = False
    return config


@pytest.fixture(autouse=True)
def setup_test_logging():
    """Setup logging for tests."""
    setup_logging(
        level="WARNING",
        use_rich=False,
        format_style="minimal"
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (deselect with '-m \"not unit\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that spawn the recognition engine"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
