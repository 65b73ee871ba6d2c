"""Pytest configuration for print-compositor tests."""

from typing import Any

import pytest
from PIL import Image

from .print_compositor.utils import StubLoader, solid


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "text: mark test as rendering glyphs with the available fonts",
    )


@pytest.fixture
def red() -> Image.Image:
    return solid((255, 0, 0), (32, 32))


@pytest.fixture
def loader() -> StubLoader:
    return StubLoader({})
