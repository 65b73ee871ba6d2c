import asyncio
import logging
from typing import Any, Coroutine, Mapping, Optional, TypeVar

import numpy as np
from PIL import Image

from print_compositor.api.loader import ImageLoader

T = TypeVar("T")

logging.basicConfig(level=logging.DEBUG)


def solid(color: tuple[int, ...], size: tuple[int, int]) -> Image.Image:
    """Solid RGBA image."""
    if len(color) == 3:
        color = tuple(color) + (255,)
    return Image.new("RGBA", size, color)


def run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def pixel(buffer: np.ndarray, x: int, y: int) -> tuple[int, ...]:
    return tuple(int(c) for c in buffer[y, x])


class StubLoader(ImageLoader):
    """
    Loader serving images from a dict, with optional per-reference delays.

    References missing from ``images`` fail like a broken URL.
    """

    def __init__(
        self,
        images: Mapping[Any, Image.Image],
        delays: Optional[Mapping[Any, float]] = None,
        timeout: Optional[float] = 1.0,
    ):
        super().__init__(timeout=timeout)
        self.images = dict(images)
        self.delays = dict(delays or {})
        self.started: list = []
        self.finished: list = []

    async def _load(self, ref: Any) -> Image.Image:
        self.started.append(ref)
        await asyncio.sleep(self.delays.get(ref, 0))
        self.finished.append(ref)
        if ref not in self.images:
            raise FileNotFoundError("No such image: %s" % ref)
        return self.images[ref].copy()
