"""
Texture handle module.
"""

import logging
from typing import Callable, Iterable, Optional

import numpy as np
from PIL import Image

from print_compositor.api import pil_io

logger = logging.getLogger(__name__)


class TextureHandle(object):
    """
    Renderer-facing wrapper of a composite raster buffer.

    The handle exclusively owns its buffer, which is read-only once wrapped.
    Cached handles are owned and disposed by
    :py:class:`~print_compositor.api.cache.TextureCache`; handles created
    directly are disposed by their holder, e.g. with a ``with`` block.

    :param buffer: ``(height, width, 4)`` uint8 RGBA array.
    :param key: Composite key the texture was built for.
    :param warnings: Non-fatal problems met while compositing.
    :param wrap: Texture wrapping mode for the renderer.
    :param flip_y: Whether the renderer should flip rows on upload.
    """

    def __init__(
        self,
        buffer: np.ndarray,
        key: Optional[str] = None,
        warnings: Iterable = (),
        wrap: str = "repeat",
        flip_y: bool = False,
    ):
        if buffer.ndim != 3 or buffer.shape[2] != 4 or buffer.dtype != np.uint8:
            raise ValueError(
                "Expected (h, w, 4) uint8 buffer, got %s %s" % (buffer.shape, buffer.dtype)
            )
        buffer.flags.writeable = False
        self._buffer: Optional[np.ndarray] = buffer
        self._width = buffer.shape[1]
        self._height = buffer.shape[0]
        self._callbacks: list[Callable[["TextureHandle"], None]] = []
        self.key = key
        self.warnings = tuple(warnings)
        self.wrap = wrap
        self.flip_y = flip_y

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> tuple[int, int]:
        return self._width, self._height

    @property
    def disposed(self) -> bool:
        return self._buffer is None

    def numpy(self) -> np.ndarray:
        """Read-only RGBA buffer for upload."""
        if self._buffer is None:
            raise ValueError("Texture %s is disposed" % self.key)
        return self._buffer

    def topil(self) -> Image.Image:
        """Copy of the texture as an RGBA PIL image."""
        return pil_io.convert_array_to_image(self.numpy())

    def on_dispose(self, callback: Callable[["TextureHandle"], None]) -> None:
        """Register ``callback`` to release renderer resources on disposal."""
        if self.disposed:
            raise ValueError("Texture %s is disposed" % self.key)
        self._callbacks.append(callback)

    def dispose(self) -> None:
        """Release the buffer. Calling it again does nothing."""
        if self._buffer is None:
            return
        logger.debug("Disposing texture %s" % self.key)
        self._buffer = None
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)

    def __enter__(self) -> "TextureHandle":
        return self

    def __exit__(self, *args) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return "%s(size=%dx%d, key=%s%s)" % (
            self.__class__.__name__,
            self._width,
            self._height,
            self.key[:12] if self.key else None,
            ", disposed" if self.disposed else "",
        )
