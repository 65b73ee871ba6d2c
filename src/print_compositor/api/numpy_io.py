import logging
from typing import Union

import numpy as np

logger = logging.getLogger(__name__)

Color = Union[float, tuple[float, ...]]


def allocate(
    size: tuple[int, int], color: Color = 1.0, alpha: float = 1.0
) -> tuple[np.ndarray, np.ndarray]:
    """
    Allocate float32 ``(color, alpha)`` planes of ``size = (width, height)``.

    Raises :py:exc:`ValueError` for empty sizes and :py:exc:`MemoryError`
    when the planes cannot be allocated.
    """
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError("Invalid raster size: %dx%d" % (width, height))
    if isinstance(color, (int, float)):
        color = (float(color),) * 3
    if len(color) != 3:
        raise ValueError("Expected an RGB color, got %r" % (color,))
    color_plane = np.empty((height, width, 3), dtype=np.float32)
    color_plane[:] = np.asarray(color, dtype=np.float32)
    alpha_plane = np.full((height, width, 1), alpha, dtype=np.float32)
    return color_plane, alpha_plane


def split_rgba(buffer: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Split an 8-bit RGBA buffer into float32 ``(color, alpha)`` planes."""
    data = buffer.astype(np.float32) / 255.0
    return data[:, :, :3], data[:, :, 3:4]


def merge_rgba(color: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """Quantize float ``(color, alpha)`` planes to an 8-bit RGBA buffer."""
    data = np.concatenate((color, alpha), axis=2)
    return np.rint(np.clip(data, 0.0, 1.0) * 255.0).astype(np.uint8)


def get_array(source: np.ndarray) -> np.ndarray:
    """
    Normalize an in-memory bitmap to an ``(h, w, 4)`` uint8 RGBA buffer.

    Grayscale ``(h, w)``, ``(h, w, 1)``, RGB and RGBA arrays are accepted.
    Float arrays are taken to be in [0, 1].
    """
    array = np.asarray(source)
    if array.ndim == 2:
        array = array[:, :, np.newaxis]
    if array.ndim != 3 or array.shape[2] not in (1, 3, 4):
        raise ValueError("Unsupported bitmap shape: %r" % (array.shape,))
    if np.issubdtype(array.dtype, np.floating):
        array = np.rint(np.clip(array, 0.0, 1.0) * 255.0)
    array = array.astype(np.uint8)
    if array.shape[2] == 1:
        array = np.repeat(array, 3, axis=2)
    if array.shape[2] == 3:
        opaque = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
        array = np.concatenate((array, opaque), axis=2)
    return array
