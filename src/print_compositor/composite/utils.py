"""Utility functions for composite operations."""

from typing import Union, overload

import numpy as np
from numpy.typing import NDArray

BBox = tuple[int, int, int, int]


def divide(a: NDArray[np.floating], b: NDArray[np.floating]) -> NDArray[np.floating]:
    """Safe division for color ops."""
    with np.errstate(divide="ignore", invalid="ignore"):
        c = np.true_divide(a, b)
        c[~np.isfinite(c)] = 1.0
    return c


def intersect(a: BBox, b: BBox) -> BBox:
    """Calculate intersection of two bounding boxes."""
    inter = (max(a[0], b[0]), max(a[1], b[1]), min(a[2], b[2]), min(a[3], b[3]))
    if inter[0] >= inter[2] or inter[1] >= inter[3]:
        return (0, 0, 0, 0)
    return inter


@overload
def union(backdrop: float, source: float) -> float: ...


@overload
def union(
    backdrop: NDArray[np.floating], source: NDArray[np.floating]
) -> NDArray[np.floating]: ...


@overload
def union(backdrop: float, source: NDArray[np.floating]) -> NDArray[np.floating]: ...


@overload
def union(backdrop: NDArray[np.floating], source: float) -> NDArray[np.floating]: ...


def union(
    backdrop: Union[float, NDArray[np.floating]],
    source: Union[float, NDArray[np.floating]],
) -> Union[float, NDArray[np.floating]]:
    """Generalized union of shape."""
    return backdrop + source - (backdrop * source)


def clip(x: NDArray[np.floating]) -> NDArray[np.floating]:
    """Clip between [0, 1]."""
    return np.clip(x, 0.0, 1.0)


def crop(values: np.ndarray, bbox: BBox, inner: BBox) -> np.ndarray:
    """Slice the part of ``values`` (placed at ``bbox``) covered by ``inner``."""
    return values[
        inner[1] - bbox[1] : inner[3] - bbox[1],
        inner[0] - bbox[0] : inner[2] - bbox[0],
    ]
