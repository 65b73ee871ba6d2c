"""Composite implementation for print layer blending."""

import logging
from typing import Any, Mapping, Optional, Sequence, Union

import numpy as np
from PIL import Image

from print_compositor.api import numpy_io, pil_io
from print_compositor.api.layers import ImageLayer, PrintLayer, sort_layers
from print_compositor.composite import utils
from print_compositor.composite.blend import get_blend_func
from print_compositor.composite.rasterize import Patch, rasterize_layer
from print_compositor.constants import MAX_PRINT_FRACTION, BlendMode

logger = logging.getLogger(__name__)


class CanvasAllocationError(MemoryError):
    """The raster buffer for a composite could not be allocated."""


def composite(
    layers: Sequence[PrintLayer],
    texture_size: int,
    base: Optional[Image.Image] = None,
    images: Optional[Mapping[str, Image.Image]] = None,
    max_print_fraction: Optional[float] = MAX_PRINT_FRACTION,
) -> np.ndarray:
    """
    Composite print layers over a base texture and return an RGBA buffer.

    Args:
        layers: Print layers in insertion order; they are drawn sorted by
            ``z_index``, ties in insertion order
        texture_size: Edge length of the square output texture
        base: Base material bitmap, stretched to the texture. If None, the
            texture starts neutral white
        images: Resolved bitmaps of image layers keyed by layer id. Image
            layers without an entry are skipped
        max_print_fraction: Cap of image print widths relative to the texture,
            or None for no cap

    Returns:
        ``(texture_size, texture_size, 4)`` uint8 ndarray

    Raises:
        CanvasAllocationError: If the accumulation buffer cannot be allocated

    Examples:
        >>> layer = ImageLayer(id="logo", image_ref=logo, blend_mode="multiply")
        >>> buffer = composite([layer], 512, images={"logo": logo})
    """
    images = images or {}
    compositor = Compositor((texture_size, texture_size))
    if base is not None:
        compositor.draw_base(base)

    for layer in sort_layers(layers):
        image = None
        if isinstance(layer, ImageLayer):
            image = images.get(layer.id)
            if image is None:
                logger.debug("Skip unresolved %r" % layer)
                continue
        patch = rasterize_layer(layer, texture_size, image, max_print_fraction)
        if patch is None:
            logger.debug("Nothing to draw for %r" % layer)
            continue
        compositor.apply(patch, layer.blend_mode)
    return compositor.finish()


def blend_onto(
    color: np.ndarray,
    alpha: np.ndarray,
    patch: Patch,
    blend_mode: Any = BlendMode.NORMAL,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Blend ``patch`` onto the backdrop planes and return new planes.

    Pixels outside the patch footprint are copied unchanged. Color is blended
    per channel, then source-over composited with the patch alpha::

        Cs' = (1 - ab) * Cs + ab * B(Cb, Cs)
        ar = as + ab * (1 - as)
        Cr = (as * Cs' + (1 - as) * ab * Cb) / ar
    """
    color = color.copy()
    alpha = alpha.copy()
    left, top, right, bottom = patch.bbox
    view = (slice(top, bottom), slice(left, right))

    color_b = color[view]
    alpha_b = alpha[view]
    color_s, alpha_s = patch.color, patch.alpha

    blend_fn = get_blend_func(blend_mode)
    blended = utils.clip(blend_fn(color_b, color_s))
    color_t = (1.0 - alpha_b) * color_s + alpha_b * blended
    alpha_r = utils.union(alpha_b, alpha_s)
    color[view] = utils.clip(
        utils.divide(alpha_s * color_t + (1.0 - alpha_s) * alpha_b * color_b, alpha_r)
    )
    alpha[view] = alpha_r
    return color, alpha


class Compositor(object):
    """Composite context.

    Example::

        compositor = Compositor((2048, 2048))
        compositor.draw_base(material)
        for layer in sort_layers(layers):
            compositor.apply(rasterize_layer(layer, 2048, images[layer.id]),
                             layer.blend_mode)
        buffer = compositor.finish()
    """

    def __init__(
        self,
        size: tuple[int, int],
        color: Union[float, tuple[float, ...]] = 1.0,
        alpha: float = 1.0,
    ):
        self._size = size
        try:
            self._color, self._alpha = numpy_io.allocate(size, color, alpha)
        except (MemoryError, ValueError) as e:
            raise CanvasAllocationError(
                "Cannot allocate %dx%d raster buffer: %s" % (size[0], size[1], e)
            ) from e

    @property
    def width(self) -> int:
        return self._size[0]

    @property
    def height(self) -> int:
        return self._size[1]

    @property
    def color(self) -> np.ndarray:
        return self._color

    @property
    def alpha(self) -> np.ndarray:
        return self._alpha

    def draw_base(self, image: Image.Image) -> None:
        """Replace the accumulation buffer with ``image`` stretched to size."""
        logger.debug("Drawing base %s %s" % (image.mode, image.size))
        image = pil_io.convert_image_to_rgba(image)
        if image.size != self._size:
            image = image.resize(self._size, Image.Resampling.LANCZOS)
        self._color, self._alpha = pil_io.convert_image_to_array(image)

    def apply(self, patch: Patch, blend_mode: Any = BlendMode.NORMAL) -> None:
        logger.debug("Compositing patch %s with %s" % (patch.bbox, blend_mode))
        self._color, self._alpha = blend_onto(
            self._color, self._alpha, patch, blend_mode
        )

    def finish(self) -> np.ndarray:
        return numpy_io.merge_rgba(self._color, self._alpha)
