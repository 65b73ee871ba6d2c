"""
Layer rasterization.

Each print layer is drawn into its own isolated patch: a texture-space
bounding box plus float ``color`` and ``alpha`` planes, with the layer
transform and opacity already applied. The compositor then blends patches one
at a time onto the accumulated texture.
"""

import logging
import math
from typing import Optional

import numpy as np
from attrs import define, field
from PIL import Image, ImageDraw

from print_compositor.api import pil_io
from print_compositor.api.layers import ImageLayer, PrintLayer, TextLayer
from print_compositor.composite import utils
from print_compositor.constants import MAX_PRINT_FRACTION

logger = logging.getLogger(__name__)


@define(frozen=True, eq=False)
class Patch:
    """Rasterized layer, clipped to the texture."""

    bbox: utils.BBox = field(converter=tuple)
    color: np.ndarray = field()
    alpha: np.ndarray = field()

    @property
    def width(self) -> int:
        return self.bbox[2] - self.bbox[0]

    @property
    def height(self) -> int:
        return self.bbox[3] - self.bbox[1]


def rasterize_layer(
    layer: PrintLayer,
    texture_size: int,
    image: Optional[Image.Image] = None,
    max_print_fraction: Optional[float] = MAX_PRINT_FRACTION,
) -> Optional[Patch]:
    """
    Rasterize one layer for a ``texture_size`` square texture.

    Image layers need their resolved bitmap in ``image``. Returns ``None`` when
    the layer has nothing to draw inside the texture.
    """
    if isinstance(layer, TextLayer):
        return rasterize_text(layer, texture_size)
    if isinstance(layer, ImageLayer):
        if image is None:
            raise ValueError("Image layer %r is not resolved" % layer.id)
        return rasterize_image(layer, image, texture_size, max_print_fraction)
    raise TypeError("Unsupported layer type: %r" % type(layer))


def get_print_size(
    layer: ImageLayer,
    image_size: tuple[int, int],
    texture_size: int,
    max_print_fraction: Optional[float] = MAX_PRINT_FRACTION,
) -> tuple[float, float]:
    """
    Compute the drawn size of an image print.

    The natural width times ``scale`` is capped at ``max_print_fraction`` of
    the texture size; the height follows the natural aspect ratio.
    """
    natural_width = layer.width or image_size[0]
    natural_height = layer.height or image_size[1]
    width = natural_width * layer.scale
    if max_print_fraction is not None:
        width = min(width, max_print_fraction * texture_size)
    return width, width * natural_height / natural_width


def rasterize_image(
    layer: ImageLayer,
    image: Image.Image,
    texture_size: int,
    max_print_fraction: Optional[float] = MAX_PRINT_FRACTION,
) -> Optional[Patch]:
    image = pil_io.convert_image_to_rgba(image)
    width, height = get_print_size(layer, image.size, texture_size, max_print_fraction)
    size = (max(1, _round(width)), max(1, _round(height)))
    if image.size != size:
        image = image.resize(size, Image.Resampling.LANCZOS)
    return _place(layer, image, texture_size, layer.opacity)


def rasterize_text(layer: TextLayer, texture_size: int) -> Optional[Patch]:
    if not layer.content:
        return None
    font = pil_io.get_font(
        layer.font_family, layer.font_size_px * layer.scale, layer.font_weight
    )
    anchor = layer.text_align.anchor
    align = layer.text_align.value
    probe = ImageDraw.Draw(Image.new("L", (1, 1)))
    left, top, right, bottom = probe.multiline_textbbox(
        (0, 0), layer.content, font=font, anchor=anchor, align=align
    )

    # Pad symmetrically so the anchor sits at the center of the mask.
    half_width = math.ceil(max(-left, right)) + 1
    half_height = math.ceil(max(-top, bottom)) + 1
    mask = Image.new("L", (2 * half_width, 2 * half_height), 0)
    ImageDraw.Draw(mask).multiline_text(
        (half_width, half_height),
        layer.content,
        fill=255,
        font=font,
        anchor=anchor,
        align=align,
    )

    r, g, b, a = pil_io.get_color(layer.color)
    image = Image.new("RGBA", mask.size, tuple(_round(c * 255) for c in (r, g, b, 0)))
    image.putalpha(mask)
    return _place(layer, image, texture_size, layer.opacity * a)


def _place(
    layer: PrintLayer, image: Image.Image, texture_size: int, opacity: float
) -> Optional[Patch]:
    """Rotate ``image`` about its center and center it on the layer anchor."""
    if layer.rotation:
        # PIL rotates counter-clockwise.
        image = image.rotate(
            -layer.rotation, resample=Image.Resampling.BICUBIC, expand=True
        )
    u, v = layer.position
    left = _round(u * texture_size - image.width / 2.0)
    top = _round(v * texture_size - image.height / 2.0)
    bbox = (left, top, left + image.width, top + image.height)
    inter = utils.intersect(bbox, (0, 0, texture_size, texture_size))
    if inter == (0, 0, 0, 0):
        logger.debug("Layer %r is outside the texture" % layer.id)
        return None

    color, alpha = pil_io.convert_image_to_array(image)
    color = utils.crop(color, bbox, inter)
    alpha = utils.crop(alpha, bbox, inter) * np.float32(opacity)
    return Patch(inter, color, alpha)


def _round(x: float) -> int:
    return int(math.floor(x + 0.5))
