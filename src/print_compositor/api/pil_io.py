"""
PIL IO module.
"""

import functools
import logging
import re
from typing import Optional, Union

import numpy as np
from PIL import Image, ImageColor, ImageFont

from print_compositor.api import numpy_io

logger = logging.getLogger(__name__)

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

# CSS generic families mapped to commonly installed TrueType files.
GENERIC_FAMILIES = {
    "sans-serif": ("DejaVuSans", "Arial", "Helvetica", "LiberationSans-Regular"),
    "serif": ("DejaVuSerif", "Times New Roman", "LiberationSerif-Regular"),
    "monospace": ("DejaVuSansMono", "Courier New", "LiberationMono-Regular"),
}

BOLD_WEIGHTS = {"bold", "bolder", "600", "700", "800", "900"}


def convert_image_to_rgba(image: Image.Image) -> Image.Image:
    """Convert any PIL image to RGBA, keeping palette transparency."""
    if image.mode == "RGBA":
        return image
    if image.mode == "P" and "transparency" in image.info:
        image = image.convert("PA")
    if image.mode in ("I;16", "I;16B", "I;16L", "I"):
        image = image.point(lambda x: x / 256).convert("L")
    elif image.mode == "F":
        image = image.point(lambda x: x * 255).convert("L")
    return image.convert("RGBA")


def convert_image_to_array(image: Image.Image) -> tuple[np.ndarray, np.ndarray]:
    """Return ``(color, alpha)`` float32 arrays of a PIL image."""
    rgba = np.asarray(convert_image_to_rgba(image), dtype=np.uint8)
    return numpy_io.split_rgba(rgba)


def convert_array_to_image(buffer: np.ndarray) -> Image.Image:
    """Wrap an RGBA uint8 buffer as a new PIL image."""
    return Image.fromarray(np.ascontiguousarray(buffer, dtype=np.uint8))


def get_color(color: str) -> tuple[float, float, float, float]:
    """Parse a CSS color string to normalized RGBA.

    Hex (``#rgb``, ``#rrggbb``, ``#rrggbbaa``), ``rgb()``, ``hsl()`` and
    named colors are supported.
    """
    value = ImageColor.getcolor(color.strip(), "RGBA")
    assert isinstance(value, tuple)
    return tuple(float(c) / 255.0 for c in value)  # type: ignore[return-value]


def split_font_family(family: str) -> list[str]:
    """Split a CSS font-family list into names."""
    return [
        name.strip().strip("'\"") for name in family.split(",") if name.strip()
    ]


def is_bold(weight: Union[str, int, None]) -> bool:
    return str(weight).strip().lower() in BOLD_WEIGHTS


def get_font(
    family: str, size: float, weight: Union[str, int, None] = None
) -> FontType:
    """
    Resolve a CSS font specification to a Pillow font.

    Each family in the list is tried as a TrueType font name, bold variants
    first when ``weight`` asks for them. Falls back to Pillow's default
    scalable font.
    """
    return _get_font(family, round(float(size), 2), is_bold(weight))


@functools.lru_cache(maxsize=64)
def _get_font(family: str, size: float, bold: bool) -> FontType:
    for name in split_font_family(family):
        for candidate in _font_candidates(name, bold):
            font = _try_truetype(candidate, size)
            if font is not None:
                logger.debug("Using font %s for %r" % (candidate, family))
                return font
    logger.debug("No TrueType font found for %r, using default" % family)
    return ImageFont.load_default(size=size)


def _font_candidates(name: str, bold: bool) -> list[str]:
    names = list(GENERIC_FAMILIES.get(name.lower(), (name,)))
    candidates = []
    for base in names:
        compact = re.sub(r"\s+", "", base)
        if bold:
            candidates += [f"{compact}-Bold", f"{base} Bold", f"{compact}bd"]
        candidates += [compact, base]
    return candidates


def _try_truetype(name: str, size: float) -> Optional[FontType]:
    for filename in (name, name + ".ttf"):
        try:
            return ImageFont.truetype(filename, size)
        except OSError:
            continue
    return None
