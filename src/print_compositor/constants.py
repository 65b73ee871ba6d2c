"""
Various constants for print_compositor
"""

import logging
import re
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

#: Default edge length of composite textures, in pixels.
TEXTURE_SIZE = 2048

#: Largest print width as a fraction of the texture size.
MAX_PRINT_FRACTION = 0.3

#: Seconds to wait for a single image before dropping the layer.
IMAGE_TIMEOUT = 10.0

#: Seconds a cache entry may stay unused before eviction.
MAX_AGE = 5 * 60.0

#: Seconds between background eviction passes.
EVICTION_INTERVAL = 60.0

#: Identity used in composite keys when there is no base texture.
NO_BASE = "none"

DEFAULT_FONT_FAMILY = "Arial, sans-serif"
DEFAULT_FONT_SIZE = 48.0
DEFAULT_FONT_WEIGHT = "normal"
DEFAULT_TEXT_COLOR = "#000000"


class BlendMode(str, Enum):
    """
    Blend modes for print compositing.

    Values are the CSS names the configurator stores with each print.
    """

    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    OVERLAY = "overlay"
    SOFT_LIGHT = "soft-light"
    HARD_LIGHT = "hard-light"
    COLOR_DODGE = "color-dodge"
    COLOR_BURN = "color-burn"
    DARKEN = "darken"
    LIGHTEN = "lighten"
    DIFFERENCE = "difference"
    EXCLUSION = "exclusion"

    @classmethod
    def coerce(cls, value: Any) -> "BlendMode":
        """Convert ``value`` to a blend mode, falling back to NORMAL.

        Accepts members, CSS values (``soft-light``), member names
        (``SOFT_LIGHT``) and camel case (``SoftLight``).
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = re.sub(r"(?<=[a-z])(?=[A-Z])", "-", value.strip())
            name = name.replace("_", "-").replace(" ", "-").lower()
            try:
                return cls(name)
            except ValueError:
                pass
        logger.debug("Unknown blend mode %r, using normal" % (value,))
        return cls.NORMAL


class LayerKind(str, Enum):
    """Print layer variants."""

    IMAGE = "image"
    TEXT = "text"


class TextAlign(str, Enum):
    """Horizontal alignment of a text run relative to its anchor."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"

    @property
    def anchor(self) -> str:
        """Pillow text anchor, vertically centered."""
        return {
            TextAlign.LEFT: "lm",
            TextAlign.CENTER: "mm",
            TextAlign.RIGHT: "rm",
        }[self]
