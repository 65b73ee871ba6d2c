"""
High-level API of print_compositor.

- :py:mod:`print_compositor.api.layers`: Print layer and request models
- :py:mod:`print_compositor.api.cache`: Composite texture cache
- :py:mod:`print_compositor.api.texture`: Texture handles
- :py:mod:`print_compositor.api.loader`: Image resolution
"""

from print_compositor.api.layers import (
    BaseTexture,
    CompositeRequest,
    ImageLayer,
    PrintLayer,
    TextLayer,
)
from print_compositor.api.texture import TextureHandle
from print_compositor.api.loader import ImageLoader, LayerResolutionError
from print_compositor.api.fingerprint import composite_key
from print_compositor.api.composer import CompositorSettings, LayerWarning, compose
from print_compositor.api.cache import CompositeSuperseded, TextureCache

__all__ = [
    "BaseTexture",
    "CompositeRequest",
    "CompositeSuperseded",
    "CompositorSettings",
    "ImageLayer",
    "ImageLoader",
    "LayerResolutionError",
    "LayerWarning",
    "PrintLayer",
    "TextLayer",
    "TextureCache",
    "TextureHandle",
    "compose",
    "composite_key",
]
