"""
print-compositor: print and text compositing for garment textures.

This package merges a base material texture with an ordered stack of print
layers, images and text with their own position, scale, rotation, opacity
and blend mode, into one RGBA texture for a 3D renderer, and caches results
under a content fingerprint.

Basic usage::

    from print_compositor import CompositeRequest, ImageLayer, TextureCache

    request = CompositeRequest(
        component_id="body",
        layers=[ImageLayer(id="logo", image_ref="prints/logo.png")],
    )
    async with TextureCache() as cache:
        texture = await cache.get_or_create(request)
        texture.topil().save("body.png")

Architecture:

- :py:mod:`print_compositor.api`: Models, cache, texture handles, loading
- :py:mod:`print_compositor.composite`: Rasterization and blending engine
"""

from print_compositor.api import (
    BaseTexture,
    CompositeRequest,
    CompositorSettings,
    ImageLayer,
    TextLayer,
    TextureCache,
    TextureHandle,
)
from print_compositor.constants import BlendMode
from print_compositor.version import __version__

__all__ = [
    "BaseTexture",
    "BlendMode",
    "CompositeRequest",
    "CompositorSettings",
    "ImageLayer",
    "TextLayer",
    "TextureCache",
    "TextureHandle",
    "__version__",
]
