"""
Composite module for print layer rendering and blending.

This subpackage provides the rendering engine that merges a base material
texture with an ordered stack of print layers. Compositing happens in two
stages per layer: the layer is rasterized into an isolated patch, then the
patch is blended onto the accumulated texture.

Key modules:

- :py:mod:`print_compositor.composite.composite`: Compositor and buffer stages
- :py:mod:`print_compositor.composite.blend`: Blend mode implementations
- :py:mod:`print_compositor.composite.rasterize`: Image and text patches

Example usage::

    from print_compositor.api.layers import ImageLayer
    from print_compositor.composite import composite

    layer = ImageLayer(id="logo", image_ref=logo, blend_mode="multiply")
    buffer = composite([layer], 2048, base=material, images={"logo": logo})

The engine works on float32 NumPy planes in [0, 1] and quantizes the final
texture to 8-bit RGBA.
"""

from print_compositor.composite.composite import (
    CanvasAllocationError,
    Compositor,
    blend_onto,
    composite,
)
from print_compositor.composite.rasterize import Patch, rasterize_layer

__all__ = [
    "CanvasAllocationError",
    "Compositor",
    "Patch",
    "blend_onto",
    "composite",
    "rasterize_layer",
]
