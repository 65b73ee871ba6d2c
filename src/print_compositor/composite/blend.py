"""
Blend mode implementations.

Every function takes the backdrop ``Cb`` and the source ``Cs`` as float arrays
in [0, 1] and returns the blended color. Functions are separable: they apply
to each RGB channel identically, and alpha is composited afterwards.
"""

import logging
from typing import Any, Callable

import numpy as np

from print_compositor.constants import BlendMode
from print_compositor.registry import new_registry

logger = logging.getLogger(__name__)

"""Blend function table."""
BLEND_FUNC, register = new_registry(attribute="blend_mode")


@register(BlendMode.NORMAL)
def normal(Cb, Cs):
    return Cs


@register(BlendMode.MULTIPLY)
def multiply(Cb, Cs):
    return Cb * Cs


@register(BlendMode.SCREEN)
def screen(Cb, Cs):
    return Cb + Cs - (Cb * Cs)


@register(BlendMode.OVERLAY)
def overlay(Cb, Cs):
    return hard_light(Cs, Cb)


@register(BlendMode.DARKEN)
def darken(Cb, Cs):
    return np.minimum(Cb, Cs)


@register(BlendMode.LIGHTEN)
def lighten(Cb, Cs):
    return np.maximum(Cb, Cs)


@register(BlendMode.COLOR_DODGE)
def color_dodge(Cb, Cs):
    Cb, Cs = _as_arrays(Cb, Cs)
    B = np.ones_like(Cb, dtype=np.float32)
    index = Cs < 1
    B[index] = np.minimum(1, Cb[index] / (1 - Cs[index]))
    return B


@register(BlendMode.COLOR_BURN)
def color_burn(Cb, Cs):
    Cb, Cs = _as_arrays(Cb, Cs)
    B = np.zeros_like(Cb, dtype=np.float32)
    index = Cs > 0
    B[index] = 1 - np.minimum(1, (1 - Cb[index]) / Cs[index])
    return B


@register(BlendMode.HARD_LIGHT)
def hard_light(Cb, Cs):
    Cb, Cs = _as_arrays(Cb, Cs)
    B = np.where(Cs > 0.5, screen(Cb, 2 * Cs - 1), multiply(Cb, 2 * Cs))
    return B.astype(np.float32)


@register(BlendMode.SOFT_LIGHT)
def soft_light(Cb, Cs):
    """
    Darkens or lightens the colors, depending on the source color. The effect
    is similar to shining a diffused spotlight on the backdrop. Unlike
    overlay, the result has a continuous derivative at ``Cs = 0.5``.
    """
    Cb, Cs = _as_arrays(Cb, Cs)
    D = np.where(Cb <= 0.25, ((16 * Cb - 12) * Cb + 4) * Cb, np.sqrt(Cb))
    B = np.where(
        Cs <= 0.5,
        Cb - (1 - 2 * Cs) * Cb * (1 - Cb),
        Cb + (2 * Cs - 1) * (D - Cb),
    )
    return B.astype(np.float32)


@register(BlendMode.DIFFERENCE)
def difference(Cb, Cs):
    return np.abs(Cb - Cs)


@register(BlendMode.EXCLUSION)
def exclusion(Cb, Cs):
    return Cb + Cs - 2 * Cb * Cs


def get_blend_func(blend_mode: Any) -> Callable:
    """Return the blend function for ``blend_mode``; unknown modes blend normal."""
    return BLEND_FUNC.get(BlendMode.coerce(blend_mode), normal)


def _as_arrays(Cb, Cs):
    Cb = np.asarray(Cb, dtype=np.float32)
    Cs = np.asarray(Cs, dtype=np.float32)
    shape = np.broadcast_shapes(Cb.shape, Cs.shape)
    return np.broadcast_to(Cb, shape), np.broadcast_to(Cs, shape)
