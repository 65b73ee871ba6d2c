"""
Print layer and composite request models.

Layers are immutable :py:mod:`attrs` records. The UI supplies them per
component, already validated; the constructors only normalize values and
reject data that cannot be composited::

    from print_compositor.api.layers import ImageLayer, TextLayer

    logo = ImageLayer(id="logo", image_ref="https://example.com/logo.png",
                      position=(0.5, 0.3), scale=0.8, blend_mode="multiply")
    caption = TextLayer(id="caption", content="TEAM", z_index=1)
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Union

import numpy as np
from attrs import define, field
from attrs.validators import instance_of, optional
from PIL import Image

from print_compositor.api import pil_io
from print_compositor.constants import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_FONT_WEIGHT,
    DEFAULT_TEXT_COLOR,
    NO_BASE,
    BlendMode,
    LayerKind,
    TextAlign,
)
from print_compositor.validators import positive, range_

logger = logging.getLogger(__name__)

#: Anything :py:class:`~print_compositor.api.loader.ImageLoader` can resolve.
ImageRef = Union[str, bytes, Image.Image, np.ndarray]


def _to_position(value: Iterable[float]) -> tuple[float, float]:
    if isinstance(value, Mapping):
        value = (value.get("u", value.get("x")), value.get("v", value.get("y")))
    u, v = value
    return (float(u), float(v))


def _validate_position(inst: Any, attr: Any, value: tuple[float, float]) -> None:
    for coord in value:
        if not 0.0 <= coord <= 1.0:
            raise ValueError("'%s' must be in [0, 1]x[0, 1]: %r" % (attr.name, value))


def normalize_rotation(degrees: float) -> float:
    """Normalize an angle to [0, 360)."""
    rotation = float(degrees) % 360.0
    # -1e-20 % 360.0 rounds up to 360.0.
    return 0.0 if rotation >= 360.0 else rotation


@define(frozen=True, eq=False, kw_only=True)
class PrintLayer:
    """
    Common attributes of print layers.

    .. py:attribute:: position

        ``(u, v)`` texture-space anchor of the layer center.

    .. py:attribute:: rotation

        Clockwise rotation in degrees, normalized to [0, 360).

    .. py:attribute:: z_index

        Draw order; lower values are drawn first. Ties keep insertion order.
    """

    id: str = field(converter=str)
    position: tuple[float, float] = field(
        default=(0.5, 0.5), converter=_to_position, validator=_validate_position
    )
    scale: float = field(default=1.0, converter=float, validator=positive)
    rotation: float = field(default=0.0, converter=normalize_rotation)
    opacity: float = field(default=1.0, converter=float, validator=range_(0.0, 1.0))
    blend_mode: BlendMode = field(default=BlendMode.NORMAL, converter=BlendMode.coerce)
    z_index: int = field(default=0, converter=int)

    @property
    def kind(self) -> LayerKind:
        raise NotImplementedError()

    def __repr__(self) -> str:
        return "%s(id=%r, z_index=%d, blend_mode=%s)" % (
            self.__class__.__name__,
            self.id,
            self.z_index,
            self.blend_mode.value,
        )


@define(frozen=True, eq=False, kw_only=True, repr=False)
class ImageLayer(PrintLayer):
    """
    Image print.

    ``width`` and ``height`` declare the natural pixel size of the print;
    when omitted, the decoded bitmap size is used.
    """

    image_ref: ImageRef = field()
    width: Optional[int] = field(
        default=None, converter=lambda x: None if x is None else int(x),
        validator=optional(positive),
    )
    height: Optional[int] = field(
        default=None, converter=lambda x: None if x is None else int(x),
        validator=optional(positive),
    )

    @image_ref.validator
    def _check_image_ref(self, attribute: Any, value: Any) -> None:
        if not isinstance(value, (str, bytes, Image.Image, np.ndarray)):
            raise TypeError("Unsupported image reference: %r" % type(value))
        if isinstance(value, (str, bytes)) and not value:
            raise ValueError("Empty image reference for layer %r" % self.id)

    @property
    def kind(self) -> LayerKind:
        return LayerKind.IMAGE


@define(frozen=True, eq=False, kw_only=True, repr=False)
class TextLayer(PrintLayer):
    """Text print, drawn as a single glyph run per line."""

    content: str = field(validator=instance_of(str))
    font_family: str = field(default=DEFAULT_FONT_FAMILY)
    font_size_px: float = field(
        default=DEFAULT_FONT_SIZE, converter=float, validator=positive
    )
    font_weight: str = field(default=DEFAULT_FONT_WEIGHT, converter=str)
    color: str = field(default=DEFAULT_TEXT_COLOR)
    text_align: TextAlign = field(default=TextAlign.CENTER, converter=TextAlign)

    @color.validator
    def _check_color(self, attribute: Any, value: str) -> None:
        try:
            pil_io.get_color(value)
        except (AttributeError, ValueError) as e:
            raise ValueError("Invalid text color %r: %s" % (value, e)) from e

    @property
    def kind(self) -> LayerKind:
        return LayerKind.TEXT


@define(frozen=True, eq=False)
class BaseTexture:
    """
    Base material texture.

    ``identity`` must be stable for the same pixels; ``source`` is any image
    reference, or ``None`` when the material has no pixel data.
    """

    identity: str = field(converter=str)
    source: Optional[ImageRef] = field(default=None)


@define(frozen=True, eq=False, kw_only=True)
class CompositeRequest:
    """Everything that determines one composite texture."""

    component_id: str = field(converter=str)
    layers: tuple[PrintLayer, ...] = field(default=(), converter=tuple)
    base: Optional[BaseTexture] = field(default=None)

    @layers.validator
    def _check_layers(self, attribute: Any, value: tuple) -> None:
        ids = set()
        for layer in value:
            if not isinstance(layer, PrintLayer):
                raise TypeError("Expected PrintLayer, got %r" % type(layer))
            if layer.id in ids:
                raise ValueError("Duplicate layer id: %r" % layer.id)
            ids.add(layer.id)

    @property
    def base_identity(self) -> str:
        return self.base.identity if self.base is not None else NO_BASE


def sort_layers(layers: Iterable[PrintLayer]) -> list[PrintLayer]:
    """Return layers in draw order: ascending ``z_index``, stable on ties."""
    return sorted(layers, key=lambda layer: layer.z_index)


def layer_from_dict(data: Mapping[str, Any]) -> PrintLayer:
    """
    Build a layer from the configurator's print application record.

    Example::

        layer_from_dict({
            "id": "p1",
            "customImageUrl": "https://example.com/print.png",
            "position": {"x": 0.5, "y": 0.4},
            "scale": 1.2,
            "rotation": 15,
            "opacity": 1,
            "blendMode": "multiply",
            "zIndex": 2,
        })
    """
    common = dict(
        id=data["id"],
        position=data.get("position", (0.5, 0.5)),
        scale=data.get("scale", 1.0),
        rotation=data.get("rotation", 0.0),
        opacity=data.get("opacity", 1.0),
        blend_mode=data.get("blendMode"),
        z_index=data.get("zIndex") or 0,
    )
    if data.get("textContent"):
        style = data.get("textStyle") or {}
        return TextLayer(
            content=data["textContent"],
            font_family=style.get("fontFamily", DEFAULT_FONT_FAMILY),
            font_size_px=style.get("fontSize", DEFAULT_FONT_SIZE),
            font_weight=style.get("fontWeight", DEFAULT_FONT_WEIGHT),
            color=style.get("color", DEFAULT_TEXT_COLOR),
            text_align=style.get("textAlign", TextAlign.CENTER),
            **common,
        )
    image_ref = data.get("customImageUrl") or data.get("imageUrl")
    if not image_ref:
        raise ValueError("Print %r has no image URL or text content" % data["id"])
    return ImageLayer(
        image_ref=image_ref,
        width=data.get("width"),
        height=data.get("height"),
        **common,
    )


def request_from_dict(data: Mapping[str, Any]) -> CompositeRequest:
    """
    Build a request from JSON-like data::

        {
            "component": "body",
            "base": {"identity": "cotton-white", "url": "materials/cotton.png"},
            "prints": [...]
        }
    """
    base = data.get("base")
    return CompositeRequest(
        component_id=data.get("component", data.get("componentId", "")),
        layers=[layer_from_dict(item) for item in data.get("prints", [])],
        base=(
            BaseTexture(base["identity"], base.get("url", base.get("source")))
            if base
            else None
        ),
    )
