import logging

import numpy as np
import pytest

from print_compositor.api.layers import (
    BaseTexture,
    CompositeRequest,
    ImageLayer,
    TextLayer,
    layer_from_dict,
    normalize_rotation,
    request_from_dict,
    sort_layers,
)
from print_compositor.constants import NO_BASE, BlendMode, LayerKind, TextAlign

logger = logging.getLogger(__name__)


def test_image_layer_defaults():
    layer = ImageLayer(id="logo", image_ref="logo.png")
    assert layer.position == (0.5, 0.5)
    assert layer.scale == 1.0
    assert layer.rotation == 0.0
    assert layer.opacity == 1.0
    assert layer.blend_mode == BlendMode.NORMAL
    assert layer.z_index == 0
    assert layer.width is None
    assert layer.kind == LayerKind.IMAGE


def test_text_layer_defaults():
    layer = TextLayer(id="caption", content="TEAM")
    assert layer.kind == LayerKind.TEXT
    assert layer.text_align == TextAlign.CENTER
    assert layer.color == "#000000"
    assert "caption" in repr(layer)


@pytest.mark.parametrize(
    "position, expected",
    [
        ((0.25, 0.75), (0.25, 0.75)),
        ([0, 1], (0.0, 1.0)),
        ({"x": 0.1, "y": 0.2}, (0.1, 0.2)),
        ({"u": 0.3, "v": 0.4}, (0.3, 0.4)),
    ],
)
def test_position(position, expected):
    assert ImageLayer(id="p", image_ref="p.png", position=position).position == expected


@pytest.mark.parametrize("position", [(1.5, 0.5), (0.5, -0.1)])
def test_position_out_of_range(position):
    with pytest.raises(ValueError):
        ImageLayer(id="p", image_ref="p.png", position=position)


@pytest.mark.parametrize(
    "degrees, expected",
    [(0, 0.0), (90, 90.0), (360, 0.0), (-90, 270.0), (450, 90.0), (-1e-20, 0.0)],
)
def test_normalize_rotation(degrees, expected):
    assert normalize_rotation(degrees) == pytest.approx(expected)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(scale=0),
        dict(scale=-1),
        dict(opacity=1.5),
        dict(opacity=-0.1),
        dict(width=0),
        dict(image_ref=""),
    ],
)
def test_invalid_image_layer(kwargs):
    kwargs.setdefault("image_ref", "p.png")
    with pytest.raises(ValueError):
        ImageLayer(id="p", **kwargs)


def test_invalid_image_ref_type():
    with pytest.raises(TypeError):
        ImageLayer(id="p", image_ref=42)


def test_image_ref_kinds(red):
    ImageLayer(id="a", image_ref=red)
    ImageLayer(id="b", image_ref=b"\x89PNG")
    ImageLayer(id="c", image_ref=np.zeros((2, 2, 4), dtype=np.uint8))


def test_invalid_text_color():
    with pytest.raises(ValueError):
        TextLayer(id="t", content="x", color="not-a-color")


def test_unknown_blend_mode_is_normal():
    assert ImageLayer(id="p", image_ref="p.png", blend_mode="hue").blend_mode == BlendMode.NORMAL
    assert ImageLayer(id="p", image_ref="p.png", blend_mode=None).blend_mode == BlendMode.NORMAL


def test_layers_are_frozen():
    layer = ImageLayer(id="p", image_ref="p.png")
    with pytest.raises(AttributeError):
        layer.scale = 2.0


def test_sort_layers_is_stable():
    layers = [
        TextLayer(id="a", content="a", z_index=2),
        TextLayer(id="b", content="b", z_index=1),
        TextLayer(id="c", content="c", z_index=2),
        TextLayer(id="d", content="d", z_index=-1),
    ]
    assert [layer.id for layer in sort_layers(layers)] == ["d", "b", "a", "c"]


def test_request():
    request = CompositeRequest(
        component_id="body",
        layers=[TextLayer(id="a", content="a")],
        base=BaseTexture("cotton"),
    )
    assert isinstance(request.layers, tuple)
    assert request.base_identity == "cotton"
    assert CompositeRequest(component_id="body").base_identity == NO_BASE


def test_request_rejects_duplicate_ids():
    with pytest.raises(ValueError):
        CompositeRequest(
            component_id="body",
            layers=[TextLayer(id="a", content="a"), TextLayer(id="a", content="b")],
        )


def test_request_rejects_non_layers():
    with pytest.raises(TypeError):
        CompositeRequest(component_id="body", layers=[{"id": "a"}])


def test_layer_from_dict_image():
    layer = layer_from_dict(
        {
            "id": "p1",
            "customImageUrl": "https://example.com/print.png",
            "imageUrl": "https://example.com/fallback.png",
            "position": {"x": 0.5, "y": 0.4},
            "scale": 1.2,
            "rotation": -15,
            "opacity": 0.9,
            "blendMode": "multiply",
            "zIndex": 2,
            "width": 200,
        }
    )
    assert isinstance(layer, ImageLayer)
    assert layer.image_ref == "https://example.com/print.png"
    assert layer.position == (0.5, 0.4)
    assert layer.rotation == 345.0
    assert layer.blend_mode == BlendMode.MULTIPLY
    assert layer.z_index == 2
    assert layer.width == 200
    assert layer.height is None


def test_layer_from_dict_text():
    layer = layer_from_dict(
        {
            "id": "t1",
            "textContent": "GO",
            "textStyle": {
                "fontFamily": "Impact",
                "fontSize": 64,
                "fontWeight": "bold",
                "color": "rgb(255, 0, 0)",
                "textAlign": "left",
            },
            "zIndex": None,
        }
    )
    assert isinstance(layer, TextLayer)
    assert layer.content == "GO"
    assert layer.font_family == "Impact"
    assert layer.font_size_px == 64.0
    assert layer.font_weight == "bold"
    assert layer.text_align == TextAlign.LEFT
    assert layer.z_index == 0


def test_layer_from_dict_without_content():
    with pytest.raises(ValueError):
        layer_from_dict({"id": "empty", "textContent": ""})


def test_request_from_dict():
    request = request_from_dict(
        {
            "component": "sleeve",
            "base": {"identity": "denim", "url": "materials/denim.png"},
            "prints": [
                {"id": "p1", "imageUrl": "print.png", "zIndex": 1},
                {"id": "t1", "textContent": "A"},
            ],
        }
    )
    assert request.component_id == "sleeve"
    assert request.base.identity == "denim"
    assert request.base.source == "materials/denim.png"
    assert [layer.id for layer in request.layers] == ["p1", "t1"]
    assert request_from_dict({"componentId": "collar"}).base is None
