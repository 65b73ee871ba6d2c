import logging

import attrs
import numpy as np
import pytest

from print_compositor.api.fingerprint import (
    canonical_state,
    composite_key,
    image_identity,
    serialize,
)
from print_compositor.api.layers import (
    BaseTexture,
    CompositeRequest,
    ImageLayer,
    TextLayer,
)

from ..utils import solid

logger = logging.getLogger(__name__)


@pytest.fixture
def request_():
    return CompositeRequest(
        component_id="body",
        base=BaseTexture("cotton", "cotton.png"),
        layers=[
            ImageLayer(id="logo", image_ref="logo.png", position=(0.3, 0.4), z_index=1),
            TextLayer(id="caption", content="TEAM", z_index=2),
        ],
    )


def _with_layer(request, index, **changes):
    layers = list(request.layers)
    layers[index] = attrs.evolve(layers[index], **changes)
    return attrs.evolve(request, layers=layers)


def test_key_is_deterministic(request_):
    key = composite_key(request_)
    assert len(key) == 64
    assert key == composite_key(attrs.evolve(request_))


def test_key_ignores_insertion_order_across_z(request_):
    reordered = attrs.evolve(request_, layers=list(reversed(request_.layers)))
    assert composite_key(reordered) == composite_key(request_)


def test_key_keeps_insertion_order_on_ties():
    a = TextLayer(id="a", content="a")
    b = TextLayer(id="b", content="b")
    forward = CompositeRequest(component_id="body", layers=[a, b])
    backward = CompositeRequest(component_id="body", layers=[b, a])
    assert composite_key(forward) != composite_key(backward)


@pytest.mark.parametrize(
    "index, changes",
    [
        (0, dict(position=(0.31, 0.4))),
        (0, dict(scale=1.1)),
        (0, dict(rotation=10)),
        (0, dict(opacity=0.9)),
        (0, dict(blend_mode="multiply")),
        (0, dict(z_index=3)),
        (0, dict(image_ref="other.png")),
        (0, dict(width=100)),
        (1, dict(content="TEAMS")),
        (1, dict(font_family="Impact")),
        (1, dict(font_size_px=12)),
        (1, dict(font_weight="bold")),
        (1, dict(color="#ff0000")),
        (1, dict(text_align="left")),
    ],
)
def test_key_changes_with_layer(request_, index, changes):
    assert composite_key(_with_layer(request_, index, **changes)) != composite_key(request_)


def test_key_changes_with_component_and_base(request_):
    key = composite_key(request_)
    assert composite_key(attrs.evolve(request_, component_id="sleeve")) != key
    assert composite_key(attrs.evolve(request_, base=BaseTexture("denim"))) != key
    assert composite_key(attrs.evolve(request_, base=None)) != key


def test_key_uses_base_identity_only(request_):
    other_source = attrs.evolve(request_, base=BaseTexture("cotton", "elsewhere/cotton.png"))
    assert composite_key(other_source) == composite_key(request_)


def test_key_adding_layer(request_):
    extra = TextLayer(id="extra", content="!")
    grown = attrs.evolve(request_, layers=list(request_.layers) + [extra])
    assert composite_key(grown) != composite_key(request_)


def test_canonical_state(request_):
    state = canonical_state(request_)
    assert state[0] == "body"
    assert state[1] == "cotton"
    assert [layer[0] for layer in state[2]] == ["logo", "caption"]
    assert state[2][0][1] == "image"
    assert serialize(request_).startswith('["body","cotton",')


def test_image_identity_of_bitmaps():
    red = solid((255, 0, 0), (4, 4))
    assert image_identity(red) == image_identity(red.copy())
    assert image_identity(red) != image_identity(solid((0, 0, 255), (4, 4)))
    assert image_identity(red) != image_identity(solid((255, 0, 0), (4, 2)))

    array = np.zeros((2, 2, 4), dtype=np.uint8)
    assert image_identity(array) == image_identity(array.copy())
    assert image_identity(array) != image_identity(array.astype(np.float32))

    assert image_identity(b"abc") == image_identity(b"abc")
    assert image_identity(b"abc") != image_identity("abc")
    assert image_identity("logo.png") == "ref:logo.png"


def test_key_of_in_memory_images():
    first = CompositeRequest(
        component_id="body",
        layers=[ImageLayer(id="p", image_ref=solid((255, 0, 0), (4, 4)))],
    )
    same = CompositeRequest(
        component_id="body",
        layers=[ImageLayer(id="p", image_ref=solid((255, 0, 0), (4, 4)))],
    )
    other = CompositeRequest(
        component_id="body",
        layers=[ImageLayer(id="p", image_ref=solid((0, 255, 0), (4, 4)))],
    )
    assert composite_key(first) == composite_key(same)
    assert composite_key(first) != composite_key(other)
