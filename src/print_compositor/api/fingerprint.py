"""
Composite key derivation.

A composite key identifies every input that changes the pixels of a
composite: the component, the base texture identity and, for each layer in
draw order, its transform, blend settings and content identity. The state is
serialized canonically to JSON and hashed, so equal keys mean equal output.
"""

import hashlib
import json
from typing import Any, Union

import numpy as np
from PIL import Image

from print_compositor.api.layers import (
    CompositeRequest,
    ImageLayer,
    ImageRef,
    PrintLayer,
    TextLayer,
    sort_layers,
)


def canonical_state(request: CompositeRequest) -> list[Any]:
    """Return the JSON-compatible state the key is derived from."""
    return [
        request.component_id,
        request.base_identity,
        [layer_state(layer) for layer in sort_layers(request.layers)],
    ]


def layer_state(layer: PrintLayer) -> list[Any]:
    u, v = layer.position
    return [
        layer.id,
        layer.kind.value,
        u,
        v,
        layer.scale,
        layer.rotation,
        layer.opacity,
        layer.blend_mode.value,
        layer.z_index,
        content_identity(layer),
    ]


def content_identity(layer: PrintLayer) -> list[Any]:
    """Identity of what a layer draws, independent of where."""
    if isinstance(layer, TextLayer):
        return [
            layer.content,
            layer.font_family,
            layer.font_size_px,
            layer.font_weight,
            layer.color,
            layer.text_align.value,
        ]
    if isinstance(layer, ImageLayer):
        return [image_identity(layer.image_ref), layer.width, layer.height]
    raise TypeError("Unsupported layer type: %r" % type(layer))


def image_identity(ref: Union[ImageRef, None]) -> str:
    """
    Stable identity of an image reference.

    URLs and paths identify themselves; in-memory bitmaps are identified by a
    digest of their pixels, size and mode.
    """
    if ref is None:
        return ""
    if isinstance(ref, str):
        return "ref:" + ref
    digest = hashlib.sha256()
    if isinstance(ref, bytes):
        digest.update(ref)
        return "bytes:" + digest.hexdigest()
    if isinstance(ref, Image.Image):
        digest.update(("%s:%dx%d:" % (ref.mode, ref.width, ref.height)).encode())
        digest.update(ref.tobytes())
        return "image:" + digest.hexdigest()
    if isinstance(ref, np.ndarray):
        array = np.ascontiguousarray(ref)
        digest.update(("%s:%s:" % (array.dtype.str, array.shape)).encode())
        digest.update(array.tobytes())
        return "array:" + digest.hexdigest()
    raise TypeError("Unsupported image reference: %r" % type(ref))


def serialize(request: CompositeRequest) -> str:
    """Canonical JSON serialization of :py:func:`canonical_state`."""
    return json.dumps(
        canonical_state(request),
        ensure_ascii=False,
        separators=(",", ":"),
        allow_nan=False,
    )


def composite_key(request: CompositeRequest) -> str:
    """
    Compute the composite key of ``request``.

    Example::

        key = composite_key(request)
        assert key == composite_key(request_from_dict(design))
    """
    return hashlib.sha256(serialize(request).encode("utf-8")).hexdigest()
