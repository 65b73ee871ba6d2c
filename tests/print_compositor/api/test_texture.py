import logging

import numpy as np
import pytest

from print_compositor.api.texture import TextureHandle

logger = logging.getLogger(__name__)


def _buffer(width=4, height=2):
    buffer = np.zeros((height, width, 4), dtype=np.uint8)
    buffer[..., 0] = 255
    buffer[..., 3] = 255
    return buffer


def test_texture_handle():
    handle = TextureHandle(_buffer(), key="abc")
    assert handle.size == (4, 2)
    assert handle.width == 4
    assert handle.height == 2
    assert handle.wrap == "repeat"
    assert handle.flip_y is False
    assert handle.warnings == ()
    assert not handle.disposed
    assert handle.numpy().shape == (2, 4, 4)


def test_texture_buffer_is_read_only():
    handle = TextureHandle(_buffer())
    with pytest.raises(ValueError):
        handle.numpy()[0, 0, 0] = 0


def test_texture_topil():
    image = TextureHandle(_buffer()).topil()
    assert image.mode == "RGBA"
    assert image.size == (4, 2)
    assert image.getpixel((0, 0)) == (255, 0, 0, 255)


@pytest.mark.parametrize(
    "buffer",
    [
        np.zeros((2, 2, 3), dtype=np.uint8),
        np.zeros((2, 2), dtype=np.uint8),
        np.zeros((2, 2, 4), dtype=np.float32),
    ],
)
def test_texture_rejects_invalid_buffer(buffer):
    with pytest.raises(ValueError):
        TextureHandle(buffer)


def test_texture_dispose():
    released = []
    handle = TextureHandle(_buffer(), key="abc")
    handle.on_dispose(released.append)
    handle.dispose()
    assert handle.disposed
    assert released == [handle]
    handle.dispose()
    assert released == [handle]
    assert handle.size == (4, 2)
    assert "disposed" in repr(handle)
    with pytest.raises(ValueError):
        handle.numpy()
    with pytest.raises(ValueError):
        handle.on_dispose(released.append)


def test_texture_context_manager():
    with TextureHandle(_buffer()) as handle:
        assert not handle.disposed
    assert handle.disposed
