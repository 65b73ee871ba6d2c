"""
Image resolution for print layers and base textures.

:py:class:`ImageLoader` turns any supported image reference into a decoded
RGBA :py:class:`PIL.Image.Image`:

- :py:class:`PIL.Image.Image` and :py:class:`numpy.ndarray` bitmaps
- encoded image ``bytes``
- ``data:`` URLs
- ``http://`` and ``https://`` URLs, fetched with :py:mod:`httpx`
- ``file://`` URLs and filesystem paths

Every failure, including timeouts, is raised as
:py:exc:`LayerResolutionError`.
"""

import asyncio
import base64
import io
import logging
import urllib.parse
from typing import Optional

import httpx
import numpy as np
from PIL import Image, UnidentifiedImageError

from print_compositor.api import numpy_io, pil_io
from print_compositor.api.layers import ImageRef
from print_compositor.constants import IMAGE_TIMEOUT

logger = logging.getLogger(__name__)


class LayerResolutionError(OSError):
    """An image reference could not be fetched or decoded."""


class ImageLoader(object):
    """
    Asynchronous bitmap loader.

    :param timeout: Seconds allowed per :py:meth:`load` call; None waits
        forever.
    :param client: Optional shared :py:class:`httpx.AsyncClient`. When
        omitted, a client is created per HTTP request.

    Example::

        loader = ImageLoader(timeout=5.0)
        image = await loader.load("https://example.com/print.png")
    """

    def __init__(
        self,
        timeout: Optional[float] = IMAGE_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout = timeout
        self._client = client

    async def load(self, ref: ImageRef, timeout: Optional[float] = None) -> Image.Image:
        """Resolve ``ref`` to an RGBA image within ``timeout`` seconds."""
        timeout = self.timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(self._load(ref), timeout)
        except LayerResolutionError:
            raise
        except asyncio.TimeoutError as e:
            raise LayerResolutionError(
                "Timed out after %gs loading %s" % (timeout, describe_ref(ref))
            ) from e
        except (OSError, ValueError, TypeError, httpx.HTTPError) as e:
            raise LayerResolutionError(
                "Failed to load %s: %s" % (describe_ref(ref), e)
            ) from e

    async def _load(self, ref: ImageRef) -> Image.Image:
        if isinstance(ref, Image.Image):
            return pil_io.convert_image_to_rgba(ref.copy())
        if isinstance(ref, np.ndarray):
            return pil_io.convert_array_to_image(numpy_io.get_array(ref))
        if isinstance(ref, bytes):
            return decode_image(ref)
        if not isinstance(ref, str):
            raise TypeError("Unsupported image reference: %r" % type(ref))

        scheme = urllib.parse.urlsplit(ref).scheme.lower()
        if scheme == "data":
            return decode_image(parse_data_url(ref))
        if scheme in ("http", "https"):
            return decode_image(await self._fetch(ref))
        if scheme == "file":
            path = _file_url_path(ref)
        elif scheme and len(scheme) > 1:
            raise ValueError("Unsupported URL scheme: %s" % scheme)
        else:
            path = ref
        data = await asyncio.to_thread(_read_file, path)
        return decode_image(data)

    async def _fetch(self, url: str) -> bytes:
        logger.debug("Fetching %s" % url)
        if self._client is not None:
            response = await self._client.get(url, follow_redirects=True)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
        return response.content


def decode_image(data: bytes) -> Image.Image:
    """Decode encoded image bytes into an RGBA image."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return pil_io.convert_image_to_rgba(image).copy()
    except (UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise LayerResolutionError("Cannot decode image: %s" % e) from e


def parse_data_url(url: str) -> bytes:
    """Return the payload of a ``data:`` URL."""
    header, sep, payload = url.partition(",")
    if not sep:
        raise ValueError("Malformed data URL")
    if header.lower().endswith(";base64"):
        return base64.b64decode(payload, validate=False)
    return urllib.parse.unquote_to_bytes(payload)


def describe_ref(ref: ImageRef) -> str:
    """Short description of an image reference for log messages."""
    if isinstance(ref, str):
        if ref.startswith("data:"):
            return ref[:32] + "..."
        return ref
    if isinstance(ref, Image.Image):
        return "<%s image %dx%d>" % (ref.mode, ref.width, ref.height)
    if isinstance(ref, np.ndarray):
        return "<array %s>" % (ref.shape,)
    if isinstance(ref, bytes):
        return "<%d bytes>" % len(ref)
    return repr(ref)


def _file_url_path(url: str) -> str:
    parts = urllib.parse.urlsplit(url)
    return urllib.parse.unquote(parts.path)


def _read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()
