"""
Asynchronous composition of composite requests.

The composer starts resolving the base texture and every image layer at once,
waits for all of them, and only then composites in draw order, so the output
never depends on which image finished loading first.
"""

import asyncio
import logging
from typing import Optional

from attrs import define, field
from PIL import Image

from print_compositor.api.layers import CompositeRequest, ImageLayer
from print_compositor.api.loader import ImageLoader, LayerResolutionError
from print_compositor.api.texture import TextureHandle
from print_compositor.composite import composite
from print_compositor.constants import (
    EVICTION_INTERVAL,
    IMAGE_TIMEOUT,
    MAX_AGE,
    MAX_PRINT_FRACTION,
    TEXTURE_SIZE,
)
from print_compositor.validators import positive, range_

logger = logging.getLogger(__name__)


def _optional_positive(inst, attr, value) -> None:
    if value is not None:
        positive(inst, attr, value)


@define(frozen=True)
class CompositorSettings:
    """
    Compositing and caching parameters.

    .. py:attribute:: max_print_fraction

        Largest image print width relative to the texture size. The default
        cap of 0.3 keeps a single print from covering the whole garment;
        ``None`` disables it.
    """

    texture_size: int = field(default=TEXTURE_SIZE, converter=int, validator=positive)
    max_print_fraction: Optional[float] = field(
        default=MAX_PRINT_FRACTION, validator=_optional_positive
    )
    image_timeout: Optional[float] = field(
        default=IMAGE_TIMEOUT, validator=_optional_positive
    )
    max_age: float = field(default=MAX_AGE, converter=float, validator=range_(0, None))
    eviction_interval: float = field(
        default=EVICTION_INTERVAL, converter=float, validator=positive
    )


@define(frozen=True)
class LayerWarning:
    """A layer that was dropped from a composite."""

    layer_id: Optional[str]
    message: str

    def __str__(self) -> str:
        if self.layer_id is None:
            return "base texture: %s" % self.message
        return "layer %s: %s" % (self.layer_id, self.message)


async def compose(
    request: CompositeRequest,
    loader: Optional[ImageLoader] = None,
    settings: Optional[CompositorSettings] = None,
    key: Optional[str] = None,
) -> TextureHandle:
    """
    Resolve images and composite ``request`` into a new texture handle.

    Layers whose image cannot be resolved are skipped and reported in
    :py:attr:`TextureHandle.warnings`. A base texture that cannot be resolved
    is replaced by the neutral white fill and reported the same way.

    Raises:
        CanvasAllocationError: If the texture buffer cannot be allocated
    """
    settings = settings or CompositorSettings()
    loader = loader or ImageLoader()
    timeout = settings.image_timeout
    warnings: list[LayerWarning] = []

    image_layers = [layer for layer in request.layers if isinstance(layer, ImageLayer)]
    base_source = request.base.source if request.base is not None else None

    jobs = [loader.load(layer.image_ref, timeout) for layer in image_layers]
    if base_source is not None:
        jobs.append(loader.load(base_source, timeout))
    results = await asyncio.gather(*jobs, return_exceptions=True)

    base: Optional[Image.Image] = None
    if base_source is not None:
        result = results.pop()
        if isinstance(result, LayerResolutionError):
            logger.warning(
                "Base texture %s unavailable: %s" % (request.base_identity, result)
            )
            warnings.append(LayerWarning(None, str(result)))
        elif isinstance(result, BaseException):
            raise result
        else:
            base = result

    images = {}
    for layer, result in zip(image_layers, results):
        if isinstance(result, LayerResolutionError):
            logger.warning("Dropping layer %s: %s" % (layer.id, result))
            warnings.append(LayerWarning(layer.id, str(result)))
        elif isinstance(result, BaseException):
            raise result
        else:
            images[layer.id] = result

    buffer = await asyncio.to_thread(
        composite,
        request.layers,
        settings.texture_size,
        base=base,
        images=images,
        max_print_fraction=settings.max_print_fraction,
    )
    logger.debug(
        "Composite texture created for %s: %d layers, base %s, %d warnings"
        % (request.component_id, len(request.layers), request.base_identity, len(warnings))
    )
    return TextureHandle(buffer, key=key, warnings=warnings)
