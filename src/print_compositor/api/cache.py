"""
Composite texture cache.

:py:class:`TextureCache` is the entry point used by the 3D rendering layer.
It is owned by the host application: construct it at startup, optionally run
background eviction, and close it on teardown::

    async with TextureCache(CompositorSettings(texture_size=1024)) as cache:
        cache.start_eviction()
        texture = await cache.get_or_create(request)
        upload(texture.numpy())

All mutation happens on the event loop that calls the cache.
"""

import asyncio
import logging
import time
from typing import Callable, Iterator, Optional

from attrs import define, field

from print_compositor.api.composer import CompositorSettings, compose
from print_compositor.api.fingerprint import composite_key
from print_compositor.api.layers import CompositeRequest
from print_compositor.api.loader import ImageLoader
from print_compositor.api.texture import TextureHandle

logger = logging.getLogger(__name__)


class CompositeSuperseded(RuntimeError):
    """A composite finished after a newer request replaced it."""


@define(eq=False)
class CacheEntry:
    handle: TextureHandle
    last_used: float = field()


class TextureCache(object):
    """
    Content-addressed cache of composite textures.

    :param settings: Compositing and eviction parameters.
    :param loader: Image loader; defaults to one using
        ``settings.image_timeout``.
    :param clock: Monotonic clock in seconds.
    """

    def __init__(
        self,
        settings: Optional[CompositorSettings] = None,
        loader: Optional[ImageLoader] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or CompositorSettings()
        self.loader = loader or ImageLoader(timeout=self.settings.image_timeout)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._pending: dict[str, asyncio.Future] = {}
        self._latest: dict[str, str] = {}
        self._generation = 0
        self._eviction_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, key: str) -> Optional[TextureHandle]:
        """Cached handle for ``key`` without refreshing it."""
        entry = self._entries.get(key)
        return entry.handle if entry is not None else None

    async def get_or_create(self, request: CompositeRequest) -> TextureHandle:
        """
        Return the texture for ``request``, compositing it on a miss.

        Concurrent calls for the same key share one composition. A composition
        that finishes after a newer request for the same component is
        discarded. Textures with warnings are returned but not cached, so
        their missing images are retried on the next call; their holder
        disposes them.

        Raises:
            CompositeSuperseded: If a newer request replaced this one
            CanvasAllocationError: If the texture cannot be allocated
        """
        key = composite_key(request)
        self._latest[request.component_id] = key

        entry = self._entries.get(key)
        if entry is not None and entry.handle.disposed:
            logger.debug("Dropping disposed texture %s" % key[:12])
            del self._entries[key]
            entry = None
        if entry is not None:
            entry.last_used = self._clock()
            logger.debug("Cache hit %s" % key[:12])
            return entry.handle

        future = self._pending.get(key)
        if future is not None:
            logger.debug("Waiting for in-flight composite %s" % key[:12])
            return await asyncio.shield(future)

        logger.debug("Cache miss %s for %s" % (key[:12], request.component_id))
        future = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        generation = self._generation
        try:
            handle = await compose(request, self.loader, self.settings, key=key)
            self._store(request, key, handle, generation)
        except Exception as e:
            future.set_exception(e)
        except BaseException:
            future.cancel()
            raise
        else:
            future.set_result(handle)
        finally:
            if self._pending.get(key) is future:
                del self._pending[key]
        return await future

    def _store(
        self,
        request: CompositeRequest,
        key: str,
        handle: TextureHandle,
        generation: int,
    ) -> None:
        if generation != self._generation:
            handle.dispose()
            raise CompositeSuperseded("Cache was cleared during composite %s" % key)
        if self._latest.get(request.component_id) != key:
            handle.dispose()
            raise CompositeSuperseded(
                "Composite %s for %s was superseded" % (key, request.component_id)
            )
        if handle.warnings:
            logger.debug(
                "Not caching %s: %d layers failed" % (key[:12], len(handle.warnings))
            )
            return
        self._entries[key] = CacheEntry(handle, self._clock())

    def evict_stale(self, max_age: Optional[float] = None) -> int:
        """
        Dispose entries unused for at least ``max_age`` seconds.

        Defaults to ``settings.max_age``. Returns the number of evicted
        entries.
        """
        if max_age is None:
            max_age = self.settings.max_age
        now = self._clock()
        stale = [
            key for key, entry in self._entries.items() if now - entry.last_used >= max_age
        ]
        for key in stale:
            self._entries.pop(key).handle.dispose()
        if stale:
            logger.debug("Evicted %d stale textures" % len(stale))
        return len(stale)

    def clear_all(self) -> None:
        """Dispose every cached texture and drop in-flight results."""
        entries, self._entries = self._entries, {}
        self._generation += 1
        self._latest.clear()
        for entry in entries.values():
            entry.handle.dispose()
        logger.debug("Cleared %d textures" % len(entries))

    def start_eviction(self, interval: Optional[float] = None) -> asyncio.Task:
        """Run :py:meth:`evict_stale` every ``interval`` seconds."""
        if self._eviction_task is not None and not self._eviction_task.done():
            return self._eviction_task
        interval = interval or self.settings.eviction_interval
        self._eviction_task = asyncio.get_running_loop().create_task(
            self._evict_periodically(interval)
        )
        return self._eviction_task

    async def _evict_periodically(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.evict_stale()

    async def close(self) -> None:
        """Stop background eviction and dispose everything."""
        task, self._eviction_task = self._eviction_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.clear_all()

    async def __aenter__(self) -> "TextureCache":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
