"""Instrument cache with single-flight loading and default-instrument fallback.

The cache lives for the whole audio session and may be shared by several
routers (one per loaded file). It is bound to the asyncio loop that uses it;
concurrent ``acquire`` calls for the same identity share one load.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Optional

from sfplay.errors import InstrumentLoadError
from sfplay.models import LoadedInstrument
from sfplay.programs import DEFAULT_IDENTITY


logger = logging.getLogger(__name__)


class InstrumentCache:
    """Owns every loaded instrument, keyed by identity.

    ``loader`` is any object with ``load(identity) -> LoadedInstrument``,
    either a plain method (run in a worker thread) or a coroutine.
    """

    def __init__(self, loader, default_identity: str = DEFAULT_IDENTITY):
        self._loader = loader
        self.default_identity = default_identity
        self._loaded: dict[str, LoadedInstrument] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self._failed: set[str] = set()
        self._background: set[asyncio.Task] = set()
        # bumped by clear(); loads started earlier never repopulate the cache
        self._generation = 0

    # -- inspection ----------------------------------------------------------

    def is_loaded(self, identity: str) -> bool:
        return identity in self._loaded

    def is_pending(self, identity: str) -> bool:
        return identity in self._pending

    @property
    def failed(self) -> frozenset[str]:
        """Identities that failed to load and now alias the default."""
        return frozenset(self._failed)

    def loaded_identities(self) -> list[str]:
        return sorted(self._loaded)

    # -- acquire -------------------------------------------------------------

    async def acquire(self, identity: str) -> LoadedInstrument:
        loaded = self._loaded.get(identity)
        if loaded is not None:
            return loaded

        task = self._pending.get(identity)
        if task is None:
            task = asyncio.ensure_future(self._load(identity))
            self._pending[identity] = task
            task.add_done_callback(lambda t, key=identity: self._load_done(key, t))
        else:
            logger.debug("joining in-flight load of %s", identity)

        # a cancelled waiter must not cancel the shared load
        return await asyncio.shield(task)

    def _load_done(self, identity: str, task: asyncio.Task):
        if self._pending.get(identity) is task:
            del self._pending[identity]
        if not task.cancelled():
            # mark the error retrieved; waiters get it through their shield
            task.exception()

    async def _load(self, identity: str) -> LoadedInstrument:
        generation = self._generation
        try:
            loaded = await self._call_loader(identity)
        except Exception as exc:
            if identity == self.default_identity:
                logger.error("default instrument %s failed to load: %s", identity, exc)
                raise InstrumentLoadError(identity, f"default instrument '{identity}' "
                                                    f"failed to load: {exc}") from exc
            logger.warning("instrument %s failed to load (%s); using %s",
                           identity, exc, self.default_identity)
            fallback = await self.acquire(self.default_identity)
            if generation == self._generation:
                self._loaded[identity] = fallback
                self._failed.add(identity)
            return fallback

        if generation != self._generation:
            logger.debug("discarding %s, loaded before the cache was cleared", identity)
            return loaded
        self._loaded[identity] = loaded
        logger.info("instrument ready: %s", identity)
        return loaded

    async def _call_loader(self, identity: str) -> LoadedInstrument:
        load = self._loader.load
        if inspect.iscoroutinefunction(load):
            return await load(identity)
        return await asyncio.to_thread(load, identity)

    # -- background preloads ---------------------------------------------------

    def preload(self, identity: str) -> Optional[asyncio.Task]:
        """Start loading ``identity`` without waiting for it.

        Returns the background task, or None on a cache hit. Failures are
        logged here; a later ``acquire`` re-raises critical ones.
        """
        if identity in self._loaded:
            return None
        task = asyncio.ensure_future(self.acquire(identity))
        self._background.add(task)
        task.add_done_callback(self._preload_done)
        return task

    def _preload_done(self, task: asyncio.Task):
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("preload failed: %s", exc)

    # -- teardown --------------------------------------------------------------

    def clear(self):
        """Drop every loaded instrument and cancel outstanding preloads.

        Loads still in flight finish for their current waiters but are not
        cached, and later acquires start fresh loads.
        """
        self._generation += 1
        self._pending.clear()
        for task in list(self._background):
            task.cancel()
        self._background.clear()
        self._loaded.clear()
        self._failed.clear()
        logger.info("instrument cache cleared")
