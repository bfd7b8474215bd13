"""Tests for InstrumentCache: hits, single-flight loads and fallback."""

import asyncio

import pytest

from fakes import AsyncLoader, SyncLoader
from sfplay.cache import InstrumentCache
from sfplay.errors import InstrumentLoadError
from sfplay.programs import DEFAULT_IDENTITY


def run(coro):
    return asyncio.run(coro)


class TestAcquire:
    def test_miss_loads_and_caches(self):
        loader = AsyncLoader()
        cache = InstrumentCache(loader)

        async def scenario():
            first = await cache.acquire("violin")
            second = await cache.acquire("violin")
            return first, second

        first, second = run(scenario())
        assert first is second
        assert first.identity == "violin"
        assert loader.calls == ["violin"]
        assert cache.is_loaded("violin")

    def test_sync_loader_runs_in_thread(self):
        loader = SyncLoader()
        cache = InstrumentCache(loader)
        inst = run(cache.acquire("cello"))
        assert inst.identity == "cello"
        assert loader.calls == ["cello"]

    def test_hit_does_not_suspend(self):
        loader = AsyncLoader()
        cache = InstrumentCache(loader)

        async def scenario():
            await cache.acquire("flute")
            coro = cache.acquire("flute")
            # a hit completes on the first send without yielding to the loop
            with pytest.raises(StopIteration) as exc:
                coro.send(None)
            return exc.value.value

        assert run(scenario()).identity == "flute"


class TestSingleFlight:
    def test_concurrent_acquires_share_one_load(self):
        loader = AsyncLoader(delay=0.05)
        cache = InstrumentCache(loader)

        async def scenario():
            return await asyncio.gather(*(cache.acquire("viola") for _ in range(10)))

        results = run(scenario())
        assert loader.calls == ["viola"]
        assert all(r is results[0] for r in results)

    def test_pending_flag_while_loading(self):
        loader = AsyncLoader(delay=0.05)
        cache = InstrumentCache(loader)

        async def scenario():
            task = asyncio.ensure_future(cache.acquire("tuba"))
            await asyncio.sleep(0)
            pending = cache.is_pending("tuba")
            await task
            return pending, cache.is_pending("tuba")

        assert run(scenario()) == (True, False)

    def test_different_identities_load_independently(self):
        loader = AsyncLoader(delay=0.01)
        cache = InstrumentCache(loader)

        async def scenario():
            return await asyncio.gather(cache.acquire("oboe"), cache.acquire("bassoon"))

        oboe, bassoon = run(scenario())
        assert sorted(loader.calls) == ["bassoon", "oboe"]
        assert oboe.identity == "oboe"
        assert bassoon.identity == "bassoon"

    def test_cancelled_waiter_does_not_cancel_load(self):
        loader = AsyncLoader(delay=0.05)
        cache = InstrumentCache(loader)

        async def scenario():
            waiter = asyncio.ensure_future(cache.acquire("koto"))
            await asyncio.sleep(0.01)
            waiter.cancel()
            await asyncio.sleep(0.1)
            return cache.is_loaded("koto")

        assert run(scenario()) is True
        assert loader.calls == ["koto"]


class TestFallback:
    def test_failed_identity_aliases_default(self):
        loader = AsyncLoader(fail={"shamisen"})
        cache = InstrumentCache(loader)

        async def scenario():
            first = await cache.acquire("shamisen")
            second = await cache.acquire("shamisen")
            return first, second

        first, second = run(scenario())
        assert first.identity == DEFAULT_IDENTITY
        assert second is first
        assert loader.calls == ["shamisen", DEFAULT_IDENTITY]
        assert cache.failed == frozenset({"shamisen"})

    def test_fallback_reuses_cached_default(self):
        loader = AsyncLoader(fail={"banjo"})
        cache = InstrumentCache(loader)

        async def scenario():
            piano = await cache.acquire(DEFAULT_IDENTITY)
            banjo = await cache.acquire("banjo")
            return piano, banjo

        piano, banjo = run(scenario())
        assert banjo is piano
        assert loader.calls == [DEFAULT_IDENTITY, "banjo"]

    def test_default_failure_is_fatal(self):
        loader = AsyncLoader(fail={DEFAULT_IDENTITY})
        cache = InstrumentCache(loader)
        with pytest.raises(InstrumentLoadError) as exc:
            run(cache.acquire(DEFAULT_IDENTITY))
        assert exc.value.identity == DEFAULT_IDENTITY
        assert not cache.is_loaded(DEFAULT_IDENTITY)

    def test_failure_with_broken_default_propagates(self):
        loader = AsyncLoader(fail={"sitar", DEFAULT_IDENTITY})
        cache = InstrumentCache(loader)
        with pytest.raises(InstrumentLoadError):
            run(cache.acquire("sitar"))
        assert not cache.is_loaded("sitar")


class TestPreload:
    def test_preload_then_acquire_loads_once(self):
        loader = AsyncLoader(delay=0.01)
        cache = InstrumentCache(loader)

        async def scenario():
            task = cache.preload("harpsichord")
            inst = await cache.acquire("harpsichord")
            await task
            return inst, cache.preload("harpsichord")

        inst, second_preload = run(scenario())
        assert inst.identity == "harpsichord"
        assert second_preload is None
        assert loader.calls == ["harpsichord"]

    def test_clear_forgets_instruments(self):
        loader = AsyncLoader()
        cache = InstrumentCache(loader)

        async def scenario():
            await cache.acquire("marimba")
            cache.clear()
            await cache.acquire("marimba")

        run(scenario())
        assert loader.calls == ["marimba", "marimba"]
        assert cache.loaded_identities() == ["marimba"]

    def test_load_in_flight_at_clear_is_not_cached(self):
        loader = AsyncLoader(delay=0.02)
        cache = InstrumentCache(loader)

        async def scenario():
            cache.preload("violin")
            await asyncio.sleep(0)
            cache.clear()
            assert not cache.is_pending("violin")
            await asyncio.sleep(0.05)
            after_clear = cache.loaded_identities()
            await cache.acquire("violin")
            return after_clear

        assert run(scenario()) == []
        assert loader.calls == ["violin", "violin"]
        assert cache.loaded_identities() == ["violin"]
