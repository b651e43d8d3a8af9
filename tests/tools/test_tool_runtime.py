from __future__ import annotations

import asyncio
import gc

import pytest

from multiapi.cache import TTLCache
from multiapi.errors import RateLimitExceededError, UpstreamError
from multiapi.ratelimit import FixedWindowRateLimiter, RateLimitPolicy
from multiapi.tools import RequestCoalescer, ToolRuntime


def run_async(coro):
    return asyncio.run(coro)


def _runtime(*, max_requests: int = 10, coalesce: bool = False) -> ToolRuntime:
    return ToolRuntime(
        cache=TTLCache(),
        rate_limiter=FixedWindowRateLimiter(
            {"weather": RateLimitPolicy(max_requests=max_requests, window_s=60.0)}
        ),
        category_ttls_s={"weather": 300.0},
        coalesce=coalesce,
    )


def test_fetch_caches_result_and_skips_rate_limit_on_hit():
    runtime = _runtime(max_requests=1)
    calls = 0

    async def loader() -> dict:
        nonlocal calls
        calls += 1
        return {"city": "London", "temperature": 12.5}

    async def scenario() -> None:
        first = await runtime.fetch("weather", "weather:current:London", loader)
        second = await runtime.fetch("weather", "weather:current:London", loader)
        assert first == second == {"city": "London", "temperature": 12.5}

    run_async(scenario())
    assert calls == 1
    assert runtime.rate_limiter.remaining("weather") == 0


def test_fetch_raises_rate_limit_before_calling_loader():
    runtime = _runtime(max_requests=1)
    calls = 0

    async def loader() -> int:
        nonlocal calls
        calls += 1
        return calls

    run_async(runtime.fetch("weather", "a", loader))
    with pytest.raises(RateLimitExceededError):
        run_async(runtime.fetch("weather", "b", loader))
    assert calls == 1


def test_fetch_wraps_loader_failures_in_upstream_error():
    runtime = _runtime()

    async def loader() -> dict:
        raise ConnectionError("HTTP 500")

    with pytest.raises(UpstreamError, match="Failed to fetch weather: HTTP 500"):
        run_async(
            runtime.fetch("weather", "k", loader, failure="Failed to fetch weather")
        )
    assert runtime.cache.get("k") is None


def test_fetch_uses_category_ttl_unless_overridden():
    runtime = _runtime()

    async def loader() -> str:
        return "v"

    run_async(runtime.fetch("weather", "default", loader))
    run_async(runtime.fetch("weather", "override", loader, ttl_s=1))

    rows = runtime.cache._rows
    default_ttl = rows["default"].expires_at_s - rows["override"].expires_at_s
    assert default_ttl == pytest.approx(299, abs=1)


def test_without_coalescing_concurrent_misses_both_load():
    runtime = _runtime()
    calls = 0

    async def loader() -> str:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return "v"

    async def scenario() -> None:
        await asyncio.gather(
            runtime.fetch("weather", "same", loader),
            runtime.fetch("weather", "same", loader),
        )

    run_async(scenario())
    assert calls == 2


def test_coalescing_shares_one_load_between_concurrent_misses():
    runtime = _runtime(coalesce=True)
    calls = 0

    async def loader() -> str:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return "v"

    async def scenario() -> list[str]:
        return await asyncio.gather(
            runtime.fetch("weather", "same", loader),
            runtime.fetch("weather", "same", loader),
            runtime.fetch("weather", "same", loader),
        )

    assert run_async(scenario()) == ["v", "v", "v"]
    assert calls == 1
    assert runtime.rate_limiter.remaining("weather") == 9


def test_coalescer_forgets_finished_keys():
    async def scenario() -> None:
        coalescer = RequestCoalescer()

        async def load() -> int:
            return 1

        assert await coalescer.run("k", load) == 1
        await asyncio.sleep(0)
        assert coalescer.in_flight() == 0

    run_async(scenario())


def test_coalescer_retrieves_failure_after_waiters_cancel():
    async def scenario():
        loop = asyncio.get_running_loop()
        reported = []
        loop.set_exception_handler(lambda _loop, context: reported.append(context))

        coalescer = RequestCoalescer()
        release = asyncio.Event()

        async def load() -> int:
            await release.wait()
            raise RuntimeError("upstream down")

        waiter = asyncio.create_task(coalescer.run("k", load))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        release.set()
        for _ in range(3):
            await asyncio.sleep(0)
        assert coalescer.in_flight() == 0
        gc.collect()
        return reported

    assert run_async(scenario()) == []
