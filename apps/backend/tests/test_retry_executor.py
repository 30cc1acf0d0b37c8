"""Tests for the per-adapter retry executor."""

import asyncio

import pytest

from discovery.executors.base import RetryPolicy, run_adapter_with_retry, run_adapters_concurrently
from discovery.models import POISource, POIType
from fakes import AlwaysFailingAdapter, DummyAdapter, make_poi

TYPES = frozenset(POIType)


def test_policy_radii_shrink_by_step_and_clamp_at_minimum():
    policy = RetryPolicy(max_attempts=6, radius_step_m=500, min_radius_m=1000)
    radii = policy.radii(2200)
    assert radii == [2200, 1700, 1200, 1000, 1000, 1000]
    for previous, current in zip(radii, radii[1:]):
        assert current == max(policy.min_radius_m, previous - policy.radius_step_m)


def test_policy_raises_sub_floor_radius_to_minimum():
    policy = RetryPolicy(max_attempts=3, radius_step_m=500, min_radius_m=1000)
    assert policy.radii(500) == [1000, 1000, 1000]


@pytest.mark.asyncio
async def test_sub_floor_radius_is_never_queried(paris, recorded_sleeps):
    adapter = AlwaysFailingAdapter(POISource.OVERPASS)
    policy = RetryPolicy(max_attempts=3, radius_step_m=500, min_radius_m=1000, base_delay_s=0)

    run = await run_adapter_with_retry(adapter, paris, 500, TYPES, policy=policy, sleep=recorded_sleeps)

    assert [call[1] for call in adapter.calls] == [1000, 1000, 1000]
    assert run.status.radii_m == (1000, 1000, 1000)


def test_policy_backoff_is_linear():
    policy = RetryPolicy(base_delay_s=0.5)
    assert [policy.delay_for(n) for n in (1, 2, 3)] == [0.5, 1.0, 1.5]


@pytest.mark.asyncio
async def test_exhausted_retries_query_shrinking_radii(paris, recorded_sleeps):
    adapter = AlwaysFailingAdapter(POISource.OVERPASS)
    policy = RetryPolicy(max_attempts=3, radius_step_m=500, min_radius_m=1000, base_delay_s=0.5)

    run = await run_adapter_with_retry(adapter, paris, 5000, TYPES, policy=policy, sleep=recorded_sleeps)

    assert [call[1] for call in adapter.calls] == [5000, 4500, 4000]
    assert run.radii_m == [5000, 4500, 4000]
    assert recorded_sleeps.delays == [0.5, 1.0]
    assert run.pois == []
    assert run.status.status == "exhausted"
    assert run.status.attempts == 3
    assert run.failure is not None
    assert run.failure.source == "overpass"


@pytest.mark.asyncio
async def test_final_attempt_never_goes_below_minimum_radius(paris, recorded_sleeps):
    adapter = AlwaysFailingAdapter(POISource.WIKIDATA)
    policy = RetryPolicy(max_attempts=5, radius_step_m=500, min_radius_m=1000, base_delay_s=0)

    await run_adapter_with_retry(adapter, paris, 1800, TYPES, policy=policy, sleep=recorded_sleeps)

    radii = [call[1] for call in adapter.calls]
    assert radii == [1800, 1300, 1000, 1000, 1000]
    assert min(radii) >= 1000
    assert recorded_sleeps.delays == []


@pytest.mark.asyncio
async def test_success_after_failure_reports_ok(paris, recorded_sleeps):
    poi = make_poi("o1", "Louvre", POISource.OVERPASS)
    adapter = DummyAdapter(POISource.OVERPASS, [poi], fail_times=1)

    run = await run_adapter_with_retry(
        adapter, paris, 5000, TYPES, policy=RetryPolicy(), sleep=recorded_sleeps
    )

    assert run.pois == [poi]
    assert run.status.succeeded
    assert run.status.attempts == 2
    assert run.status.radii_m == (5000, 4500)
    assert run.failure is None


@pytest.mark.asyncio
async def test_unexpected_adapter_exceptions_are_contained(paris, recorded_sleeps):
    adapter = AlwaysFailingAdapter(POISource.WIKIPEDIA, error=KeyError("lat"))
    run = await run_adapter_with_retry(
        adapter, paris, 5000, TYPES, policy=RetryPolicy(max_attempts=2), sleep=recorded_sleeps
    )
    assert run.status.status == "exhausted"
    assert "KeyError" in run.failure.message


@pytest.mark.asyncio
async def test_per_call_timeout_counts_as_failure(paris, recorded_sleeps):
    adapter = DummyAdapter(POISource.WIKIPEDIA, [], delay=1.0)
    policy = RetryPolicy(max_attempts=1, timeout_s=0.01)

    run = await run_adapter_with_retry(adapter, paris, 5000, TYPES, policy=policy, sleep=recorded_sleeps)

    assert run.status.status == "timeout"
    assert run.pois == []


@pytest.mark.asyncio
async def test_fan_out_runs_adapters_concurrently(paris):
    gate = asyncio.Event()
    slow = DummyAdapter(POISource.WIKIDATA, [make_poi("d1", "Orsay", POISource.WIKIDATA)], gate=gate)
    fast = DummyAdapter(POISource.OVERPASS, [make_poi("o1", "Louvre", POISource.OVERPASS)])

    task = asyncio.ensure_future(run_adapters_concurrently([slow, fast], paris, 5000, TYPES))
    for _ in range(10):
        await asyncio.sleep(0)
    # Both adapters have been called before the slow one is released
    assert len(slow.calls) == 1 and len(fast.calls) == 1
    assert not task.done()

    gate.set()
    runs = await task
    assert [r.status.source for r in runs] == [POISource.WIKIDATA, POISource.OVERPASS]
    assert all(r.status.succeeded for r in runs)
