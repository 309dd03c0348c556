import asyncio

import pytest

from recipes.adapters.executors.bounded import BoundedExecutor
from recipes.runtime.events import ExecutorDrained, OperationBlocked, OperationFinished


@pytest.mark.asyncio
async def test_executor_bounds_concurrent_operations(bus_and_spy):
    bus, spy = bus_and_spy
    executor = BoundedExecutor(bus, run_id="run-1", capacity=2)
    active = 0
    peak = 0

    async def work():
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        return "ok"

    futures = [executor.submit(f"op-{i}", work) for i in range(5)]
    assert executor.outstanding == 5

    results = await asyncio.gather(*futures)
    await executor.wait_idle()

    assert results == ["ok"] * 5
    assert peak == 2
    assert executor.outstanding == 0
    assert len(spy.events_of_type(OperationBlocked)) == 3
    assert len(spy.events_of_type(OperationFinished)) == 5
    assert len(spy.events_of_type(ExecutorDrained)) == 1
    assert all(e.run_id == "run-1" for e in spy.events)


@pytest.mark.asyncio
async def test_executor_is_the_only_initiator(bus_and_spy):
    bus, _ = bus_and_spy
    executor = BoundedExecutor(bus, capacity=1)
    started = []

    async def work():
        started.append(True)
        return 1

    future = executor.submit("op-1", work)
    assert started == []

    assert await future == 1
    assert started == [True]


@pytest.mark.asyncio
async def test_failed_work_is_reported_not_raised(bus_and_spy):
    bus, spy = bus_and_spy
    executor = BoundedExecutor(bus, capacity=1)

    async def work():
        raise ValueError("boom")

    future = executor.submit("op-1", work)
    await executor.wait_idle()

    with pytest.raises(ValueError, match="boom"):
        await future

    finished = spy.events_of_type(OperationFinished)
    assert finished[0].status == "Failed"
    assert finished[0].error == "ValueError: boom"
    assert len(spy.events_of_type(ExecutorDrained)) == 1


@pytest.mark.asyncio
async def test_drained_waits_for_work_submitted_by_finish_handlers(bus_and_spy):
    bus, spy = bus_and_spy
    executor = BoundedExecutor(bus, capacity=1)

    async def work():
        return None

    resubmitted = []

    def on_finished(event):
        if not resubmitted:
            resubmitted.append(executor.submit("op-2", work))

    bus.subscribe(OperationFinished, on_finished)
    executor.submit("op-1", work)
    await executor.wait_idle()

    assert len(spy.events_of_type(OperationFinished)) == 2
    assert len(spy.events_of_type(ExecutorDrained)) == 1


def test_capacity_must_be_positive(bus_and_spy):
    bus, _ = bus_and_spy
    with pytest.raises(ValueError):
        BoundedExecutor(bus, capacity=0)


@pytest.mark.asyncio
async def test_wait_idle_returns_once_finished_work_is_collected(bus_and_spy):
    bus, _ = bus_and_spy
    executor = BoundedExecutor(bus, capacity=1)

    async def work():
        return "ok"

    future = executor.submit("op-1", work)
    assert await future == "ok"

    # The task has finished but its done-callback may not have run yet.
    await asyncio.wait_for(executor.wait_idle(), timeout=1)
    await asyncio.wait_for(executor.wait_idle(), timeout=1)
    assert executor.outstanding == 0
