import pytest

from recipes.adapters.cache.in_memory import ResolutionCache
from recipes.adapters.executors.bounded import BoundedExecutor
from recipes.adapters.state.collection import ResourceCollection
from recipes.runtime.evaluator import TreeEvaluator, VisitStatus
from recipes.runtime.invoker import ResourceInvoker
from recipes.spec.context import ResourceContext
from recipes.spec.recipe import Mode, group, resource
from recipes.testing import StubResource


def make_evaluator(registry, bus):
    collection = ResourceCollection()
    executor = BoundedExecutor(bus, run_id="run-1")
    invoker = ResourceInvoker(
        registry, ResolutionCache(), collection, executor, bus, run_id="run-1"
    )
    return TreeEvaluator(invoker, collection), executor


@pytest.mark.asyncio
async def test_descendants_wait_for_their_ancestor(registry, bus_and_spy):
    bus, _ = bus_and_spy
    directory = StubResource(outputs={"path": "/srv/app"})
    file = StubResource(
        outputs=lambda ctx, props: {"path": f"{ctx.parent('Directory')['path']}/{props['name']}"}
    )
    registry.register("Directory", directory)
    registry.register("File", file)
    evaluator, executor = make_evaluator(registry, bus)
    tree = resource("Directory", resource("File", name="app.py"), path="/srv/app")
    context = ResourceContext(mode=Mode.APPLY)

    first = evaluator.evaluate(tree, context)
    assert first.complete is False
    assert [r.status for r in first.records] == [VisitStatus.PENDING]
    assert first.suspended_on is not None
    assert file.calls == 0

    await executor.wait_idle()
    second = evaluator.evaluate(tree, context)
    assert [r.status for r in second.records] == [VisitStatus.RESOLVED, VisitStatus.PENDING]
    assert len(directory.create_calls) == 1

    await executor.wait_idle()
    third = evaluator.evaluate(tree, context)
    assert third.complete is True
    assert third.records[1].result.outputs == {"path": "/srv/app/app.py"}
    assert third.records[1].depth == 1
    assert len(directory.create_calls) == 1
    assert len(file.create_calls) == 1


@pytest.mark.asyncio
async def test_first_pending_node_aborts_the_pass(registry, bus_and_spy):
    bus, _ = bus_and_spy
    a = StubResource()
    b = StubResource()
    registry.register("A", a)
    registry.register("B", b)
    evaluator, executor = make_evaluator(registry, bus)
    tree = group(resource("A"), resource("B"))

    view = evaluator.evaluate(tree, ResourceContext(mode=Mode.PLAN))

    assert len(view.records) == 1
    assert view.records[0].node.resource_kind == "A"
    assert b.calls == 0
    assert executor.outstanding == 1
    await executor.wait_idle()


@pytest.mark.asyncio
async def test_failed_node_skips_its_subtree_only(registry, bus_and_spy):
    bus, _ = bus_and_spy
    registry.register("Bad", StubResource(validator=lambda props: ["always invalid"]))
    child = StubResource()
    registry.register("Child", child)
    registry.register("Other", StubResource())
    evaluator, executor = make_evaluator(registry, bus)
    bad = resource("Bad", resource("Child", group(resource("Child"))))
    tree = group(bad, resource("Other"))
    context = ResourceContext(mode=Mode.PLAN)

    view = evaluator.evaluate(tree, context)

    statuses = [(r.node.resource_kind, r.status) for r in view.records]
    assert statuses == [
        ("Bad", VisitStatus.FAILED),
        ("Child", VisitStatus.SKIPPED),
        ("Child", VisitStatus.SKIPPED),
        ("Other", VisitStatus.PENDING),
    ]
    assert view.records[1].skipped_reason == f"UpstreamFailed: {bad.identity}"
    assert child.calls == 0

    await executor.wait_idle()
    assert evaluator.evaluate(tree, context).complete is True


@pytest.mark.asyncio
async def test_step_metadata_flows_to_nested_resources(registry, bus_and_spy):
    bus, _ = bus_and_spy
    registry.register("File", StubResource())
    evaluator, executor = make_evaluator(registry, bus)
    tree = group(
        group(resource("File", path="a")),
        group(resource("File", path="b"), step=2),
        step=1,
    )
    context = ResourceContext(mode=Mode.PLAN)

    view = evaluator.evaluate(tree, context)
    while not view.complete:
        await executor.wait_idle()
        view = evaluator.evaluate(tree, context)

    assert [r.step for r in view.records] == [1, 2]
    assert set(view.resources) == {r.node.identity for r in view.records}


def test_empty_group_is_complete(registry, bus_and_spy):
    bus, _ = bus_and_spy
    evaluator, executor = make_evaluator(registry, bus)

    view = evaluator.evaluate(group(), ResourceContext(mode=Mode.PLAN))

    assert view.complete is True
    assert view.records == []
