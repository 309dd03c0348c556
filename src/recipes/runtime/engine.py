import os
import time
from types import MappingProxyType
from typing import Any, Dict, Optional, Union
from uuid import uuid4

from recipes.adapters.cache.in_memory import ResolutionCache
from recipes.adapters.executors.bounded import BoundedExecutor
from recipes.adapters.state.collection import ResourceCollection
from recipes.providers.registry import ResourceRegistry, registry as default_registry
from recipes.runtime.bus import MessageBus
from recipes.runtime.evaluator import TreeEvaluator
from recipes.runtime.events import RunFinished, RunStarted
from recipes.runtime.invoker import ResourceInvoker
from recipes.runtime.scheduler import ConvergenceScheduler
from recipes.runtime.transform import OrderedPlan
from recipes.spec.context import ResourceContext
from recipes.spec.recipe import Mode, RecipeNode


class Engine:
    """
    Resolves a recipe into a plan or applies it. Every run gets a fresh
    cache, resource collection and executor; nothing is shared between runs
    except the bus and the registry.
    """

    def __init__(
        self,
        registry: Optional[ResourceRegistry] = None,
        bus: Optional[MessageBus] = None,
        concurrency: int = 5,
        min_interval: float = 0.03,
        max_passes: Optional[int] = None,
        root: Optional[str] = None,
    ):
        self.registry = registry or default_registry
        self.bus = bus or MessageBus()
        self.concurrency = concurrency
        self.min_interval = min_interval
        self.max_passes = max_passes
        self.root = root or os.getcwd()

        # State of the most recent run, kept for inspection.
        self.cache: Optional[ResolutionCache] = None
        self.collection: Optional[ResourceCollection] = None

    async def run(
        self,
        recipe: RecipeNode,
        inputs: Optional[Dict[str, Any]] = None,
        mode: Union[Mode, str] = Mode.PLAN,
    ) -> OrderedPlan:
        mode = Mode(mode)
        run_id = str(uuid4())
        start_time = time.time()
        inputs = dict(inputs or {})

        self.bus.publish(RunStarted(run_id=run_id, mode=mode.value, inputs=inputs))

        self.cache = ResolutionCache()
        self.collection = ResourceCollection()
        executor = BoundedExecutor(self.bus, run_id=run_id, capacity=self.concurrency)
        invoker = ResourceInvoker(
            self.registry, self.cache, self.collection, executor, self.bus, run_id
        )
        evaluator = TreeEvaluator(invoker, self.collection)
        context = ResourceContext(
            mode=mode, root=self.root, inputs=MappingProxyType(inputs)
        )
        scheduler = ConvergenceScheduler(
            evaluator,
            executor,
            self.bus,
            recipe,
            context,
            run_id=run_id,
            min_interval=self.min_interval,
            max_passes=self.max_passes,
        )

        try:
            plan = await scheduler.run()
        except Exception as e:
            # In-flight operations cannot be cancelled; let them finish.
            await executor.wait_idle()
            self.bus.publish(
                RunFinished(
                    run_id=run_id,
                    status="Failed",
                    duration=time.time() - start_time,
                    passes=scheduler.passes,
                    error=f"{type(e).__name__}: {e}",
                )
            )
            raise

        self.bus.publish(
            RunFinished(
                run_id=run_id,
                status="Succeeded",
                duration=time.time() - start_time,
                passes=scheduler.passes,
            )
        )
        return plan
