import asyncio
import logging
from typing import Optional

from recipes.adapters.executors.bounded import BoundedExecutor
from recipes.runtime.bus import MessageBus
from recipes.runtime.evaluator import EvaluationView, TreeEvaluator
from recipes.runtime.events import (
    EvaluationPassFinished,
    ExecutorDrained,
    OperationFinished,
    PlanCompleted,
    PlanUpdated,
)
from recipes.runtime.exceptions import ConvergenceError, StalledEvaluationError
from recipes.runtime.transform import OrderedPlan, transform_to_plan
from recipes.spec.context import ResourceContext
from recipes.spec.recipe import RecipeNode

logger = logging.getLogger(__name__)


class ConvergenceScheduler:
    """
    Re-runs the evaluator whenever operations complete until nothing is
    outstanding. Completions are throttled on the leading edge so that a
    burst of them produces a single pass; draining the executor always
    forces a pass.
    """

    def __init__(
        self,
        evaluator: TreeEvaluator,
        executor: BoundedExecutor,
        bus: MessageBus,
        tree: RecipeNode,
        context: ResourceContext,
        run_id: Optional[str] = None,
        min_interval: float = 0.03,
        max_passes: Optional[int] = None,
    ):
        self.evaluator = evaluator
        self.executor = executor
        self.bus = bus
        self.tree = tree
        self.context = context
        self.run_id = run_id
        self.min_interval = min_interval
        self.max_passes = max_passes

        self.passes = 0
        self._last_pass: Optional[float] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._done: Optional["asyncio.Future[OrderedPlan]"] = None

    async def run(self) -> OrderedPlan:
        self._loop = asyncio.get_running_loop()
        self._done = self._loop.create_future()

        self.bus.subscribe(OperationFinished, self._on_operation_finished)
        self.bus.subscribe(ExecutorDrained, self._on_drained)
        try:
            self._evaluate()
            return await self._done
        finally:
            self.bus.unsubscribe(OperationFinished, self._on_operation_finished)
            self.bus.unsubscribe(ExecutorDrained, self._on_drained)

    @property
    def finished(self) -> bool:
        return self._done is not None and self._done.done()

    def _on_operation_finished(self, event: OperationFinished) -> None:
        if event.run_id != self.run_id or self.finished:
            return
        now = self._loop.time()
        if self._last_pass is not None and now - self._last_pass < self.min_interval:
            return
        self._evaluate()

    def _on_drained(self, event: ExecutorDrained) -> None:
        if event.run_id != self.run_id or self.finished:
            return
        self._evaluate()

    def _evaluate(self) -> None:
        try:
            view = self._pass()
            if self.executor.outstanding == 0:
                if not view.complete:
                    raise StalledEvaluationError(
                        self.passes, view.suspended_on.operation_id
                    )
                # Confirm: surfaces results that became readable during the last pass.
                view = self._pass()
                plan = transform_to_plan(view)
                self.bus.publish(PlanCompleted(run_id=self.run_id, plan=plan))
                self._done.set_result(plan)
            else:
                self.bus.publish(
                    PlanUpdated(run_id=self.run_id, plan=transform_to_plan(view))
                )
        except Exception as e:
            logger.debug("Evaluation pass %d failed: %s", self.passes, e)
            if not self._done.done():
                self._done.set_exception(e)

    def _pass(self) -> EvaluationView:
        if self.max_passes is not None and self.passes >= self.max_passes:
            raise ConvergenceError(self.passes, self.executor.outstanding)
        self.passes += 1
        self._last_pass = self._loop.time()
        view = self.evaluator.evaluate(self.tree, self.context)
        self.bus.publish(
            EvaluationPassFinished(
                run_id=self.run_id,
                pass_number=self.passes,
                complete=view.complete,
                outstanding=self.executor.outstanding,
            )
        )
        return view
