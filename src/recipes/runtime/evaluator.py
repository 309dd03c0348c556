from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from recipes.adapters.state.collection import ResourceCollection
from recipes.runtime.invoker import ResourceInvoker
from recipes.runtime.outcomes import (
    Failed,
    Pending,
    PendingHandle,
    ResolvedResult,
)
from recipes.spec.context import ResourceContext
from recipes.spec.recipe import GroupNode, Mode, RecipeNode, ResourceNode


class VisitStatus(str, Enum):
    RESOLVED = "resolved"
    FAILED = "failed"
    SKIPPED = "skipped"
    PENDING = "pending"


@dataclass(frozen=True)
class VisitRecord:
    node: ResourceNode
    status: VisitStatus
    depth: int = 0
    step: Any = None
    result: Optional[ResolvedResult] = None
    skipped_reason: Optional[str] = None


@dataclass(frozen=True)
class EvaluationView:
    """What one pass over the recipe saw, in traversal order."""

    mode: Mode
    records: List[VisitRecord] = field(default_factory=list)
    complete: bool = False
    suspended_on: Optional[PendingHandle] = None
    resources: Dict[str, ResolvedResult] = field(default_factory=dict)


class _Walk:
    def __init__(self):
        self.records: List[VisitRecord] = []
        self.suspended_on: Optional[PendingHandle] = None


class TreeEvaluator:
    """
    Walks the recipe depth-first, feeding each resource through the
    invoker. The first pending resource ends the pass: everything already
    visited has left its effects in the cache and the executor, so the next
    pass replays cheaply up to the same point and goes further.
    """

    def __init__(self, invoker: ResourceInvoker, collection: ResourceCollection):
        self.invoker = invoker
        self.collection = collection

    def evaluate(self, tree: RecipeNode, context: ResourceContext) -> EvaluationView:
        walk = _Walk()
        complete = self._visit(tree, context, walk, depth=0, step=None)
        return EvaluationView(
            mode=context.mode,
            records=walk.records,
            complete=complete,
            suspended_on=walk.suspended_on,
            resources=self.collection.snapshot(),
        )

    def _visit(
        self,
        node: RecipeNode,
        context: ResourceContext,
        walk: _Walk,
        depth: int,
        step: Any,
    ) -> bool:
        if isinstance(node, GroupNode):
            child_step = node.step if node.step is not None else step
            for child in node.children:
                if not self._visit(child, context, walk, depth, child_step):
                    return False
            return True

        outcome = self.invoker.invoke(node, context)

        if isinstance(outcome, Pending):
            walk.records.append(
                VisitRecord(node, VisitStatus.PENDING, depth=depth, step=step)
            )
            walk.suspended_on = outcome.handle
            return False

        if isinstance(outcome, Failed):
            walk.records.append(
                VisitRecord(
                    node,
                    VisitStatus.FAILED,
                    depth=depth,
                    step=step,
                    result=outcome.result,
                )
            )
            for child in node.children:
                self._skip(child, walk, depth + 1, step, node.identity)
            return True

        walk.records.append(
            VisitRecord(
                node,
                VisitStatus.RESOLVED,
                depth=depth,
                step=step,
                result=outcome.result,
            )
        )
        child_context = context.with_parent(
            node.resource_kind, outcome.result.outputs or {}
        )
        for child in node.children:
            if not self._visit(child, child_context, walk, depth + 1, step):
                return False
        return True

    def _skip(
        self, node: RecipeNode, walk: _Walk, depth: int, step: Any, failed_identity: str
    ) -> None:
        if isinstance(node, GroupNode):
            child_step = node.step if node.step is not None else step
            for child in node.children:
                self._skip(child, walk, depth, child_step, failed_identity)
            return

        walk.records.append(
            VisitRecord(
                node,
                VisitStatus.SKIPPED,
                depth=depth,
                step=step,
                skipped_reason=f"UpstreamFailed: {failed_identity}",
            )
        )
        for child in node.children:
            self._skip(child, walk, depth + 1, step, failed_identity)
