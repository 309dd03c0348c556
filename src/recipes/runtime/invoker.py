import time
import itertools
from dataclasses import replace
from collections.abc import Mapping
from typing import Any, Dict, Optional, Set

from recipes.adapters.cache.in_memory import ResolutionCache
from recipes.adapters.state.collection import ResourceCollection
from recipes.providers.registry import ResourceRegistry
from recipes.runtime.bus import MessageBus
from recipes.runtime.events import (
    ResourceDeferred,
    ResourceOperationFinished,
    ResourceOperationStarted,
    ResourceValidationFailed,
)
from recipes.runtime.exceptions import RecoverableDependencyError
from recipes.runtime.keys import CacheKey, compute_cache_key
from recipes.runtime.outcomes import (
    MISS,
    Failed,
    Outcome,
    Pending,
    PendingHandle,
    Ready,
    Resolved,
    ResolvedResult,
)
from recipes.spec.context import ResourceContext
from recipes.spec.protocols import Executor, ResourceKind
from recipes.spec.recipe import Mode, ResourceNode


def _normalize_outputs(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    return {"value": value}


class ResourceInvoker:
    """
    Turns one resource node into an outcome: a cached result, a pending
    operation, or a terminal failure. Never runs a resource operation twice
    for the same cache key.
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        cache: ResolutionCache,
        collection: ResourceCollection,
        executor: Executor,
        bus: MessageBus,
        run_id: Optional[str] = None,
    ):
        self.registry = registry
        self.cache = cache
        self.collection = collection
        self.executor = executor
        self.bus = bus
        self.run_id = run_id
        self._operation_ids = itertools.count(1)
        self._reported: Set[str] = set()

    def invoke(self, node: ResourceNode, context: ResourceContext) -> Outcome:
        kind = self.registry.get(node.resource_kind, node.identity)
        key = compute_cache_key(node, context.mode)
        properties = dict(node.properties)

        # 1. Validation is synchronous and terminal
        validation = kind.validate(properties)
        if not validation.ok:
            message = validation.messages[0]
            result = ResolvedResult(
                resource_kind=node.resource_kind,
                identity=node.identity,
                properties=properties,
                error=f"Validation error: {message}",
            )
            # A key shared with a valid node keeps that node's result.
            if self.cache.lookup(key) is MISS:
                self.cache.commit(key, result)
            if node.identity not in self._reported:
                self._reported.add(node.identity)
                self.bus.publish(
                    ResourceValidationFailed(
                        run_id=self.run_id,
                        identity=node.identity,
                        resource_kind=node.resource_kind,
                        error=message,
                    )
                )
            self._record(node, result)
            return Failed(result)

        # 2. Cache check
        lookup = self.cache.lookup(key)
        if isinstance(lookup, Resolved):
            self._record(node, lookup.result)
            return Failed(lookup.result) if lookup.result.failed else Ready(lookup.result)
        if isinstance(lookup, Pending):
            return lookup

        # 3. Miss: reserve the key, then hand the unstarted operation to the executor
        handle = PendingHandle(key=key, operation_id=f"op-{next(self._operation_ids)}")
        self.cache.reserve(key, handle)
        node_context = context.for_node(node.identity, node.key)

        async def work() -> Optional[ResolvedResult]:
            return await self._perform(kind, key, node, node_context, properties)

        handle.future = self.executor.submit(handle.operation_id, work)
        return Pending(handle)

    async def _perform(
        self,
        kind: ResourceKind,
        key: CacheKey,
        node: ResourceNode,
        context: ResourceContext,
        properties: Dict[str, Any],
    ) -> Optional[ResolvedResult]:
        try:
            return await self._execute(kind, key, node, context, properties)
        except Exception as e:
            # A reserved key must end up committed or released.
            if isinstance(self.cache.lookup(key), Pending):
                result = self.cache.commit(
                    key,
                    ResolvedResult(
                        resource_kind=node.resource_kind,
                        identity=node.identity,
                        properties=properties,
                        error=f"{type(e).__name__}: {e}",
                    ),
                )
                self._record(node, result)
            raise

    async def _execute(
        self,
        kind: ResourceKind,
        key: CacheKey,
        node: ResourceNode,
        context: ResourceContext,
        properties: Dict[str, Any],
    ) -> Optional[ResolvedResult]:
        # The key may have been resolved while this operation was queued.
        lookup = self.cache.lookup(key)
        if isinstance(lookup, Resolved):
            self._record(node, lookup.result)
            return lookup.result

        is_apply = context.mode is Mode.APPLY
        operation_name = "create" if is_apply else "plan"
        operation = kind.create if is_apply else kind.plan

        self.bus.publish(
            ResourceOperationStarted(
                run_id=self.run_id,
                identity=node.identity,
                resource_kind=node.resource_kind,
                operation=operation_name,
            )
        )
        start_time = time.time()

        try:
            outputs = await operation(context, properties)
        except RecoverableDependencyError as e:
            self.cache.release(key)
            self.bus.publish(
                ResourceDeferred(
                    run_id=self.run_id,
                    identity=node.identity,
                    resource_kind=node.resource_kind,
                    operation=operation_name,
                    reason=str(e),
                )
            )
            return None
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            result = self.cache.commit(
                key,
                ResolvedResult(
                    resource_kind=node.resource_kind,
                    identity=node.identity,
                    properties=properties,
                    error=error,
                ),
            )
            self._record(node, result)
            self.bus.publish(
                ResourceOperationFinished(
                    run_id=self.run_id,
                    identity=node.identity,
                    resource_kind=node.resource_kind,
                    operation=operation_name,
                    status="Failed",
                    duration=time.time() - start_time,
                    error=error,
                )
            )
            return result

        result = self.cache.commit(
            key,
            ResolvedResult(
                resource_kind=node.resource_kind,
                identity=node.identity,
                properties=properties,
                outputs=_normalize_outputs(outputs),
                is_done=is_apply,
            ),
        )
        self._record(node, result)
        self.bus.publish(
            ResourceOperationFinished(
                run_id=self.run_id,
                identity=node.identity,
                resource_kind=node.resource_kind,
                operation=operation_name,
                status="Succeeded",
                duration=time.time() - start_time,
            )
        )
        return result

    def _record(self, node: ResourceNode, result: ResolvedResult) -> None:
        # Unkeyed nodes can share a plan result; each keeps its own identity.
        if node.key is None and result.identity != node.identity:
            result = replace(result, identity=node.identity)
        self.collection.update(node.logical_identity, result)
