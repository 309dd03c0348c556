import asyncio
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from recipes.runtime.bus import MessageBus
from recipes.runtime.events import Event
from recipes.spec.context import ResourceContext
from recipes.spec.protocols import ValidationResult

OutputFactory = Callable[[ResourceContext, Dict[str, Any]], Mapping[str, Any]]


class SpySubscriber:
    def __init__(self, bus: MessageBus):
        self.events = []
        bus.subscribe(Event, self.collect)

    def collect(self, event: Event):
        self.events.append(event)

    def events_of_type(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]


class StubResource:
    """
    A scriptable resource kind that records every call made to it.

    `outputs` is either a mapping returned as-is or a callable receiving
    the context and properties; a callable may raise to simulate failures.
    `requires` names an ancestor kind whose outputs must be present, the way
    real resources read their parents through `context.parent`.
    """

    def __init__(
        self,
        outputs: Union[Mapping[str, Any], OutputFactory, None] = None,
        delay: float = 0.0,
        requires: Optional[str] = None,
        validator: Optional[Callable[[Dict[str, Any]], List[str]]] = None,
    ):
        self.outputs = outputs
        self.delay = delay
        self.requires = requires
        self.validator = validator

        self.validate_calls: List[Dict[str, Any]] = []
        self.plan_calls: List[Tuple[ResourceContext, Dict[str, Any]]] = []
        self.create_calls: List[Tuple[ResourceContext, Dict[str, Any]]] = []
        self.active = 0
        self.max_active = 0

    def validate(self, properties: Dict[str, Any]) -> ValidationResult:
        self.validate_calls.append(properties)
        if self.validator is None:
            return ValidationResult.success()
        return ValidationResult(messages=list(self.validator(properties)))

    async def plan(
        self, context: ResourceContext, properties: Dict[str, Any]
    ) -> Mapping[str, Any]:
        self.plan_calls.append((context, properties))
        return await self._resolve(context, properties)

    async def create(
        self, context: ResourceContext, properties: Dict[str, Any]
    ) -> Mapping[str, Any]:
        self.create_calls.append((context, properties))
        return await self._resolve(context, properties)

    async def _resolve(
        self, context: ResourceContext, properties: Dict[str, Any]
    ) -> Mapping[str, Any]:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            # Always yield once so the operation completes asynchronously.
            await asyncio.sleep(self.delay)
            if self.requires is not None:
                context.parent(self.requires)
            if callable(self.outputs):
                return self.outputs(context, properties)
            if self.outputs is None:
                return dict(properties)
            return dict(self.outputs)
        finally:
            self.active -= 1

    @property
    def calls(self) -> int:
        return len(self.plan_calls) + len(self.create_calls)
