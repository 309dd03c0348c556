import asyncio
from typing import Any, Dict, Optional, Union

# Core Specs
from .spec.recipe import Mode, ResourceNode, GroupNode, RecipeNode, resource, group
from .spec.context import ResourceContext
from .spec.protocols import ResourceKind, ValidationResult

# Runtime
from .runtime.engine import Engine
from .runtime.bus import MessageBus
from .runtime.subscribers import HumanReadableLogSubscriber
from .runtime.exceptions import (
    RecipesRuntimeError,
    RecoverableDependencyError,
    MissingInfoError,
    UnknownResourceError,
    ConvergenceError,
    StalledEvaluationError,
)
from .runtime.transform import OrderedPlan, PlanEntry, transform_to_plan
from .providers.registry import ResourceRegistry, registry

# Tools
from .tools.cli import cli, create_cli

# --- Main Run Entrypoint ---

from .messaging.bus import bus as messaging_bus
from .messaging.renderer import CliRenderer, JsonRenderer


def run(
    recipe: RecipeNode,
    inputs: Optional[Dict[str, Any]] = None,
    mode: Union[Mode, str] = Mode.PLAN,
    log_level: str = "INFO",
    log_format: str = "human",
    registry: Optional[ResourceRegistry] = None,
    concurrency: int = 5,
) -> OrderedPlan:
    """
    Resolves a recipe with a default engine configuration and returns the
    final plan.
    """
    # 1. Setup the messaging renderer
    if log_format == "json":
        renderer = JsonRenderer(min_level=log_level)
    else:
        renderer = CliRenderer(store=messaging_bus.store, min_level=log_level)
    messaging_bus.set_renderer(renderer)

    # 2. Setup the event system
    event_bus = MessageBus()
    HumanReadableLogSubscriber(event_bus)

    engine = Engine(registry=registry, bus=event_bus, concurrency=concurrency)

    return asyncio.run(engine.run(recipe, inputs=inputs, mode=mode))


def plan(recipe: RecipeNode, inputs: Optional[Dict[str, Any]] = None, **kwargs: Any) -> OrderedPlan:
    return run(recipe, inputs=inputs, mode=Mode.PLAN, **kwargs)


def apply(recipe: RecipeNode, inputs: Optional[Dict[str, Any]] = None, **kwargs: Any) -> OrderedPlan:
    return run(recipe, inputs=inputs, mode=Mode.APPLY, **kwargs)


__all__ = [
    "run",
    "plan",
    "apply",
    "cli",
    "create_cli",
    "resource",
    "group",
    "Mode",
    "ResourceNode",
    "GroupNode",
    "RecipeNode",
    "ResourceContext",
    "ResourceKind",
    "ValidationResult",
    "Engine",
    "MessageBus",
    "OrderedPlan",
    "PlanEntry",
    "transform_to_plan",
    "ResourceRegistry",
    "registry",
    "RecipesRuntimeError",
    "RecoverableDependencyError",
    "MissingInfoError",
    "UnknownResourceError",
    "ConvergenceError",
    "StalledEvaluationError",
]
