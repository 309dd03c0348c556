from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import time
import itertools

# Fast, thread-safe counter for event IDs
_event_id_gen = itertools.count()


@dataclass(frozen=True)
class Event:
    event_id: str = field(default_factory=lambda: str(next(_event_id_gen)))
    timestamp: float = field(default_factory=time.time)

    run_id: Optional[str] = None


@dataclass(frozen=True)
class RunStarted(Event):
    mode: str = "plan"
    inputs: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RunFinished(Event):
    status: str = "Unknown"  # "Succeeded", "Failed"
    duration: float = 0.0
    passes: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class EvaluationPassFinished(Event):
    pass_number: int = 0
    complete: bool = False
    outstanding: int = 0


@dataclass(frozen=True)
class PlanUpdated(Event):
    plan: Any = None


@dataclass(frozen=True)
class PlanCompleted(Event):
    plan: Any = None


@dataclass(frozen=True)
class ResourceEvent(Event):
    identity: str = ""
    resource_kind: str = ""


@dataclass(frozen=True)
class ResourceValidationFailed(ResourceEvent):
    error: str = ""


@dataclass(frozen=True)
class ResourceOperationStarted(ResourceEvent):
    operation: str = ""  # "plan", "create"


@dataclass(frozen=True)
class ResourceOperationFinished(ResourceEvent):
    operation: str = ""
    status: str = "Unknown"  # "Succeeded", "Failed"
    duration: float = 0.0
    error: Optional[str] = None


@dataclass(frozen=True)
class ResourceDeferred(ResourceEvent):
    operation: str = ""
    reason: str = ""


@dataclass(frozen=True)
class OperationEvent(Event):
    operation_id: str = ""


@dataclass(frozen=True)
class OperationBlocked(OperationEvent):
    reason: str = "ConcurrencyLimit"


@dataclass(frozen=True)
class OperationFinished(OperationEvent):
    status: str = "Unknown"  # "Succeeded", "Failed"
    error: Optional[str] = None


@dataclass(frozen=True)
class ExecutorDrained(Event):
    pass
