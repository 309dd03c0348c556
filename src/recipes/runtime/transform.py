import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from recipes.runtime.evaluator import EvaluationView, VisitStatus
from recipes.runtime.outcomes import ResolvedResult
from recipes.spec.recipe import Mode


@dataclass(frozen=True)
class PlanEntry:
    identity: str
    resource_kind: str
    properties: Dict[str, Any] = field(default_factory=dict)
    key: Optional[str] = None
    outputs: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    is_done: bool = False
    skipped_reason: Optional[str] = None
    step: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "identity": self.identity,
            "key": self.key,
            "resource_kind": self.resource_kind,
            "properties": self.properties,
            "is_done": self.is_done,
            "step": self.step,
        }
        if self.skipped_reason is not None:
            data["skipped_reason"] = self.skipped_reason
        elif self.error is not None:
            data["error"] = self.error
        else:
            data["outputs"] = self.outputs or {}
        return data


@dataclass(frozen=True)
class OrderedPlan:
    mode: Mode
    entries: Tuple[PlanEntry, ...] = ()
    complete: bool = False
    resources: Tuple[ResolvedResult, ...] = ()

    @property
    def errors(self) -> List[PlanEntry]:
        return [e for e in self.entries if e.error is not None]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "complete": self.complete,
            "entries": [e.to_dict() for e in self.entries],
            "resources": [r.to_dict() for r in self.resources],
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, indent=indent, default=repr)


def transform_to_plan(view: EvaluationView) -> OrderedPlan:
    """
    Converts what a pass saw into a plan. Pending resources are left out:
    they have neither outputs nor an error yet.
    """
    entries: List[PlanEntry] = []
    for record in view.records:
        if record.status is VisitStatus.PENDING:
            continue
        node = record.node
        result = record.result
        entries.append(
            PlanEntry(
                identity=node.identity,
                key=node.key,
                resource_kind=node.resource_kind,
                properties=dict(node.properties),
                outputs=dict(result.outputs) if result and result.outputs is not None else None,
                error=result.error if result else None,
                is_done=result.is_done if result else False,
                skipped_reason=record.skipped_reason,
                step=record.step,
            )
        )

    resources = tuple(view.resources[identity] for identity in sorted(view.resources))
    return OrderedPlan(
        mode=view.mode,
        entries=tuple(entries),
        complete=view.complete,
        resources=resources,
    )
