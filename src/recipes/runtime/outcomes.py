import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from recipes.runtime.keys import CacheKey


@dataclass(frozen=True)
class ResolvedResult:
    resource_kind: str
    identity: str
    properties: Dict[str, Any] = field(default_factory=dict)
    outputs: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    is_done: bool = False

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "resource_kind": self.resource_kind,
            "identity": self.identity,
            "properties": self.properties,
            "is_done": self.is_done,
        }
        if self.error is not None:
            data["error"] = self.error
        else:
            data["outputs"] = self.outputs or {}
        return data


@dataclass
class PendingHandle:
    key: CacheKey
    operation_id: str
    future: Optional["asyncio.Future[Any]"] = None


# --- Cache lookups ---


@dataclass(frozen=True)
class Resolved:
    result: ResolvedResult


class _Miss:
    def __repr__(self) -> str:
        return "MISS"


MISS = _Miss()


# --- Invoker outcomes ---


@dataclass(frozen=True)
class Ready:
    result: ResolvedResult


@dataclass(frozen=True)
class Pending:
    handle: PendingHandle


@dataclass(frozen=True)
class Failed:
    result: ResolvedResult


Lookup = Union[Resolved, Pending, _Miss]
Outcome = Union[Ready, Pending, Failed]
