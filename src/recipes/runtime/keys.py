import hashlib
import json
from typing import Any, Dict, NamedTuple, Optional

from recipes.spec.recipe import Mode, ResourceNode


class CacheKey(NamedTuple):
    mode: Mode
    resource_kind: str
    identity: Optional[str]
    fingerprint: Optional[str]

    def __str__(self) -> str:
        parts = [self.mode.value, self.resource_kind]
        if self.identity is not None:
            parts.append(self.identity)
        if self.fingerprint is not None:
            parts.append(self.fingerprint[:12])
        return " ".join(parts)


def fingerprint(properties: Dict[str, Any]) -> str:
    """Computes a stable structural hash of a property mapping."""
    canonical = json.dumps(properties, sort_keys=True, default=repr)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def compute_cache_key(node: ResourceNode, mode: Mode) -> CacheKey:
    """
    In apply mode the key depends only on the logical identity, so a
    resource is created at most once per run. In plan mode the properties
    are part of the key and auto-generated identities are not: identical
    declarations share one plan, changed properties get a fresh one.
    """
    if mode is Mode.APPLY:
        return CacheKey(mode, node.resource_kind, node.logical_identity, None)
    return CacheKey(mode, node.resource_kind, node.key, fingerprint(node.properties))
