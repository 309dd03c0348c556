from typing import Dict, Optional

from recipes.runtime.outcomes import ResolvedResult


class ResourceCollection:
    """
    Shared view of every resource resolved so far, keyed by logical
    identity. Writes that carry an identical value are not counted as
    changes.
    """

    def __init__(self):
        self._resources: Dict[str, ResolvedResult] = {}

    def update(self, identity: str, result: ResolvedResult) -> bool:
        if self._resources.get(identity) == result:
            return False
        self._resources[identity] = result
        return True

    def get(self, identity: str) -> Optional[ResolvedResult]:
        return self._resources.get(identity)

    def snapshot(self) -> Dict[str, ResolvedResult]:
        return dict(self._resources)

    def __len__(self) -> int:
        return len(self._resources)
