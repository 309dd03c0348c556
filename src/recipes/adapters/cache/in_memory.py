import logging
from typing import Dict

from recipes.runtime.exceptions import CacheReservationError
from recipes.runtime.keys import CacheKey
from recipes.runtime.outcomes import (
    MISS,
    Lookup,
    Pending,
    PendingHandle,
    Resolved,
    ResolvedResult,
)

logger = logging.getLogger(__name__)


class ResolutionCache:
    """
    Run-scoped store of final results and in-flight handles. A key is either
    missing, pending or resolved; once resolved it stays resolved.
    """

    def __init__(self):
        self._results: Dict[CacheKey, ResolvedResult] = {}
        self._pending: Dict[CacheKey, PendingHandle] = {}

    def lookup(self, key: CacheKey) -> Lookup:
        if key in self._results:
            return Resolved(self._results[key])
        if key in self._pending:
            return Pending(self._pending[key])
        return MISS

    def reserve(self, key: CacheKey, handle: PendingHandle) -> None:
        if key in self._results:
            raise CacheReservationError(key, "resolved")
        if key in self._pending:
            raise CacheReservationError(key, "pending")
        self._pending[key] = handle

    def commit(self, key: CacheKey, result: ResolvedResult) -> ResolvedResult:
        self._pending.pop(key, None)
        existing = self._results.get(key)
        if existing is not None:
            if existing != result:
                logger.debug("Keeping first result for %s, discarding late commit", key)
            return existing
        self._results[key] = result
        return result

    def release(self, key: CacheKey) -> None:
        self._pending.pop(key, None)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._results

    def __len__(self) -> int:
        return len(self._results)
