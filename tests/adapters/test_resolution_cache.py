import pytest

from recipes.adapters.cache.in_memory import ResolutionCache
from recipes.runtime.exceptions import CacheReservationError
from recipes.runtime.keys import CacheKey
from recipes.runtime.outcomes import MISS, Pending, PendingHandle, Resolved, ResolvedResult
from recipes.spec.recipe import Mode

KEY = CacheKey(Mode.APPLY, "File", "config", None)


def make_result(**kwargs):
    defaults = dict(resource_kind="File", identity="config", outputs={"path": "/etc/app"})
    defaults.update(kwargs)
    return ResolvedResult(**defaults)


def test_lookup_miss():
    cache = ResolutionCache()
    assert cache.lookup(KEY) is MISS


def test_reserve_then_lookup_returns_pending_handle():
    cache = ResolutionCache()
    handle = PendingHandle(key=KEY, operation_id="op-1")
    cache.reserve(KEY, handle)

    lookup = cache.lookup(KEY)
    assert isinstance(lookup, Pending)
    assert lookup.handle is handle
    assert cache.pending_count == 1


def test_second_reservation_is_rejected():
    cache = ResolutionCache()
    cache.reserve(KEY, PendingHandle(key=KEY, operation_id="op-1"))

    with pytest.raises(CacheReservationError, match="pending"):
        cache.reserve(KEY, PendingHandle(key=KEY, operation_id="op-2"))


def test_reserving_a_resolved_key_is_rejected():
    cache = ResolutionCache()
    cache.commit(KEY, make_result())

    with pytest.raises(CacheReservationError, match="resolved"):
        cache.reserve(KEY, PendingHandle(key=KEY, operation_id="op-1"))


def test_commit_clears_pending_and_stores_result():
    cache = ResolutionCache()
    cache.reserve(KEY, PendingHandle(key=KEY, operation_id="op-1"))
    result = make_result()

    stored = cache.commit(KEY, result)

    assert stored is result
    assert cache.pending_count == 0
    assert cache.lookup(KEY) == Resolved(result)
    assert KEY in cache
    assert len(cache) == 1


def test_commit_never_overwrites_a_stored_result():
    cache = ResolutionCache()
    first = make_result()
    cache.commit(KEY, first)

    stored = cache.commit(KEY, make_result(outputs={"path": "/tmp/other"}))

    assert stored is first
    assert cache.lookup(KEY).result is first


def test_release_clears_pending_without_result():
    cache = ResolutionCache()
    cache.reserve(KEY, PendingHandle(key=KEY, operation_id="op-1"))

    cache.release(KEY)

    assert cache.lookup(KEY) is MISS
    assert len(cache) == 0
    # The key can be reserved again for a retry
    cache.reserve(KEY, PendingHandle(key=KEY, operation_id="op-2"))
