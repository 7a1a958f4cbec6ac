import pytest

from league_portal.core.errors import StoreError
from league_portal.services.reconcile import Patch, Refetch, mutate_then_reconcile

pytestmark = pytest.mark.anyio


class Recorder:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.fail:
            raise StoreError("write rejected", status=400)


async def test_patch_applied_after_successful_mutation(toasts):
    cache = {"rows": [1, 2, 3]}
    mutation = Recorder()

    ok = await mutate_then_reconcile(
        mutation,
        Patch(lambda: cache.update(rows=[r for r in cache["rows"] if r != 2])),
        notifier=toasts,
        success="Removed",
        failure="Could not remove",
    )

    assert ok is True
    assert mutation.calls == 1
    assert cache["rows"] == [1, 3]
    assert [(t.level, t.message) for t in toasts.drain()] == [("success", "Removed")]


async def test_failed_mutation_leaves_cache_untouched(toasts, caplog):
    cache = {"rows": [1, 2, 3]}
    applied = []

    ok = await mutate_then_reconcile(
        Recorder(fail=True),
        Patch(lambda: applied.append(True)),
        notifier=toasts,
        success="Removed",
        failure="Could not remove",
    )

    assert ok is False
    assert applied == []
    assert cache["rows"] == [1, 2, 3]
    assert [(t.level, t.message) for t in toasts.drain()] == [("error", "Could not remove")]
    assert "Could not remove" in caplog.text


async def test_refetch_is_awaited_on_success(toasts):
    fetched = Recorder()
    ok = await mutate_then_reconcile(
        Recorder(), Refetch(fetched), notifier=toasts, success="Saved", failure="Not saved"
    )
    assert ok is True
    assert fetched.calls == 1


async def test_refetch_skipped_on_failure(toasts):
    fetched = Recorder()
    ok = await mutate_then_reconcile(
        Recorder(fail=True), Refetch(fetched), notifier=toasts, success="Saved", failure="Not saved"
    )
    assert ok is False
    assert fetched.calls == 0


async def test_no_reconcile_and_no_success_toast(toasts):
    ok = await mutate_then_reconcile(Recorder(), None, notifier=toasts, success=None, failure="x")
    assert ok is True
    assert toasts.drain() == []


async def test_repeated_action_is_repeated_call(toasts):
    mutation = Recorder()
    for _ in range(2):
        await mutate_then_reconcile(mutation, None, notifier=toasts, success=None, failure="x")
    assert mutation.calls == 2
