# league_portal/services/reconcile.py
"""
Mutate-then-reconcile: the single shape every state-changing user action takes.

One remote call is awaited. On success the view's cache is brought back in
line with the store, either by patching it locally (`Patch`, when the new
state is fully known here) or by re-running the view's fetch (`Refetch`,
when the display depends on server-side joins). On failure nothing local is
touched, the error is logged and the user gets a toast. No retries and no
deduplication: a repeated action is a repeated remote call.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from league_portal.core.logging import get_logger
from league_portal.services.notifications import ToastQueue

logger = get_logger(__name__)


@dataclass(frozen=True)
class Patch:
    apply: Callable[[], Any]


@dataclass(frozen=True)
class Refetch:
    fetch: Callable[[], Awaitable[Any]]


Reconcile = Union[Patch, Refetch]


async def mutate_then_reconcile(
    mutation: Callable[[], Awaitable[Any]],
    reconcile: Optional[Reconcile],
    *,
    notifier: ToastQueue,
    success: Optional[str],
    failure: str,
) -> bool:
    try:
        await mutation()
    except Exception:
        logger.exception(failure)
        notifier.error(failure)
        return False

    if isinstance(reconcile, Patch):
        reconcile.apply()
    elif isinstance(reconcile, Refetch):
        await reconcile.fetch()

    if success:
        notifier.success(success)
    return True
