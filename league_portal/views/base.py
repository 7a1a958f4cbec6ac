from __future__ import annotations

from typing import Any, Callable, Optional

from league_portal.schemas.auth import AuthState, SessionSnapshot
from league_portal.services.notifications import ToastQueue


class CachedView:
    """
    Holds one screen's cached collections. Writes go through `_commit` and
    `_patch`, which turn into no-ops once the view is unmounted, so a
    response that lands after the user navigated away changes nothing.

    `epoch` is bumped by `reset()`. A fetch captures it when it starts and
    passes it as `since=`; if a reset happened in between, the result is
    dropped instead of repopulating the view.
    """

    def __init__(self, notifier: ToastQueue):
        self.notifier = notifier
        self.mounted = True
        self.loading = True
        self.epoch = 0

    def unmount(self) -> None:
        self.mounted = False

    def reset(self) -> None:
        self.epoch += 1
        self._commit(loading=True)

    def _live(self, since: Optional[int]) -> bool:
        return self.mounted and (since is None or since == self.epoch)

    def _commit(self, since: Optional[int] = None, **slices: Any) -> bool:
        if not self._live(since):
            return False
        for name, value in slices.items():
            setattr(self, name, value)
        return True

    def _patch(self, name: str, fn: Callable[[Any], Any], since: Optional[int] = None) -> bool:
        """Replace a slice with fn(old); the old list object is never mutated in place."""
        if not self._live(since):
            return False
        setattr(self, name, fn(getattr(self, name)))
        return True


def reset_on_session_change(*views: CachedView) -> Callable[[SessionSnapshot], None]:
    """
    Session listener: every sign-out and every new session (PENDING_ROLES is
    only entered for a fresh sign-in) empties the given views.
    """
    def listener(snap: SessionSnapshot) -> None:
        if snap.state in (AuthState.SIGNED_OUT, AuthState.PENDING_ROLES):
            for view in views:
                view.reset()

    return listener
