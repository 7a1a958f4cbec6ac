"""Toast sink: fire-and-forget user notifications, drained by the UI."""
from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Literal

from pydantic import BaseModel, Field

from league_portal.core.logging import get_logger

logger = get_logger(__name__)


class Toast(BaseModel):
    level: Literal["success", "error"]
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ToastQueue:
    def __init__(self, maxlen: int = 50):
        self._toasts: Deque[Toast] = deque(maxlen=maxlen)

    def success(self, message: str) -> None:
        logger.info("toast: %s", message)
        self._toasts.append(Toast(level="success", message=message))

    def error(self, message: str) -> None:
        logger.warning("toast: %s", message)
        self._toasts.append(Toast(level="error", message=message))

    def drain(self) -> List[Toast]:
        out = list(self._toasts)
        self._toasts.clear()
        return out
