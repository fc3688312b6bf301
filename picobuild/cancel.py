"""Cooperative cancellation for long builds."""

from __future__ import annotations

import threading
from typing import Optional

from .errors import BuildCancelledError


class CancelToken:
    """Flag shared between the build and whoever may abort it (CLI, UI)."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, tab: Optional[str] = None) -> None:
        if self._event.is_set():
            message = f"Build cancelled while processing tab '{tab}'" if tab else "Build cancelled"
            raise BuildCancelledError(message, tab=tab)


def check_cancelled(token: Optional[CancelToken], tab: Optional[str] = None) -> None:
    if token is not None:
        token.raise_if_cancelled(tab)


__all__ = ["CancelToken", "check_cancelled"]
