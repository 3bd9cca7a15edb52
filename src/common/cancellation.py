"""Cooperative cancellation shared by the resolver, downloads and assembly."""
from __future__ import annotations

import threading
from typing import Optional

from common.errors import ResolutionCancelledError


class CancellationToken:
    """Thread-safe flag checked at the resolver and downloader boundaries."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        """Request cancellation; safe to call from any thread."""
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ResolutionCancelledError once cancellation was requested."""
        if self._event.is_set():
            raise ResolutionCancelledError(self._reason or "Resolution cancelled")


def check_cancelled(token: Optional[CancellationToken]) -> None:
    """Raise if ``token`` is set; a missing token never cancels."""
    if token is not None:
        token.raise_if_cancelled()
