"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/cancellation.py
Per-request cooperative cancellation signal.
"""
import threading
from typing import Callable, Optional

from doublefinder.core.errors import SearchCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag shared by everything working on one request.
    Instances are callable, so they can be passed wherever a
    `stopped_flag: Callable[[], bool]` is expected.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SearchCancelledError()

    def __call__(self) -> bool:
        return self._event.is_set()

    def __repr__(self):
        return f"<CancellationToken cancelled={self.is_cancelled()}>"


def is_cancelled(cancel: Optional[Callable[[], bool]]) -> bool:
    """True if a token (or any stopped_flag callable) was given and is set."""
    return bool(cancel and cancel())
