"""
Cancellation for async transfer runs.
"""

import threading

from .errors import TransferCancelled


class CancelToken:
    """
    Thread-safe cancellation flag.

    The presentation layer (or a SIGINT handler) calls cancel(); transfer
    workers poll it between chunks.
    """

    def __init__(self):
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        """Signal cancellation."""
        self._event.set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise TransferCancelled("Transfer cancelled by user")
