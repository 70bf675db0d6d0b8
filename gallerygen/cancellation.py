"""
CancellationToken - Cooperative cancellation shared between threads.
"""

import threading

from .errors import OperationCancelled


class CancellationToken:
    """
    Set once by whoever wants the run to stop; checked by workers between
    units of work.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Operation was cancelled")
