"""Cooperative cancellation."""

import threading

from story_linter.errors import AnalysisCancelled


class CancelToken:
    """A flag the engine polls between files, parses and validators."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AnalysisCancelled()
