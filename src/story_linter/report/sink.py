"""Reporter protocol and the engine's diagnostic buffer."""

import threading
from typing import Callable, Iterable, Protocol

from story_linter.models.diagnostic import Diagnostic, Severity


class Reporter(Protocol):
    """Narrow sink for diagnostics: zero or more `emit` calls, then one `flush`."""

    def emit(self, diagnostic: Diagnostic) -> None: ...

    def flush(self) -> None: ...


def sort_key(order_of: Callable[[str | None], int]):
    """Build the stable ordering key: discovery order, line, column, kind, message.

    Diagnostics without a document (`order_of` returns -1) sort first.
    """
    def key(d: Diagnostic):
        return (
            order_of(d.document),
            d.location.file if d.document is None else "",
            d.location.line,
            d.location.column,
            d.kind.rank,
            d.message,
        )
    return key


class DiagnosticBuffer:
    """Lock-guarded accumulator shared by concurrently running validators."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: list[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self._items.append(diagnostic)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        batch = list(diagnostics)
        with self._lock:
            self._items.extend(batch)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def drain(self, key=None) -> list[Diagnostic]:
        """Remove and return everything, sorted by `key` if given."""
        with self._lock:
            items, self._items = self._items, []
        if key is not None:
            items.sort(key=key)
        return items


class CollectingReporter:
    """Keeps diagnostics in memory; used by the API and tests."""

    def __init__(self):
        self.diagnostics: list[Diagnostic] = []
        self.flushed = False

    def emit(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def flush(self) -> None:
        self.flushed = True

    def codes(self) -> list[str]:
        return [d.code for d in self.diagnostics]


def count_by_severity(diagnostics: Iterable[Diagnostic]) -> dict[Severity, int]:
    counts = {severity: 0 for severity in Severity}
    for d in diagnostics:
        counts[d.severity] += 1
    return counts
