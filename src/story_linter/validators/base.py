"""Validator plugin base."""

from typing import Iterable, Iterator

from story_linter.config import LinterConfig
from story_linter.graph.store import FactStore
from story_linter.models.diagnostic import Diagnostic, DiagnosticKind, RelatedLocation, Severity
from story_linter.models.document import Position


class Validator:
    """A check over a frozen FactStore.

    Subclasses set `name` (the key under `validators:` in the config) and
    implement `check`. Validators must not mutate the store; their only
    output is the diagnostics they yield.
    """

    name: str = ""
    enabled_by_default: bool = True

    def enabled(self, config: LinterConfig) -> bool:
        return config.validator_enabled(self.name, self.enabled_by_default)

    def check(self, store: FactStore, config: LinterConfig) -> Iterator[Diagnostic]:
        raise NotImplementedError

    def run(self, store: FactStore, config: LinterConfig) -> list[Diagnostic]:
        return list(self.check(store, config))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def make_diagnostic(
    store: FactStore,
    kind: DiagnosticKind,
    severity: Severity,
    doc_id: str,
    position: Position,
    message: str,
    related: Iterable[RelatedLocation] = (),
) -> Diagnostic:
    """Build a diagnostic located in a stored document."""
    return Diagnostic(
        kind=kind,
        severity=severity,
        location=store.location(doc_id, position),
        message=message,
        document=doc_id,
        related=tuple(related),
    )
