"""Orphan detection: documents no entry point can reach."""

from posixpath import splitext
from typing import Iterator

from story_linter.config import LinterConfig
from story_linter.graph.store import FactStore
from story_linter.ingest.loader import MARKUP_EXTENSIONS, document_id
from story_linter.models.diagnostic import Diagnostic, DiagnosticKind, Severity
from story_linter.models.document import Position
from story_linter.validators.base import Validator, make_diagnostic


def entry_ids(config: LinterConfig) -> list[str]:
    """Configured entry points as document ids (`index.md` -> `index`)."""
    ids = []
    for entry in config.entry_points:
        entry = entry.strip().lstrip("/")
        if splitext(entry)[1].lower() in MARKUP_EXTENSIONS:
            entry = document_id(entry)
        ids.append(entry)
    return ids


class OrphanDetectionValidator(Validator):
    """One breadth-first traversal from the entry points over resolvable links."""

    name = "orphan-detection"

    def check(self, store: FactStore, config: LinterConfig) -> Iterator[Diagnostic]:
        entries = entry_ids(config)
        reachable = store.links.reachable_from(entries)

        for doc in store.documents:
            if doc.id in reachable:
                continue
            yield make_diagnostic(
                store,
                DiagnosticKind.GRAPH_ORPHAN,
                Severity.WARNING,
                doc.id,
                Position(1, 1),
                f"Orphaned document: not reachable from any entry point ({', '.join(entries) or 'none'})",
            )
