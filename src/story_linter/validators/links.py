"""Link integrity and bidirectional link detection."""

from typing import Iterator

from story_linter.config import LinterConfig
from story_linter.graph.store import FactStore
from story_linter.models.diagnostic import Diagnostic, DiagnosticKind, Severity
from story_linter.validators.base import Validator, make_diagnostic


class LinkIntegrityValidator(Validator):
    """Reports links whose target document or anchor does not exist.

    External links are never reported. Each link yields at most one
    diagnostic.
    """

    name = "link-integrity"

    def check(self, store: FactStore, config: LinterConfig) -> Iterator[Diagnostic]:
        for parsed in store.parsed:
            for link in parsed.links:
                if link.external:
                    continue

                if link.resolved is None:
                    yield make_diagnostic(
                        store,
                        DiagnosticKind.LINK_BROKEN,
                        Severity.ERROR,
                        link.source,
                        link.position,
                        f'Broken link to "{link.raw_target}"',
                    )
                    continue

                if not link.fragment:
                    continue

                target = store.get(link.resolved)
                anchors = {a.lower() for a in target.anchors}
                if link.fragment.lower() not in anchors:
                    yield make_diagnostic(
                        store,
                        DiagnosticKind.LINK_BROKEN_ANCHOR,
                        Severity.WARNING,
                        link.source,
                        link.position,
                        f'Anchor "#{link.fragment}" not found in {target.document.path}',
                    )


class BidirectionalLinksValidator(Validator):
    """Notes pairs of documents that link to each other (off by default)."""

    name = "bidirectional-links"
    enabled_by_default = False

    def check(self, store: FactStore, config: LinterConfig) -> Iterator[Diagnostic]:
        for a, b in store.links.mutual_pairs():
            first = next(l for l in store.links.outbound(a) if l.resolved == b)
            yield make_diagnostic(
                store,
                DiagnosticKind.LINK_BIDIRECTIONAL,
                Severity.INFO,
                a,
                first.position,
                f"Bidirectional link between {store.document(a).path} and {store.document(b).path}",
            )
