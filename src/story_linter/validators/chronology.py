"""Chronology ordering of ordinal markers."""

from typing import Iterator, Optional

from story_linter.config import LinterConfig
from story_linter.graph.store import FactStore
from story_linter.models.diagnostic import Diagnostic, DiagnosticKind, RelatedLocation, Severity
from story_linter.models.facts import ChronologyMarker
from story_linter.validators.base import Validator, make_diagnostic


class ChronologyValidator(Validator):
    """Checks marker ordinals per category in discovery order.

    Monotonic categories must never go backwards; only the first offending
    marker of a category is reported. Strict categories additionally
    forbid repeating an ordinal.
    """

    name = "chronology"

    def check(self, store: FactStore, config: LinterConfig) -> Iterator[Diagnostic]:
        for label, category in sorted(config.chronology.items()):
            markers = store.markers(label)
            if category.monotonic:
                yield from self._out_of_order(store, label, markers)
            if category.strict:
                yield from self._duplicates(store, label, markers)

    @staticmethod
    def _out_of_order(store: FactStore, label: str, markers: tuple[ChronologyMarker, ...]) -> Iterator[Diagnostic]:
        highest: Optional[ChronologyMarker] = None
        for marker in markers:
            if highest is not None and marker.ordinal < highest.ordinal:
                yield make_diagnostic(
                    store,
                    DiagnosticKind.CHRONOLOGY_OUT_OF_ORDER,
                    Severity.ERROR,
                    marker.document,
                    marker.position,
                    f'{label} {marker.ordinal} ("{marker.text}") comes after {label} {highest.ordinal}',
                    related=[RelatedLocation(
                        store.location(highest.document, highest.position),
                        f'{label} {highest.ordinal} ("{highest.text}") appears earlier',
                    )],
                )
                return
            if highest is None or marker.ordinal > highest.ordinal:
                highest = marker

    @staticmethod
    def _duplicates(store: FactStore, label: str, markers: tuple[ChronologyMarker, ...]) -> Iterator[Diagnostic]:
        for marker in markers:
            first = store.markers_with_ordinal(label, marker.ordinal)[0]
            if first is marker:
                continue
            yield make_diagnostic(
                store,
                DiagnosticKind.CHRONOLOGY_DUPLICATE,
                Severity.WARNING,
                marker.document,
                marker.position,
                f"{label} {marker.ordinal} is repeated",
                related=[RelatedLocation(
                    store.location(first.document, first.position),
                    f"{label} {marker.ordinal} first appears here",
                )],
            )

