"""Character consistency: undeclared names, typos, mentions before introduction."""

from typing import Iterator

from story_linter.config import LinterConfig
from story_linter.extract.entities import canonical_form
from story_linter.graph.entities import EntityEntry
from story_linter.graph.store import FactStore
from story_linter.models.diagnostic import Diagnostic, DiagnosticKind, RelatedLocation, Severity
from story_linter.validators.base import Validator, make_diagnostic


class CharacterConsistencyValidator(Validator):
    """Checks every named entity against its introductions.

    - `character.undeclared`: mentioned, never introduced
    - `character.typo-suspect`: unintroduced name one edit away from an
      introduced one
    - `character.before-introduction`: mentioned earlier than introduced
      (only with `character-order: true`)
    """

    name = "character-consistency"

    def check(self, store: FactStore, config: LinterConfig) -> Iterator[Diagnostic]:
        known = {canonical_form(name) for name in config.known_characters}
        suspects = {s.suspect: s for s in store.typo_suspects}

        for entry in store.entities:
            if entry.introduction is not None:
                if config.character_order:
                    yield from self._before_introduction(store, entry)
                continue

            if self._is_known(entry, known):
                continue

            first = entry.first_mention
            suspect = suspects.get(entry.canonical)
            if suspect is not None:
                intended = store.entities.entries[suspect.intended]
                intro = intended.introduction
                yield make_diagnostic(
                    store,
                    DiagnosticKind.CHARACTER_TYPO,
                    Severity.WARNING,
                    first.document,
                    first.position,
                    f'"{first.surface}" may be a typo of "{intended.display_name}" '
                    f"(first appears in {store.document(first.document).path})",
                    related=[RelatedLocation(
                        store.location(intro.document, intro.position),
                        f'"{intended.display_name}" is introduced here',
                    )],
                )
                continue

            yield make_diagnostic(
                store,
                DiagnosticKind.CHARACTER_UNDECLARED,
                Severity.ERROR,
                first.document,
                first.position,
                f'Character "{first.surface}" is mentioned but never introduced',
            )

    @staticmethod
    def _is_known(entry: EntityEntry, known: set[str]) -> bool:
        if entry.canonical in known:
            return True
        return any(canonical_form(surface) in known for surface in entry.aliases)

    @staticmethod
    def _before_introduction(store: FactStore, entry: EntityEntry) -> Iterator[Diagnostic]:
        intro = entry.introduction
        intro_key = (store.order_of(intro.document), intro.position)
        reported: set[str] = set()

        for mention in entry.mentions:
            if (store.order_of(mention.document), mention.position) >= intro_key:
                break
            if mention.retrospective:
                continue
            # One finding per document is enough
            if mention.document in reported:
                continue
            reported.add(mention.document)
            yield make_diagnostic(
                store,
                DiagnosticKind.CHARACTER_BEFORE_INTRODUCTION,
                Severity.WARNING,
                mention.document,
                mention.position,
                f'"{mention.surface}" is mentioned before its introduction '
                f"in {store.document(intro.document).path}",
                related=[RelatedLocation(store.location(intro.document, intro.position), "introduced here")],
            )
