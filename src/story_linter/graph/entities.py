"""Entity table and suspected-typo detection.

Entities are keyed by canonical form. Identity is canonical-form equality
unless configuration maps extra aliases onto a name.
"""

from dataclasses import dataclass, field
from typing import Optional

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from story_linter.extract.entities import canonical_form
from story_linter.models.facts import EntityMention


@dataclass
class EntityEntry:
    """Everything known about one entity."""
    canonical: str
    mentions: list[EntityMention] = field(default_factory=list)
    aliases: set[str] = field(default_factory=set)  # Surface forms seen
    introduction: Optional[EntityMention] = None
    introduced_at: int = -1  # Sequence number of the introduction across all mentions

    @property
    def first_mention(self) -> EntityMention:
        return self.mentions[0]

    @property
    def display_name(self) -> str:
        if self.introduction:
            return self.introduction.surface
        return self.first_mention.surface


@dataclass(frozen=True)
class TypoSuspect:
    """An unintroduced name within edit distance of an introduced one."""
    suspect: str  # Canonical form without introduction
    intended: str  # Canonical form with introduction
    distance: int


class EntityTable:
    """Entity facts accumulated across documents in discovery order."""

    def __init__(self, aliases: Optional[dict[str, list[str]]] = None):
        self.entries: dict[str, EntityEntry] = {}
        self._sequence = 0
        self._alias_map: dict[str, str] = {}
        for name, alias_list in (aliases or {}).items():
            target = canonical_form(name)
            for alias in alias_list:
                self._alias_map[canonical_form(alias)] = target

    def resolve(self, canonical: str) -> str:
        """Canonical key an observed canonical form is stored under."""
        return self._alias_map.get(canonical, canonical)

    def add(self, mention: EntityMention) -> None:
        """Add a mention; callers must add in (discovery order, position) order."""
        key = self.resolve(mention.canonical)
        entry = self.entries.get(key)
        if entry is None:
            entry = self.entries[key] = EntityEntry(canonical=key)
        entry.mentions.append(mention)
        entry.aliases.add(mention.surface)
        if mention.is_introduction and entry.introduction is None:
            entry.introduction = mention
            entry.introduced_at = self._sequence
        self._sequence += 1

    def get(self, name: str) -> Optional[EntityEntry]:
        """Look up an entity by any surface or canonical form."""
        return self.entries.get(self.resolve(canonical_form(name)))

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def __iter__(self):
        return iter(self.entries.values())

    def __len__(self) -> int:
        return len(self.entries)

    def introduced(self) -> list[EntityEntry]:
        return [e for e in self.entries.values() if e.introduction is not None]

    def undeclared(self) -> list[EntityEntry]:
        return [e for e in self.entries.values() if e.introduction is None]

    def typo_suspects(self, max_distance: int = 1, min_length: int = 4) -> list[TypoSuspect]:
        """Pair unintroduced names with the closest introduced name.

        Distance is Levenshtein over canonical forms; both forms must be at
        least `min_length` long. Ties go to the smallest distance, then the
        earliest introduction.
        """
        introduced = sorted(
            (e for e in self.introduced() if len(e.canonical) >= min_length),
            key=lambda e: e.introduced_at,
        )
        if not introduced or max_distance < 1:
            return []

        choices = [e.canonical for e in introduced]
        suspects: list[TypoSuspect] = []

        for entry in self.undeclared():
            if len(entry.canonical) < min_length:
                continue
            matches = process.extract(
                entry.canonical,
                choices,
                scorer=Levenshtein.distance,
                score_cutoff=max_distance,
                limit=None,
            )
            if not matches:
                continue
            _, distance, idx = min(matches, key=lambda m: (m[1], m[2]))
            suspects.append(TypoSuspect(entry.canonical, choices[idx], int(distance)))

        return suspects

