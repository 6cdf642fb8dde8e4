"""The Fact Store: parsed facts indexed for validators.

Populated by a single `FactStoreBuilder` after all documents are parsed,
then frozen. Validators only ever read a `FactStore`.
"""

from collections import defaultdict
from dataclasses import replace
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from story_linter.config import LinterConfig
from story_linter.graph.entities import EntityTable, TypoSuspect
from story_linter.graph.links import LinkGraph
from story_linter.models.diagnostic import Location
from story_linter.models.document import Document, Position
from story_linter.models.facts import ChronologyMarker, EntityMention, Link, ParsedDocument


class FactStore:
    """Frozen, read-only view over all facts of one run."""

    def __init__(
        self,
        parsed: tuple[ParsedDocument, ...],
        links: LinkGraph,
        entities: EntityTable,
        typo_suspects: tuple[TypoSuspect, ...],
        chronology: Mapping[str, tuple[ChronologyMarker, ...]],
    ):
        self.parsed = parsed
        self.links = links
        self.entities = entities
        self.typo_suspects = typo_suspects
        self.chronology = chronology
        self._by_id = MappingProxyType({p.document.id: p for p in parsed})
        self._ordinals = MappingProxyType({
            label: MappingProxyType(_index_by_ordinal(markers))
            for label, markers in chronology.items()
        })

    @property
    def documents(self) -> list[Document]:
        """Documents in discovery order."""
        return [p.document for p in self.parsed]

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self._by_id

    def __len__(self) -> int:
        return len(self.parsed)

    def get(self, doc_id: str) -> Optional[ParsedDocument]:
        return self._by_id.get(doc_id)

    def document(self, doc_id: str) -> Document:
        return self._by_id[doc_id].document

    def order_of(self, doc_id: Optional[str]) -> int:
        """Discovery order; -1 for anything that is not a document."""
        if doc_id is None or doc_id not in self._by_id:
            return -1
        return self._by_id[doc_id].document.order

    def location(self, doc_id: str, position: Position = Position(1, 1)) -> Location:
        return Location(self.document(doc_id).path, position.line, position.column)

    def mentions(self) -> list[EntityMention]:
        """All mentions, totally ordered by (discovery order, position)."""
        return [m for p in self.parsed for m in p.mentions]

    def markers(self, label: str) -> tuple[ChronologyMarker, ...]:
        return self.chronology.get(label, ())

    def markers_with_ordinal(self, label: str, ordinal: int) -> tuple[ChronologyMarker, ...]:
        return tuple(self._ordinals.get(label, {}).get(ordinal, ()))


def _index_by_ordinal(markers: Iterable[ChronologyMarker]) -> dict[int, tuple[ChronologyMarker, ...]]:
    index: dict[int, list[ChronologyMarker]] = defaultdict(list)
    for marker in markers:
        index[marker.ordinal].append(marker)
    return {k: tuple(v) for k, v in index.items()}


class FactStoreBuilder:
    """Single writer that accumulates parser output into a FactStore.

    Usage:
        builder = FactStoreBuilder(config)
        for parsed in parsed_documents:   # discovery order
            builder.add(parsed)
        store = builder.freeze()
    """

    def __init__(self, config: Optional[LinterConfig] = None):
        self.config = config or LinterConfig()
        self._parsed: list[ParsedDocument] = []
        self._ids: set[str] = set()
        self._frozen = False

    def add(self, parsed: ParsedDocument) -> None:
        if self._frozen:
            raise RuntimeError("FactStore already frozen")
        doc_id = parsed.document.id
        if doc_id in self._ids:
            raise ValueError(f"Duplicate document id: {doc_id}")
        self._ids.add(doc_id)
        self._parsed.append(parsed)

    def freeze(self) -> FactStore:
        """Resolve links, build indexes and return the frozen store."""
        self._frozen = True
        ordered = sorted(self._parsed, key=lambda p: p.document.order)
        ids = frozenset(self._ids)

        graph = LinkGraph()
        for parsed in ordered:
            graph.add_document(parsed.document.id, parsed.document.path)

        resolved_docs: list[ParsedDocument] = []
        for parsed in ordered:
            links: list[Link] = [graph.add_link(link, ids) for link in parsed.links]
            resolved_docs.append(replace(parsed, links=tuple(links)))
        graph.freeze()

        entities = EntityTable(self.config.aliases)
        chronology: dict[str, list[ChronologyMarker]] = defaultdict(list)
        for parsed in resolved_docs:
            for mention in parsed.mentions:
                entities.add(mention)
            for marker in parsed.markers:
                chronology[marker.label].append(marker)

        suspects = entities.typo_suspects(
            max_distance=self.config.typo_distance,
            min_length=self.config.typo_min_length,
        )

        return FactStore(
            parsed=tuple(resolved_docs),
            links=graph,
            entities=entities,
            typo_suspects=tuple(suspects),
            chronology=MappingProxyType({k: tuple(v) for k, v in chronology.items()}),
        )
