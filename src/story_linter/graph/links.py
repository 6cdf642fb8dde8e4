"""Document link graph.

A `networkx.MultiDiGraph` keyed by document id. Every link is an edge;
links that do not resolve point at placeholder nodes (`missing:<target>`
or `external:<target>`) so they are retained and can be reported.
"""

from collections import deque
from dataclasses import replace
from posixpath import splitext
from typing import Iterable, Iterator, Optional

import networkx as nx

from story_linter.ingest.loader import MARKUP_EXTENSIONS, document_id
from story_linter.models.facts import Link

DOCUMENT = "document"
MISSING = "missing"
EXTERNAL = "external"


def resolve_target(target_path: str, ids: set[str] | frozenset[str]) -> Optional[str]:
    """Map a normalized root-relative target path to a document id."""
    if target_path == ".." or target_path.startswith("../"):
        return None

    candidates: list[str] = []
    if target_path:
        if splitext(target_path)[1].lower() in MARKUP_EXTENSIONS:
            candidates.append(document_id(target_path))
        else:
            candidates.append(target_path)
            candidates.append(f"{target_path}/index")
    else:
        candidates.append("index")

    for candidate in candidates:
        if candidate in ids:
            return candidate
    return None


class LinkGraph:
    """Forward and reverse link lookup over documents."""

    def __init__(self):
        self.graph = nx.MultiDiGraph()

    def add_document(self, doc_id: str, path: str) -> None:
        self.graph.add_node(doc_id, kind=DOCUMENT, path=path)

    def add_link(self, link: Link, ids: set[str] | frozenset[str]) -> Link:
        """Resolve a link against known ids and add it as an edge."""
        if link.external:
            node = f"{EXTERNAL}:{link.raw_target}"
            self.graph.add_node(node, kind=EXTERNAL)
        else:
            resolved = resolve_target(link.target_path, ids)
            if resolved is not None:
                link = replace(link, resolved=resolved)
                node = resolved
            else:
                node = f"{MISSING}:{link.target_path or link.raw_target}"
                self.graph.add_node(node, kind=MISSING)

        self.graph.add_edge(link.source, node, link=link)
        return link

    def freeze(self) -> None:
        nx.freeze(self.graph)

    @property
    def documents(self) -> list[str]:
        return [n for n, kind in self.graph.nodes(data="kind") if kind == DOCUMENT]

    def outbound(self, doc_id: str) -> list[Link]:
        """Links written in a document, in source order."""
        links = [link for _, _, link in self.graph.out_edges(doc_id, data="link")]
        return sorted(links, key=lambda l: l.position)

    def inbound(self, doc_id: str) -> list[Link]:
        """Resolvable links pointing at a document."""
        return [link for _, _, link in self.graph.in_edges(doc_id, data="link")]

    def unresolved(self) -> list[Link]:
        """Non-external links whose target is not a document."""
        return [
            link
            for _, target, link in self.graph.edges(data="link")
            if self.graph.nodes[target]["kind"] == MISSING
        ]

    def resolvable_successors(self, doc_id: str) -> Iterator[str]:
        for target in self.graph.successors(doc_id):
            if self.graph.nodes[target]["kind"] == DOCUMENT:
                yield target

    def reachable_from(self, entries: Iterable[str]) -> set[str]:
        """Breadth-first traversal over resolvable edges from the entry set."""
        reachable = {e for e in entries if e in self.graph and self.graph.nodes[e]["kind"] == DOCUMENT}
        queue = deque(sorted(reachable))
        while queue:
            current = queue.popleft()
            for target in self.resolvable_successors(current):
                if target not in reachable:
                    reachable.add(target)
                    queue.append(target)
        return reachable

    def mutual_pairs(self) -> list[tuple[str, str]]:
        """Document pairs that link to each other, each pair once (sorted)."""
        pairs = set()
        for source in self.documents:
            for target in self.resolvable_successors(source):
                if target != source and self.graph.has_edge(target, source):
                    pairs.add(tuple(sorted((source, target))))
        return sorted(pairs)
