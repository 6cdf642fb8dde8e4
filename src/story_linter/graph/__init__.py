"""Fact Store: link graph, entity table and chronology index."""

from story_linter.graph.entities import EntityEntry, EntityTable, TypoSuspect
from story_linter.graph.links import LinkGraph, resolve_target
from story_linter.graph.store import FactStore, FactStoreBuilder

__all__ = [
    "EntityEntry",
    "EntityTable",
    "TypoSuspect",
    "LinkGraph",
    "resolve_target",
    "FactStore",
    "FactStoreBuilder",
]
