"""Tests for the link graph, entity table and Fact Store."""

import networkx as nx
import pytest

from conftest import build_store as build, parse
from story_linter.graph.entities import EntityTable
from story_linter.graph.links import resolve_target
from story_linter.graph.store import FactStoreBuilder
from story_linter.models.document import Position
from story_linter.models.facts import EntityMention, MentionKind


def mention(surface, document="doc", line=1, intro=False):
    return EntityMention(
        surface=surface,
        canonical=surface.lower(),
        document=document,
        position=Position(line, 1),
        kind=MentionKind.INTRODUCTION if intro else MentionKind.REFERENCE,
    )


class TestResolveTarget:
    """Test target path to document id mapping."""

    def test_markup_extension(self):
        assert resolve_target("scrolls/evolution.md", {"scrolls/evolution"}) == "scrolls/evolution"

    def test_directory_index(self):
        assert resolve_target("scrolls", {"scrolls/index"}) == "scrolls/index"

    def test_missing(self):
        assert resolve_target("missing.md", {"index"}) is None

    def test_escaping_root(self):
        assert resolve_target("../outside.md", {"outside"}) is None


class TestLinkGraph:
    def test_unresolved_and_reachability(self):
        store = build({
            "index": "[a](a.md) [gone](gone.md) [web](https://example.com)\n",
            "a": "[back](index.md)\n",
            "lonely": "nothing links here\n",
        })
        graph = store.links

        assert [l.raw_target for l in graph.unresolved()] == ["gone.md"]
        assert graph.reachable_from(["index"]) == {"index", "a"}
        assert graph.mutual_pairs() == [("a", "index")]
        assert [l.resolved for l in graph.outbound("index")] == ["a", None, None]
        assert [l.source for l in graph.inbound("index")] == ["a"]

    def test_unknown_entry_is_ignored(self):
        store = build({"index": "text\n"})
        assert store.links.reachable_from(["nope"]) == set()

    def test_graph_is_frozen(self):
        store = build({"index": "text\n"})
        with pytest.raises(nx.NetworkXError):
            store.links.graph.add_node("x")


class TestEntityTable:
    """Test entity accumulation and typo suspects."""

    def test_first_introduction_wins(self):
        table = EntityTable()
        table.add(mention("Tux", "a", intro=True))
        table.add(mention("Tux", "b", intro=True))

        entry = table.get("TUX")
        assert entry.introduction.document == "a"
        assert len(entry.mentions) == 2

    def test_aliases(self):
        table = EntityTable({"Tuxedo": ["Tux"]})
        table.add(mention("Tuxedo", intro=True))
        table.add(mention("Tux"))

        assert len(table) == 1
        assert table.get("Tux").canonical == "tuxedo"
        assert table.undeclared() == []

    def test_typo_suspect(self):
        table = EntityTable()
        table.add(mention("Tuxicles", "a", intro=True))
        table.add(mention("Tuxicle", "b"))

        suspects = table.typo_suspects()
        assert len(suspects) == 1
        assert suspects[0].suspect == "tuxicle"
        assert suspects[0].intended == "tuxicles"
        assert suspects[0].distance == 1

    def test_short_names_are_not_suspects(self):
        table = EntityTable()
        table.add(mention("Bobo", intro=True))
        table.add(mention("Bob"))
        assert table.typo_suspects(min_length=4) == []

    def test_distance_threshold(self):
        table = EntityTable()
        table.add(mention("Waddles", intro=True))
        table.add(mention("Wadlez"))

        assert table.typo_suspects(max_distance=1) == []
        assert table.typo_suspects(max_distance=2)[0].intended == "waddles"
        assert table.typo_suspects(max_distance=0) == []

    def test_tie_goes_to_earliest_introduction(self):
        table = EntityTable()
        table.add(mention("Mara", "a", intro=True))
        table.add(mention("Mira", "b", intro=True))
        table.add(mention("Maira", "c"))

        assert table.typo_suspects()[0].intended == "mara"


class TestFactStore:
    """Test the frozen store built from parsed documents."""

    def test_fixture_store(self, scrolls_story):
        from story_linter.engine import Engine

        store = Engine(scrolls_story).prepare().store

        assert len(store) == 6
        assert store.order_of("scrolls/evolution") == 2
        assert store.order_of(None) == -1
        assert "tuxicles" in [e.canonical for e in store.entities.introduced()]
        assert [(m.document, m.ordinal) for m in store.markers("scar")] == [
            ("scrolls/evolution", 7),
            ("scrolls/the-fifth-scar", 5),
        ]
        assert store.markers_with_ordinal("scar", 7)[0].document == "scrolls/evolution"
        assert store.markers("unknown") == ()

    def test_mentions_in_discovery_order(self):
        store = build({"b": "They met Waddle.\n", "a": "They met **Waddle**.\n"})
        assert [m.document for m in store.mentions()] == ["b", "a"]

    def test_duplicate_document_rejected(self):
        builder = FactStoreBuilder()
        builder.add(parse("x\n", "doc"))
        with pytest.raises(ValueError):
            builder.add(parse("y\n", "doc"))

    def test_frozen_builder_rejects_adds(self):
        builder = FactStoreBuilder()
        builder.add(parse("x\n", "doc"))
        builder.freeze()
        with pytest.raises(RuntimeError):
            builder.add(parse("y\n", "other"))

    def test_location(self):
        store = build({"index": "text\n"})
        assert str(store.location("index", Position(3, 4))) == "index.md:3:4"
