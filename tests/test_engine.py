"""End-to-end tests for the analysis engine."""

import io

import pytest

from story_linter.cancel import CancelToken
from story_linter.engine import Engine, RunOutcome, RunStatus, analyze
from story_linter.models.diagnostic import Diagnostic, DiagnosticKind, Location, Severity
from story_linter.report import CollectingReporter, JsonReporter
from story_linter.validators import CharacterConsistencyValidator, LinkIntegrityValidator


def column_of(path, line: int, needle: str) -> int:
    text = path.read_text(encoding="utf-8").split("\n")[line - 1]
    return text.index(needle) + 1


def key(d: Diagnostic):
    return (d.code, d.location.file, d.location.line, d.location.column, d.message)


class TestCanonicalScenarios:
    """The fixture story produces exactly one diagnostic per seeded problem."""

    @pytest.fixture
    def outcome(self, scrolls_story) -> RunOutcome:
        return analyze(scrolls_story)

    def test_completed(self, outcome):
        assert outcome.status == RunStatus.COMPLETED
        assert [d.code for d in outcome.diagnostics] == [
            "link.broken",
            "character.undeclared",
            "graph.orphan",
            "chronology.out-of-order",
            "character.typo-suspect",
        ]

    def test_typo_suspect(self, outcome, scrolls_story):
        found = [d for d in outcome.diagnostics if d.kind == DiagnosticKind.CHARACTER_TYPO]

        assert len(found) == 1
        typo = found[0]
        assert typo.severity == Severity.WARNING
        assert typo.location == Location(
            "scrolls/tux-origins.md", 3, column_of(scrolls_story / "scrolls/tux-origins.md", 3, "Tuxicle")
        )
        assert "Tuxicles" in typo.message
        assert typo.related[0].location.file == "index.md"

    def test_undeclared_bob(self, outcome):
        found = [d for d in outcome.diagnostics if d.kind == DiagnosticKind.CHARACTER_UNDECLARED]

        assert len(found) == 1
        assert found[0].severity == Severity.ERROR
        assert found[0].location == Location("scrolls/evolution.md", 5, 22)
        assert "Bob" in found[0].message

    def test_chronology_out_of_order(self, outcome, scrolls_story):
        found = [d for d in outcome.diagnostics if d.kind == DiagnosticKind.CHRONOLOGY_OUT_OF_ORDER]

        assert len(found) == 1
        assert found[0].location == Location(
            "scrolls/the-fifth-scar.md", 3, column_of(scrolls_story / "scrolls/the-fifth-scar.md", 3, "5th")
        )
        related = found[0].related[0].location
        assert related == Location(
            "scrolls/evolution.md", 3, column_of(scrolls_story / "scrolls/evolution.md", 3, "7th")
        )

    def test_broken_link(self, outcome, scrolls_story):
        found = [d for d in outcome.diagnostics if d.kind == DiagnosticKind.LINK_BROKEN]

        assert len(found) == 1
        assert found[0].location == Location(
            "scrolls/broken-link.md", 3, column_of(scrolls_story / "scrolls/broken-link.md", 3, "[")
        )

    def test_orphan(self, outcome):
        found = [d for d in outcome.diagnostics if d.kind == DiagnosticKind.GRAPH_ORPHAN]

        assert len(found) == 1
        assert found[0].severity == Severity.WARNING
        assert found[0].location == Location("scrolls/orphaned.md", 1, 1)

    def test_exit_codes(self, outcome, make_story):
        assert outcome.exit_code("warning") == 1
        assert outcome.exit_code("error") == 1
        assert outcome.exit_code("never") == 0

        orphan_only = analyze(make_story({
            "index.md": "# Home\n",
            "orphan.md": "# Lost\n",
        }))
        assert [d.code for d in orphan_only.diagnostics] == ["graph.orphan"]
        assert orphan_only.exit_code("error") == 0
        assert orphan_only.exit_code("warning") == 1


class TestProperties:
    """Invariants that hold for any input."""

    def test_deterministic_json(self, scrolls_story):
        outputs = []
        for jobs in (1, 1, 4):
            stream = io.StringIO()
            analyze(scrolls_story, reporter=JsonReporter(stream), jobs=jobs)
            outputs.append(stream.getvalue())

        assert outputs[0] == outputs[1] == outputs[2]
        assert outputs[0].endswith("]\n")

    def test_every_link_is_accounted_for(self, scrolls_story):
        outcome = analyze(scrolls_story)
        store = outcome.store
        link_findings = {
            (d.location.file, d.location.line, d.location.column)
            for d in outcome.diagnostics
            if d.kind in (DiagnosticKind.LINK_BROKEN, DiagnosticKind.LINK_BROKEN_ANCHOR)
        }

        for parsed in store.parsed:
            for link in parsed.links:
                loc = store.location(link.source, link.position)
                reported = (loc.file, loc.line, loc.column) in link_findings
                assert link.external or (link.resolved is not None) != reported

    def test_orphans_are_exactly_unreachable(self, scrolls_story):
        outcome = analyze(scrolls_story)
        store = outcome.store
        reachable = store.links.reachable_from(["index"])
        orphans = [d.document for d in outcome.diagnostics if d.kind == DiagnosticKind.GRAPH_ORPHAN]

        assert sorted(orphans) == sorted(d.id for d in store.documents if d.id not in reachable)

    def test_introducing_missing_character_only_removes_finding(self, story_copy):
        (story_copy / ".story-linter.yml").write_text(
            (story_copy / ".story-linter.yml").read_text() + "\nvalidators:\n  orphan-detection: false\n"
        )
        before = {key(d) for d in analyze(story_copy).diagnostics}

        (story_copy / "scrolls" / "bob.md").write_text("# Bob\n\nA keeper of fire.\n")
        after = {key(d) for d in analyze(story_copy).diagnostics}

        removed = before - after
        assert after < before
        assert [k[0] for k in removed] == ["character.undeclared"]

    def test_sorted_by_document_then_position(self, scrolls_story):
        outcome = analyze(scrolls_story)
        store = outcome.store
        keys = [
            (store.order_of(d.document), d.location.line, d.location.column, d.kind.rank)
            for d in outcome.diagnostics
        ]
        assert keys == sorted(keys)


class TestAdvisories:
    """Configuration advisories are reported but never abort."""

    def test_unknown_keys_and_validators(self, make_story):
        root = make_story({
            "index.md": "# Home\n",
            ".story-linter.yml": "colour: blue\nvalidators:\n  spellcheck: true\n",
        })
        outcome = analyze(root)

        assert outcome.status == RunStatus.COMPLETED
        unknown = [d for d in outcome.diagnostics if d.kind == DiagnosticKind.UNKNOWN_KEY]
        assert [(d.location.line, d.severity) for d in unknown] == [
            (1, Severity.WARNING),
            (3, Severity.WARNING),
        ]
        assert outcome.exit_code("error") == 0

    def test_unused_allowlist_and_missing_entry_point(self, make_story):
        root = make_story({
            "start.md": "# Start\n",
            ".story-linter.yml": "known-characters: [Gandalf]\n",
        })
        outcome = analyze(root)
        kinds = [d.kind for d in outcome.diagnostics]

        assert DiagnosticKind.UNUSED_ALLOWLIST in kinds
        assert DiagnosticKind.MISSING_ENTRY_POINT in kinds
        for d in outcome.diagnostics:
            if d.kind in (DiagnosticKind.UNUSED_ALLOWLIST, DiagnosticKind.MISSING_ENTRY_POINT):
                assert d.severity == Severity.INFO

    def test_advisories_sort_first(self, make_story):
        root = make_story({
            "index.md": "Old stories say that Bob carried the spark.\n",
            ".story-linter.yml": "colour: blue\n",
        })
        codes = [d.code for d in analyze(root).diagnostics]
        assert codes == ["config.unknown-key", "character.undeclared"]


class TestFatal:
    """Fatal errors produce exactly one diagnostic."""

    def test_missing_root(self, tmp_path):
        reporter = CollectingReporter()
        outcome = analyze(tmp_path / "nope", reporter=reporter)

        assert outcome.status == RunStatus.FATAL
        assert outcome.exit_code() == 2
        assert reporter.codes() == ["io.root-missing"]
        assert reporter.flushed

    def test_invalid_config(self, make_story):
        root = make_story({"index.md": "# Home\n", ".story-linter.yml": "jobs: zero\n"})
        outcome = analyze(root)

        assert outcome.status == RunStatus.FATAL
        assert [d.code for d in outcome.diagnostics] == ["config.invalid"]

    def test_no_documents(self, make_story):
        outcome = analyze(make_story({"notes.txt": "plain\n"}))
        assert [d.code for d in outcome.diagnostics] == ["io.no-documents"]

    def test_bad_front_matter_in_glob_match_is_skipped(self, make_story):
        root = make_story({
            "index.md": "# Home\n\n[bad](bad.md)\n",
            "bad.md": "---\ntitle: [unclosed\n---\n# Bad\n",
        })
        outcome = analyze(root)

        assert outcome.status == RunStatus.COMPLETED
        codes = [d.code for d in outcome.diagnostics]
        assert "parse.invalid-front-matter" in codes
        assert "link.broken" in codes

    def test_bad_front_matter_in_explicit_file_is_fatal(self, make_story):
        root = make_story({
            "index.md": "---\ntitle: [unclosed\n---\n# Home\n",
            ".story-linter.yml": "include: [index.md]\n",
        })
        outcome = analyze(root)

        assert outcome.status == RunStatus.FATAL
        assert outcome.diagnostics[0].code == "parse.invalid-front-matter"
        assert outcome.diagnostics[0].location.file == "index.md"

    def test_duplicate_document_id_is_skipped(self, make_story):
        root = make_story({
            "index.md": "# Home\n\n[A](a.md)\n",
            "a.md": "# A\n",
            "a.markdown": "# A\n",
            ".story-linter.yml": "include: ['**/*.md', '**/*.markdown']\n",
        })
        outcome = analyze(root)

        assert outcome.status == RunStatus.COMPLETED
        assert [d.code for d in outcome.diagnostics] == ["loader.duplicate-id"]

    def test_duplicate_document_id_explicit_is_fatal(self, make_story):
        root = make_story({
            "index.md": "# Home\n",
            "index.markdown": "# Home\n",
            ".story-linter.yml": "include: [index.md, '**/*.markdown']\n",
        })
        outcome = analyze(root)

        assert outcome.status == RunStatus.FATAL
        assert outcome.exit_code() == 2
        assert [d.code for d in outcome.diagnostics] == ["loader.duplicate-id"]

    def test_validator_exception(self, scrolls_story, monkeypatch):
        def explode(self, store, config):
            raise RuntimeError("boom")

        monkeypatch.setattr(LinkIntegrityValidator, "check", explode)
        reporter = CollectingReporter()
        outcome = analyze(scrolls_story, reporter=reporter)

        assert outcome.status == RunStatus.FATAL
        assert reporter.codes() == ["internal.validator-error"]
        assert "link-integrity" in reporter.diagnostics[0].message


class TestCancellation:
    """Cancellation discards everything."""

    def test_cancel_before_start(self, scrolls_story):
        token = CancelToken()
        token.cancel()
        reporter = CollectingReporter()

        outcome = analyze(scrolls_story, reporter=reporter, cancel=token)

        assert outcome.status == RunStatus.CANCELLED
        assert outcome.exit_code() == 3
        assert outcome.diagnostics == ()
        assert reporter.diagnostics == []

    @pytest.mark.parametrize("jobs", [1, 4])
    def test_cancel_between_validators(self, scrolls_story, monkeypatch, jobs):
        token = CancelToken()
        original = CharacterConsistencyValidator.check

        def cancel_midway(self, store, config):
            yield from original(self, store, config)
            token.cancel()

        monkeypatch.setattr(CharacterConsistencyValidator, "check", cancel_midway)
        reporter = CollectingReporter()

        outcome = Engine(scrolls_story, jobs=jobs, cancel=token).run(reporter)

        assert outcome.status == RunStatus.CANCELLED
        assert reporter.diagnostics == []
