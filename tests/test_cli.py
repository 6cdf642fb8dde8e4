"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from story_linter import __version__
from story_linter.cli import main


@pytest.fixture
def runner():
    return CliRunner()


class TestCheck:
    """Test `story-linter check`."""

    def test_json_output(self, runner, scrolls_story):
        result = runner.invoke(main, ["check", str(scrolls_story), "--format", "json"])

        assert result.exit_code == 1
        records = json.loads(result.stdout)
        assert [r["code"] for r in records] == [
            "link.broken",
            "character.undeclared",
            "graph.orphan",
            "chronology.out-of-order",
            "character.typo-suspect",
        ]
        assert list(records[0]) == ["code", "severity", "file", "line", "column", "message", "related"]
        assert records[2]["file"] == "scrolls/orphaned.md"
        assert (records[2]["line"], records[2]["column"]) == (1, 1)

    def test_human_output(self, runner, scrolls_story):
        result = runner.invoke(main, ["check", str(scrolls_story), "--no-color"])

        assert result.exit_code == 1
        assert "scrolls/evolution.md" in result.output
        assert "character.undeclared" in result.output
        assert "5 problems" in result.output

    def test_clean_story(self, runner, make_story):
        root = make_story({"index.md": "# Home\n"})
        result = runner.invoke(main, ["check", str(root)])

        assert result.exit_code == 0
        assert "No problems found" in result.output

    def test_fail_on(self, runner, make_story):
        root = make_story({"index.md": "# Home\n", "orphan.md": "# Lost\n"})

        assert runner.invoke(main, ["check", str(root), "--fail-on", "error"]).exit_code == 0
        assert runner.invoke(main, ["check", str(root), "--fail-on", "warning"]).exit_code == 1

    def test_fail_on_never(self, runner, scrolls_story):
        result = runner.invoke(main, ["check", str(scrolls_story), "--fail-on", "never"])
        assert result.exit_code == 0

    def test_env_defaults(self, runner, make_story, monkeypatch):
        root = make_story({"index.md": "# Home\n", "orphan.md": "# Lost\n"})
        monkeypatch.setenv("STORY_LINTER_FAIL_ON", "warning")
        monkeypatch.setenv("STORY_LINTER_FORMAT", "json")

        result = runner.invoke(main, ["check", str(root)])

        assert result.exit_code == 1
        assert json.loads(result.stdout)[0]["code"] == "graph.orphan"

    def test_explicit_config(self, runner, scrolls_story, tmp_path):
        config = tmp_path / "quiet.yml"
        config.write_text("validators:\n  character-consistency: false\n  orphan-detection: false\n")

        result = runner.invoke(main, ["check", str(scrolls_story), "-c", str(config), "-f", "json"])
        codes = [r["code"] for r in json.loads(result.stdout)]

        assert codes == ["link.broken"]

    def test_missing_root_is_fatal(self, runner, tmp_path):
        result = runner.invoke(main, ["check", str(tmp_path / "nope"), "--format", "json"])

        assert result.exit_code == 2
        assert json.loads(result.stdout)[0]["code"] == "io.root-missing"

    def test_usage_error(self, runner, scrolls_story):
        result = runner.invoke(main, ["check", str(scrolls_story), "--format", "xml"])
        assert result.exit_code == 2

    def test_jobs(self, runner, scrolls_story):
        single = runner.invoke(main, ["check", str(scrolls_story), "-f", "json"])
        parallel = runner.invoke(main, ["check", str(scrolls_story), "-f", "json", "--jobs", "4"])
        assert single.stdout == parallel.stdout


class TestInfoCommands:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert __version__ in result.output

    def test_entities(self, runner, scrolls_story):
        result = runner.invoke(main, ["entities", str(scrolls_story)])

        assert result.exit_code == 0
        assert "Tuxicles" in result.output
        assert "Suspected typos" in result.output

    def test_graph(self, runner, scrolls_story):
        result = runner.invoke(main, ["graph", str(scrolls_story)])

        assert result.exit_code == 0
        assert "orphan" in result.output

    def test_entities_missing_root(self, runner, tmp_path):
        result = runner.invoke(main, ["entities", str(tmp_path / "nope")])
        assert result.exit_code == 2
