"""Shared fixtures for Story Linter tests."""

import shutil
from pathlib import Path
from typing import Optional

import pytest

from story_linter.config import LinterConfig, get_settings
from story_linter.extract.parser import ParserOptions, parse_document
from story_linter.graph.store import FactStoreBuilder
from story_linter.models.document import Document

FIXTURES = Path(__file__).parent / "fixtures"
SCROLLS_STORY = FIXTURES / "scrolls-story"


@pytest.fixture
def scrolls_story() -> Path:
    """The canonical fixture story (read-only)."""
    return SCROLLS_STORY


@pytest.fixture
def story_copy(tmp_path) -> Path:
    """A writable copy of the fixture story."""
    target = tmp_path / "story"
    shutil.copytree(SCROLLS_STORY, target)
    return target


@pytest.fixture
def make_story(tmp_path):
    """Build a story from a {relative path: text} mapping."""
    def _make(files: dict[str, str], name: str = "story") -> Path:
        root = tmp_path / name
        root.mkdir()
        for rel, text in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return root
    return _make


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Keep STORY_LINTER_* from the environment out of the tests."""
    for name in ("FORMAT", "FAIL_ON", "JOBS", "NO_COLOR"):
        monkeypatch.delenv(f"STORY_LINTER_{name}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def parse(text: str, doc_id: str = "doc", **kwargs):
    """Parse a single in-memory document."""
    document = Document(id=doc_id, path=f"{doc_id}.md", text=text)
    return parse_document(document, **kwargs)


def build_store(docs: dict[str, str], config: Optional[LinterConfig] = None):
    """Parse {id: text} in the given order and freeze a Fact Store."""
    config = config or LinterConfig()
    options = ParserOptions.from_config(config)
    builder = FactStoreBuilder(config)
    for order, (doc_id, text) in enumerate(docs.items()):
        document = Document(id=doc_id, path=f"{doc_id}.md", text=text, order=order)
        builder.add(parse_document(document, options))
    return builder.freeze()
