"""Link extraction and target normalization."""

import posixpath
import re
from typing import Iterable, Optional
from urllib.parse import unquote

from story_linter.extract.markup import DEFINITION_RE, LineIndex
from story_linter.models.document import Block, BlockKind
from story_linter.models.facts import Link, LinkStyle

INLINE_LINK_RE = re.compile(
    r"(?<!!)\[([^\]\n]*)\]\(\s*(<[^>\n]*>|[^\s)]*)(?:\s+(?:\"[^\"\n]*\"|'[^'\n]*'))?\s*\)"
)
REFERENCE_LINK_RE = re.compile(r"(?<![!\]])\[([^\]\n]+)\]\[([^\]\n]*)\]")
SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


def normalize_label(label: str) -> str:
    return " ".join(label.casefold().split())


def is_external(target: str) -> bool:
    """Targets with a scheme (`https:`, `mailto:`) or `//host` are never resolved."""
    return bool(SCHEME_RE.match(target)) or target.startswith("//")


def collect_definitions(blocks: Iterable[Block]) -> dict[str, str]:
    """Reference definitions `[id]: target`; the first definition of a label wins."""
    definitions: dict[str, str] = {}
    for block in blocks:
        if block.kind != BlockKind.DEFINITION:
            continue
        m = DEFINITION_RE.match(block.text)
        if m:
            definitions.setdefault(normalize_label(m.group(1)), m.group(2))
    return definitions


def normalize_target(source_path: str, raw: str) -> tuple[str, Optional[str], bool]:
    """Split and normalize a link target.

    Args:
        source_path: Root-relative path of the linking document
        raw: Target as written

    Returns:
        (root-relative target path, fragment or None, external)
    """
    target = raw.strip()
    if target.startswith("<") and target.endswith(">"):
        target = target[1:-1].strip()

    if is_external(target):
        return "", None, True

    path, sep, fragment = target.partition("#")
    path = unquote(path.split("?", 1)[0])
    fragment_value = unquote(fragment) if sep else None

    if not path:
        return source_path, fragment_value, False

    if path.startswith("/"):
        joined = path.lstrip("/")
    else:
        joined = posixpath.join(posixpath.dirname(source_path), path)

    normalized = posixpath.normpath(joined) if joined else ""
    if normalized == ".":
        normalized = ""
    return normalized, fragment_value, False


def extract_links(
    source_id: str,
    source_path: str,
    text: str,
    index: LineIndex,
    definitions: dict[str, str],
) -> list[Link]:
    """Find inline and reference-style links in (code-masked) text.

    Reference links without a matching definition are not links.
    """
    found: list[tuple[int, Link]] = []

    def make(start: int, link_text: str, raw: str, style: LinkStyle) -> Link:
        target_path, fragment, external = normalize_target(source_path, raw)
        return Link(
            source=source_id,
            raw_target=raw,
            text=link_text,
            position=index.position(start),
            style=style,
            target_path=target_path,
            fragment=fragment,
            external=external,
        )

    for m in INLINE_LINK_RE.finditer(text):
        found.append((m.start(), make(m.start(), m.group(1), m.group(2), LinkStyle.INLINE)))

    for m in REFERENCE_LINK_RE.finditer(text):
        label = normalize_label(m.group(2) or m.group(1))
        raw = definitions.get(label)
        if raw is None:
            continue
        found.append((m.start(), make(m.start(), m.group(1), raw, LinkStyle.REFERENCE)))

    found.sort(key=lambda item: item[0])
    return [link for _, link in found]
