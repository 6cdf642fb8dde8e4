"""Line-oriented Markdown structure: front matter, blocks, headings, masking.

The masking helpers return a copy of the text with the same length in
which non-prose regions (code, front matter, URLs, ...) are replaced by
spaces. Newlines are preserved, so an offset into the masked text is an
offset into the original.
"""

import bisect
import re
from collections import Counter
from typing import Any, Iterable

import yaml

from story_linter.errors import ParseError
from story_linter.models.document import Block, BlockKind, Heading, Position

FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
THEMATIC_BREAK_RE = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")
DEFINITION_RE = re.compile(
    r"^ {0,3}\[([^\]\n]+)\]:[ \t]*(<[^>\n]*>|\S+)(?:[ \t]+(?:\"[^\"\n]*\"|'[^'\n]*'|\([^)\n]*\)))?[ \t]*$"
)
BLOCKQUOTE_RE = re.compile(r"^ {0,3}>")
LIST_ITEM_RE = re.compile(r"^ {0,3}(?:[-*+]|\d{1,9}[.)])(?:[ \t]+|$)")

CODE_SPAN_RE = re.compile(r"(`+)(?!`)(?:(?!\n[ \t]*\n).)+?(?<!`)\1", re.DOTALL)
HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
AUTOLINK_RE = re.compile(r"<[A-Za-z][A-Za-z0-9+.-]*:[^>\s]*>")
BARE_URL_RE = re.compile(r"\b(?:https?|ftp)://[^\s)\]>]+")
IMAGE_RE = re.compile(r"!\[[^\]\n]*\]\([^)\n]*\)")
LINK_DESTINATION_RE = re.compile(r"(?<=\])\([^)\n]*\)")
REFERENCE_LABEL_RE = re.compile(r"(?<=\])\[[^\]\n]*\]")
INLINE_LINK_TEXT_RE = re.compile(r"\[([^\]\n]*)\]\([^)\n]*\)")


class LineIndex:
    """Maps character offsets to 1-based line/column positions."""

    def __init__(self, text: str):
        self.text = text
        self.starts = [0]
        for i, c in enumerate(text):
            if c == "\n":
                self.starts.append(i + 1)

    def position(self, offset: int) -> Position:
        line = bisect.bisect_right(self.starts, offset) - 1
        return Position(line + 1, offset - self.starts[line] + 1)

    def offset(self, line: int) -> int:
        """Offset of the first character of a 1-based line."""
        if line - 1 >= len(self.starts):
            return len(self.text)
        return self.starts[line - 1]

    def span(self, start_line: int, end_line: int) -> tuple[int, int]:
        """Offsets covering lines start_line..end_line inclusive."""
        return self.offset(start_line), self.offset(end_line + 1)


def parse_front_matter(lines: list[str]) -> tuple[dict[str, Any], int]:
    """Parse a leading `---` YAML block.

    Returns:
        (front matter mapping, number of lines it occupies)

    Raises:
        ParseError: The block is not valid YAML or not a mapping
    """
    if not lines or lines[0].strip() != "---":
        return {}, 0

    for i in range(1, len(lines)):
        if lines[i].strip() in ("---", "..."):
            break
    else:
        return {}, 0

    body = "\n".join(lines[1:i])
    try:
        data = yaml.safe_load(body) if body.strip() else {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line = mark.line + 2 if mark else 1
        raise ParseError(f"Invalid front matter: {getattr(e, 'problem', e)}", line) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError("Front matter must be a mapping", 1)
    return {str(k): v for k, v in data.items()}, i + 1


def split_blocks(lines: list[str], first_line: int = 1) -> list[Block]:
    """Split Markdown lines into structural blocks.

    Args:
        lines: All lines of the document
        first_line: 1-based line where parsing starts (after front matter)
    """
    blocks: list[Block] = []
    open_kind: BlockKind | None = None
    open_start = 0
    fence: str | None = None

    def close(end: int) -> None:
        nonlocal open_kind
        if open_kind is not None:
            text = "\n".join(lines[open_start - 1:end])
            blocks.append(Block(open_kind, open_start, end, text))
        open_kind = None

    for number in range(first_line, len(lines) + 1):
        line = lines[number - 1]

        if fence is not None:
            stripped = line.strip()
            if stripped.startswith(fence[0]) and set(stripped) == {fence[0]} and len(stripped) >= len(fence):
                fence = None
                close(number)
            continue

        if not line.strip():
            close(number - 1)
            continue

        fence_match = FENCE_RE.match(line)
        if fence_match:
            close(number - 1)
            fence = fence_match.group(1)
            open_kind, open_start = BlockKind.CODE, number
            continue

        heading = HEADING_RE.match(line)
        if heading:
            close(number - 1)
            title = (heading.group(2) or "").strip()
            blocks.append(Block(BlockKind.HEADING, number, number, title, level=len(heading.group(1))))
            continue

        if THEMATIC_BREAK_RE.match(line):
            close(number - 1)
            blocks.append(Block(BlockKind.THEMATIC_BREAK, number, number, line))
            continue

        if DEFINITION_RE.match(line):
            close(number - 1)
            blocks.append(Block(BlockKind.DEFINITION, number, number, line))
            continue

        if BLOCKQUOTE_RE.match(line):
            if open_kind != BlockKind.BLOCKQUOTE:
                close(number - 1)
                open_kind, open_start = BlockKind.BLOCKQUOTE, number
            continue

        if LIST_ITEM_RE.match(line):
            close(number - 1)
            open_kind, open_start = BlockKind.LIST_ITEM, number
            continue

        # Lazy continuation of whatever is open
        if open_kind is None:
            open_kind, open_start = BlockKind.PARAGRAPH, number

    close(len(lines))

    return blocks


def slugify(text: str) -> str:
    """GitHub-style heading anchor."""
    text = INLINE_LINK_TEXT_RE.sub(r"\1", text)
    slug = text.strip().lower()
    slug = re.sub(r"[^\w\- ]", "", slug)
    return slug.replace(" ", "-")


def extract_headings(blocks: Iterable[Block]) -> list[Heading]:
    headings: list[Heading] = []
    seen: Counter[str] = Counter()
    for block in blocks:
        if block.kind != BlockKind.HEADING:
            continue
        base = slugify(block.text)
        slug = f"{base}-{seen[base]}" if seen[base] else base
        seen[base] += 1
        headings.append(Heading(block.level, block.text, slug, Position(block.start_line, 1)))
    return headings


def _blank(chars: list[str], start: int, end: int) -> None:
    for i in range(start, end):
        if chars[i] != "\n":
            chars[i] = " "


def _blank_matches(text: str, pattern: re.Pattern) -> str:
    chars = list(text)
    for m in pattern.finditer(text):
        _blank(chars, m.start(), m.end())
    return "".join(chars)


def mask_non_prose(text: str, blocks: Iterable[Block], index: LineIndex, front_matter_lines: int) -> str:
    """Blank front matter, code and comments; links stay visible."""
    chars = list(text)
    if front_matter_lines:
        _blank(chars, 0, index.offset(front_matter_lines + 1))
    for block in blocks:
        if block.kind in (BlockKind.CODE, BlockKind.DEFINITION):
            _blank(chars, *index.span(block.start_line, block.end_line))
    masked = "".join(chars)
    masked = _blank_matches(masked, HTML_COMMENT_RE)
    return _blank_matches(masked, CODE_SPAN_RE)


def mask_link_targets(text: str) -> str:
    """Blank URLs, images, link destinations and reference labels."""
    for pattern in (IMAGE_RE, AUTOLINK_RE, LINK_DESTINATION_RE, REFERENCE_LABEL_RE, BARE_URL_RE):
        text = _blank_matches(text, pattern)
    return text
