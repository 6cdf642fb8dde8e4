"""Document and block models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True, order=True)
class Position:
    """1-based line and column into a document's original text."""
    line: int
    column: int


class BlockKind(Enum):
    """Structural Markdown blocks recognized by the parser."""
    FRONT_MATTER = "front_matter"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    CODE = "code"
    DEFINITION = "definition"  # [id]: target
    THEMATIC_BREAK = "thematic_break"

    @property
    def is_prose(self) -> bool:
        return self in (
            BlockKind.HEADING,
            BlockKind.PARAGRAPH,
            BlockKind.LIST_ITEM,
            BlockKind.BLOCKQUOTE,
        )


@dataclass(frozen=True)
class Block:
    """A contiguous run of lines with one structural role."""
    kind: BlockKind
    start_line: int
    end_line: int  # Inclusive
    text: str
    level: int = 0  # Heading level, 0 otherwise


@dataclass(frozen=True)
class Heading:
    """A heading and the anchor slug links can target."""
    level: int
    text: str
    slug: str
    position: Position


@dataclass(frozen=True)
class Document:
    """A loaded story file.

    `id` is the path relative to the root with forward slashes and the
    extension stripped (``scrolls/evolution``); `path` keeps the extension
    and is what reporters print.
    """
    id: str
    path: str
    text: str
    order: int = 0  # Discovery order
    explicit: bool = False  # Named by a non-glob include entry
    front_matter: dict[str, Any] = field(default_factory=dict)
    blocks: tuple[Block, ...] = ()

    @property
    def title(self) -> Optional[str]:
        """Front matter title, falling back to the first heading block."""
        title = self.front_matter.get("title")
        if title:
            return str(title)
        for block in self.blocks:
            if block.kind == BlockKind.HEADING:
                return block.text
        return None
