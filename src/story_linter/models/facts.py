"""Facts lifted out of documents by the parser."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from story_linter.models.document import Document, Heading, Position


class LinkStyle(Enum):
    INLINE = "inline"        # [text](target)
    REFERENCE = "reference"  # [text][id] + [id]: target


@dataclass(frozen=True)
class Link:
    """An outbound reference from one document to a target."""
    source: str  # Document id
    raw_target: str
    text: str
    position: Position
    style: LinkStyle = LinkStyle.INLINE
    target_path: str = ""  # Normalized, root-relative; empty for external or same-document
    fragment: Optional[str] = None
    resolved: Optional[str] = None  # Target document id if resolvable
    external: bool = False

    @property
    def is_resolvable(self) -> bool:
        return self.resolved is not None


class MentionKind(Enum):
    INTRODUCTION = "introduction"
    REFERENCE = "reference"


@dataclass(frozen=True)
class EntityMention:
    """A capitalized name as written in a document."""
    surface: str
    canonical: str
    document: str  # Document id
    position: Position
    kind: MentionKind = MentionKind.REFERENCE
    cue: Optional[str] = None  # heading, bold, called, known as, named
    retrospective: bool = False  # Recalled in hindsight ("remember when ...")

    @property
    def is_introduction(self) -> bool:
        return self.kind == MentionKind.INTRODUCTION


@dataclass(frozen=True)
class ChronologyMarker:
    """An ordinal marker such as "7th scar"."""
    document: str  # Document id
    ordinal: int
    label: str
    position: Position
    text: str = ""


@dataclass(frozen=True)
class ParsedDocument:
    """Everything the parser extracts from one document."""
    document: Document
    headings: tuple[Heading, ...] = ()
    links: tuple[Link, ...] = ()
    mentions: tuple[EntityMention, ...] = ()
    markers: tuple[ChronologyMarker, ...] = ()

    @property
    def anchors(self) -> frozenset[str]:
        """Fragments that resolve inside this document."""
        extra = self.document.front_matter.get("anchors") or []
        if isinstance(extra, str):
            extra = [extra]
        return frozenset([h.slug for h in self.headings] + [str(a) for a in extra])
