"""Data models for documents, facts and diagnostics."""

from story_linter.models.document import Block, BlockKind, Document, Heading, Position
from story_linter.models.facts import (
    ChronologyMarker,
    EntityMention,
    Link,
    LinkStyle,
    MentionKind,
    ParsedDocument,
)
from story_linter.models.diagnostic import (
    Diagnostic,
    DiagnosticKind,
    Location,
    RelatedLocation,
    Severity,
)

__all__ = [
    "Block",
    "BlockKind",
    "Document",
    "Heading",
    "Position",
    "ChronologyMarker",
    "EntityMention",
    "Link",
    "LinkStyle",
    "MentionKind",
    "ParsedDocument",
    "Diagnostic",
    "DiagnosticKind",
    "Location",
    "RelatedLocation",
    "Severity",
]
