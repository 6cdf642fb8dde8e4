"""Document parser: raw markup in, structured facts out.

`parse_document` is pure: it performs no I/O and equal inputs produce
equal outputs, so documents can be parsed in any order or in parallel.
"""

import re
from dataclasses import dataclass, replace

from story_linter.config import LinterConfig
from story_linter.extract.chronology import extract_markers
from story_linter.extract.entities import extract_mentions
from story_linter.extract.links import collect_definitions, extract_links
from story_linter.extract.markup import (
    LineIndex,
    extract_headings,
    mask_link_targets,
    mask_non_prose,
    parse_front_matter,
    split_blocks,
)
from story_linter.models.document import Block, BlockKind, Document
from story_linter.models.facts import ParsedDocument


@dataclass(frozen=True)
class ParserOptions:
    """Parser inputs taken from configuration."""
    chronology: tuple[tuple[str, re.Pattern], ...] = ()

    @classmethod
    def from_config(cls, config: LinterConfig) -> "ParserOptions":
        return cls(chronology=tuple(
            (label, category.compile())
            for label, category in sorted(config.chronology.items())
        ))


def parse_document(document: Document, options: ParserOptions = ParserOptions()) -> ParsedDocument:
    """Lift a document's raw text into headings, links, mentions and markers.

    Raises:
        ParseError: Invalid front matter
    """
    text = document.text
    lines = text.split("\n")
    index = LineIndex(text)

    front_matter, fm_lines = parse_front_matter(lines)
    blocks = split_blocks(lines, first_line=fm_lines + 1)
    if fm_lines:
        blocks.insert(0, Block(BlockKind.FRONT_MATTER, 1, fm_lines, "\n".join(lines[:fm_lines])))

    code_masked = mask_non_prose(text, blocks, index, fm_lines)
    prose = mask_link_targets(code_masked)

    parsed = replace(document, front_matter=front_matter, blocks=tuple(blocks))

    return ParsedDocument(
        document=parsed,
        headings=tuple(extract_headings(blocks)),
        links=tuple(extract_links(
            document.id, document.path, code_masked, index, collect_definitions(blocks)
        )),
        mentions=tuple(extract_mentions(document.id, prose, blocks, index)),
        markers=tuple(extract_markers(document.id, prose, options.chronology, index)),
    )
