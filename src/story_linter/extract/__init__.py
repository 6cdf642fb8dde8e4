"""Parsing and fact extraction for story documents."""

from .parser import ParserOptions, parse_document
from .entities import canonical_form, extract_mentions
from .links import extract_links, normalize_target
from .chronology import extract_markers

__all__ = [
    "ParserOptions",
    "parse_document",
    "canonical_form",
    "extract_mentions",
    "extract_links",
    "normalize_target",
    "extract_markers",
]
