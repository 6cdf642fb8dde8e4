"""Chronology marker extraction ("7th scar", "chapter 3", ...)."""

import re
from typing import Iterable

from story_linter.extract.markup import LineIndex
from story_linter.models.facts import ChronologyMarker


def _ordinal(match: re.Match) -> str:
    if "ordinal" in match.re.groupindex:
        return match.group("ordinal")
    return match.group(1)


def extract_markers(
    document_id: str,
    masked: str,
    patterns: Iterable[tuple[str, re.Pattern]],
    index: LineIndex,
) -> list[ChronologyMarker]:
    """Find ordinal markers for every configured category.

    Args:
        document_id: Source document id
        masked: Document text with non-prose regions blanked
        patterns: (label, compiled pattern) pairs
        index: Offset-to-position map for the document

    Returns:
        Markers sorted by position, then label
    """
    markers: list[ChronologyMarker] = []

    for label, pattern in patterns:
        for m in pattern.finditer(masked):
            raw = _ordinal(m)
            try:
                ordinal = int(raw)
            except (TypeError, ValueError):
                continue
            markers.append(ChronologyMarker(
                document=document_id,
                ordinal=ordinal,
                label=label,
                position=index.position(m.start()),
                text=m.group(0),
            ))

    markers.sort(key=lambda mk: (mk.position, mk.label))
    return markers
