"""Entity mention extraction.

A mention is a run of one to four capitalized words that is not just the
capitalized first word of a sentence. The first mention of a name within a
document is an introduction when one of these cues applies:

- it sits in a heading
- it is bolded (`**Name**` or `__Name__`)
- it follows "called", "known as" or "named"

A name following "remember", "recalled", "thinking about" or "thought of"
(optionally with "when") is a retrospective mention: a flashback that may
precede the introduction without being out of order.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, Optional

from story_linter.extract.markup import LineIndex
from story_linter.models.document import Block, BlockKind
from story_linter.models.facts import EntityMention, MentionKind

MAX_NAME_WORDS = 4

WORD_RE = re.compile(r"[^\W\d_]+(?:[-'’][^\W\d_]+)*")
JOINER_RE = re.compile(r"[ \t]+")
SENTENCE_END_RE = re.compile(r"[.!?]")
BOLD_RE = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1")
CUE_RE = re.compile(r"\b(called|known\s+as|named)[ \t]*[\"'“‘*_]*[ \t]*$", re.IGNORECASE)
RETROSPECTIVE_RE = re.compile(
    r"\b(?:remember(?:s|ed)?|recalled|thinking[ \t]+about|thought[ \t]+of)[ \t]+(?:when[ \t]+)?$",
    re.IGNORECASE,
)
POSSESSIVE_RE = re.compile(r"['’]s$")

# Capitalized words that are not names on their own
COMMON_WORDS = frozenset("""
a an the this that these those it its he she they them we us you your yours
i me my mine our ours his her hers their theirs who whom whose which what
why how when where while there here then than and but or nor so yet if
in on at of for with to from by as after before into onto upon over under
about above below between through during without within not no yes all any
some every each both either neither one two three four five many much more
most such only also even just still once again oh ok okay well now later soon
chapter section part prologue epilogue book scroll volume appendix note
mr mrs ms miss dr sir lady lord
monday tuesday wednesday thursday friday saturday sunday
january february march april may june july august september october november december
""".split())


def canonical_form(surface: str) -> str:
    """Lowercased, diacritic-folded, whitespace-collapsed name."""
    decomposed = unicodedata.normalize("NFKD", surface)
    folded = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(folded.casefold().split())


def is_common_word(word: str) -> bool:
    return len(word) == 1 or word.casefold() in COMMON_WORDS


@dataclass
class _Token:
    text: str
    start: int
    end: int
    sentence_start: bool
    bold: bool


def _bold_spans(segment: str, base: int) -> list[tuple[int, int]]:
    return [(base + m.start(2), base + m.end(2)) for m in BOLD_RE.finditer(segment)]


def _in_spans(offset: int, spans: list[tuple[int, int]]) -> bool:
    return any(start <= offset < end for start, end in spans)


def _runs(segment: str, base: int, in_heading: bool) -> Iterable[list[_Token]]:
    """Yield runs of capitalized words joined by plain spaces."""
    bold = _bold_spans(segment, base)
    run: list[_Token] = []
    prev_end: Optional[int] = None

    for m in WORD_RE.finditer(segment):
        word = m.group()
        gap = segment[prev_end:m.start()] if prev_end is not None else None
        sentence_start = not in_heading and (gap is None or bool(SENTENCE_END_RE.search(gap)))
        possessive = bool(POSSESSIVE_RE.search(word))
        if possessive:
            word = POSSESSIVE_RE.sub("", word)

        if word[:1].isupper():
            token = _Token(word, base + m.start(), base + m.start() + len(word), sentence_start, _in_spans(base + m.start(), bold))
            joins = run and gap is not None and JOINER_RE.fullmatch(gap) and run[-1].bold == token.bold
            if not joins:
                if run:
                    yield run
                run = []
            run.append(token)
            if possessive:
                yield run
                run = []
        elif run:
            yield run
            run = []

        prev_end = m.end()

    if run:
        yield run


def _trim(run: list[_Token], in_heading: bool) -> list[_Token]:
    if not in_heading and run[0].sentence_start and not run[0].bold:
        run = run[1:]
    while run and is_common_word(run[0].text):
        run = run[1:]
    while run and is_common_word(run[-1].text):
        run = run[:-1]
    return run


def _cue(masked: str, block_start: int, token: _Token, in_heading: bool) -> Optional[str]:
    if in_heading:
        return "heading"
    if token.bold:
        return "bold"
    m = CUE_RE.search(masked[max(block_start, token.start - 40):token.start])
    if m:
        return " ".join(m.group(1).lower().split())
    return None


def _is_retrospective(masked: str, block_start: int, token: _Token) -> bool:
    return RETROSPECTIVE_RE.search(masked[max(block_start, token.start - 40):token.start]) is not None


def extract_mentions(
    document_id: str,
    masked: str,
    blocks: Iterable[Block],
    index: LineIndex,
) -> list[EntityMention]:
    """Extract entity mentions from prose blocks of a masked document."""
    mentions: list[EntityMention] = []
    seen: set[str] = set()

    for block in blocks:
        if not block.kind.is_prose:
            continue
        in_heading = block.kind == BlockKind.HEADING
        start, end = index.span(block.start_line, block.end_line)
        segment = masked[start:end]

        for run in _runs(segment, start, in_heading):
            run = _trim(run, in_heading)
            if not 1 <= len(run) <= MAX_NAME_WORDS:
                continue

            surface = " ".join(t.text for t in run)
            canonical = canonical_form(surface)
            kind = MentionKind.REFERENCE
            cue = None
            if canonical not in seen:
                seen.add(canonical)
                cue = _cue(masked, start, run[0], in_heading)
                if cue:
                    kind = MentionKind.INTRODUCTION

            mentions.append(EntityMention(
                surface=surface,
                canonical=canonical,
                document=document_id,
                position=index.position(run[0].start),
                kind=kind,
                cue=cue,
                retrospective=_is_retrospective(masked, start, run[0]),
            ))

    return mentions
