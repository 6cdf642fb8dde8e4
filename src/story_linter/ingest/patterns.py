"""Path glob matching for include/exclude lists.

Globs are matched segment by segment against the root-relative POSIX path,
with `Path.glob` semantics:
- `**` as a whole segment matches zero or more directories
- `*`, `?` and `[...]` / `[!...]` stay within one segment
"""

from fnmatch import fnmatchcase

GLOB_CHARS = frozenset("*?[")


def has_magic(pattern: str) -> bool:
    """True if the pattern contains glob characters."""
    return any(c in GLOB_CHARS for c in pattern)


def _match_parts(parts: tuple[str, ...], segments: tuple[str, ...]) -> bool:
    if not segments:
        return not parts
    head, rest = segments[0], segments[1:]
    if head == "**":
        return any(_match_parts(parts[i:], rest) for i in range(len(parts) + 1))
    return bool(parts) and fnmatchcase(parts[0], head) and _match_parts(parts[1:], rest)


def matches(path: str, pattern: str) -> bool:
    """Check a root-relative POSIX path against one glob."""
    if pattern.startswith("./"):
        pattern = pattern[2:]
    return _match_parts(tuple(path.split("/")), tuple(pattern.split("/")))


def matches_any(path: str, patterns: list[str]) -> bool:
    return any(matches(path, p) for p in patterns)
