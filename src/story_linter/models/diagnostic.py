"""Diagnostic model shared by validators, the engine and reporters."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Severity(Enum):
    """How serious a finding is."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Numeric weight for threshold comparison (higher is worse)."""
        return {
            Severity.INFO: 0,
            Severity.WARNING: 1,
            Severity.ERROR: 2,
        }[self]


class DiagnosticKind(Enum):
    """Every diagnostic the linter can produce.

    Declaration order is the tie-break order for diagnostics reported
    at the same location.
    """
    # Fatal
    ROOT_MISSING = "io.root-missing"
    NO_DOCUMENTS = "io.no-documents"
    READ_ERROR = "io.read-error"
    CONFIG_INVALID = "config.invalid"
    SYMLINK_CYCLE = "config.symlink-cycle"
    INVALID_FRONT_MATTER = "parse.invalid-front-matter"
    VALIDATOR_ERROR = "internal.validator-error"

    # Configuration advisories
    UNKNOWN_KEY = "config.unknown-key"
    UNUSED_ALLOWLIST = "config.unused-allowlist"
    MISSING_ENTRY_POINT = "config.missing-entry-point"

    # Loader
    UNSUPPORTED_FILE = "loader.unsupported-file"
    UNREADABLE_FILE = "loader.unreadable-file"
    DUPLICATE_ID = "loader.duplicate-id"

    # Validators
    CHARACTER_UNDECLARED = "character.undeclared"
    CHARACTER_TYPO = "character.typo-suspect"
    CHARACTER_BEFORE_INTRODUCTION = "character.before-introduction"
    LINK_BROKEN = "link.broken"
    LINK_BROKEN_ANCHOR = "link.broken-anchor"
    LINK_BIDIRECTIONAL = "link.bidirectional"
    GRAPH_ORPHAN = "graph.orphan"
    CHRONOLOGY_OUT_OF_ORDER = "chronology.out-of-order"
    CHRONOLOGY_DUPLICATE = "chronology.duplicate-ordinal"

    @property
    def rank(self) -> int:
        return _KIND_RANK[self]


_KIND_RANK = {kind: index for index, kind in enumerate(DiagnosticKind)}


@dataclass(frozen=True)
class Location:
    """A point in a file: relative path with extension plus 1-based line/column."""
    file: str
    line: int = 1
    column: int = 1

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class RelatedLocation:
    """A secondary location attached to a diagnostic."""
    location: Location
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "file": self.location.file,
            "line": self.location.line,
            "column": self.location.column,
            "message": self.message,
        }


@dataclass(frozen=True)
class Diagnostic:
    """A structured finding about the inputs."""
    kind: DiagnosticKind
    severity: Severity
    location: Location
    message: str
    document: Optional[str] = None  # Document id, None for config/fatal findings
    related: tuple[RelatedLocation, ...] = field(default_factory=tuple)

    @property
    def code(self) -> str:
        return self.kind.value

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "severity": self.severity.value,
            "file": self.location.file,
            "line": self.location.line,
            "column": self.location.column,
            "message": self.message,
            "related": [r.to_dict() for r in self.related],
        }

    def summary(self) -> str:
        """One-line human-readable form."""
        return f"{self.location} {self.severity.value} [{self.code}] {self.message}"
