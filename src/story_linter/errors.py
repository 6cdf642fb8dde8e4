"""Exceptions raised by the linter core."""

from typing import Optional

from story_linter.models.diagnostic import Diagnostic, DiagnosticKind, Location, Severity


class StoryLinterError(Exception):
    """Base class for all linter errors."""


class FatalError(StoryLinterError):
    """Analysis cannot continue; carries the single diagnostic to report."""

    kind = DiagnosticKind.READ_ERROR

    def __init__(
        self,
        message: str,
        file: str = ".",
        line: int = 1,
        column: int = 1,
        kind: Optional[DiagnosticKind] = None,
    ):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.diagnostic = Diagnostic(
            kind=self.kind,
            severity=Severity.ERROR,
            location=Location(file, line, column),
            message=message,
        )


class ConfigError(FatalError):
    """Configuration could not be read or is invalid."""

    kind = DiagnosticKind.CONFIG_INVALID


class LoadError(FatalError):
    """The document set could not be loaded."""

    kind = DiagnosticKind.READ_ERROR


class ParseError(StoryLinterError):
    """A document could not be parsed.

    Not fatal by itself: the engine decides whether the failure promotes
    to fatal (explicitly included file) or downgrades to a warning.
    """

    def __init__(self, message: str, line: int = 1, column: int = 1):
        super().__init__(message)
        self.line = line
        self.column = column


class AnalysisCancelled(StoryLinterError):
    """A cancellation request was observed."""
