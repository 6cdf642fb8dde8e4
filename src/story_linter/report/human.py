"""Human-readable reporter for the terminal."""

from typing import Optional

from rich.console import Console
from rich.markup import escape

from story_linter.models.diagnostic import Diagnostic, Severity
from story_linter.report.sink import count_by_severity

SEVERITY_STYLE = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class HumanReporter:
    """Prints diagnostics grouped by file, then a one-line summary.

    Expects diagnostics in sorted order; a file header is printed whenever
    the file changes.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._current_file: Optional[str] = None
        self._seen: list[Diagnostic] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        file = diagnostic.location.file
        if file != self._current_file:
            if self._current_file is not None:
                self.console.print()
            self.console.print(f"[bold underline]{escape(file)}[/bold underline]")
            self._current_file = file

        style = SEVERITY_STYLE[diagnostic.severity]
        loc = f"{diagnostic.location.line}:{diagnostic.location.column}"
        self.console.print(
            f"  [dim]{loc:>7}[/dim]  [{style}]{diagnostic.severity.value:<7}[/{style}] "
            f"{escape(diagnostic.message)}  [dim]{diagnostic.code}[/dim]"
        )
        for related in diagnostic.related:
            self.console.print(
                f"           [dim]{escape(str(related.location))}: {escape(related.message)}[/dim]"
            )
        self._seen.append(diagnostic)

    def flush(self) -> None:
        counts = count_by_severity(self._seen)
        if not self._seen:
            self.console.print("[green]✓[/green] No problems found")
            return

        self.console.print()
        parts = [
            f"[{SEVERITY_STYLE[Severity.ERROR]}]{_plural(counts[Severity.ERROR], 'error')}[/]",
            f"[{SEVERITY_STYLE[Severity.WARNING]}]{_plural(counts[Severity.WARNING], 'warning')}[/]",
            f"[{SEVERITY_STYLE[Severity.INFO]}]{counts[Severity.INFO]} info[/]",
        ]
        files = len({d.location.file for d in self._seen})
        self.console.print(f"[bold]{_plural(len(self._seen), 'problem')}[/bold] in {_plural(files, 'file')}: " + ", ".join(parts))
