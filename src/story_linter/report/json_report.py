"""Machine-readable reporter: a single JSON array of diagnostic records."""

import json
import sys
from typing import Optional, TextIO

from story_linter.models.diagnostic import Diagnostic


class JsonReporter:
    """Buffers records and writes them on `flush`.

    Output is byte-stable for equal input: keys keep the record order
    `code, severity, file, line, column, message, related` and the array
    ends with a newline.
    """

    def __init__(self, stream: Optional[TextIO] = None, indent: Optional[int] = 2):
        self.stream = stream or sys.stdout
        self.indent = indent
        self.records: list[dict] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        self.records.append(diagnostic.to_dict())

    def render(self) -> str:
        return json.dumps(self.records, indent=self.indent, ensure_ascii=False) + "\n"

    def flush(self) -> None:
        self.stream.write(self.render())
        self.stream.flush()
