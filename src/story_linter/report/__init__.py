"""Reporter sinks."""

from story_linter.report.human import HumanReporter
from story_linter.report.json_report import JsonReporter
from story_linter.report.sink import (
    CollectingReporter,
    DiagnosticBuffer,
    Reporter,
    count_by_severity,
    sort_key,
)

__all__ = [
    "Reporter",
    "DiagnosticBuffer",
    "CollectingReporter",
    "HumanReporter",
    "JsonReporter",
    "count_by_severity",
    "sort_key",
]
