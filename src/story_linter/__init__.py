"""Story Linter - narrative consistency checks for interlinked Markdown stories."""

__version__ = "0.1.0"
