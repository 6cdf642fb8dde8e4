"""Document discovery and loading."""

from story_linter.ingest.loader import DocumentLoader, LoadResult, document_id
from story_linter.ingest.patterns import has_magic, matches, matches_any

__all__ = ["DocumentLoader", "LoadResult", "document_id", "has_magic", "matches", "matches_any"]
