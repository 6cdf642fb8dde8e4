"""Load story documents from a root directory."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterator, Optional

from story_linter.cancel import CancelToken
from story_linter.config import LinterConfig
from story_linter.errors import ConfigError, LoadError
from story_linter.ingest.patterns import has_magic, matches_any
from story_linter.models.diagnostic import (
    Diagnostic,
    DiagnosticKind,
    Location,
    RelatedLocation,
    Severity,
)
from story_linter.models.document import Document

logger = logging.getLogger(__name__)

MARKUP_EXTENSIONS = frozenset({".md", ".markdown"})


@dataclass
class LoadResult:
    """Documents in discovery order plus loader warnings."""
    documents: list[Document] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def document_id(rel_path: str) -> str:
    """`scrolls/evolution.md` -> `scrolls/evolution`"""
    return PurePosixPath(rel_path).with_suffix("").as_posix()


def read_markup(path: Path) -> str:
    """Read a markup file as text; the handle is closed before returning."""
    # utf-8-sig also accepts plain UTF-8 and drops a leading BOM
    return path.read_text(encoding="utf-8-sig")


class DocumentLoader:
    """Resolves a root directory into an ordered set of documents.

    Usage:
        loader = DocumentLoader(Path("story"), config)
        result = loader.load()
        for doc in result.documents:
            print(doc.order, doc.id)
    """

    def __init__(
        self,
        root: Path,
        config: LinterConfig,
        cancel: Optional[CancelToken] = None,
    ):
        self.root = root
        self.config = config
        self.cancel = cancel or CancelToken()

    def discover(self) -> list[tuple[str, bool]]:
        """Return (relative path, explicit) pairs, sorted lexicographically."""
        found: dict[str, bool] = {}

        for pattern in self.config.include:
            if has_magic(pattern):
                continue
            rel = pattern[2:] if pattern.startswith("./") else pattern
            if not (self.root / rel).is_file():
                raise LoadError(f"Included file not found: {rel}", rel)
            found[rel] = True

        globs = [p for p in self.config.include if has_magic(p)]
        if globs:
            for rel in self._walk(self.root, "", frozenset({os.path.realpath(self.root)})):
                if rel in found:
                    continue
                if matches_any(rel, globs) and not matches_any(rel, self.config.exclude):
                    found[rel] = False

        return sorted(found.items())

    def _walk(self, directory: Path, rel_dir: str, ancestors: frozenset[str]) -> Iterator[str]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            raise LoadError(f"Cannot list directory: {e.strerror}", rel_dir or ".") from e

        for entry in entries:
            rel = f"{rel_dir}/{entry.name}" if rel_dir else entry.name

            if entry.is_symlink() and not self.config.follow_symlinks:
                logger.debug("Skipping symlink %s", rel)
                continue

            if entry.is_dir(follow_symlinks=True):
                real = os.path.realpath(entry.path)
                if real in ancestors:
                    raise ConfigError(
                        f"Symlink cycle: '{rel}' points back to an enclosing directory",
                        rel,
                        kind=DiagnosticKind.SYMLINK_CYCLE,
                    )
                yield from self._walk(Path(entry.path), rel, ancestors | {real})
            elif entry.is_file(follow_symlinks=True):
                yield rel

    def load(self) -> LoadResult:
        """Read every discovered markup file.

        Raises:
            LoadError: An explicitly included file cannot be read or shares
                its document id with another file, or no markup document
                was found
            ConfigError: Symlink cycle
            AnalysisCancelled: Cancellation observed between files
        """
        result = LoadResult()
        seen: dict[str, Document] = {}

        for rel, explicit in self.discover():
            self.cancel.raise_if_cancelled()

            suffix = PurePosixPath(rel).suffix.lower()
            if suffix not in MARKUP_EXTENSIONS:
                result.diagnostics.append(Diagnostic(
                    kind=DiagnosticKind.UNSUPPORTED_FILE,
                    severity=Severity.WARNING,
                    location=Location(rel),
                    message=f"Ignoring non-markup file '{rel}'",
                ))
                continue

            try:
                text = read_markup(self.root / rel)
            except (OSError, UnicodeDecodeError) as e:
                reason = e.strerror if isinstance(e, OSError) and e.strerror else str(e)
                if explicit:
                    raise LoadError(f"Cannot read '{rel}': {reason}", rel) from e
                logger.warning("Skipping unreadable file %s: %s", rel, reason)
                result.diagnostics.append(Diagnostic(
                    kind=DiagnosticKind.UNREADABLE_FILE,
                    severity=Severity.WARNING,
                    location=Location(rel),
                    message=f"Skipping unreadable file: {reason}",
                ))
                continue

            doc_id = document_id(rel)
            earlier = seen.get(doc_id)
            if earlier is not None:
                message = f"'{rel}' and '{earlier.path}' both map to document id '{doc_id}'"
                if explicit or earlier.explicit:
                    raise LoadError(message, rel, kind=DiagnosticKind.DUPLICATE_ID)
                logger.warning("Skipping %s: duplicate id %s", rel, doc_id)
                result.diagnostics.append(Diagnostic(
                    kind=DiagnosticKind.DUPLICATE_ID,
                    severity=Severity.WARNING,
                    location=Location(rel),
                    message=f"Skipping document: {message}",
                    related=(RelatedLocation(Location(earlier.path), "kept"),),
                ))
                continue

            document = Document(
                id=doc_id,
                path=rel,
                text=text,
                order=len(result.documents),
                explicit=explicit,
            )
            seen[doc_id] = document
            result.documents.append(document)

        if not result.documents:
            raise LoadError(
                "No markup documents found under the root",
                kind=DiagnosticKind.NO_DOCUMENTS,
            )

        logger.info("Loaded %d documents from %s", len(result.documents), self.root)
        return result
