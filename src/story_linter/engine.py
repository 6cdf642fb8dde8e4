"""Analysis engine: load, parse, build the Fact Store, validate, report.

Usage:
    from story_linter.engine import analyze
    from story_linter.report import CollectingReporter

    reporter = CollectingReporter()
    outcome = analyze(Path("story"), reporter=reporter)
    print(outcome.status, outcome.exit_code("warning"))
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from story_linter.cancel import CancelToken
from story_linter.config import LinterConfig, LoadedConfig, load_config
from story_linter.errors import AnalysisCancelled, FatalError, ParseError
from story_linter.extract.parser import ParserOptions, parse_document
from story_linter.graph.store import FactStore, FactStoreBuilder
from story_linter.ingest.loader import DocumentLoader
from story_linter.models.diagnostic import Diagnostic, DiagnosticKind, Location, Severity
from story_linter.models.document import Document
from story_linter.models.facts import ParsedDocument
from story_linter.report.sink import CollectingReporter, DiagnosticBuffer, Reporter, sort_key
from story_linter.validators import VALIDATOR_NAMES, Validator, enabled_validators, entry_ids

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    COMPLETED = "completed"
    FATAL = "fatal"
    CANCELLED = "cancelled"


FAIL_ON_THRESHOLDS = {
    "error": Severity.ERROR,
    "warning": Severity.WARNING,
}


@dataclass(frozen=True)
class RunOutcome:
    """Result of one analysis run."""
    status: RunStatus
    diagnostics: tuple[Diagnostic, ...] = ()
    store: Optional[FactStore] = None

    def exit_code(self, fail_on: str = "error") -> int:
        """0 clean, 1 findings at/above threshold, 2 fatal, 3 cancelled."""
        if self.status is RunStatus.CANCELLED:
            return 3
        if self.status is RunStatus.FATAL:
            return 2
        if fail_on == "never":
            return 0
        threshold = FAIL_ON_THRESHOLDS[fail_on].rank
        return 1 if any(d.severity.rank >= threshold for d in self.diagnostics) else 0


@dataclass
class Prepared:
    """Everything validators need, plus diagnostics produced on the way."""
    loaded: LoadedConfig
    store: FactStore
    diagnostics: list[Diagnostic]

    @property
    def config(self) -> LinterConfig:
        return self.loaded.config


class Engine:
    """Runs one analysis over a story root.

    Args:
        root: Story root directory
        config_path: Explicit config file (skips discovery)
        jobs: Worker threads for parsing and validation (overrides config)
        cancel: Token observed between files, parses and validators
    """

    def __init__(
        self,
        root: Path,
        config_path: Optional[Path] = None,
        jobs: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ):
        self.root = Path(root)
        self.config_path = config_path
        self.jobs = jobs
        self.cancel = cancel or CancelToken()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def prepare(self) -> Prepared:
        """Load config and documents, parse them and freeze the Fact Store.

        Raises:
            FatalError: Missing root, bad config, unreadable explicit file
            AnalysisCancelled: Cancellation observed
        """
        if not self.root.is_dir():
            raise FatalError(
                f"Root directory not found: {self.root}",
                str(self.root),
                kind=DiagnosticKind.ROOT_MISSING,
            )

        loaded = load_config(self.root, self.config_path)
        config = loaded.config
        jobs = self.jobs or config.jobs

        loaded_docs = DocumentLoader(self.root, config, self.cancel).load()
        diagnostics = list(loaded_docs.diagnostics)

        options = ParserOptions.from_config(config)
        parsed = self._parse_all(loaded_docs.documents, options, jobs, diagnostics)

        builder = FactStoreBuilder(config)
        for item in parsed:
            builder.add(item)
        store = builder.freeze()
        logger.info(
            "Fact store: %d documents, %d entities, %d links",
            len(store), len(store.entities), store.links.graph.number_of_edges(),
        )
        return Prepared(loaded=loaded, store=store, diagnostics=diagnostics)

    def _parse_all(
        self,
        documents: list[Document],
        options: ParserOptions,
        jobs: int,
        diagnostics: list[Diagnostic],
    ) -> list[ParsedDocument]:
        def parse_one(document: Document):
            self.cancel.raise_if_cancelled()
            try:
                return parse_document(document, options)
            except ParseError as e:
                return self._parse_failure(document, e)

        if jobs > 1 and len(documents) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as pool:
                results = list(pool.map(parse_one, documents))
        else:
            results = [parse_one(doc) for doc in documents]

        parsed = []
        for result in results:
            if isinstance(result, Diagnostic):
                diagnostics.append(result)
            else:
                parsed.append(result)
        logger.debug("Parsed %d of %d documents", len(parsed), len(documents))
        return parsed

    @staticmethod
    def _parse_failure(document: Document, error: ParseError) -> Diagnostic:
        if document.explicit:
            raise FatalError(
                str(error),
                document.path,
                error.line,
                error.column,
                kind=DiagnosticKind.INVALID_FRONT_MATTER,
            ) from error
        logger.warning("Skipping %s: %s", document.path, error)
        return Diagnostic(
            kind=DiagnosticKind.INVALID_FRONT_MATTER,
            severity=Severity.WARNING,
            location=Location(document.path, error.line, error.column),
            message=f"Skipping document: {error}",
        )

    def advisories(self, prepared: Prepared) -> list[Diagnostic]:
        """Configuration advisories, produced before any validator runs."""
        loaded, store, config = prepared.loaded, prepared.store, prepared.config
        found = loaded.unknown_key_advisories()

        for name in loaded.raw_keys.get("validators", []):
            if name not in VALIDATOR_NAMES:
                found.append(loaded.advisory(
                    DiagnosticKind.UNKNOWN_KEY,
                    Severity.WARNING,
                    f"Unknown validator '{name}'",
                    f"validators.{name}",
                ))

        for name in config.known_characters:
            if name not in store.entities:
                found.append(loaded.advisory(
                    DiagnosticKind.UNUSED_ALLOWLIST,
                    Severity.INFO,
                    f"Known character '{name}' is never mentioned",
                    "known-characters",
                ))

        for entry in entry_ids(config):
            if entry not in store:
                found.append(loaded.advisory(
                    DiagnosticKind.MISSING_ENTRY_POINT,
                    Severity.INFO,
                    f"Entry point '{entry}' does not match any document",
                    "entry-points",
                ))

        return found

    def validate(self, prepared: Prepared, buffer: DiagnosticBuffer) -> None:
        """Run enabled validators into the buffer, in parallel when jobs > 1."""
        store, config = prepared.store, prepared.config
        validators = enabled_validators(config)
        jobs = self.jobs or config.jobs
        logger.info("Running %d validators", len(validators))

        if jobs > 1 and len(validators) > 1:
            with ThreadPoolExecutor(max_workers=min(jobs, len(validators))) as pool:
                futures = [
                    pool.submit(self._run_validator, v, store, config, buffer)
                    for v in validators
                ]
                for future in futures:
                    future.result()
        else:
            for validator in validators:
                self._run_validator(validator, store, config, buffer)

    def _run_validator(
        self,
        validator: Validator,
        store: FactStore,
        config: LinterConfig,
        buffer: DiagnosticBuffer,
    ) -> None:
        self.cancel.raise_if_cancelled()
        logger.debug("Validator %s", validator.name)
        try:
            results = validator.run(store, config)
        except Exception as e:
            logger.debug("Validator %s raised", validator.name, exc_info=True)
            raise FatalError(
                f"Validator '{validator.name}' failed: {e}",
                kind=DiagnosticKind.VALIDATOR_ERROR,
            ) from e
        buffer.extend(results)

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def run(self, reporter: Optional[Reporter] = None) -> RunOutcome:
        """Analyze the root and forward sorted diagnostics to the reporter.

        A fatal error is reported as its single diagnostic. On cancellation
        nothing is reported.
        """
        reporter = reporter if reporter is not None else CollectingReporter()
        buffer = DiagnosticBuffer()

        try:
            prepared = self.prepare()
            buffer.extend(prepared.diagnostics)
            buffer.extend(self.advisories(prepared))
            self.validate(prepared, buffer)
            self.cancel.raise_if_cancelled()
        except AnalysisCancelled:
            buffer.clear()
            logger.warning("Analysis cancelled")
            return RunOutcome(RunStatus.CANCELLED)
        except FatalError as e:
            buffer.clear()
            logger.debug("Fatal: %s", e)
            reporter.emit(e.diagnostic)
            reporter.flush()
            return RunOutcome(RunStatus.FATAL, (e.diagnostic,))

        diagnostics = buffer.drain(key=sort_key(prepared.store.order_of))
        for diagnostic in diagnostics:
            reporter.emit(diagnostic)
        reporter.flush()

        logger.info("Analysis complete: %d diagnostics", len(diagnostics))
        return RunOutcome(RunStatus.COMPLETED, tuple(diagnostics), prepared.store)


def analyze(
    root: Path,
    config_path: Optional[Path] = None,
    reporter: Optional[Reporter] = None,
    jobs: Optional[int] = None,
    cancel: Optional[CancelToken] = None,
) -> RunOutcome:
    """Convenience wrapper around `Engine(...).run(reporter)`."""
    return Engine(root, config_path=config_path, jobs=jobs, cancel=cancel).run(reporter)
