"""Fact extraction driver: one fetched file in, persisted facts out.

Per file:
  1. Derive the namespace from the raw content (parser's namespace rule).
  2. Parse the content into TypeFacts with nested MemberFacts.
  3. Get or create the owning namespace node (NamespaceHierarchyBuilder).
  4. Replace the file's stored facts in one transaction (file → types → members).

A failure on one file is recorded in the IngestionReport and never stops the
rest of the batch. Batches run on a bounded thread pool; setting the cancel
event stops files that have not started yet.
"""

from __future__ import annotations

import hashlib
import sqlite3
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import structlog

from repodoc.db.models import FileFact
from repodoc.db.store import StructuralGraphStore
from repodoc.errors import ExtractionError, FetchError, InvalidArgument, RepodocError
from repodoc.ingest.hierarchy import NamespaceHierarchyBuilder
from repodoc.parse.base import StructureParser

logger = structlog.get_logger()

DEFAULT_WORKERS = 4


@dataclass
class FileOutcome:
    """Result of ingesting one file: either facts were stored or an error was recorded."""

    path: str
    namespace: str | None = None
    type_count: int = 0
    error: ExtractionError | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


@dataclass
class IngestionReport:
    """Aggregate outcome of one regeneration pass."""

    repo_name: str
    outcomes: list[FileOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.error is not None]

    @property
    def skipped(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.skipped]

    @property
    def errors(self) -> list[ExtractionError]:
        return [o.error for o in self.outcomes if o.error is not None]

    def summary(self) -> str:
        """One-line summary, e.g. '3 files: 2 ingested, 1 failed, 0 skipped'."""
        return (
            f"{len(self.outcomes)} files: {len(self.succeeded)} ingested, "
            f"{len(self.failed)} failed, {len(self.skipped)} skipped"
        )


class FactExtractionDriver:
    """Parse files and persist their facts through the hierarchy builder and store.

    Args:
        store: Graph store the facts are written to.
        parser: Language parser providing the namespace rule and type facts.
        workers: Maximum number of files ingested concurrently.
    """

    def __init__(
        self,
        store: StructuralGraphStore,
        parser: StructureParser,
        workers: int = DEFAULT_WORKERS,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._store = store
        self._parser = parser
        self._builder = NamespaceHierarchyBuilder(store)
        self.workers = workers

    def ingest(self, repo_name: str, file_path: str, raw_content: str) -> FileOutcome:
        """Extract and persist the facts of one file.

        Parse and persistence failures are returned in the outcome, not raised.

        Raises:
            InvalidArgument: *repo_name* is blank.
        """
        _require_repo_name(repo_name)
        namespace = self._parser.extract_namespace(raw_content)

        try:
            types = self._parser.parse(raw_content)
        except Exception as exc:
            # Any parser failure, expected or not, fails only this file.
            return self._failed(repo_name, file_path, "parse", exc, namespace)

        try:
            node = self._builder.get_or_create(repo_name, namespace)
            self._store.replace_file_facts(
                FileFact(
                    repo_name=repo_name,
                    namespace_id=node.id,
                    path=file_path,
                    content_hash=content_hash(raw_content),
                ),
                types,
            )
        except (sqlite3.Error, RepodocError) as exc:
            return self._failed(repo_name, file_path, "persist", exc, namespace)

        logger.info(
            "file_ingested",
            repo=repo_name,
            path=file_path,
            namespace=node.qualified_name,
            types=len(types),
        )
        return FileOutcome(path=file_path, namespace=node.qualified_name, type_count=len(types))

    def ingest_all(
        self,
        repo_name: str,
        paths: Iterable[str],
        fetch: Callable[[str], str],
        cancel: threading.Event | None = None,
    ) -> IngestionReport:
        """Fetch and ingest every path on the worker pool.

        Args:
            repo_name: Repository the facts belong to.
            paths: Repository-relative file paths.
            fetch: Returns the raw content of a path; may raise FetchError.
            cancel: When set, files not yet started are recorded as skipped.

        Returns:
            IngestionReport with one outcome per path, in the order given.
        """
        _require_repo_name(repo_name)
        cancel = cancel or threading.Event()

        def _run(path: str) -> FileOutcome:
            if cancel.is_set():
                return FileOutcome(path=path, skipped=True)
            try:
                raw = fetch(path)
            except FetchError as exc:
                return self._failed(repo_name, path, "fetch", exc)
            return self.ingest(repo_name, path, raw)

        report = IngestionReport(repo_name=repo_name)
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="repodoc-ingest") as pool:
            futures = [pool.submit(_run, p) for p in paths]
            report.outcomes = [f.result() for f in futures]

        logger.info("ingestion_finished", repo=repo_name, summary=report.summary())
        return report

    @staticmethod
    def _failed(
        repo_name: str,
        path: str,
        stage: str,
        exc: Exception,
        namespace: str | None = None,
    ) -> FileOutcome:
        error = ExtractionError(path, stage, exc)
        logger.warning("file_failed", repo=repo_name, path=path, stage=stage, error=str(exc))
        return FileOutcome(path=path, namespace=namespace, error=error)


def content_hash(content: str) -> str:
    """SHA-256 fingerprint of the raw file content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _require_repo_name(repo_name: str) -> None:
    if repo_name is None or not repo_name.strip():
        raise InvalidArgument("Repository name cannot be null or blank")
