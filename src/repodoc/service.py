"""Regenerate-and-export: the one operation the CLI drives.

DocumentationService.generate(owner, repo):
  1. Fetch repository metadata and upsert the RepositoryIdentity.
  2. Ask the StalenessOracle; a current snapshot is returned as-is.
  3. List the remote source tree and ingest every file the parser handles.
  4. Assemble the fact graph, render it, write the report file.
  5. Store the rendered text as the repository's current snapshot.

Every terminal failure is raised as a GenerationError naming its stage.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path

import structlog

from repodoc.assemble.assembler import DocumentAssembler
from repodoc.assemble.exporter import HierarchyExporter
from repodoc.assemble.writer import report_path, validate_output_path, write_output
from repodoc.config import RepodocConfig
from repodoc.db.models import DocumentSnapshot, RepositoryIdentity
from repodoc.db.store import StructuralGraphStore
from repodoc.errors import (
    FetchError,
    GenerationError,
    IncompleteGraph,
    InvalidArgument,
    NotFound,
)
from repodoc.github.client import DEFAULT_BASE_PATH, GitHubClient
from repodoc.ingest.driver import DEFAULT_WORKERS, FactExtractionDriver, IngestionReport
from repodoc.ingest.staleness import StalenessOracle
from repodoc.parse import parser_for_language
from repodoc.parse.base import StructureParser

logger = structlog.get_logger()


@dataclass
class GenerationResult:
    """Outcome of DocumentationService.generate().

    Attributes:
        text: The rendered report.
        reused: True when the current snapshot was still fresh and returned as-is.
        snapshot: The current snapshot after the call.
        report: Ingestion report; None when the snapshot was reused.
        output_path: Where the report file was written, if anywhere.
    """

    text: str
    reused: bool
    snapshot: DocumentSnapshot
    report: IngestionReport | None = None
    output_path: Path | None = None


class DocumentationService:
    """Wire the remote client, parser, store and core components together.

    Args:
        store: Fact graph store.
        client: Remote repository client.
        parser: Structural parser for the repository's language.
        base_path: Directory the remote file listing starts from.
        workers: Extraction worker pool size.
        order: Exporter ordering, ``insertion`` or ``name``.
        output_dir: Directory reports are written to; None keeps them in the
            store only.
        fail_on_errors: Treat any per-file failure as a terminal error.
    """

    def __init__(
        self,
        store: StructuralGraphStore,
        client: GitHubClient,
        parser: StructureParser,
        *,
        base_path: str = DEFAULT_BASE_PATH,
        workers: int = DEFAULT_WORKERS,
        order: str = "insertion",
        output_dir: str | Path | None = None,
        fail_on_errors: bool = False,
    ) -> None:
        self._store = store
        self._client = client
        self._parser = parser
        self._oracle = StalenessOracle(store)
        self._driver = FactExtractionDriver(store, parser, workers=workers)
        self._assembler = DocumentAssembler(store)
        self._exporter = HierarchyExporter(order=order)
        self.base_path = base_path
        self.output_dir = output_dir
        self.fail_on_errors = fail_on_errors

    @classmethod
    def from_config(
        cls,
        store: StructuralGraphStore,
        client: GitHubClient,
        cfg: RepodocConfig,
    ) -> DocumentationService:
        """Build a service from a loaded RepodocConfig."""
        return cls(
            store,
            client,
            parser_for_language(cfg.ingest.language),
            base_path=cfg.github.base_path,
            workers=cfg.ingest.workers,
            order=cfg.export.order,
            output_dir=cfg.export.output_dir,
            fail_on_errors=cfg.ingest.fail_on_errors,
        )

    def generate(
        self,
        owner: str,
        repo: str,
        force: bool = False,
        cancel: threading.Event | None = None,
    ) -> GenerationResult:
        """Return the report for *owner*/*repo*, regenerating it if stale.

        Args:
            owner: Repository owner.
            repo: Repository name.
            force: Regenerate even if the current snapshot matches the latest commit.
            cancel: Set to stop ingesting files that have not started yet.

        Raises:
            InvalidArgument: *owner* or *repo* is blank.
            GenerationError: A stage failed; ``stage`` names which one.
        """
        if not owner or not owner.strip() or not repo or not repo.strip():
            raise InvalidArgument("Repository owner and name cannot be null or blank")

        with structlog.contextvars.bound_contextvars(repo=f"{owner}/{repo}"):
            identity = self._refresh_identity(owner, repo)

            snapshot = self._oracle.current_snapshot(identity)
            if (
                not force
                and snapshot is not None
                and not self._oracle.needs_regeneration(identity, identity.latest_commit_hash)
            ):
                logger.info("snapshot_reused", commit=snapshot.commit_hash)
                return GenerationResult(
                    text=snapshot.payload,
                    reused=True,
                    snapshot=snapshot,
                    output_path=Path(snapshot.export_path) if snapshot.export_path else None,
                )

            report = self._ingest(identity, cancel)
            return self._export(identity, report)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _refresh_identity(self, owner: str, repo: str) -> RepositoryIdentity:
        try:
            fetched = self._client.fetch_repository_metadata(owner, repo)
        except FetchError as exc:
            raise GenerationError("metadata", str(exc)) from exc
        return self._store.upsert_repository(fetched)

    def _ingest(
        self, identity: RepositoryIdentity, cancel: threading.Event | None
    ) -> IngestionReport:
        owner, repo, key = identity.owner, identity.repo_name, identity.graph_key
        try:
            entries = self._client.fetch_file_list(owner, repo, self.base_path)
        except FetchError as exc:
            raise GenerationError("ingestion", f"file listing failed: {exc}") from exc

        paths = [e.path for e in entries if e.kind == "file" and self._parser.handles(e.path)]
        logger.info("regeneration_started", commit=identity.latest_commit_hash, files=len(paths))

        report = self._driver.ingest_all(
            key,
            paths,
            fetch=lambda path: self._client.fetch_file_content(owner, repo, path),
            cancel=cancel,
        )

        if report.skipped:
            raise GenerationError(
                "ingestion", f"cancelled before all files were ingested ({report.summary()})", report
            )
        if paths and not report.succeeded:
            raise GenerationError("ingestion", f"no file could be ingested ({report.summary()})", report)
        if report.failed and self.fail_on_errors:
            raise GenerationError("ingestion", report.summary(), report)

        # Facts of files no longer listed at this commit.
        removed = self._store.delete_files_except(key, paths)
        emptied = self._store.delete_empty_namespaces(key)
        if removed or emptied:
            logger.info("stale_facts_pruned", files=removed, namespaces=emptied)
        return report

    def _export(self, identity: RepositoryIdentity, report: IngestionReport) -> GenerationResult:
        try:
            tree = self._assembler.assemble(identity)
        except (NotFound, IncompleteGraph) as exc:
            raise GenerationError("assembly", str(exc), report) from exc

        text = self._exporter.render(tree)

        output_path: Path | None = None
        if self.output_dir is not None:
            try:
                output_path = validate_output_path(
                    report_path(self.output_dir, identity.owner, identity.repo_name)
                )
                write_output(output_path, text)
            except (OSError, ValueError) as exc:
                raise GenerationError("export", str(exc), report) from exc

        if identity.audit.id is None:
            raise GenerationError("export", f"repository {identity.slug} was never stored", report)
        snapshot = self._store.save_snapshot(
            DocumentSnapshot(
                repository_id=identity.audit.id,
                commit_hash=identity.latest_commit_hash,
                payload=text,
                export_path=str(output_path) if output_path else None,
                namespace_ids=[ns.node.id for ns in tree.namespaces if ns.node.id is not None],
            )
        )
        logger.info(
            "snapshot_replaced",
            commit=snapshot.commit_hash,
            namespaces=len(snapshot.namespace_ids),
            summary=report.summary(),
        )
        return GenerationResult(
            text=text,
            reused=False,
            snapshot=snapshot,
            report=report,
            output_path=output_path,
        )
