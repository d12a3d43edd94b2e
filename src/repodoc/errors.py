"""Error taxonomy for repodoc.

Per-file failures (ExtractionError) are aggregated and never abort a batch.
Graph failures (NotFound, IncompleteGraph) abort the current assembly call.
ConflictRetry never leaves the namespace hierarchy builder.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repodoc.ingest.driver import IngestionReport


class RepodocError(Exception):
    """Base class for all repodoc errors."""


class InvalidArgument(RepodocError, ValueError):
    """Blank repository name or malformed namespace input. Not retried."""


class ParseError(RepodocError, ValueError):
    """Raised by a structural parser when source text cannot be parsed."""


class ExtractionError(RepodocError):
    """A single file failed to fetch, parse, or persist.

    Attributes:
        path: Repository-relative path of the failed file.
        stage: One of 'fetch', 'parse', 'persist'.
    """

    def __init__(self, path: str, stage: str, cause: BaseException | str) -> None:
        self.path = path
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed for '{path}': {cause}")


class NotFound(RepodocError, LookupError):
    """Assembly requested for a repository with no ingested facts."""


class ConflictRetry(RepodocError):
    """A concurrent creator won the race for a uniquely-keyed row."""


class IncompleteGraph(RepodocError):
    """Completeness verification could not hydrate a branch."""


class FetchError(RepodocError, RuntimeError):
    """The remote repository service returned an error or unusable data."""


class GenerationError(RepodocError):
    """Terminal failure of a regenerate-and-export run.

    Attributes:
        stage: One of 'metadata', 'ingestion', 'assembly', 'export'.
        report: Ingestion report, set for the 'ingestion' stage.
    """

    def __init__(
        self,
        stage: str,
        message: str,
        report: IngestionReport | None = None,
    ) -> None:
        self.stage = stage
        self.report = report
        super().__init__(f"{stage}: {message}")
