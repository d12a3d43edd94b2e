"""repodoc ingest pipeline: namespace hierarchy, staleness, fact extraction."""

from repodoc.ingest.driver import FactExtractionDriver, FileOutcome, IngestionReport
from repodoc.ingest.hierarchy import NamespaceHierarchyBuilder
from repodoc.ingest.staleness import StalenessOracle

__all__ = [
    "FactExtractionDriver",
    "FileOutcome",
    "IngestionReport",
    "NamespaceHierarchyBuilder",
    "StalenessOracle",
]
