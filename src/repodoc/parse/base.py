"""Base interface for language-specific structural parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from repodoc.db.models import TypeFact


class StructureParser(ABC):
    """Abstract base for all structural parsers.

    A parser turns the raw text of one source file into TypeFacts, each with
    its nested MemberFacts, and knows how the language declares a file's
    namespace. Parsers keep no state between calls and may be shared by
    worker threads.
    """

    #: File extensions (lower case, with the leading dot) this parser handles.
    extensions: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, content: str) -> list[TypeFact]:
        """Return the types declared in *content*, in source order.

        Raises:
            ParseError: The content is not valid source for this language.
        """

    @abstractmethod
    def extract_namespace(self, content: str) -> str:
        """Return the namespace declared by *content*, or "default"."""

    def handles(self, path: str) -> bool:
        """True if *path* has one of this parser's extensions."""
        return path.lower().endswith(self.extensions)
