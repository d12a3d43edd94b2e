"""Structural parsers: source text to type/member facts."""

from repodoc.parse.base import StructureParser
from repodoc.parse.java import JavaStructureParser

# Language name (as used in repodoc.yaml: ingest.language) -> parser class.
PARSERS: dict[str, type[StructureParser]] = {
    "java": JavaStructureParser,
}


def parser_for_language(language: str) -> StructureParser:
    """Return a parser instance for *language*.

    Raises:
        ValueError: No parser is registered for *language*.
    """
    try:
        return PARSERS[language.lower()]()
    except KeyError:
        supported = ", ".join(sorted(PARSERS))
        raise ValueError(
            f"Unsupported language '{language}'. Supported: {supported}"
        ) from None


__all__ = [
    "JavaStructureParser",
    "PARSERS",
    "StructureParser",
    "parser_for_language",
]
