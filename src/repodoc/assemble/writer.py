"""Report files on disk.

A report lives at <output_dir>/<owner>/<repo>.md. Relative output
directories must stay inside the working directory, and reports are replaced
atomically so a concurrent reader never sees a half-written file.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

# Owner and repository names as accepted by GitHub.
_SLUG_PART_RE = re.compile(r"[A-Za-z0-9_.-]+")


def report_path(output_dir: str | Path, owner: str, repo_name: str) -> str:
    """Return the report path for *owner*/*repo_name* under *output_dir*.

    Raises:
        ValueError: *owner* or *repo_name* is empty, "." / "..", or contains
            characters GitHub does not allow in names (path separators included).
    """
    for part in (owner, repo_name):
        if part in (".", "..") or not _SLUG_PART_RE.fullmatch(part):
            raise ValueError(f"Invalid repository name component: {part!r}")
    return str(Path(output_dir) / owner / f"{repo_name}.md")


def validate_output_path(output: str, allowed_base: Path | None = None) -> Path:
    """Resolve *output*, refusing relative paths that leave *allowed_base*.

    Absolute paths were chosen explicitly and are only resolved. Relative
    paths are resolved against *allowed_base* (the working directory when
    omitted) and must land inside it.

    Raises:
        ValueError: a relative path escapes *allowed_base*.
    """
    path = Path(output)
    if path.is_absolute():
        return path.resolve()

    base = (allowed_base or Path.cwd()).resolve()
    resolved = (base / path).resolve()
    if not resolved.is_relative_to(base):
        raise ValueError(
            f"Output path '{output}' resolves outside '{base}'. "
            "Path traversal is not permitted."
        )
    return resolved


def write_output(path: Path, content: str) -> None:
    """Replace *path* with *content*, creating parent directories first."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
