"""GitHub REST client: repository metadata, file listing, raw content.

Security requirements:
- The access token is sent only in the Authorization header; it never appears
  in URLs, log events, or error messages.
- Allowed API URL schemes: https:// (http:// only for a local mirror/test server).
- Max response body: 5 MB. Timeout: configurable, 30 seconds by default.
"""

from __future__ import annotations

import base64
import binascii
import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any

import structlog

from repodoc.db.models import RepositoryIdentity
from repodoc.errors import FetchError

logger = structlog.get_logger()

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_BASE_PATH = "src/main/java"
NO_DESCRIPTION = "No description available"

_USER_AGENT = "repodoc/0.1"
_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
_TIMEOUT = 30  # seconds
_ALLOWED_SCHEMES = {"https", "http"}
_JSON_ACCEPT = "application/vnd.github+json"
_RAW_ACCEPT = "application/vnd.github.v3.raw"


@dataclass
class RemoteEntry:
    """One entry of a repository contents listing."""

    path: str
    kind: str  # file | dir


class GitHubClient:
    """Thin client over the GitHub contents, commits and repository endpoints.

    Args:
        token: Personal access / OAuth token; anonymous access when None.
        api_url: API root, e.g. ``https://api.github.com``.
        timeout: Socket timeout in seconds for each request.
    """

    def __init__(
        self,
        token: str | None = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = _TIMEOUT,
    ) -> None:
        parsed = urllib.parse.urlparse(api_url)
        if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.netloc:
            raise ValueError(
                f"Unsupported API URL '{api_url}'. Only https:// and http:// are allowed."
            )
        self._token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch_repository_metadata(self, owner: str, repo: str) -> RepositoryIdentity:
        """Return description, default branch and latest commit hash of *owner*/*repo*."""
        logger.info("fetch_metadata", owner=owner, repo=repo)
        data = self._get_json(self._repo_url(owner, repo))
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected repository payload for {owner}/{repo}")

        return RepositoryIdentity(
            owner=owner,
            repo_name=repo,
            description=data.get("description") or NO_DESCRIPTION,
            default_branch=data.get("default_branch") or "main",
            latest_commit_hash=self.fetch_latest_commit_hash(owner, repo),
        )

    def fetch_latest_commit_hash(self, owner: str, repo: str) -> str:
        """Return the sha of the newest commit on the default branch."""
        commits = self._get_json(self._repo_url(owner, repo, "commits") + "?per_page=1")
        if not isinstance(commits, list) or not commits or "sha" not in commits[0]:
            raise FetchError(f"Unable to fetch commits for repository: {owner}/{repo}")
        return str(commits[0]["sha"])

    def fetch_file_list(
        self, owner: str, repo: str, base_path: str = DEFAULT_BASE_PATH
    ) -> list[RemoteEntry]:
        """List every file below *base_path*, recursing into directories.

        A failure at *base_path* itself raises FetchError; a failing
        sub-directory is logged and skipped.
        """
        return self._list_dir(owner, repo, base_path.strip("/"), root=True)

    def fetch_file_content(self, owner: str, repo: str, path: str) -> str:
        """Return the text of *path*.

        The raw media type is requested; a JSON contents object with base64
        encoding is decoded as a fallback.
        """
        url = self._repo_url(owner, repo, "contents", path)
        body, content_type = self._get(url, accept=_RAW_ACCEPT)

        if content_type == "application/json":
            try:
                payload = json.loads(body)
            except json.JSONDecodeError:
                return body.decode("utf-8", errors="replace")
            if isinstance(payload, dict) and "content" in payload:
                if str(payload.get("encoding", "")).lower() == "base64":
                    return _decode_base64(payload["content"], path)
                return str(payload["content"])
        return body.decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def _list_dir(self, owner: str, repo: str, path: str, root: bool = False) -> list[RemoteEntry]:
        try:
            entries = self._get_json(self._repo_url(owner, repo, "contents", path))
        except FetchError as exc:
            if root:
                raise
            logger.warning("list_dir_failed", owner=owner, repo=repo, path=path, error=str(exc))
            return []

        if isinstance(entries, dict):
            # A path that names a single file returns an object, not a list.
            entries = [entries]

        result: list[RemoteEntry] = []
        for entry in entries:
            kind = entry.get("type")
            entry_path = entry.get("path", "")
            if kind == "dir":
                result.extend(self._list_dir(owner, repo, entry_path))
            elif kind == "file":
                result.append(RemoteEntry(path=entry_path, kind="file"))
        if root:
            logger.info("files_listed", owner=owner, repo=repo, path=path, count=len(result))
        return result

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _repo_url(self, owner: str, repo: str, *parts: str) -> str:
        segments = [
            "repos",
            urllib.parse.quote(owner, safe=""),
            urllib.parse.quote(repo, safe=""),
        ]
        segments.extend(urllib.parse.quote(p, safe="/") for p in parts if p)
        return f"{self.api_url}/" + "/".join(segments)

    def _get_json(self, url: str) -> Any:
        body, _ = self._get(url, accept=_JSON_ACCEPT)
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise FetchError(f"Invalid JSON from '{url}': {exc}") from exc

    def _get(self, url: str, accept: str) -> tuple[bytes, str]:
        """GET *url*; returns (body_bytes, content_type_without_params)."""
        headers = {"User-Agent": _USER_AGENT, "Accept": accept}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        request = urllib.request.Request(url, headers=headers)

        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                body = response.read(_MAX_BYTES + 1)
                raw_ct = response.headers.get("Content-Type", "application/json")
        except urllib.error.HTTPError as exc:
            raise FetchError(f"GitHub API returned HTTP {exc.code} for '{url}'") from None
        except urllib.error.URLError as exc:
            raise FetchError(f"Failed to reach '{url}': {exc.reason}") from None
        except (OSError, http.client.HTTPException) as exc:
            # Timeouts and dropped connections while reading the body.
            raise FetchError(f"Failed to read '{url}': {type(exc).__name__}: {exc}") from None

        if len(body) > _MAX_BYTES:
            raise FetchError(
                f"Response body exceeds {_MAX_BYTES // (1024 * 1024)} MB limit for '{url}'."
            )
        return body, raw_ct.split(";")[0].strip().lower()


def _decode_base64(encoded: str, path: str) -> str:
    """Decode GitHub's line-wrapped base64 file content."""
    compact = "".join(encoded.split())
    try:
        return base64.b64decode(compact, validate=True).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as exc:
        raise FetchError(f"Invalid base64 content for '{path}'") from exc
