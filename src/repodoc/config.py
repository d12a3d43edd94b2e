"""Repodoc configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (REPODOC_API_URL, REPODOC_WORKERS, REPODOC_LOG_LEVEL,
     REPODOC_EXPORT_ORDER)
  3. Per-project repodoc.yaml  (current working directory)
  4. Global ~/.repodoc/config.yaml  (defaults only, no credentials)
  5. Hardcoded defaults

No config file may contain a GitHub token; it comes from GITHUB_TOKEN or --token.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".repodoc"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "repodoc.yaml"

# Key names that suggest a credential.
# Matches: api_key, api-key, api_secret, github_token, token, secret, password.
# Does NOT match legitimate keys like max_tokens or timeout.
_CREDENTIAL_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["github", "ingest", "export", "logging"])

_ORDERS = ("insertion", "name")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class GithubCfg:
    """Remote repository service settings (repodoc.yaml: github:)."""

    api_url: str = "https://api.github.com"
    base_path: str = "src/main/java"
    timeout: float = 30.0


@dataclass
class IngestCfg:
    """Fact extraction settings (repodoc.yaml: ingest:).

    Attributes:
        language: Key of the structural parser to use (see repodoc.parse.PARSERS).
        workers: Size of the extraction worker pool.
        fail_on_errors: Abort generation when any file fails instead of
            exporting the partial graph.
    """

    language: str = "java"
    workers: int = 4
    fail_on_errors: bool = False


@dataclass
class ExportCfg:
    """Report export settings (repodoc.yaml: export:)."""

    order: str = "insertion"  # insertion | name
    output_dir: str = "docs"


@dataclass
class LoggingCfg:
    level: str = "WARNING"
    json: bool = False


@dataclass
class RepodocConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    github: GithubCfg = field(default_factory=GithubCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)
    export: ExportCfg = field(default_factory=ExportCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_credentials(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _CREDENTIAL_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Tokens must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export GITHUB_TOKEN=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}', ignored.",
                UserWarning,
                stacklevel=4,
            )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config '{path}' must be a mapping at the top level.")
    return data


def _validate(cfg: RepodocConfig) -> RepodocConfig:
    if not cfg.github.api_url.startswith(("https://", "http://")):
        raise ConfigError(
            f"github.api_url must be an http(s) URL: '{cfg.github.api_url}'"
        )
    if cfg.github.timeout <= 0:
        raise ConfigError(f"github.timeout must be > 0, got {cfg.github.timeout}")
    if cfg.ingest.workers < 1:
        raise ConfigError(f"ingest.workers must be >= 1, got {cfg.ingest.workers}")
    if cfg.export.order not in _ORDERS:
        raise ConfigError(
            f"export.order must be one of {', '.join(_ORDERS)}, got '{cfg.export.order}'"
        )
    cfg.logging.level = cfg.logging.level.upper()
    if cfg.logging.level not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(_LOG_LEVELS)}, got '{cfg.logging.level}'"
        )
    return cfg


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> RepodocConfig:
    """Build a *RepodocConfig* from a merged raw YAML dict."""
    cfg = RepodocConfig()

    try:
        if "github" in data:
            g = data["github"]
            cfg.github = GithubCfg(
                api_url=str(g.get("api_url", cfg.github.api_url)),
                base_path=str(g.get("base_path", cfg.github.base_path)),
                timeout=float(g.get("timeout", cfg.github.timeout)),
            )

        if "ingest" in data:
            i = data["ingest"]
            cfg.ingest = IngestCfg(
                language=str(i.get("language", cfg.ingest.language)),
                workers=int(i.get("workers", cfg.ingest.workers)),
                fail_on_errors=bool(i.get("fail_on_errors", cfg.ingest.fail_on_errors)),
            )

        if "export" in data:
            e = data["export"]
            cfg.export = ExportCfg(
                order=str(e.get("order", cfg.export.order)),
                output_dir=str(e.get("output_dir", cfg.export.output_dir)),
            )

        if "logging" in data:
            lg = data["logging"]
            cfg.logging = LoggingCfg(
                level=str(lg.get("level", cfg.logging.level)),
                json=bool(lg.get("json", cfg.logging.json)),
            )
    except (AttributeError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: RepodocConfig) -> RepodocConfig:
    """Apply REPODOC_* environment variable overrides."""
    if url := os.environ.get("REPODOC_API_URL"):
        cfg.github.api_url = url
    if workers := os.environ.get("REPODOC_WORKERS"):
        try:
            cfg.ingest.workers = int(workers)
        except ValueError:
            raise ConfigError(f"REPODOC_WORKERS must be an integer, got '{workers}'") from None
    if level := os.environ.get("REPODOC_LOG_LEVEL"):
        cfg.logging.level = level
    if order := os.environ.get("REPODOC_EXPORT_ORDER"):
        cfg.export.order = order
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> RepodocConfig:
    """Load and return a merged *RepodocConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *repodoc.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file contains credential-like keys, is not a
            mapping, or holds an out-of-range value.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_credentials(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _check_no_credentials(raw_project, project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    cfg = _apply_env_overrides(cfg)
    return _validate(cfg)


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.repodoc/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Repodoc global configuration, defaults only.\n"
            "# NEVER store tokens here, use the environment:\n"
            "#   export GITHUB_TOKEN=ghp_...\n"
            "\n"
            "github:\n"
            "  api_url: https://api.github.com\n"
            "  base_path: src/main/java\n"
            "\n"
            "ingest:\n"
            "  workers: 4\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
