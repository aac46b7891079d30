"""brainbase configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (BRAINBASE_EMBEDDING_MODEL, BRAINBASE_BATCH_SIZE)
  3. Per-project brainbase.yaml  (in the working directory)
  4. Global ~/.brainbase/config.yaml  (defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
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

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".brainbase"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "brainbase.yaml"

_MB = 1024 * 1024

# Fields that suggest a credential — forbidden in global config.
# Does NOT match legitimate keys like max_text_length or batch_size.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["embedding", "chunking", "limits", "indexing"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (brainbase.yaml: embedding:).

    Attributes:
        model: LiteLLM model id, or ``local/<name>`` for a sentence-transformers model.
        dimensions: Vector length of *model* (ignored for local models, which
            report their own).
        batch_size: Fragments per embedding call in phase 2.
    """

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 50


@dataclass
class ChunkingCfg:
    """Fragment splitter configuration (brainbase.yaml: chunking:). Sizes in characters."""

    chunk_size: int = 800
    overlap: int = 100
    min_sentence_length: int = 6


@dataclass
class LimitsCfg:
    """Per-document extraction ceilings (brainbase.yaml: limits:)."""

    max_file_size_mb: int = 100
    max_text_length: int = 5_000_000

    @property
    def max_file_size(self) -> int:
        return self.max_file_size_mb * _MB


@dataclass
class IndexingCfg:
    """File discovery configuration (brainbase.yaml: indexing:)."""

    recursive: bool = False
    exclude: list[str] = field(default_factory=list)


@dataclass
class BrainbaseConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    limits: LimitsCfg = field(default_factory=LimitsCfg)
    indexing: IndexingCfg = field(default_factory=IndexingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def validate(cfg: BrainbaseConfig) -> BrainbaseConfig:
    """Raise ConfigError for values the pipeline cannot run with."""
    if cfg.chunking.chunk_size < 1:
        raise ConfigError("chunking.chunk_size must be >= 1")
    if not 0 <= cfg.chunking.overlap < cfg.chunking.chunk_size:
        raise ConfigError(
            f"chunking.overlap ({cfg.chunking.overlap}) must be >= 0 and smaller "
            f"than chunking.chunk_size ({cfg.chunking.chunk_size})"
        )
    if cfg.chunking.min_sentence_length < 1:
        raise ConfigError("chunking.min_sentence_length must be >= 1")
    if cfg.embedding.batch_size < 1:
        raise ConfigError("embedding.batch_size must be >= 1")
    if cfg.embedding.dimensions < 1:
        raise ConfigError("embedding.dimensions must be >= 1")
    if cfg.limits.max_file_size_mb < 1:
        raise ConfigError("limits.max_file_size_mb must be >= 1")
    if cfg.limits.max_text_length < 1:
        raise ConfigError("limits.max_text_length must be >= 1")
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


def _cfg_from_dict(data: dict[str, Any]) -> BrainbaseConfig:
    """Build a *BrainbaseConfig* from a merged raw YAML dict."""
    cfg = BrainbaseConfig()

    try:
        if "embedding" in data:
            e = data["embedding"] or {}
            cfg.embedding = EmbeddingCfg(
                model=str(e.get("model", cfg.embedding.model)),
                dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
                batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
            )

        if "chunking" in data:
            c = data["chunking"] or {}
            cfg.chunking = ChunkingCfg(
                chunk_size=int(c.get("chunk_size", cfg.chunking.chunk_size)),
                overlap=int(c.get("overlap", cfg.chunking.overlap)),
                min_sentence_length=int(
                    c.get("min_sentence_length", cfg.chunking.min_sentence_length)
                ),
            )

        if "limits" in data:
            lim = data["limits"] or {}
            cfg.limits = LimitsCfg(
                max_file_size_mb=int(lim.get("max_file_size_mb", cfg.limits.max_file_size_mb)),
                max_text_length=int(lim.get("max_text_length", cfg.limits.max_text_length)),
            )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    if "indexing" in data:
        ix = data["indexing"] or {}
        cfg.indexing = IndexingCfg(
            recursive=bool(ix.get("recursive", cfg.indexing.recursive)),
            exclude=[str(p) for p in ix.get("exclude", [])],
        )

    return cfg


def _apply_env_overrides(cfg: BrainbaseConfig) -> BrainbaseConfig:
    """Apply BRAINBASE_* environment variable overrides."""
    if model := os.environ.get("BRAINBASE_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if batch_size := os.environ.get("BRAINBASE_BATCH_SIZE"):
        try:
            cfg.embedding.batch_size = int(batch_size)
        except ValueError as exc:
            raise ConfigError(
                f"BRAINBASE_BATCH_SIZE must be an integer, got '{batch_size}'"
            ) from exc
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> BrainbaseConfig:
    """Load and return a merged *BrainbaseConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *brainbase.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If the global config contains API-key-like fields or a
            value is malformed or out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    return validate(cfg)


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.brainbase/config.yaml`` with defaults if it does not exist.

    Creates the parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# brainbase global configuration — defaults only.\n"
            "# NEVER store API keys here — use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "embedding:\n"
            "  model: openai/text-embedding-3-small\n"
            "  dimensions: 1536\n"
            "  batch_size: 50\n"
            "\n"
            "chunking:\n"
            "  chunk_size: 800\n"
            "  overlap: 100\n"
            "\n"
            "limits:\n"
            "  max_file_size_mb: 100\n"
            "  max_text_length: 5000000\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
