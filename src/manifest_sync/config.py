"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import tiktoken
from dotenv import dotenv_values

CONFIG_FILE_NAME = "manifest_sync.toml"
DOTENV_FILE_NAME = ".env"
DEFAULT_DATA_DIR_NAME = ".manifest_sync"
MAX_WORKERS_CAP = 64

IGNORE_LIST_ENV = "IGNORE_LIST"
FILE_EXTENSIONS_ENV = "FILE_EXTENSIONS_TO_PROCESS"

DEFAULT_IGNORE_DIRS = (".git", "node_modules", "__pycache__", ".venv")
DEFAULT_INCLUDE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".py")
TOKENIZERS = ("tiktoken", "heuristic")
DEFAULT_TOKENIZER = "tiktoken"
DEFAULT_ENCODING = "cl100k_base"


@dataclass(slots=True, frozen=True)
class IndexConfig:
    """Scan rules and fingerprinting policy."""

    ignore_dirs: tuple[str, ...]
    include_extensions: tuple[str, ...]
    skip_empty: bool = True
    workers: int = 1


@dataclass(slots=True, frozen=True)
class TokensConfig:
    """Token counting settings."""

    tokenizer: str = DEFAULT_TOKENIZER
    encoding: str = DEFAULT_ENCODING


@dataclass(slots=True, frozen=True)
class IndexerConfig:
    """Fully merged indexer configuration."""

    repo_root: Path
    data_dir: Path
    index: IndexConfig
    tokens: TokensConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot."""
        return {
            "repo_root": str(self.repo_root),
            "data_dir": str(self.data_dir),
            "index": {
                "ignore_dirs": list(self.index.ignore_dirs),
                "include_extensions": list(self.index.include_extensions),
                "skip_empty": self.index.skip_empty,
                "workers": self.index.workers,
            },
            "tokens": {
                "tokenizer": self.tokens.tokenizer,
                "encoding": self.tokens.encoding,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    workers: int | None = None
    tokenizer: str | None = None


def default_config(repo_root: Path) -> IndexerConfig:
    """Build default config for a given repository root."""
    resolved_root = repo_root.resolve()
    return IndexerConfig(
        repo_root=resolved_root,
        data_dir=resolved_root / DEFAULT_DATA_DIR_NAME,
        index=IndexConfig(
            ignore_dirs=DEFAULT_IGNORE_DIRS,
            include_extensions=DEFAULT_INCLUDE_EXTENSIONS,
        ),
        tokens=TokensConfig(),
    )


def load_repo_config_file(repo_root: Path) -> dict[str, object]:
    """Load optional manifest_sync.toml from repo root."""
    config_path = repo_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def load_environment(repo_root: Path) -> dict[str, str]:
    """Return .env values under the real process environment."""
    merged: dict[str, str] = {}
    dotenv_path = repo_root / DOTENV_FILE_NAME
    if dotenv_path.is_file():
        for key, value in dotenv_values(dotenv_path).items():
            if value is not None:
                merged[key] = value
    merged.update(os.environ)
    return merged


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def split_comma_list(raw: str) -> tuple[str, ...]:
    """Split a comma separated setting, dropping blank items."""
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _validate_extensions(extensions: tuple[str, ...], name: str) -> tuple[str, ...]:
    for extension in extensions:
        if not extension.startswith(".") or len(extension) < 2:
            raise ValueError(
                f"Config field '{name}' entries must start with '.', got {extension!r}."
            )
    return extensions


def _validate_dir_names(names: tuple[str, ...], name: str) -> tuple[str, ...]:
    for item in names:
        if "/" in item or "\\" in item:
            raise ValueError(
                f"Config field '{name}' entries must be directory names, got {item!r}."
            )
    return names


def _validate_tokenizer(value: object, name: str) -> str:
    if not isinstance(value, str) or value not in TOKENIZERS:
        raise ValueError(f"Config field '{name}' must be one of {', '.join(TOKENIZERS)}.")
    return value


def merge_config(base: IndexerConfig, repo_payload: dict[str, object]) -> IndexerConfig:
    """Merge repo config file values over defaults."""
    index_payload = _get_table(repo_payload, "index")
    tokens_payload = _get_table(repo_payload, "tokens")
    store_payload = _get_table(repo_payload, "store")

    ignore_dirs = base.index.ignore_dirs
    if "ignore_dirs" in index_payload:
        ignore_dirs = _validate_dir_names(
            _tuple_of_strings(index_payload["ignore_dirs"], "index", "ignore_dirs"),
            "index.ignore_dirs",
        )
    include_extensions = base.index.include_extensions
    if "include_extensions" in index_payload:
        include_extensions = _validate_extensions(
            _tuple_of_strings(index_payload["include_extensions"], "index", "include_extensions"),
            "index.include_extensions",
        )
    skip_empty = base.index.skip_empty
    if "skip_empty" in index_payload:
        raw_skip_empty = index_payload["skip_empty"]
        if not isinstance(raw_skip_empty, bool):
            raise ValueError("Config field 'index.skip_empty' must be a boolean.")
        skip_empty = raw_skip_empty
    workers = _optional_positive_int_with_cap(
        index_payload.get("workers"), "index.workers", base.index.workers, MAX_WORKERS_CAP
    )

    tokenizer = base.tokens.tokenizer
    if "tokenizer" in tokens_payload:
        tokenizer = _validate_tokenizer(tokens_payload["tokenizer"], "tokens.tokenizer")
    encoding = base.tokens.encoding
    if "encoding" in tokens_payload:
        raw_encoding = tokens_payload["encoding"]
        if not isinstance(raw_encoding, str) or not raw_encoding.strip():
            raise ValueError("Config field 'tokens.encoding' must be a non-empty string.")
        encoding = raw_encoding.strip()
        if encoding not in tiktoken.list_encoding_names():
            raise ValueError(
                f"Config field 'tokens.encoding' names an unknown tiktoken encoding: {encoding}."
            )

    data_dir = base.data_dir
    if "data_dir" in store_payload:
        raw_data_dir = store_payload["data_dir"]
        if not isinstance(raw_data_dir, str) or not raw_data_dir.strip():
            raise ValueError("Config field 'store.data_dir' must be a non-empty string.")
        data_dir = (base.repo_root / raw_data_dir).resolve()

    return IndexerConfig(
        repo_root=base.repo_root,
        data_dir=data_dir,
        index=IndexConfig(
            ignore_dirs=ignore_dirs,
            include_extensions=include_extensions,
            skip_empty=skip_empty,
            workers=workers,
        ),
        tokens=TokensConfig(tokenizer=tokenizer, encoding=encoding),
    )


def apply_environment(config: IndexerConfig, environ: Mapping[str, str]) -> IndexerConfig:
    """Apply IGNORE_LIST and FILE_EXTENSIONS_TO_PROCESS when set."""
    ignore_dirs = config.index.ignore_dirs
    raw_ignore = environ.get(IGNORE_LIST_ENV)
    if raw_ignore is not None:
        ignore_dirs = _validate_dir_names(split_comma_list(raw_ignore), IGNORE_LIST_ENV)
    include_extensions = config.index.include_extensions
    raw_extensions = environ.get(FILE_EXTENSIONS_ENV)
    if raw_extensions is not None:
        include_extensions = _validate_extensions(
            split_comma_list(raw_extensions), FILE_EXTENSIONS_ENV
        )
    return IndexerConfig(
        repo_root=config.repo_root,
        data_dir=config.data_dir,
        index=IndexConfig(
            ignore_dirs=ignore_dirs,
            include_extensions=include_extensions,
            skip_empty=config.index.skip_empty,
            workers=config.index.workers,
        ),
        tokens=config.tokens,
    )


def apply_cli_overrides(config: IndexerConfig, overrides: CliOverrides) -> IndexerConfig:
    """Apply startup overrides at highest precedence."""
    workers = _optional_positive_int_with_cap(
        overrides.workers, "overrides.workers", config.index.workers, MAX_WORKERS_CAP
    )
    tokenizer = config.tokens.tokenizer
    if overrides.tokenizer is not None:
        tokenizer = _validate_tokenizer(overrides.tokenizer, "overrides.tokenizer")
    data_dir = overrides.data_dir or config.data_dir
    return IndexerConfig(
        repo_root=config.repo_root,
        data_dir=data_dir.resolve(),
        index=IndexConfig(
            ignore_dirs=config.index.ignore_dirs,
            include_extensions=config.index.include_extensions,
            skip_empty=config.index.skip_empty,
            workers=workers,
        ),
        tokens=TokensConfig(tokenizer=tokenizer, encoding=config.tokens.encoding),
    )


def load_effective_config(
    repo_root: Path,
    overrides: CliOverrides | None = None,
    environ: Mapping[str, str] | None = None,
) -> IndexerConfig:
    """Load config using merge order defaults -> repo file -> environment -> overrides."""
    resolved_root = repo_root.resolve()
    base = default_config(resolved_root)
    merged = merge_config(base, load_repo_config_file(resolved_root))
    env = environ if environ is not None else load_environment(resolved_root)
    merged = apply_environment(merged, env)
    return apply_cli_overrides(merged, overrides or CliOverrides())


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
