"""Command line entrypoint."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TextIO

from manifest_sync.config import TOKENIZERS, CliOverrides, IndexerConfig, load_effective_config
from manifest_sync.errors import FilesystemError, StoreError
from manifest_sync.indexer import Indexer
from manifest_sync.logging import clamp_limit
from manifest_sync.progress import TextProgressReporter

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_FILESYSTEM_ERROR = 3
EXIT_STORE_ERROR = 4

RUN_COMMANDS = ("refresh", "evict")


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for the manifest-sync commands."""
    parser = argparse.ArgumentParser(prog="manifest-sync")
    parser.add_argument("--root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh = subparsers.add_parser("refresh", help="Scan and reconcile against the manifest.")
    refresh.add_argument("--force", action="store_true")
    refresh.add_argument("--workers", type=int, required=False, default=None)
    refresh.add_argument("--tokenizer", choices=TOKENIZERS, required=False, default=None)
    refresh.add_argument("--progress", action="store_true")

    subparsers.add_parser("status", help="Show manifest location and entry count.")

    evict = subparsers.add_parser("evict", help="Delete manifest entries by path.")
    evict.add_argument("paths", nargs="+")

    runs = subparsers.add_parser("runs", help="Show recent refresh and evict runs.")
    runs.add_argument("--since", required=False, default=None)
    runs.add_argument("--limit", type=int, required=False, default=None)
    runs.add_argument("--only", choices=RUN_COMMANDS, required=False, default=None)
    return parser


def run_command(
    args: argparse.Namespace,
    config: IndexerConfig,
    err_stream: TextIO,
) -> dict[str, object]:
    """Execute a parsed command and return its JSON payload."""
    reporter = TextProgressReporter(err_stream) if getattr(args, "progress", False) else None
    indexer = Indexer(config, reporter=reporter)
    if args.command == "runs":
        entries = indexer.run_log.read(args.since, clamp_limit(args.limit), command=args.only)
        return {"entries": entries}
    with indexer.open_store() as store:
        if args.command == "refresh":
            return indexer.refresh(store, force=args.force).to_dict()
        if args.command == "evict":
            return {"removed": indexer.evict(store, args.paths)}
        return {
            "manifest_path": str(store.path),
            "entry_count": store.count(),
            "effective_config": config.to_public_dict(),
        }


def main(
    argv: list[str] | None = None,
    out_stream: TextIO | None = None,
    err_stream: TextIO | None = None,
) -> int:
    """Entrypoint for the manifest-sync command."""
    out = out_stream or sys.stdout
    err = err_stream or sys.stderr
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, stream=err)

    overrides = CliOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        workers=getattr(args, "workers", None),
        tokenizer=getattr(args, "tokenizer", None),
    )
    try:
        config = load_effective_config(Path(args.root), overrides=overrides)
    except ValueError as exc:
        err.write(f"error: {exc}\n")
        return EXIT_CONFIG_ERROR

    try:
        payload = run_command(args, config, err)
    except FilesystemError as exc:
        err.write(f"error: {exc}\n")
        return EXIT_FILESYSTEM_ERROR
    except StoreError as exc:
        err.write(f"error: {exc}\n")
        return EXIT_STORE_ERROR
    out.write(f"{json.dumps(payload, sort_keys=True)}\n")
    out.flush()
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
