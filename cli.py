#!/usr/bin/env python3
"""CLI for the in-memory store (reads commands from STDIN, writes results to STDOUT)."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, List, Optional, TextIO

from commands import CommandName, execute, parse_command
from config import Settings
from inmem_store import InMemoryStore, Store, StoreError


logger = logging.getLogger(__name__)

ERR_INTERNAL = "ERROR"


def configure_logging(level: str) -> None:
    """Send log records to STDERR only; STDOUT carries command output."""
    root = logging.getLogger()
    if not any(getattr(h, "_inmemdb", False) for h in root.handlers):
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        handler._inmemdb = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level.upper())


def run_session(
    lines: Iterable[str],
    store: Store,
    settings: Settings,
    out: TextIO,
) -> int:
    """
    Feed lines to store until END or end of input.

    Each non-empty result is written to out on its own line. Returns the
    process exit code.
    """
    for raw in lines:
        try:
            command = parse_command(raw)
            if command is None:
                continue
            if command.name is CommandName.END:
                break
            result = execute(store, command)
        except StoreError as exc:
            result = str(exc)
        except Exception:
            logger.exception("Failed to run %r", raw.rstrip("\n"))
            result = ERR_INTERNAL
        if result:
            out.write(result + "\n")
            out.flush()

    if store.in_transaction:
        if settings.commit_on_end:
            store.end()
            logger.info("Committed open transactions at end of session")
        else:
            logger.info("Session ended with open transactions; discarding them")
    return 0


def _prompted_lines(stream: TextIO, prompt: str, out: TextIO) -> Iterable[str]:
    """Yield lines from stream, writing prompt before each read."""
    while True:
        if prompt:
            out.write(prompt)
            out.flush()
        raw = stream.readline()
        if not raw:  # EOF
            return
        yield raw


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inmemdb",
        description="In-memory key-value store with nested transactions.",
    )
    parser.add_argument("input", nargs="?", help="file of commands (default: STDIN)")
    parser.add_argument("--log-level", help="log level for STDERR output")
    parser.add_argument(
        "--commit-on-end",
        action="store_true",
        default=None,
        help="commit open transactions when the session ends",
    )
    parser.add_argument("--prompt", help="prompt printed before each command")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command loop.

    Args:
        argv: Command-line arguments (without the program name).
    """
    args = _build_parser().parse_args(argv)
    settings = Settings.from_env()
    if args.log_level:
        settings.log_level = args.log_level.upper()
    if args.commit_on_end is not None:
        settings.commit_on_end = args.commit_on_end
    if args.prompt is not None:
        settings.prompt = args.prompt

    configure_logging(settings.log_level)
    store = InMemoryStore()

    try:
        if args.input:
            with open(args.input, "r", encoding="utf-8") as fh:
                return run_session(fh, store, settings, sys.stdout)
        return run_session(
            _prompted_lines(sys.stdin, settings.prompt, sys.stdout),
            store,
            settings,
            sys.stdout,
        )
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
