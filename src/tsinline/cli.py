from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path

import yaml

from tsinline import __version__
from tsinline.api import (
    Replacement,
    apply_replacement,
    run_literal_inline,
    run_literal_inline_array,
    run_literal_inline_object,
    run_smart_inline,
    selection_offsets,
)
from tsinline.config.loader import load_config
from tsinline.result import Failure, Result
from tsinline.util.logging import setup_logging

log = logging.getLogger(__name__)


def _config_paths(args: argparse.Namespace) -> list[Path] | None:
    return [Path(p) for p in args.config] if args.config else None


def _selection(args: argparse.Namespace, text: str) -> tuple[int, int]:
    if args.select is not None:
        return selection_offsets(text, args.select)
    start = max(0, min(int(args.offset), len(text)))
    return start, min(start + max(0, int(args.length)), len(text))


def _emit(args: argparse.Namespace, path: Path, text: str, result: Result[Replacement]) -> int:
    if isinstance(result, Failure):
        if args.format == "json":
            print(json.dumps({"ok": False, "kind": result.kind.value, "error": result.message}))
        print(result.message, file=sys.stderr)
        return 1
    replacement = result.value
    if args.apply:
        path.write_text(apply_replacement(text, path, replacement), encoding="utf-8")
        log.info("Updated %s", path)
    if args.format == "json":
        data = dataclasses.asdict(replacement)
        data["ok"] = True
        print(json.dumps(data, indent=2))
    else:
        for decl in replacement.imports:
            sys.stdout.write(decl)
        print(replacement.text)
    return 0


def _read_target(args: argparse.Namespace) -> tuple[Path, str, tuple[int, int]] | None:
    path = Path(args.file).resolve()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Cannot read {path}: {e}", file=sys.stderr)
        return None
    try:
        offsets = _selection(args, text)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return None
    return path, text, offsets


def cmd_inline(args: argparse.Namespace) -> int:
    target = _read_target(args)
    if target is None:
        return 1
    path, text, (start, end) = target
    workspace = Path(args.workspace).resolve() if args.workspace else Path.cwd()
    cfg = load_config(workspace, _config_paths(args))
    result = asyncio.run(run_smart_inline(text, start, end, path, workspace, cfg))
    return _emit(args, path, text, result)


def cmd_fold(args: argparse.Namespace) -> int:
    target = _read_target(args)
    if target is None:
        return 1
    path, text, (start, end) = target
    return _emit(args, path, text, run_literal_inline(text, start, end, path))


def cmd_array(args: argparse.Namespace) -> int:
    target = _read_target(args)
    if target is None:
        return 1
    path, text, (start, end) = target
    return _emit(args, path, text, run_literal_inline_array(text, start, end, path))


def cmd_object(args: argparse.Namespace) -> int:
    target = _read_target(args)
    if target is None:
        return 1
    path, text, (start, end) = target
    return _emit(args, path, text, run_literal_inline_object(text, start, end, path))


def cmd_config_show(args: argparse.Namespace) -> int:
    workspace = Path(args.path).resolve()
    cfg = load_config(workspace, _config_paths(args))
    data = dataclasses.asdict(cfg)
    print(yaml.safe_dump(data, sort_keys=False))
    return 0


def _add_config_arg(a: argparse.ArgumentParser) -> None:
    a.add_argument(
        "--config",
        action="append",
        default=None,
        help="Config file path (repeatable, workspace-relative or absolute)",
    )


def _add_edit_args(a: argparse.ArgumentParser) -> None:
    a.add_argument("file", help="TypeScript file to edit")
    where = a.add_mutually_exclusive_group(required=True)
    where.add_argument("--select", default=None, help="Selected text (first occurrence in the file)")
    where.add_argument("--offset", type=int, default=None, help="Selection start (character offset)")
    a.add_argument("--length", type=int, default=0, help="Selection length with --offset (default: 0)")
    a.add_argument("--format", default="text", choices=["text", "json"], help="Output format (default: text)")
    a.add_argument("--apply", action="store_true", help="Write the edit back to the file")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tsinline", description="tsinline: inline and fold TypeScript calls to literals")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    sub = p.add_subparsers(dest="cmd", required=True)

    i = sub.add_parser("inline", help="Inline the selected function call")
    _add_edit_args(i)
    i.add_argument("--workspace", default=None, help="Workspace root for package lookup (default: cwd)")
    _add_config_arg(i)
    i.set_defaults(func=cmd_inline)

    f = sub.add_parser("fold", help="Fold the selected expression with visible constants")
    _add_edit_args(f)
    f.set_defaults(func=cmd_fold)

    a = sub.add_parser("array", help="Collapse the enclosing .map(...) into an array literal")
    _add_edit_args(a)
    a.set_defaults(func=cmd_array)

    o = sub.add_parser("object", help="Collapse the enclosing Object.fromEntries(...) into an object literal")
    _add_edit_args(o)
    o.set_defaults(func=cmd_object)

    c = sub.add_parser("config", help="Config utilities")
    c_sub = c.add_subparsers(dest="config_cmd", required=True)
    c_show = c_sub.add_parser("show", help="Show merged config")
    c_show.add_argument("path", nargs="?", default=".", help="Workspace root (default: .)")
    _add_config_arg(c_show)
    c_show.set_defaults(func=cmd_config_show)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(bool(args.verbose))
    return int(args.func(args))
