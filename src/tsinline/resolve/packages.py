"""Locate installed packages and the TypeScript sources behind their builds."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import unquote

from tsinline.resolve.files import is_dir, is_file, read_text

log = logging.getLogger(__name__)

_MAPPING_URL_RE = re.compile(r"[#@]\s*sourceMappingURL=(\S+?)\s*(?:\*/)?\s*$", re.M)
_TS_SOURCE_SUFFIXES = (".ts", ".tsx", ".mts", ".cts")
_SIBLING_SUFFIXES = {".js": ".ts", ".jsx": ".tsx", ".mjs": ".mts", ".cjs": ".cts"}


def split_specifier(specifier: str) -> tuple[str, str]:
    """``@scope/pkg/sub/path`` -> (``@scope/pkg``, ``sub/path``)."""
    parts = specifier.split("/")
    count = 2 if specifier.startswith("@") else 1
    return "/".join(parts[:count]), "/".join(parts[count:])


async def find_package_dir(name: str, workspace_root: Path) -> Path | None:
    for base in [workspace_root, *workspace_root.parents]:
        candidate = base / "node_modules" / name
        if await is_dir(candidate):
            return candidate
    return None


def _conditional_target(value: Any, conditions: Sequence[str]) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        for item in value:
            target = _conditional_target(item, conditions)
            if target is not None:
                return target
        return None
    if isinstance(value, dict):
        for condition, nested in value.items():
            if condition in conditions or condition == "default":
                target = _conditional_target(nested, conditions)
                if target is not None:
                    return target
    return None


def exports_target(exports: Any, subpath: str, conditions: Sequence[str]) -> str | None:
    """Target of ``subpath`` (``.`` or ``./x``) in a package ``exports`` field."""
    if not isinstance(exports, dict) or not all(str(k).startswith(".") for k in exports):
        return _conditional_target(exports, conditions) if subpath == "." else None
    if subpath in exports:
        return _conditional_target(exports[subpath], conditions)
    for key, value in exports.items():
        if key.count("*") != 1:
            continue
        prefix, suffix = key.split("*")
        if subpath.startswith(prefix) and subpath.endswith(suffix) and len(subpath) >= len(key) - 1:
            matched = subpath[len(prefix) : len(subpath) - len(suffix)]
            target = _conditional_target(value, conditions)
            if target is not None:
                return target.replace("*", matched)
    return None


async def _first_file(candidates: list[Path]) -> Path | None:
    for candidate in candidates:
        if await is_file(candidate):
            return candidate
    return None


def _file_candidates(base: Path) -> list[Path]:
    return [base, base.with_name(base.name + ".js"), base / "index.js"]


async def _read_manifest(package_dir: Path) -> dict[str, Any]:
    raw = await read_text(package_dir / "package.json")
    if raw is None:
        return {}
    try:
        manifest = json.loads(raw)
    except ValueError as e:
        log.debug("Invalid package.json in %s: %s", package_dir, e)
        return {}
    return manifest if isinstance(manifest, dict) else {}


async def package_entry(package_dir: Path, subpath: str, conditions: Sequence[str]) -> Path | None:
    """The file Node would load for ``<package>/<subpath>``."""
    manifest = await _read_manifest(package_dir)
    exports = manifest.get("exports")
    if exports is not None:
        target = exports_target(exports, f"./{subpath}" if subpath else ".", conditions)
        if target is not None:
            entry = await _first_file([package_dir / target])
            if entry is not None:
                return entry
    if subpath:
        return await _first_file(_file_candidates(package_dir / subpath))
    main = manifest.get("main")
    if isinstance(main, str) and main:
        entry = await _first_file(_file_candidates(package_dir / main))
        if entry is not None:
            return entry
    return await _first_file([package_dir / "index.js"])


async def resolve_package(specifier: str, workspace_root: Path, conditions: Sequence[str]) -> Path | None:
    name, subpath = split_specifier(specifier)
    package_dir = await find_package_dir(name, workspace_root)
    if package_dir is None:
        log.debug("Package %s not found under %s", name, workspace_root)
        return None
    entry = await package_entry(package_dir, subpath, conditions)
    if entry is None:
        log.debug("No entry file for %s in %s", specifier, package_dir)
    return entry


def sibling_source(entry: Path) -> Path | None:
    """``dist/x.js`` -> ``dist/x.ts``; a TypeScript entry is its own source."""
    if entry.suffix in _TS_SOURCE_SUFFIXES and not entry.name.endswith(".d.ts"):
        return entry
    swapped = _SIBLING_SUFFIXES.get(entry.suffix)
    if swapped is None:
        return None
    return entry.with_suffix(swapped)


def decode_data_uri(uri: str) -> str | None:
    header, sep, payload = uri[len("data:") :].partition(",")
    if not sep:
        return None
    try:
        if header.endswith(";base64"):
            return base64.b64decode(payload).decode("utf-8")
        return unquote(payload)
    except (binascii.Error, UnicodeDecodeError) as e:
        log.debug("Bad inline source map: %s", e)
        return None


@dataclass(frozen=True)
class SourceMap:
    # directory that relative entries in ``sources`` are resolved against
    base: Path
    data: dict[str, Any]

    def sources(self) -> list[tuple[Path, str | None]]:
        """TypeScript sources listed by the map with their embedded text, if any."""
        sources = self.data.get("sources")
        if not isinstance(sources, list):
            return []
        contents = self.data.get("sourcesContent")
        if not isinstance(contents, list):
            contents = []
        root = self.data.get("sourceRoot")
        base = self.base / root if isinstance(root, str) and root else self.base
        out: list[tuple[Path, str | None]] = []
        for i, source in enumerate(sources):
            if not isinstance(source, str):
                continue
            if "://" in source:
                source = source.split("://", 1)[1].lstrip("/")
            if not source.endswith(_TS_SOURCE_SUFFIXES):
                continue
            content = contents[i] if i < len(contents) and isinstance(contents[i], str) else None
            out.append(((base / source).resolve(), content))
        return out


async def load_source_map(entry: Path) -> SourceMap | None:
    """Map next to ``entry`` or named by its ``sourceMappingURL`` comment."""
    map_path = entry.with_name(entry.name + ".map")
    raw: str | None = None
    if await is_file(map_path):
        raw = await read_text(map_path)
    else:
        text = await read_text(entry)
        if text is None:
            return None
        matches = _MAPPING_URL_RE.findall(text)
        if not matches:
            log.debug("No source map for %s", entry)
            return None
        url = matches[-1]
        if url.startswith("data:"):
            raw = decode_data_uri(url)
            map_path = entry
        else:
            map_path = entry.parent / unquote(url)
            raw = await read_text(map_path)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except ValueError as e:
        log.debug("Invalid source map %s: %s", map_path, e)
        return None
    if not isinstance(data, dict):
        return None
    return SourceMap(map_path.parent, data)
