from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from .schema import InlineConfig

log = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".tsinline.yml"


def _load_raw_config(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except Exception as e:
        log.warning("Failed to load %s (%s). Skipping.", path, e)
        return {}


def _get_list(raw: dict[str, Any], key: str) -> list[str] | None:
    if key not in raw:
        return None
    v = raw.get(key)
    if isinstance(v, list):
        return [str(x) for x in v]
    log.warning("Config key %s must be a list; using the default.", key)
    return None


def _get_optional_int(raw: dict[str, Any], key: str) -> int | None:
    if key not in raw:
        return None
    v = raw.get(key)
    if v is None or isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        log.warning("Config key %s must be an integer; using the default.", key)
        return None


def _get_bool(raw: dict[str, Any], key: str, default: bool) -> bool:
    if key not in raw:
        return default
    v = raw.get(key)
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        if v.strip().lower() in {"true", "yes", "1", "on"}:
            return True
        if v.strip().lower() in {"false", "no", "0", "off"}:
            return False
    log.warning("Config key %s must be a boolean; using the default.", key)
    return default


def _merge_config(base: InlineConfig, raw: dict[str, Any]) -> InlineConfig:
    relative_suffixes = _get_list(raw, "relative_suffixes")
    if relative_suffixes is None:
        relative_suffixes = base.relative_suffixes
    package_conditions = _get_list(raw, "package_conditions")
    if package_conditions is None:
        package_conditions = base.package_conditions
    max_reexport_hops = _get_optional_int(raw, "max_reexport_hops")
    if max_reexport_hops is None or max_reexport_hops < 0:
        max_reexport_hops = base.max_reexport_hops

    return InlineConfig(
        relative_suffixes=relative_suffixes,
        resolve_packages=_get_bool(raw, "resolve_packages", base.resolve_packages),
        use_source_maps=_get_bool(raw, "use_source_maps", base.use_source_maps),
        follow_reexports=_get_bool(raw, "follow_reexports", base.follow_reexports),
        max_reexport_hops=max_reexport_hops,
        package_conditions=package_conditions,
    )


def _resolve_config_paths(workspace_root: Path, config_paths: Iterable[Path] | None) -> list[Path]:
    if config_paths is None:
        return [workspace_root / DEFAULT_CONFIG_NAME]
    resolved: list[Path] = []
    for path in config_paths:
        p = path
        if not p.is_absolute():
            p = workspace_root / p
        resolved.append(p)
    return resolved


def load_config(workspace_root: Path, config_paths: Iterable[Path] | None = None) -> InlineConfig:
    paths = _resolve_config_paths(workspace_root, config_paths)
    if config_paths is None and not paths[0].exists():
        return InlineConfig()

    cfg = InlineConfig()
    for path in paths:
        if not path.exists():
            log.warning("Config %s not found; skipping.", path)
            continue
        raw = _load_raw_config(path)
        if not isinstance(raw, dict):
            log.warning("Config %s is not a mapping; skipping.", path)
            continue
        cfg = _merge_config(cfg, raw)
    return cfg
