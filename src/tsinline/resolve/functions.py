"""Find the definition of a called function across files and packages.

Strategies run in order and each miss falls through to the next one:
the calling file itself, a relatively imported file, then an installed
package via a sibling TypeScript source or the build's source map.
"""

from __future__ import annotations

import logging
from pathlib import Path

from tsinline.config.schema import InlineConfig
from tsinline.resolve.files import is_file, load_module
from tsinline.resolve.packages import load_source_map, resolve_package, sibling_source
from tsinline.result import Failure, FailureKind, Result, Success
from tsinline.syntax.module import find_exported_function, find_local_function, module_index
from tsinline.syntax.nodes import FunctionDef
from tsinline.syntax.parser import SourceModule, parse_source

log = logging.getLogger(__name__)

_ESM_SUFFIXES = {".js": ".ts", ".jsx": ".tsx", ".mjs": ".mts", ".cjs": ".cts"}


def unresolved(name: str) -> Failure:
    return Failure(FailureKind.UNRESOLVED, f'Could not resolve function declaration for "{name}".')


def relative_candidates(specifier: str, from_dir: Path, suffixes: list[str]) -> list[Path]:
    base = str(from_dir / specifier)
    out = [Path(base + suffix) for suffix in suffixes]
    for js_suffix, ts_suffix in _ESM_SUFFIXES.items():
        if specifier.endswith(js_suffix):
            out.append(Path(base[: -len(js_suffix)] + ts_suffix))
    return out


async def resolve_relative(specifier: str, from_file: Path, config: InlineConfig) -> Path | None:
    for candidate in relative_candidates(specifier, from_file.parent, config.relative_suffixes):
        if await is_file(candidate):
            return candidate
    log.debug("Relative import %s from %s not found", specifier, from_file)
    return None


class _Resolver:
    def __init__(self, workspace_root: Path, config: InlineConfig) -> None:
        self.workspace_root = workspace_root
        self.config = config

    async def exported(self, module: SourceModule, names: list[str], hops: int = 0) -> FunctionDef | None:
        """First of ``names`` exported by ``module``, following re-exports."""
        for name in names:
            found = find_exported_function(module, name)
            if found is not None:
                return found
        if not self.config.follow_reexports or hops >= self.config.max_reexport_hops:
            return None
        index = module_index(module)
        for name in names:
            local = index.default_local if name == "default" else index.exports.get(name)
            imported = index.imported(local) if local is not None else None
            if imported is not None and imported[0].is_relative and imported[1].imported != "*":
                found = await self.from_relative(imported[0].source, module.path, [imported[1].imported], hops + 1)
                if found is not None:
                    return found
            for reexport in index.reexports:
                if not reexport.source.startswith("."):
                    continue
                if reexport.star:
                    if name == "default":
                        continue
                    target = name
                else:
                    matched = [imp for exp, imp in reexport.names if exp == name]
                    if not matched:
                        continue
                    target = matched[0]
                found = await self.from_relative(reexport.source, module.path, [target], hops + 1)
                if found is not None:
                    return found
        return None

    async def from_relative(self, specifier: str, from_file: Path, names: list[str], hops: int = 0) -> FunctionDef | None:
        path = await resolve_relative(specifier, from_file, self.config)
        if path is None:
            return None
        module = await load_module(path)
        if module is None:
            return None
        return await self.exported(module, names, hops)

    async def from_package(self, specifier: str, names: list[str]) -> FunctionDef | None:
        entry = await resolve_package(specifier, self.workspace_root, self.config.package_conditions)
        if entry is None:
            return None
        sibling = sibling_source(entry)
        if sibling is not None and await is_file(sibling):
            module = await load_module(sibling)
            if module is not None:
                found = await self.exported(module, names)
                if found is not None:
                    return found
            log.debug("Sibling source %s has no export %s", sibling, names)
        if not self.config.use_source_maps:
            return None
        source_map = await load_source_map(entry)
        if source_map is None:
            return None
        for path, content in source_map.sources():
            module = await load_module(path) if await is_file(path) else None
            if module is None and content is not None:
                module = parse_source(path, content)
            if module is None:
                log.debug("Source %s listed by the source map of %s is unavailable", path, entry)
                continue
            found = await self.exported(module, names)
            if found is not None:
                return found
        return None


async def resolve_definition(
    name: str,
    caller: SourceModule,
    workspace_root: Path,
    config: InlineConfig | None = None,
) -> Result[FunctionDef]:
    """Definition of the function ``name`` as called from ``caller``."""
    local = find_local_function(caller, name)
    if local is not None:
        return Success(local)
    imported = module_index(caller).imported(name)
    if imported is None:
        log.debug("%s is neither declared nor imported in %s", name, caller.path)
        return unresolved(name)
    decl, binding = imported
    if binding.imported == "*" or binding.type_only:
        return unresolved(name)
    # a default import names the target's default export, else a same-named export
    names = ["default", name] if binding.imported == "default" else [binding.imported]
    resolver = _Resolver(workspace_root, config or InlineConfig())
    if decl.is_relative:
        found = await resolver.from_relative(decl.source, caller.path, names)
    elif resolver.config.resolve_packages:
        found = await resolver.from_package(decl.source, names)
    else:
        found = None
    if found is None:
        return unresolved(name)
    return Success(found)
