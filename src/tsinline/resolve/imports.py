"""Package imports of a callee file that an inlined expression depends on."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tsinline.syntax.module import ImportBinding, ImportDecl, module_index
from tsinline.syntax.nodes import Expr
from tsinline.syntax.parser import SourceModule
from tsinline.syntax.walk import type_names, value_names
from tsinline.util.jsvalues import quote_string

log = logging.getLogger(__name__)


@dataclass
class ImportIndex:
    """Non-relative import declarations by local name and by specifier.

    Relative specifiers are skipped; they would point elsewhere once the
    expression moves to another file.
    """

    by_name: dict[str, ImportDecl] = field(default_factory=dict)
    by_module: dict[str, list[ImportDecl]] = field(default_factory=dict)

    def all_by_module(self, specifier: str) -> list[ImportDecl]:
        return self.by_module.get(specifier, [])


def build_import_index(module: SourceModule) -> ImportIndex:
    index = ImportIndex()
    for decl in module_index(module).imports:
        if decl.is_relative:
            continue
        index.by_module.setdefault(decl.source, []).append(decl)
        for binding in decl.bindings:
            index.by_name[binding.local] = decl
    return index


def import_index(module: SourceModule) -> ImportIndex:
    return module.memo("imports", build_import_index)


def used_imports(expr: Expr, index: ImportIndex) -> list[ImportDecl]:
    """Declarations introducing a name ``expr`` reads, in source order."""
    names = value_names(expr) | type_names(expr)
    used = {id(index.by_name[n]): index.by_name[n] for n in names if n in index.by_name}
    return sorted(used.values(), key=lambda d: d.start_byte)


def _binding_text(binding: ImportBinding, decl: ImportDecl) -> str:
    prefix = "type " if binding.type_only and not decl.type_only else ""
    if binding.imported == binding.local:
        return prefix + binding.local
    return f"{prefix}{binding.imported} as {binding.local}"


def import_text(decl: ImportDecl, names: set[str]) -> str:
    """Source of ``decl`` narrowed to the bindings in ``names``."""
    kept = [b for b in decl.bindings if b.local in names]
    if len(kept) == len(decl.bindings):
        return decl.text
    clause: list[str] = []
    named: list[str] = []
    for binding in kept:
        if binding.imported == "default":
            clause.insert(0, binding.local)
        elif binding.imported == "*":
            clause.append(f"* as {binding.local}")
        else:
            named.append(_binding_text(binding, decl))
    if named:
        clause.append("{ " + ", ".join(named) + " }")
    keyword = "import type " if decl.type_only else "import "
    return f"{keyword}{', '.join(clause)} from {quote_string(decl.source)};"


def needed_imports(expr: Expr, callee: SourceModule, caller: SourceModule) -> list[str]:
    """Import declarations to add to ``caller`` so ``expr`` resolves there.

    Names the caller already binds at top level are left alone.
    """
    if callee.path == caller.path:
        return []
    bound = module_index(caller).top_level_names
    names = (value_names(expr) | type_names(expr)) - bound
    out: list[str] = []
    for decl in used_imports(expr, import_index(callee)):
        wanted = {b.local for b in decl.bindings} & names
        if wanted:
            out.append(import_text(decl, wanted))
    log.debug("Imports needed for inlined expression: %s", out)
    return out
