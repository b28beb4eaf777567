from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tsinline.syntax.lower import FUNCTION_EXPRESSION_NODES, Lowerer, unwrap_const_assertion
from tsinline.syntax.nodes import FunctionDef
from tsinline.syntax.parser import Node, SourceModule, iter_named
from tsinline.util.jsvalues import unescape

log = logging.getLogger(__name__)

_DECLARATION_FUNCTIONS = {"function_declaration", "generator_function_declaration"}


@dataclass(frozen=True)
class ImportBinding:
    local: str
    # "default", "*" for namespace imports, otherwise the exported name
    imported: str
    type_only: bool = False


@dataclass(frozen=True)
class ImportDecl:
    source: str
    text: str
    bindings: tuple[ImportBinding, ...]
    type_only: bool
    start_byte: int
    end_byte: int

    @property
    def is_relative(self) -> bool:
        return self.source.startswith(".")


@dataclass(frozen=True)
class ReExport:
    source: str
    # (exported, imported) pairs; empty for ``export * from``
    names: tuple[tuple[str, str], ...] = ()
    star: bool = False


@dataclass
class ModuleIndex:
    functions: dict[str, Node] = field(default_factory=dict)
    exports: dict[str, str] = field(default_factory=dict)
    default_local: str | None = None
    default_function: Node | None = None
    reexports: list[ReExport] = field(default_factory=list)
    imports: list[ImportDecl] = field(default_factory=list)
    top_level_names: set[str] = field(default_factory=set)
    is_module: bool = False

    def imported(self, name: str) -> tuple[ImportDecl, ImportBinding] | None:
        for decl in self.imports:
            for binding in decl.bindings:
                if binding.local == name:
                    return decl, binding
        return None


def string_value(module: SourceModule, node: Node) -> str:
    return unescape(module.node_text(node)[1:-1])


def declared_names(module: SourceModule, node: Node) -> list[str]:
    if node.type in {"lexical_declaration", "variable_declaration"}:
        out: list[str] = []
        for declarator in iter_named(node):
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is not None and name.type == "identifier":
                out.append(module.node_text(name))
            elif name is not None:
                out.extend(pattern_identifiers(module, name))
        return out
    name = node.child_by_field_name("name")
    if name is not None:
        return [module.node_text(name)]
    return []


def pattern_identifiers(module: SourceModule, node: Node) -> list[str]:
    if node.type in {"identifier", "shorthand_property_identifier_pattern"}:
        return [module.node_text(node)]
    out: list[str] = []
    for child in iter_named(node):
        # skip keys and default values
        if node.type == "pair_pattern" and child == node.child_by_field_name("key"):
            continue
        if node.type in {"assignment_pattern", "object_assignment_pattern"} and child == node.child_by_field_name(
            "right"
        ):
            continue
        out.extend(pattern_identifiers(module, child))
    return out


def is_const_declaration(node: Node) -> bool:
    return node.type == "lexical_declaration" and any(c.type == "const" for c in node.children)


def _collect_function(index: ModuleIndex, module: SourceModule, node: Node) -> None:
    if node.type in _DECLARATION_FUNCTIONS:
        name = node.child_by_field_name("name")
        if name is not None and node.child_by_field_name("body") is not None:
            index.functions.setdefault(module.node_text(name), node)
        return
    if not is_const_declaration(node):
        return
    for declarator in iter_named(node):
        if declarator.type != "variable_declarator":
            continue
        name = declarator.child_by_field_name("name")
        value = declarator.child_by_field_name("value")
        if name is None or value is None or name.type != "identifier":
            continue
        value = unwrap_const_assertion(value, module)
        if value.type in FUNCTION_EXPRESSION_NODES and value.child_by_field_name("body") is not None:
            index.functions.setdefault(module.node_text(name), value)


def _collect_import(index: ModuleIndex, module: SourceModule, node: Node) -> None:
    source = node.child_by_field_name("source")
    if source is None:
        return
    type_only = any(c.type == "type" for c in node.children)
    bindings: list[ImportBinding] = []
    for clause in iter_named(node):
        if clause.type != "import_clause":
            continue
        for part in iter_named(clause):
            if part.type == "identifier":
                bindings.append(ImportBinding(module.node_text(part), "default", type_only))
            elif part.type == "namespace_import":
                ident = [c for c in iter_named(part) if c.type == "identifier"]
                if ident:
                    bindings.append(ImportBinding(module.node_text(ident[0]), "*", type_only))
            elif part.type == "named_imports":
                for spec in iter_named(part):
                    if spec.type != "import_specifier":
                        continue
                    name = spec.child_by_field_name("name")
                    alias = spec.child_by_field_name("alias")
                    if name is None:
                        continue
                    imported = module.node_text(name)
                    if name.type == "string":
                        imported = string_value(module, name)
                    local = module.node_text(alias) if alias is not None else imported
                    spec_type_only = type_only or any(c.type == "type" for c in spec.children)
                    bindings.append(ImportBinding(local, imported, spec_type_only))
    decl = ImportDecl(
        source=string_value(module, source),
        text=module.node_text(node),
        bindings=tuple(bindings),
        type_only=type_only,
        start_byte=node.start_byte,
        end_byte=node.end_byte,
    )
    index.imports.append(decl)
    index.top_level_names.update(b.local for b in bindings)


def _export_specifiers(module: SourceModule, clause: Node) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for spec in iter_named(clause):
        if spec.type != "export_specifier":
            continue
        name = spec.child_by_field_name("name")
        alias = spec.child_by_field_name("alias")
        if name is None:
            continue
        local = module.node_text(name)
        exported = module.node_text(alias) if alias is not None else local
        pairs.append((exported, local))
    return pairs


def _collect_export(index: ModuleIndex, module: SourceModule, node: Node) -> None:
    source = node.child_by_field_name("source")
    clause = next((c for c in iter_named(node) if c.type == "export_clause"), None)
    if source is not None:
        spec = string_value(module, source)
        if clause is not None:
            index.reexports.append(ReExport(spec, tuple(_export_specifiers(module, clause))))
        elif any(c.type == "namespace_export" for c in iter_named(node)):
            return
        elif any(c.type == "*" for c in node.children):
            index.reexports.append(ReExport(spec, star=True))
        return
    if clause is not None:
        for exported, local in _export_specifiers(module, clause):
            if exported == "default":
                index.default_local = local
            else:
                index.exports[exported] = local
        return
    is_default = any(c.type == "default" for c in node.children)
    declaration = node.child_by_field_name("declaration")
    if declaration is not None:
        _collect_declaration(index, module, declaration)
        for name in declared_names(module, declaration):
            if is_default:
                index.default_local = name
            else:
                index.exports[name] = name
        if is_default and declaration.type in _DECLARATION_FUNCTIONS | FUNCTION_EXPRESSION_NODES:
            if declaration.child_by_field_name("name") is None:
                index.default_function = declaration
        return
    value = node.child_by_field_name("value")
    if is_default and value is not None:
        value = unwrap_const_assertion(value, module)
        if value.type == "identifier":
            index.default_local = module.node_text(value)
        elif value.type in FUNCTION_EXPRESSION_NODES | _DECLARATION_FUNCTIONS:
            name = value.child_by_field_name("name")
            if name is not None:
                index.default_local = module.node_text(name)
                index.functions.setdefault(module.node_text(name), value)
            else:
                index.default_function = value


def _collect_declaration(index: ModuleIndex, module: SourceModule, node: Node) -> None:
    _collect_function(index, module, node)
    if node.type in {"ambient_declaration", "function_signature"}:
        return
    index.top_level_names.update(declared_names(module, node))


def build_index(module: SourceModule) -> ModuleIndex:
    index = ModuleIndex()
    for node in iter_named(module.root):
        if node.type == "import_statement":
            index.is_module = True
            _collect_import(index, module, node)
        elif node.type == "export_statement":
            index.is_module = True
            _collect_export(index, module, node)
        else:
            _collect_declaration(index, module, node)
    return index


def module_index(module: SourceModule) -> ModuleIndex:
    return module.memo("index", build_index)


def function_definition(module: SourceModule, name: str, node: Node) -> FunctionDef:
    return Lowerer(module).function_def(node, name)


def find_local_function(module: SourceModule, name: str) -> FunctionDef | None:
    node = module_index(module).functions.get(name)
    if node is None:
        return None
    return function_definition(module, name, node)


def find_exported_function(module: SourceModule, name: str) -> FunctionDef | None:
    """Exported function ``name``; ``default`` looks up the default export."""
    index = module_index(module)
    if name == "default":
        if index.default_function is not None:
            return function_definition(module, "default", index.default_function)
        if index.default_local is not None:
            return find_local_function(module, index.default_local)
        return None
    local = index.exports.get(name)
    if local is None:
        return None
    return find_local_function(module, local)
