"""Constants visible at a position: the innermost ``const`` binding wins."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tsinline.fold.literals import is_deep_literal
from tsinline.syntax.lower import FUNCTION_NODES, Lowerer, unwrap_const_assertion
from tsinline.syntax.module import declared_names, is_const_declaration, module_index
from tsinline.syntax.nodes import Expr, pattern_names
from tsinline.syntax.parser import Node, SourceModule, descend, iter_named

log = logging.getLogger(__name__)

_BLOCK_SCOPES = {"program", "statement_block"}
_HEADER_SCOPES = {"catch_clause", "for_statement", "for_in_statement"}
_TYPE_DECLARATIONS = {"type_alias_declaration", "interface_declaration"}


@dataclass(frozen=True)
class ConstBinding:
    name: str
    # end of the declaring statement; visible only to positions after it
    end_byte: int
    value: Node


@dataclass
class Scope:
    start_byte: int
    end_byte: int
    parent: int | None
    constants: list[ConstBinding] = field(default_factory=list)
    declared: set[str] = field(default_factory=set)


@dataclass
class ScopeIndex:
    """Arena of lexical scopes; ``parent`` fields index into ``scopes``."""

    scopes: list[Scope] = field(default_factory=list)
    by_span: dict[tuple[int, int, str], int] = field(default_factory=dict)

    def innermost(self, module: SourceModule, at_byte: int) -> int:
        end = min(at_byte + 1, len(module.source))
        found = 0
        for node in descend(module.root, at_byte, max(at_byte, end)):
            idx = self.by_span.get((node.start_byte, node.end_byte, node.type))
            if idx is not None:
                found = idx
        return found


def _parameter_names(lowerer: Lowerer, node: Node) -> set[str]:
    names: set[str] = set()
    params = node.child_by_field_name("parameters")
    if params is not None:
        for child in iter_named(params):
            names.update(pattern_names(lowerer.param(child).pattern))
    single = node.child_by_field_name("parameter")
    if single is not None:
        names.update(pattern_names(lowerer.pattern(single)))
    if node.type not in {"function_declaration", "generator_function_declaration", "method_definition"}:
        name = node.child_by_field_name("name")
        if name is not None:
            names.add(lowerer.text(name))
    return names


def _header_names(module: SourceModule, lowerer: Lowerer, node: Node) -> set[str]:
    if node.type == "catch_clause":
        param = node.child_by_field_name("parameter")
        return set(pattern_names(lowerer.pattern(param))) if param is not None else set()
    if node.type == "for_statement":
        init = node.child_by_field_name("initializer")
        return set(declared_names(module, init)) if init is not None else set()
    left = node.child_by_field_name("left")
    return set(pattern_names(lowerer.pattern(left))) if left is not None else set()


def _collect_statement(module: SourceModule, scope: Scope, stmt: Node) -> None:
    target = stmt
    if stmt.type == "export_statement":
        declaration = stmt.child_by_field_name("declaration")
        if declaration is None:
            return
        target = declaration
    if target.type in _TYPE_DECLARATIONS or target.type == "import_statement":
        return
    scope.declared.update(declared_names(module, target))
    if not is_const_declaration(target):
        return
    for declarator in iter_named(target):
        if declarator.type != "variable_declarator":
            continue
        name = declarator.child_by_field_name("name")
        value = declarator.child_by_field_name("value")
        if name is None or value is None or name.type != "identifier":
            continue
        scope.constants.append(ConstBinding(module.node_text(name), stmt.end_byte, value))


def build_scope_index(module: SourceModule) -> ScopeIndex:
    index = ScopeIndex()
    lowerer = Lowerer(module)
    stack: list[tuple[Node, int | None]] = [(module.root, None)]
    while stack:
        node, parent = stack.pop()
        kind = node.type
        if kind in _BLOCK_SCOPES or kind in FUNCTION_NODES or kind in _HEADER_SCOPES:
            scope = Scope(node.start_byte, node.end_byte, parent)
            if kind == "program":
                for decl in module_index(module).imports:
                    scope.declared.update(b.local for b in decl.bindings)
            if kind in _BLOCK_SCOPES:
                for stmt in iter_named(node):
                    _collect_statement(module, scope, stmt)
            elif kind in FUNCTION_NODES:
                scope.declared.update(_parameter_names(lowerer, node))
            else:
                scope.declared.update(_header_names(module, lowerer, node))
            parent = len(index.scopes)
            index.scopes.append(scope)
            index.by_span[(node.start_byte, node.end_byte, kind)] = parent
        for child in reversed(node.named_children):
            stack.append((child, parent))
    return index


def scope_index(module: SourceModule) -> ScopeIndex:
    return module.memo("scopes", build_scope_index)


def collect_visible_constants(module: SourceModule, at_byte: int) -> dict[str, Expr]:
    """Deep-literal ``const`` bindings visible at ``at_byte``.

    Scopes are walked from the innermost outwards; the first binding of a
    name wins, and any other declaration of that name in an inner scope
    (including parameters) hides the outer constants.
    """
    index = scope_index(module)
    lowerer = Lowerer(module)
    env: dict[str, Expr] = {}
    masked: set[str] = set()
    current: int | None = index.innermost(module, at_byte)
    while current is not None:
        scope = index.scopes[current]
        for binding in scope.constants:
            if binding.end_byte > at_byte:
                break
            if binding.name in env or binding.name in masked:
                continue
            value = lowerer.expr(unwrap_const_assertion(binding.value, module))
            if is_deep_literal(value):
                env[binding.name] = value
        masked |= scope.declared
        current = scope.parent
    log.debug("Visible constants at byte %d: %s", at_byte, sorted(env))
    return env
