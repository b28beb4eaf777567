"""Lower tree-sitter TypeScript nodes into the expression model."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from tsinline.syntax.nodes import (
    ArrayLiteral,
    ArrayPattern,
    Await,
    Binary,
    Block,
    BooleanLiteral,
    Call,
    ComputedKey,
    Conditional,
    ElementAccess,
    Expr,
    FunctionDef,
    FunctionExpr,
    Hole,
    Identifier,
    If,
    NamePattern,
    NumericLiteral,
    ObjectLiteral,
    ObjectMember,
    ObjectPattern,
    Opaque,
    OpaqueMember,
    OtherStatement,
    Param,
    Parenthesized,
    Pattern,
    PatternElement,
    Property,
    PropertyAccess,
    PropertyKey,
    Return,
    Slot,
    Spread,
    Stmt,
    StringLiteral,
    Switch,
    SwitchClause,
    TemplateLiteral,
    Unary,
    UnsupportedPattern,
    pattern_names,
)
from tsinline.syntax.parser import Node, SourceModule, iter_named
from tsinline.syntax.render import ASSIGNMENT, PRIMARY, SEQUENCE, precedence
from tsinline.util.jsvalues import format_number, parse_numeral, unescape

log = logging.getLogger(__name__)

FUNCTION_EXPRESSION_NODES = {
    "arrow_function",
    "function",
    "function_expression",
    "generator_function",
}

FUNCTION_NODES = FUNCTION_EXPRESSION_NODES | {
    "function_declaration",
    "generator_function_declaration",
    "method_definition",
}

# scopes that rebind `this` and `arguments`
_THIS_BARRIERS = (FUNCTION_NODES - {"arrow_function"}) | {"class", "class_declaration"}

_BINDING_NODES = {"class", "class_body", "statement_block", "class_heritage"}

_DELIMITED_PARENTS = {"arguments", "array", "template_substitution", "jsx_expression"}

_OPAQUE_PRECEDENCE = {
    "sequence_expression": SEQUENCE,
    "assignment_expression": ASSIGNMENT,
    "augmented_assignment_expression": ASSIGNMENT,
    "yield_expression": ASSIGNMENT,
    "as_expression": 10,
    "satisfies_expression": 10,
    "type_assertion": 15,
    "update_expression": 16,
    "new_expression": 16,
    "non_null_expression": 17,
}


def _is_type_context(node: Node) -> bool:
    t = node.type
    return (
        t.endswith("_type")
        or t
        in {
            "type_annotation",
            "type_arguments",
            "type_parameters",
            "type_identifier",
            "type_predicate",
            "type_query",
            "nested_type_identifier",
        }
    )


@dataclass
class _OpaqueInfo:
    slots: list[tuple[Node, Slot]] = field(default_factory=list)
    names: set[str] = field(default_factory=set)
    type_names: set[str] = field(default_factory=set)
    binds: bool = False


def collect_names(node: Node, module: SourceModule, out: set[str] | None = None) -> set[str]:
    """Value identifiers anywhere under ``node``."""
    if out is None:
        out = set()
    if node.type in {"identifier", "shorthand_property_identifier"}:
        out.add(module.node_text(node))
        return out
    for child in node.named_children:
        collect_names(child, module, out)
    return out


def collect_type_names(node: Node, module: SourceModule, out: set[str] | None = None) -> set[str]:
    if out is None:
        out = set()
    if node.type == "type_identifier":
        out.add(module.node_text(node))
        return out
    if node.type == "nested_type_identifier":
        out.add(module.node_text(node).split(".", 1)[0].strip())
        return out
    for child in node.named_children:
        collect_type_names(child, module, out)
    return out


def uses_this(node: Node, module: SourceModule) -> bool:
    """Whether ``node`` reads the ``this`` or ``arguments`` of its function."""
    if node.type in _THIS_BARRIERS:
        return False
    if node.type == "this":
        return True
    if node.type == "identifier":
        return module.node_text(node) == "arguments"
    return any(uses_this(child, module) for child in node.named_children)


def unwrap_const_assertion(node: Node, module: SourceModule) -> Node:
    """Look through ``x as const``, ``x satisfies T`` and parentheses."""
    while True:
        if node.type in {"as_expression", "satisfies_expression"}:
            inner = iter_named(node)
            if not inner:
                return node
            node = inner[0]
        elif node.type == "parenthesized_expression":
            inner = iter_named(node)
            if len(inner) != 1:
                return node
            node = inner[0]
        else:
            return node


class Lowerer:
    def __init__(self, module: SourceModule) -> None:
        self.module = module
        self._handlers: dict[str, Callable[[Node], Expr]] = {
            "identifier": self._identifier,
            "undefined": self._identifier,
            "number": self._number,
            "string": self._string,
            "true": self._boolean,
            "false": self._boolean,
            "template_string": self._template,
            "array": self._array,
            "object": self._object,
            "member_expression": self._member,
            "subscript_expression": self._subscript,
            "call_expression": self._call,
            "ternary_expression": self._ternary,
            "binary_expression": self._binary,
            "unary_expression": self._unary,
            "parenthesized_expression": self._parenthesized,
            "await_expression": self._await,
        }
        for kind in FUNCTION_EXPRESSION_NODES:
            self._handlers[kind] = self._function_expr

    def text(self, node: Node) -> str:
        return self.module.node_text(node)

    # expressions

    def expr(self, node: Node) -> Expr:
        handler = self._handlers.get(node.type)
        if handler is None:
            return self._opaque(node)
        return handler(node)

    def _identifier(self, node: Node) -> Expr:
        return Identifier(self.text(node))

    def _number(self, node: Node) -> Expr:
        raw = self.text(node)
        value = parse_numeral(raw)
        if value is None:
            # BigInt
            return Opaque((raw,))
        return NumericLiteral(value, raw=raw)

    def _string(self, node: Node) -> Expr:
        raw = self.text(node)
        return StringLiteral(unescape(raw[1:-1]), raw=raw)

    def _boolean(self, node: Node) -> Expr:
        return BooleanLiteral(node.type == "true")

    def _template(self, node: Node) -> Expr:
        quasis: list[str] = []
        expressions: list[Expr] = []
        pos = node.start_byte + 1
        for child in node.children:
            if child.type != "template_substitution":
                continue
            quasis.append(self.module.slice(pos, child.start_byte))
            inner = iter_named(child)
            if len(inner) != 1:
                return self._opaque(node)
            expressions.append(self.expr(inner[0]))
            pos = child.end_byte
        quasis.append(self.module.slice(pos, node.end_byte - 1))
        return TemplateLiteral(tuple(quasis), tuple(expressions))

    def _spread_or_expr(self, node: Node) -> Expr | Spread:
        if node.type == "spread_element":
            return Spread(self.expr(iter_named(node)[0]))
        return self.expr(node)

    def _array(self, node: Node) -> Expr:
        elements: list[Expr | Spread | Hole] = []
        pending: Expr | Spread | None = None
        for child in node.children:
            if child.type in {"[", "]", "comment"}:
                continue
            if child.type == ",":
                elements.append(pending if pending is not None else Hole())
                pending = None
            else:
                pending = self._spread_or_expr(child)
        if pending is not None:
            elements.append(pending)
        return ArrayLiteral(tuple(elements))

    def property_key(self, node: Node) -> PropertyKey | None:
        if node.type in {"property_identifier", "identifier"}:
            return Identifier(self.text(node))
        if node.type == "string":
            key = self._string(node)
            assert isinstance(key, StringLiteral)
            return key
        if node.type == "number":
            key = self._number(node)
            return key if isinstance(key, NumericLiteral) else None
        if node.type == "computed_property_name":
            inner = iter_named(node)
            if len(inner) != 1:
                return None
            return ComputedKey(self.expr(inner[0]))
        return None

    def _object(self, node: Node) -> Expr:
        members: list[ObjectMember] = []
        for child in iter_named(node):
            member: ObjectMember | None = None
            if child.type == "pair":
                key_node = child.child_by_field_name("key")
                value_node = child.child_by_field_name("value")
                key = self.property_key(key_node) if key_node is not None else None
                if key is not None and value_node is not None:
                    member = Property(key, self.expr(value_node))
            elif child.type == "shorthand_property_identifier":
                name = self.text(child)
                member = Property(Identifier(name), Identifier(name), shorthand=True)
            elif child.type == "spread_element":
                member = Spread(self.expr(iter_named(child)[0]))
            if member is None:
                member = OpaqueMember(self.text(child), frozenset(collect_names(child, self.module)))
            members.append(member)
        return ObjectLiteral(tuple(members))

    def _is_optional(self, node: Node) -> bool:
        return any(child.type in {"optional_chain", "?."} for child in node.children)

    def _member(self, node: Node) -> Expr:
        obj = node.child_by_field_name("object")
        prop = node.child_by_field_name("property")
        if obj is None or prop is None:
            return self._opaque(node)
        return PropertyAccess(self.expr(obj), self.text(prop), self._is_optional(node))

    def _subscript(self, node: Node) -> Expr:
        obj = node.child_by_field_name("object")
        index = node.child_by_field_name("index")
        if obj is None or index is None:
            return self._opaque(node)
        return ElementAccess(self.expr(obj), self.expr(index), self._is_optional(node))

    def _call(self, node: Node) -> Expr:
        fn = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if fn is None or arguments is None or arguments.type != "arguments":
            return self._opaque(node)
        type_args = node.child_by_field_name("type_arguments")
        args = tuple(self._spread_or_expr(child) for child in iter_named(arguments))
        return Call(
            self.expr(fn),
            args,
            optional=self._is_optional(node),
            type_arguments=self.text(type_args) if type_args is not None else "",
        )

    def _ternary(self, node: Node) -> Expr:
        cond = node.child_by_field_name("condition")
        yes = node.child_by_field_name("consequence")
        no = node.child_by_field_name("alternative")
        if cond is None or yes is None or no is None:
            return self._opaque(node)
        return Conditional(self.expr(cond), self.expr(yes), self.expr(no))

    def _binary(self, node: Node) -> Expr:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        op = node.child_by_field_name("operator")
        if left is None or right is None or op is None:
            return self._opaque(node)
        return Binary(op.type, self.expr(left), self.expr(right))

    def _unary(self, node: Node) -> Expr:
        op = node.child_by_field_name("operator")
        arg = node.child_by_field_name("argument")
        if op is None or arg is None:
            return self._opaque(node)
        if op.type == "-" and arg.type == "number":
            value = parse_numeral(self.text(arg))
            if value is not None:
                return NumericLiteral(-value, raw="-" + self.text(arg))
        return Unary(op.type, self.expr(arg))

    def _parenthesized(self, node: Node) -> Expr:
        inner = iter_named(node)
        if len(inner) != 1:
            return self._opaque(node)
        return Parenthesized(self.expr(inner[0]))

    def _await(self, node: Node) -> Expr:
        inner = iter_named(node)
        if len(inner) != 1:
            return self._opaque(node)
        return Await(self.expr(inner[0]))

    def _function_expr(self, node: Node) -> Expr:
        definition = self.function_def(node, self._child_text(node, "name") or "")
        body = node.child_by_field_name("body")
        if body is None:
            return self._opaque(node)
        params = node.child_by_field_name("parameters") or node.child_by_field_name("parameter")
        bound: set[str] = set()
        for param in definition.params:
            bound.update(pattern_names(param.pattern))
        if definition.name:
            bound.add(definition.name)
        head_names: set[str] = set()
        if params is not None:
            head_names = collect_names(params, self.module) - bound
        head = self.module.slice(node.start_byte, body.start_byte)
        if body.type == "statement_block":
            return FunctionExpr(
                definition=definition,
                head=head,
                body=None,
                block_text=self.text(body),
                bound_names=frozenset(bound),
                head_names=frozenset(head_names),
                block_names=frozenset(collect_names(body, self.module)),
                type_names=frozenset(collect_type_names(node, self.module)),
            )
        assert not isinstance(definition.body, Block)
        return FunctionExpr(
            definition=definition,
            head=head,
            body=definition.body,
            bound_names=frozenset(bound),
            head_names=frozenset(head_names),
            type_names=frozenset(collect_type_names(node, self.module)),
        )

    def _child_text(self, node: Node, field_name: str) -> str | None:
        child = node.child_by_field_name(field_name)
        if child is None:
            return None
        return self.text(child)

    def _opaque(self, node: Node) -> Expr:
        info = _OpaqueInfo()
        self._collect_opaque(node, info, PRIMARY)
        parts: list[str | Slot] = []
        pos = node.start_byte
        for child, slot in info.slots:
            parts.append(self.module.slice(pos, child.start_byte))
            parts.append(slot)
            pos = child.end_byte
        parts.append(self.module.slice(pos, node.end_byte))
        return Opaque(
            tuple(p for p in parts if p != ""),
            precedence=_OPAQUE_PRECEDENCE.get(node.type, PRIMARY),
            names=frozenset(info.names),
            type_names=frozenset(info.type_names),
            binds=info.binds,
        )

    def _collect_opaque(self, node: Node, info: _OpaqueInfo, slot_floor: int) -> None:
        for child in node.named_children:
            if child.type == "comment":
                continue
            if _is_type_context(child):
                collect_type_names(child, self.module, info.type_names)
                continue
            if child.type in _BINDING_NODES:
                info.binds = True
                collect_names(child, self.module, info.names)
                collect_type_names(child, self.module, info.type_names)
                continue
            if child.type in self._handlers:
                lowered = self.expr(child)
                floor = slot_floor if slot_floor < PRIMARY else precedence(lowered)
                info.slots.append((child, Slot(lowered, floor)))
                continue
            if child.type == "shorthand_property_identifier":
                info.names.add(self.text(child))
                continue
            floor = ASSIGNMENT if child.type in _DELIMITED_PARENTS else PRIMARY
            self._collect_opaque(child, info, floor)

    # statements

    def stmt(self, node: Node) -> Stmt:
        kind = node.type
        if kind == "statement_block":
            return Block(tuple(self.stmt(child) for child in iter_named(node)))
        if kind == "return_statement":
            inner = iter_named(node)
            return Return(self.expr(inner[0]) if inner else None)
        if kind == "if_statement":
            cond = node.child_by_field_name("condition")
            consequence = node.child_by_field_name("consequence")
            if cond is None or consequence is None:
                return OtherStatement(kind, self.text(node))
            alternate: Stmt | None = None
            alt = node.child_by_field_name("alternative")
            if alt is not None:
                alt_inner = iter_named(alt) if alt.type == "else_clause" else [alt]
                if len(alt_inner) != 1:
                    return OtherStatement(kind, self.text(node))
                alternate = self.stmt(alt_inner[0])
            return If(self.expr(cond), self.stmt(consequence), alternate)
        if kind == "switch_statement":
            return self._switch(node)
        return OtherStatement(kind, self.text(node))

    def _switch(self, node: Node) -> Stmt:
        value = node.child_by_field_name("value")
        body = node.child_by_field_name("body")
        if value is None or body is None:
            return OtherStatement(node.type, self.text(node))
        clauses: list[SwitchClause] = []
        for case in iter_named(body):
            if case.type == "switch_case":
                test = case.child_by_field_name("value")
                if test is None:
                    return OtherStatement(node.type, self.text(node))
                statements = [c for c in iter_named(case) if c.start_byte >= test.end_byte]
                clauses.append(SwitchClause(self.expr(test), tuple(self.stmt(s) for s in statements)))
            elif case.type == "switch_default":
                clauses.append(SwitchClause(None, tuple(self.stmt(s) for s in iter_named(case))))
        return Switch(self.expr(value), tuple(clauses))

    # functions

    def function_def(self, node: Node, name: str) -> FunctionDef:
        params_node = node.child_by_field_name("parameters")
        params: list[Param] = []
        if params_node is not None:
            for child in iter_named(params_node):
                params.append(self.param(child))
        else:
            single = node.child_by_field_name("parameter")
            if single is not None:
                params.append(Param(self.pattern(single)))
        body_node = node.child_by_field_name("body")
        body: Expr | Block
        if body_node is None:
            body = Block(())
        elif body_node.type == "statement_block":
            lowered = self.stmt(body_node)
            assert isinstance(lowered, Block)
            body = lowered
        else:
            body = self.expr(body_node)
        is_generator = "generator" in node.type or any(c.type == "*" for c in node.children)
        return FunctionDef(
            name=name,
            params=tuple(params),
            body=body,
            is_async=any(c.type == "async" for c in node.children),
            is_generator=is_generator,
            uses_this=body_node is not None and (
                uses_this(body_node, self.module)
                or (params_node is not None and uses_this(params_node, self.module))
            ),
            module=self.module,
        )

    def param(self, node: Node) -> Param:
        if node.type in {"required_parameter", "optional_parameter"}:
            pattern_node = node.child_by_field_name("pattern")
            if pattern_node is None:
                candidates = [
                    c
                    for c in iter_named(node)
                    if c.type not in {"accessibility_modifier", "override_modifier", "type_annotation"}
                ]
                if not candidates:
                    return Param(UnsupportedPattern(self.text(node)))
                pattern_node = candidates[0]
            value = node.child_by_field_name("value")
            default = self.expr(value) if value is not None else None
        elif node.type == "assignment_pattern":
            pattern_node = node.child_by_field_name("left")
            value = node.child_by_field_name("right")
            if pattern_node is None:
                return Param(UnsupportedPattern(self.text(node)))
            default = self.expr(value) if value is not None else None
        else:
            pattern_node = node
            default = None
        if pattern_node.type == "rest_pattern":
            inner = iter_named(pattern_node)
            target = self.pattern(inner[0]) if inner else UnsupportedPattern(self.text(pattern_node))
            return Param(target, default, rest=True)
        return Param(self.pattern(pattern_node), default)

    def pattern(self, node: Node) -> Pattern:
        if node.type in {"identifier", "shorthand_property_identifier_pattern"}:
            return NamePattern(self.text(node))
        if node.type == "object_pattern":
            return ObjectPattern(tuple(self._object_pattern_element(c) for c in iter_named(node)))
        if node.type == "array_pattern":
            elements: list[PatternElement | None] = []
            pending: PatternElement | None = None
            seen_element = False
            for child in node.children:
                if child.type in {"[", "]", "comment"}:
                    continue
                if child.type == ",":
                    elements.append(pending)
                    pending = None
                    seen_element = False
                else:
                    pending = self._array_pattern_element(child)
                    seen_element = True
            if seen_element:
                elements.append(pending)
            return ArrayPattern(tuple(elements))
        return UnsupportedPattern(self.text(node))

    def _array_pattern_element(self, node: Node) -> PatternElement:
        if node.type == "assignment_pattern":
            left = node.child_by_field_name("left")
            right = node.child_by_field_name("right")
            target = self.pattern(left) if left is not None else UnsupportedPattern(self.text(node))
            return PatternElement(target, default=self.expr(right) if right is not None else None)
        if node.type == "rest_pattern":
            inner = iter_named(node)
            target = self.pattern(inner[0]) if inner else UnsupportedPattern(self.text(node))
            return PatternElement(target, rest=True)
        return PatternElement(self.pattern(node))

    def _object_pattern_element(self, node: Node) -> PatternElement:
        if node.type == "shorthand_property_identifier_pattern":
            name = self.text(node)
            return PatternElement(NamePattern(name), key=name)
        if node.type == "object_assignment_pattern":
            left = node.child_by_field_name("left")
            right = node.child_by_field_name("right")
            if left is None:
                return PatternElement(UnsupportedPattern(self.text(node)), key=None, key_kind="computed")
            name = self.text(left)
            return PatternElement(
                NamePattern(name),
                key=name,
                default=self.expr(right) if right is not None else None,
            )
        if node.type == "rest_pattern":
            inner = iter_named(node)
            target = self.pattern(inner[0]) if inner else UnsupportedPattern(self.text(node))
            return PatternElement(target, rest=True)
        if node.type == "pair_pattern":
            key_node = node.child_by_field_name("key")
            value_node = node.child_by_field_name("value")
            if key_node is None or value_node is None:
                return PatternElement(UnsupportedPattern(self.text(node)), key_kind="computed")
            key_kind, key = self._pattern_key(key_node)
            element = self._array_pattern_element(value_node)
            return PatternElement(element.target, key=key, key_kind=key_kind, default=element.default)
        return PatternElement(UnsupportedPattern(self.text(node)), key_kind="computed")

    def _pattern_key(self, node: Node) -> tuple[str, str | None]:
        if node.type == "property_identifier":
            return "identifier", self.text(node)
        if node.type == "string":
            return "string", unescape(self.text(node)[1:-1])
        if node.type == "number":
            value = parse_numeral(self.text(node))
            if value is None:
                return "computed", None
            return "number", format_number(value)
        return "computed", None


def lower_expression(module: SourceModule, node: Node) -> Expr:
    return Lowerer(module).expr(node)
