from __future__ import annotations

from tsinline.result import Failure, FailureKind
from tsinline.syntax.lower import FUNCTION_NODES
from tsinline.syntax.module import module_index
from tsinline.syntax.nodes import Binary, Expr, ObjectLiteral
from tsinline.syntax.parser import Node, SourceModule, descend, iter_named
from tsinline.syntax.render import (
    ASSIGNMENT,
    BINARY_PRECEDENCE,
    CONDITIONAL,
    MEMBER,
    POSTFIX,
    PRIMARY,
    SEQUENCE,
    UNARY,
    precedence,
)

EXPRESSION_NODES = {
    "identifier",
    "undefined",
    "number",
    "string",
    "true",
    "false",
    "null",
    "this",
    "regex",
    "template_string",
    "array",
    "object",
    "member_expression",
    "subscript_expression",
    "call_expression",
    "new_expression",
    "ternary_expression",
    "binary_expression",
    "unary_expression",
    "update_expression",
    "parenthesized_expression",
    "await_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "arrow_function",
    "function",
    "function_expression",
}


def _same_span(a: Node, b: Node) -> bool:
    return a.start_byte == b.start_byte and a.end_byte == b.end_byte


def ancestors(module: SourceModule, node: Node) -> list[Node]:
    """Ancestors of ``node``, outermost first, excluding ``node`` itself."""
    chain = descend(module.root, node.start_byte, node.end_byte)
    for i, candidate in enumerate(chain):
        if candidate.type == node.type and _same_span(candidate, node):
            return chain[:i]
    return chain


def find_selected_call(module: SourceModule, start: int, end: int) -> Node | None:
    """Smallest call expression whose range covers the selection."""
    best: Node | None = None
    for node in descend(module.root, start, end):
        if node.type == "call_expression":
            best = node
    return best


def find_selected_expression(module: SourceModule, start: int, end: int) -> Node | None:
    best: Node | None = None
    for node in descend(module.root, start, end):
        if node.type in EXPRESSION_NODES:
            best = node
    return best


def _callee_parts(module: SourceModule, call: Node) -> tuple[str, str] | None:
    fn = call.child_by_field_name("function")
    if fn is None or fn.type != "member_expression":
        return None
    obj = fn.child_by_field_name("object")
    prop = fn.child_by_field_name("property")
    if obj is None or prop is None:
        return None
    return module.node_text(obj), module.node_text(prop)


def is_map_call(module: SourceModule, node: Node) -> bool:
    if node.type != "call_expression":
        return False
    parts = _callee_parts(module, node)
    return parts is not None and parts[1] == "map"


def is_from_entries_call(module: SourceModule, node: Node) -> bool:
    if node.type != "call_expression":
        return False
    return _callee_parts(module, node) == ("Object", "fromEntries")


def is_object_entries_call(module: SourceModule, node: Node) -> bool:
    if node.type != "call_expression":
        return False
    return _callee_parts(module, node) == ("Object", "entries")


def _enclosing(module: SourceModule, expr: Node, predicate) -> Node | None:
    if predicate(module, expr):
        return expr
    for node in reversed(ancestors(module, expr)):
        if predicate(module, node):
            return node
    return None


def find_enclosing_map_call(module: SourceModule, expr: Node) -> Node | None:
    return _enclosing(module, expr, is_map_call)


def find_enclosing_from_entries_call(module: SourceModule, expr: Node) -> Node | None:
    return _enclosing(module, expr, is_from_entries_call)


def check_async_context(module: SourceModule, call: Node) -> Failure | None:
    """Reason an async callee cannot replace ``call``, or None when it can."""
    chain = ancestors(module, call)
    awaited = bool(chain) and chain[-1].type == "await_expression"
    enclosing = next((node for node in reversed(chain) if node.type in FUNCTION_NODES), None)
    if enclosing is not None:
        if not any(child.type == "async" for child in enclosing.children):
            return Failure(
                FailureKind.UNSUPPORTED,
                "Cannot inline async function here: enclosing function is not async.",
            )
        if not awaited:
            return Failure(
                FailureKind.UNSUPPORTED,
                "Cannot inline async function here: the call is not awaited and inlining would change its behavior.",
            )
        return None
    if not awaited:
        return Failure(
            FailureKind.UNSUPPORTED,
            "Cannot inline async function at top level unless the call is awaited.",
        )
    if not module_index(module).is_module:
        return Failure(
            FailureKind.UNSUPPORTED,
            "Cannot inline async function here: top-level await is not allowed in this file.",
        )
    return None


def call_arguments(call: Node) -> list[Node]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return []
    return iter_named(arguments)


_ANY_EXPRESSION = {"parenthesized_expression", "expression_statement", "return_statement", "template_substitution"}
_ASSIGNMENT_SLOTS = {
    "arguments",
    "array",
    "variable_declarator",
    "pair",
    "spread_element",
    "assignment_expression",
    "augmented_assignment_expression",
    "arrow_function",
    "jsx_expression",
    "assignment_pattern",
    "object_assignment_pattern",
}
_MEMBER_PARENTS = {"member_expression", "call_expression", "non_null_expression", "new_expression"}


def _minimum_precedence(parent: Node, node: Node) -> int:
    kind = parent.type
    if kind in _ANY_EXPRESSION:
        return SEQUENCE
    if kind in _ASSIGNMENT_SLOTS:
        return ASSIGNMENT
    if kind == "ternary_expression":
        condition = parent.child_by_field_name("condition")
        if condition is not None and _same_span(condition, node):
            return CONDITIONAL + 1
        return ASSIGNMENT
    if kind == "binary_expression":
        operator = parent.child_by_field_name("operator")
        op_precedence = BINARY_PRECEDENCE.get(operator.type if operator is not None else "", 10)
        left = parent.child_by_field_name("left")
        is_left = left is not None and _same_span(left, node)
        if operator is not None and operator.type == "**":
            return POSTFIX if is_left else op_precedence
        return op_precedence if is_left else op_precedence + 1
    if kind in {"unary_expression", "await_expression"}:
        return UNARY
    if kind == "subscript_expression":
        index = parent.child_by_field_name("index")
        return SEQUENCE if index is not None and _same_span(index, node) else MEMBER
    if kind in _MEMBER_PARENTS:
        return MEMBER
    if kind in {"as_expression", "satisfies_expression"}:
        return BINARY_PRECEDENCE["<"] + 1
    return PRIMARY


def needs_parentheses(module: SourceModule, node: Node, replacement: Expr) -> bool:
    """Whether ``replacement`` must be parenthesized to stand where ``node`` is."""
    chain = ancestors(module, node)
    if not chain:
        return False
    parent = chain[-1]
    if isinstance(replacement, ObjectLiteral) and parent.type in {"arrow_function", "expression_statement"}:
        return True
    if parent.type == "binary_expression" and isinstance(replacement, Binary):
        operator = parent.child_by_field_name("operator")
        ops = {replacement.op, operator.type if operator is not None else ""}
        # ?? cannot be mixed with || or && without parentheses
        if "??" in ops and ops & {"||", "&&"}:
            return True
    return precedence(replacement) < _minimum_precedence(parent, node)
