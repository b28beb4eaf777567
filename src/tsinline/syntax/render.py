from __future__ import annotations

from collections.abc import Callable
from typing import Any

from tsinline.syntax.nodes import (
    ArrayLiteral,
    Await,
    Binary,
    BooleanLiteral,
    Call,
    ComputedKey,
    Conditional,
    ElementAccess,
    Expr,
    FunctionExpr,
    Hole,
    Identifier,
    NumericLiteral,
    ObjectLiteral,
    Opaque,
    OpaqueMember,
    Parenthesized,
    Property,
    PropertyAccess,
    PropertyKey,
    Slot,
    Spread,
    StringLiteral,
    TemplateLiteral,
    Unary,
)
from tsinline.util.jsvalues import format_number, is_identifier_name, quote_string

SEQUENCE = 0
ASSIGNMENT = 1
CONDITIONAL = 2
UNARY = 15
POSTFIX = 16
MEMBER = 17
PRIMARY = 18

BINARY_PRECEDENCE = {
    "??": 3,
    "||": 4,
    "&&": 5,
    "|": 6,
    "^": 7,
    "&": 8,
    "==": 9,
    "!=": 9,
    "===": 9,
    "!==": 9,
    "<": 10,
    "<=": 10,
    ">": 10,
    ">=": 10,
    "instanceof": 10,
    "in": 10,
    "<<": 11,
    ">>": 11,
    ">>>": 11,
    "+": 12,
    "-": 12,
    "*": 13,
    "/": 13,
    "%": 13,
    "**": 14,
}

_WORD_OPERATORS = {"typeof", "void", "delete"}


def precedence(expr: Expr) -> int:
    if isinstance(expr, NumericLiteral):
        return UNARY if expr.value < 0 or (expr.raw or "").startswith("-") else PRIMARY
    if isinstance(expr, (PropertyAccess, ElementAccess, Call)):
        return MEMBER
    if isinstance(expr, (Unary, Await)):
        return UNARY
    if isinstance(expr, Binary):
        return BINARY_PRECEDENCE.get(expr.op, 10)
    if isinstance(expr, Conditional):
        return CONDITIONAL
    if isinstance(expr, FunctionExpr):
        return ASSIGNMENT
    if isinstance(expr, Opaque):
        return expr.precedence
    return PRIMARY


class Renderer:
    def __init__(self) -> None:
        self._handlers: dict[type, Callable[[Any], str]] = {
            Identifier: self._identifier,
            NumericLiteral: self._number,
            StringLiteral: self._string,
            BooleanLiteral: self._boolean,
            TemplateLiteral: self._template,
            ArrayLiteral: self._array,
            ObjectLiteral: self._object,
            PropertyAccess: self._property_access,
            ElementAccess: self._element_access,
            Call: self._call,
            Conditional: self._conditional,
            Binary: self._binary,
            Unary: self._unary,
            Parenthesized: self._parenthesized,
            Await: self._await,
            FunctionExpr: self._function,
            Opaque: self._opaque,
        }

    def render(self, expr: Expr) -> str:
        handler = self._handlers.get(type(expr))
        if handler is None:
            raise TypeError(f"cannot render {type(expr).__name__}")
        return handler(expr)

    def _wrap(self, expr: Expr, minimum: int) -> str:
        text = self.render(expr)
        if precedence(expr) < minimum:
            return f"({text})"
        return text

    def _identifier(self, expr: Identifier) -> str:
        return expr.name

    def _number(self, expr: NumericLiteral) -> str:
        if expr.raw is not None:
            return expr.raw
        if expr.value < 0:
            return "-" + format_number(-expr.value)
        return format_number(expr.value)

    def _string(self, expr: StringLiteral) -> str:
        return expr.raw if expr.raw is not None else quote_string(expr.value)

    def _boolean(self, expr: BooleanLiteral) -> str:
        return "true" if expr.value else "false"

    def _template(self, expr: TemplateLiteral) -> str:
        out = ["`", expr.quasis[0]]
        for sub, quasi in zip(expr.expressions, expr.quasis[1:]):
            out.append("${" + self.render(sub) + "}")
            out.append(quasi)
        out.append("`")
        return "".join(out)

    def _element(self, element: Any) -> str:
        if isinstance(element, Hole):
            return ""
        if isinstance(element, Spread):
            return "..." + self._wrap(element.argument, ASSIGNMENT)
        return self._wrap(element, ASSIGNMENT)

    def _array(self, expr: ArrayLiteral) -> str:
        body = ", ".join(self._element(e) for e in expr.elements)
        if expr.elements and isinstance(expr.elements[-1], Hole):
            body += ","
        return f"[{body}]"

    def key(self, key: PropertyKey) -> str:
        if isinstance(key, ComputedKey):
            return "[" + self._wrap(key.expression, ASSIGNMENT) + "]"
        return self.render(key)

    def _object(self, expr: ObjectLiteral) -> str:
        if not expr.members:
            return "{}"
        parts: list[str] = []
        for member in expr.members:
            if isinstance(member, Spread):
                parts.append("..." + self._wrap(member.argument, ASSIGNMENT))
            elif isinstance(member, OpaqueMember):
                parts.append(member.text)
            elif isinstance(member, Property):
                if (
                    member.shorthand
                    and isinstance(member.key, Identifier)
                    and isinstance(member.value, Identifier)
                    and member.value.name == member.key.name
                ):
                    parts.append(member.key.name)
                else:
                    parts.append(f"{self.key(member.key)}: {self._wrap(member.value, ASSIGNMENT)}")
            else:
                raise TypeError(f"cannot render object member {type(member).__name__}")
        return "{ " + ", ".join(parts) + " }"

    def _base(self, base: Expr) -> str:
        if isinstance(base, NumericLiteral):
            return f"({self.render(base)})"
        return self._wrap(base, MEMBER)

    def _property_access(self, expr: PropertyAccess) -> str:
        dot = "?." if expr.optional else "."
        return f"{self._base(expr.base)}{dot}{expr.name}"

    def _element_access(self, expr: ElementAccess) -> str:
        bracket = "?.[" if expr.optional else "["
        return f"{self._base(expr.base)}{bracket}{self._wrap(expr.index, SEQUENCE)}]"

    def _call(self, expr: Call) -> str:
        args = ", ".join(self._element(a) for a in expr.args)
        paren = "?.(" if expr.optional else "("
        return f"{self._base(expr.callee)}{expr.type_arguments}{paren}{args})"

    def _conditional(self, expr: Conditional) -> str:
        return (
            f"{self._wrap(expr.condition, CONDITIONAL + 1)} ? "
            f"{self._wrap(expr.when_true, ASSIGNMENT)} : {self._wrap(expr.when_false, ASSIGNMENT)}"
        )

    def _binary(self, expr: Binary) -> str:
        prec = BINARY_PRECEDENCE.get(expr.op, 10)
        if expr.op == "**":
            # the left operand of ** cannot be a unary expression
            left = self._wrap(expr.left, UNARY + 1)
            right = self._wrap(expr.right, prec)
        else:
            left = self._wrap(expr.left, prec)
            right = self._wrap(expr.right, prec + 1)
            if expr.op == "??" or _is_logical(expr.op):
                left = self._mixed_nullish(expr.op, expr.left, left)
                right = self._mixed_nullish(expr.op, expr.right, right)
        return f"{left} {expr.op} {right}"

    def _mixed_nullish(self, op: str, operand: Expr, text: str) -> str:
        if not isinstance(operand, Binary) or text.startswith("("):
            return text
        if (op == "??" and _is_logical(operand.op)) or (_is_logical(op) and operand.op == "??"):
            return f"({text})"
        return text

    def _unary(self, expr: Unary) -> str:
        operand = self._wrap(expr.operand, UNARY)
        if expr.op in _WORD_OPERATORS:
            return f"{expr.op} {operand}"
        if expr.op in {"-", "+"} and operand.startswith(expr.op):
            return f"{expr.op}({operand})"
        return f"{expr.op}{operand}"

    def _parenthesized(self, expr: Parenthesized) -> str:
        return f"({self.render(expr.inner)})"

    def _await(self, expr: Await) -> str:
        return "await " + self._wrap(expr.operand, UNARY)

    def _function(self, expr: FunctionExpr) -> str:
        if expr.body is None:
            return expr.head + expr.block_text
        body = self._wrap(expr.body, ASSIGNMENT)
        if isinstance(expr.body, ObjectLiteral):
            body = f"({body})"
        return expr.head + body

    def _opaque(self, expr: Opaque) -> str:
        out: list[str] = []
        for part in expr.parts:
            if isinstance(part, Slot):
                out.append(self._wrap(part.expression, part.precedence))
            else:
                out.append(part)
        return "".join(out)


def _is_logical(op: str) -> bool:
    return op in {"||", "&&"}


_RENDERER = Renderer()


def render(expr: Expr) -> str:
    return _RENDERER.render(expr)


def render_key(key: PropertyKey) -> str:
    return _RENDERER.key(key)


def property_name(name: str) -> PropertyKey:
    """Key node for an object built from a string key."""
    if is_identifier_name(name):
        return Identifier(name)
    return StringLiteral(name)
