"""Immutable expression and statement model for callee bodies.

Every class here is a frozen dataclass; transformations build new nodes.
Code that walks the model dispatches on ``type(node)`` through a table and
raises ``TypeError`` for a class it has no entry for.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from tsinline.syntax.parser import SourceModule


@dataclass(frozen=True)
class Identifier:
    name: str


@dataclass(frozen=True)
class NumericLiteral:
    value: float
    # source spelling, kept so untouched literals print as written
    raw: str | None = None


@dataclass(frozen=True)
class StringLiteral:
    value: str
    raw: str | None = None


@dataclass(frozen=True)
class BooleanLiteral:
    value: bool


@dataclass(frozen=True)
class TemplateLiteral:
    # raw (still escaped) text chunks; len(quasis) == len(expressions) + 1
    quasis: tuple[str, ...]
    expressions: tuple[Expr, ...]


@dataclass(frozen=True)
class Spread:
    argument: Expr


@dataclass(frozen=True)
class Hole:
    pass


@dataclass(frozen=True)
class ArrayLiteral:
    elements: tuple[Union[Expr, Spread, Hole], ...]


@dataclass(frozen=True)
class ComputedKey:
    expression: Expr


# Identifier, StringLiteral or NumericLiteral keys, or a computed one
PropertyKey = Union[Identifier, StringLiteral, NumericLiteral, ComputedKey]


@dataclass(frozen=True)
class Property:
    key: PropertyKey
    value: Expr
    shorthand: bool = False


@dataclass(frozen=True)
class OpaqueMember:
    """Method, getter or setter kept as source text."""

    text: str
    names: frozenset[str] = frozenset()


ObjectMember = Union[Property, Spread, OpaqueMember]


@dataclass(frozen=True)
class ObjectLiteral:
    members: tuple[ObjectMember, ...]


@dataclass(frozen=True)
class PropertyAccess:
    base: Expr
    name: str
    optional: bool = False


@dataclass(frozen=True)
class ElementAccess:
    base: Expr
    index: Expr
    optional: bool = False


@dataclass(frozen=True)
class Call:
    callee: Expr
    args: tuple[Union[Expr, Spread], ...]
    optional: bool = False
    type_arguments: str = ""


@dataclass(frozen=True)
class Conditional:
    condition: Expr
    when_true: Expr
    when_false: Expr


@dataclass(frozen=True)
class Binary:
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Expr


@dataclass(frozen=True)
class Parenthesized:
    inner: Expr


@dataclass(frozen=True)
class Await:
    operand: Expr


@dataclass(frozen=True)
class FunctionExpr:
    """Nested arrow or function expression.

    ``head`` is the source text before the body. Expression bodies are
    lowered so arguments can flow into them; block bodies stay text.
    ``head_names`` are the value names the head reads (defaults), and
    ``block_names`` every value name inside a block body.
    """

    definition: FunctionDef
    head: str
    body: Expr | None
    block_text: str = ""
    bound_names: frozenset[str] = frozenset()
    head_names: frozenset[str] = frozenset()
    block_names: frozenset[str] = frozenset()
    type_names: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Slot:
    expression: Expr
    # precedence of the expression originally in this position
    precedence: int


@dataclass(frozen=True)
class Opaque:
    """Any other expression: source text interleaved with lowered children.

    ``names`` and ``type_names`` hold identifiers that appear in text parts.
    ``binds`` is set when the text contains declarations (classes, blocks),
    in which case the text names cannot be substituted safely.
    """

    parts: tuple[Union[str, Slot], ...]
    precedence: int = 18
    names: frozenset[str] = frozenset()
    type_names: frozenset[str] = frozenset()
    binds: bool = False


Expr = Union[
    Identifier,
    NumericLiteral,
    StringLiteral,
    BooleanLiteral,
    TemplateLiteral,
    ArrayLiteral,
    ObjectLiteral,
    PropertyAccess,
    ElementAccess,
    Call,
    Conditional,
    Binary,
    Unary,
    Parenthesized,
    Await,
    FunctionExpr,
    Opaque,
]


# statements


@dataclass(frozen=True)
class Return:
    expression: Expr | None


@dataclass(frozen=True)
class Block:
    statements: tuple[Stmt, ...]


@dataclass(frozen=True)
class If:
    condition: Expr
    consequent: Stmt
    alternate: Stmt | None = None


@dataclass(frozen=True)
class SwitchClause:
    # None for ``default:``
    test: Expr | None
    body: tuple[Stmt, ...]


@dataclass(frozen=True)
class Switch:
    discriminant: Expr
    clauses: tuple[SwitchClause, ...]


@dataclass(frozen=True)
class OtherStatement:
    kind: str
    text: str


Stmt = Union[Return, Block, If, Switch, OtherStatement]


# function definitions


@dataclass(frozen=True)
class NamePattern:
    name: str


@dataclass(frozen=True)
class PatternElement:
    """One element of an object or array destructuring pattern.

    ``key`` is the source key for object patterns (``None`` in array
    patterns); ``key_kind`` is ``identifier``, ``string``, ``number`` or
    ``computed``.
    """

    target: Pattern
    key: str | None = None
    key_kind: str = "identifier"
    default: Expr | None = None
    rest: bool = False


@dataclass(frozen=True)
class ObjectPattern:
    elements: tuple[PatternElement, ...]


@dataclass(frozen=True)
class ArrayPattern:
    # None marks an elision
    elements: tuple[PatternElement | None, ...]


@dataclass(frozen=True)
class UnsupportedPattern:
    text: str


Pattern = Union[NamePattern, ObjectPattern, ArrayPattern, UnsupportedPattern]


@dataclass(frozen=True)
class Param:
    pattern: Pattern
    default: Expr | None = None
    rest: bool = False


@dataclass(frozen=True)
class FunctionDef:
    name: str
    params: tuple[Param, ...]
    body: Expr | Block
    is_async: bool = False
    is_generator: bool = False
    uses_this: bool = False
    module: SourceModule | None = field(default=None, compare=False, repr=False)


def pattern_names(pattern: Pattern) -> list[str]:
    """Every local name a binding pattern introduces."""
    if isinstance(pattern, NamePattern):
        return [pattern.name]
    if isinstance(pattern, (ObjectPattern, ArrayPattern)):
        out: list[str] = []
        for element in pattern.elements:
            if element is not None:
                out.extend(pattern_names(element.target))
        return out
    return []
