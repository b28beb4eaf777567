from __future__ import annotations

from tsinline.fold.env import MAX_CONST_DEPTH, array_element, object_member, resolve
from tsinline.fold.literals import is_deep_literal, to_literal
from tsinline.fold.simplify import Simplifier, evaluate, merge_properties, simplify
from tsinline.syntax.nodes import (
    ArrayLiteral,
    Binary,
    BooleanLiteral,
    Call,
    ComputedKey,
    Conditional,
    ElementAccess,
    Hole,
    Identifier,
    NumericLiteral,
    ObjectLiteral,
    Opaque,
    Parenthesized,
    Property,
    PropertyAccess,
    Spread,
    StringLiteral,
    TemplateLiteral,
)
from tsinline.syntax.render import render


def _num(value: float) -> NumericLiteral:
    return NumericLiteral(value)


def _obj(**values: float) -> ObjectLiteral:
    return ObjectLiteral(tuple(Property(Identifier(k), _num(v)) for k, v in values.items()))


def test_evaluate_literals_and_env() -> None:
    assert evaluate(Binary("+", _num(1.0), StringLiteral("a"))) == "1a"
    assert evaluate(Identifier("x"), {"x": _num(3.0)}) == 3.0
    assert evaluate(PropertyAccess(Identifier("o"), "a"), {"o": _obj(a=2.0)}) == 2.0
    assert evaluate(Identifier("x")) is None


def test_evaluate_short_circuits() -> None:
    # the right operand is never evaluated
    assert evaluate(Binary("&&", BooleanLiteral(False), Identifier("y"))) is False
    assert evaluate(Binary("||", StringLiteral("a"), Identifier("y"))) == "a"


def test_substitutes_and_folds() -> None:
    expr = Binary("*", Identifier("x"), _num(2.0))
    assert render(simplify(expr, {"x": _num(3.0)})) == "6"


def test_argument_is_folded_once_before_substitution() -> None:
    expr = Binary("*", Identifier("x"), Identifier("x"))
    arg = Binary("+", _num(1.0), _num(2.0))
    assert render(simplify(expr, {"x": arg})) == "9"


def test_substitution_keeps_names_without_literal_values() -> None:
    expr = Binary("+", Identifier("a"), _num(2.0))
    out = simplify(expr, {"a": Identifier("three")}, {"a": _num(3.0)})
    assert render(out) == "three + 2"


def test_conditional_decided_by_const_env() -> None:
    expr = Conditional(Identifier("f"), StringLiteral("a"), StringLiteral("b"))
    out = Simplifier({"f": Identifier("flag")}, {"f": BooleanLiteral(True)}).simplify(expr)
    assert render(out) == '"a"'


def test_undecidable_conditional_is_kept() -> None:
    expr = Conditional(Identifier("x"), _num(1.0), _num(2.0))
    assert render(simplify(expr)) == "x ? 1 : 2"


def test_parentheses_kept_only_when_needed() -> None:
    expr = Binary("*", Parenthesized(Binary("+", Identifier("x"), _num(1.0))), _num(2.0))
    assert render(simplify(expr, {"x": Identifier("y")})) == "(y + 1) * 2"
    assert render(simplify(Parenthesized(Identifier("x")), {"x": Identifier("y")})) == "y"


def test_array_spread_of_constant_is_flattened() -> None:
    expr = ArrayLiteral((Spread(Identifier("a")), _num(3.0)))
    out = simplify(expr, {}, {"a": ArrayLiteral((_num(1.0), _num(2.0)))})
    assert render(out) == "[1, 2, 3]"


def test_unknown_spread_is_kept() -> None:
    expr = ArrayLiteral((Spread(Identifier("rest")), _num(3.0)))
    assert render(simplify(expr)) == "[...rest, 3]"


def test_object_spread_merges_first_position_last_value() -> None:
    expr = ObjectLiteral((Spread(Identifier("base")), Property(Identifier("a"), _num(2.0))))
    out = simplify(expr, {}, {"base": _obj(a=1.0, b=3.0)})
    assert render(out) == "{ a: 2, b: 3 }"


def test_template_with_constant_parts_becomes_string() -> None:
    expr = TemplateLiteral(("", " says hi"), (Identifier("m"),))
    assert render(simplify(expr, {"m": StringLiteral("June")})) == '"June says hi"'


def test_template_keeps_unknown_parts() -> None:
    expr = TemplateLiteral(("a", "b", "c"), (_num(1.0), Identifier("x")))
    assert render(simplify(expr)) == "`a1b${x}c`"


def test_member_access_on_literal_is_folded() -> None:
    expr = PropertyAccess(Identifier("o"), "a")
    assert render(simplify(expr, {"o": _obj(a=1.0)})) == "1"
    index = ElementAccess(Identifier("t"), _num(1.0))
    assert render(simplify(index, {"t": ArrayLiteral((_num(5.0), _num(6.0)))})) == "6"


def test_call_arguments_are_substituted() -> None:
    expr = Call(Identifier("g"), (Identifier("x"),))
    assert render(simplify(expr, {"x": _num(1.0)})) == "g(1)"


def test_opaque_reading_a_parameter_fails() -> None:
    simplifier = Simplifier({"x": _num(1.0)})
    expr = Opaque(("x++",), precedence=16, names=frozenset({"x"}))
    assert simplifier.simplify(expr) == expr
    assert simplifier.failure is not None


def test_merge_properties_stops_at_barriers() -> None:
    members = [
        Property(Identifier("a"), _num(1.0)),
        Spread(Identifier("other")),
        Property(Identifier("a"), _num(2.0)),
    ]
    assert merge_properties(list(members)) == members
    merged = merge_properties([Property(Identifier("a"), _num(1.0)), Property(StringLiteral("a"), _num(2.0))])
    assert merged == [Property(Identifier("a"), _num(2.0))]


def test_resolve_follows_constant_chains() -> None:
    env = {
        "cfg": ObjectLiteral((Property(Identifier("sizes"), ArrayLiteral((_num(4.0), _num(8.0)))),)),
        "alias": PropertyAccess(Identifier("cfg"), "sizes"),
    }
    assert resolve(ElementAccess(Identifier("alias"), _num(1.0)), env) == _num(8.0)
    assert resolve(Identifier("missing"), env) is None


def test_object_member_and_array_element_edge_cases() -> None:
    obj = ObjectLiteral((Property(Identifier("a"), _num(1.0)), Property(Identifier("a"), _num(2.0))))
    assert object_member(obj, "a") == _num(2.0)
    computed = ObjectLiteral((Property(ComputedKey(Identifier("k")), _num(1.0)),))
    assert object_member(computed, "a") is None
    arr = ArrayLiteral((_num(1.0), Hole(), _num(3.0)))
    assert array_element(arr, 0.0) == _num(1.0)
    assert array_element(arr, 1.0) is None
    # a hole keeps its slot
    assert array_element(arr, 2.0) == _num(3.0)
    assert array_element(ArrayLiteral((Spread(Identifier("xs")), _num(3.0))), 1.0) is None
    assert array_element(arr, 0.5) is None


def test_deep_literal_detection() -> None:
    assert is_deep_literal(ArrayLiteral((_num(1.0), _obj(a=1.0))))
    assert not is_deep_literal(ArrayLiteral((Identifier("x"),)))
    assert not is_deep_literal(ObjectLiteral((Property(Identifier("x"), Identifier("x"), shorthand=True),)))


def test_hole_does_not_shift_later_elements() -> None:
    arr = ArrayLiteral((_num(1.0), Hole(), _num(3.0)))
    assert render(simplify(ElementAccess(Identifier("arr"), _num(2.0)), {"arr": arr})) == "3"


def test_resolve_stops_on_cycles_and_long_chains() -> None:
    assert resolve(Identifier("a"), {"a": Identifier("a")}) is None
    assert resolve(Identifier("b"), {"b": Identifier("c"), "c": Identifier("b")}) is None
    chain = {f"v{i}": Identifier(f"v{i + 1}") for i in range(MAX_CONST_DEPTH + 2)}
    chain[f"v{MAX_CONST_DEPTH + 2}"] = _num(1.0)
    assert resolve(Identifier("v0"), chain) is None
    assert resolve(Identifier("v2"), chain) == _num(1.0)


def test_simplify_is_idempotent_on_literals() -> None:
    env = {"base": _obj(a=1.0, b=3.0), "xs": ArrayLiteral((_num(1.0), _num(2.0)))}
    exprs = [
        Binary("*", Binary("+", _num(1.0), _num(2.0)), _num(4.0)),
        ArrayLiteral((Spread(Identifier("xs")), Hole(), _num(3.0))),
        ObjectLiteral((Spread(Identifier("base")), Property(Identifier("a"), _num(2.0)))),
        TemplateLiteral(("n=", ""), (Binary("-", _num(5.0), _num(2.0)),)),
        Conditional(BooleanLiteral(True), StringLiteral("y"), StringLiteral("n")),
        Binary("/", _num(1.0), _num(0.0)),
    ]
    for expr in exprs:
        once = simplify(expr, {}, env)
        assert simplify(once, {}, env) == once


def test_negative_zero_is_not_folded_to_zero() -> None:
    assert to_literal(-0.0) is None
    assert to_literal(0.0) == _num(0.0)
    neg_zero = Parenthesized(Binary("*", _num(0.0), _num(-1.0)))
    assert render(simplify(Binary("/", _num(1.0), neg_zero))) == "1 / (0 * -1)"
    # String(-0) is "0"
    assert render(simplify(TemplateLiteral(("", "x"), (neg_zero,)))) == '"0x"'
