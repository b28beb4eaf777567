from __future__ import annotations

from pathlib import Path

from tsinline.syntax.nodes import Binary, Identifier, NumericLiteral, ObjectLiteral, Property
from tsinline.syntax.parser import SourceModule, parse_source
from tsinline.syntax.selection import (
    check_async_context,
    find_enclosing_from_entries_call,
    find_enclosing_map_call,
    find_selected_call,
    find_selected_expression,
    needs_parentheses,
)


def _parse(src: str) -> SourceModule:
    module = parse_source(Path("sample.ts"), src)
    assert module is not None
    return module


def _span(src: str, snippet: str) -> tuple[int, int]:
    start = src.index(snippet)
    return start, start + len(snippet)


def test_smallest_call_covering_selection() -> None:
    src = "const r = outer(inner(1), 2);\n"
    module = _parse(src)
    call = find_selected_call(module, *_span(src, "inner(1)"))
    assert call is not None
    assert module.node_text(call) == "inner(1)"
    # a caret inside the outer arguments picks the outer call
    call = find_selected_call(module, *_span(src, "2"))
    assert call is not None
    assert module.node_text(call) == "outer(inner(1), 2)"


def test_no_call_at_selection() -> None:
    src = "const x = 1 + 2;\n"
    module = _parse(src)
    assert find_selected_call(module, *_span(src, "1 + 2")) is None


def test_expression_selection_and_enclosing_calls() -> None:
    src = "const o = Object.fromEntries(keys.map((k) => [k, 1]));\n"
    module = _parse(src)
    node = find_selected_expression(module, *_span(src, "[k, 1]"))
    assert node is not None and node.type == "array"
    map_call = find_enclosing_map_call(module, node)
    assert map_call is not None
    assert module.node_text(map_call).startswith("keys.map(")
    from_entries = find_enclosing_from_entries_call(module, node)
    assert from_entries is not None
    assert module.node_text(from_entries).startswith("Object.fromEntries(")


def test_not_inside_map() -> None:
    src = "const x = [1, 2, 3];\n"
    module = _parse(src)
    node = find_selected_expression(module, *_span(src, "[1, 2, 3]"))
    assert node is not None
    assert find_enclosing_map_call(module, node) is None
    assert find_enclosing_from_entries_call(module, node) is None


def test_async_call_inside_sync_function() -> None:
    src = "function run() {\n  const x = fetchIt();\n}\n"
    module = _parse(src)
    call = find_selected_call(module, *_span(src, "fetchIt()"))
    assert call is not None
    failure = check_async_context(module, call)
    assert failure is not None
    assert "not async" in failure.message


def test_async_call_not_awaited_inside_async_function() -> None:
    src = "async function run() {\n  const x = fetchIt();\n}\n"
    module = _parse(src)
    call = find_selected_call(module, *_span(src, "fetchIt()"))
    assert call is not None
    failure = check_async_context(module, call)
    assert failure is not None
    assert "not awaited" in failure.message


def test_awaited_call_inside_async_function() -> None:
    src = "async function run() {\n  const x = await fetchIt();\n}\n"
    module = _parse(src)
    call = find_selected_call(module, *_span(src, "fetchIt()"))
    assert call is not None
    assert check_async_context(module, call) is None


def test_top_level_await_needs_a_module() -> None:
    src = "const x = await fetchIt();\n"
    module = _parse(src)
    call = find_selected_call(module, *_span(src, "fetchIt()"))
    assert call is not None
    failure = check_async_context(module, call)
    assert failure is not None
    assert "top-level await" in failure.message

    src = "export {};\nconst x = await fetchIt();\n"
    module = _parse(src)
    call = find_selected_call(module, *_span(src, "fetchIt()"))
    assert call is not None
    assert check_async_context(module, call) is None


def test_parentheses_depend_on_the_replaced_position() -> None:
    src = "const a = double(x) * 3;\nconst b = double(x);\nconst f = () => make(1);\n"
    module = _parse(src)
    sum_expr = Binary("+", Identifier("x"), Identifier("x"))
    first = find_selected_call(module, *_span(src, "double(x)"))
    assert first is not None
    assert needs_parentheses(module, first, sum_expr)
    start = src.rindex("double(x)")
    second = find_selected_call(module, start, start + len("double(x)"))
    assert second is not None
    assert not needs_parentheses(module, second, sum_expr)
    third = find_selected_call(module, *_span(src, "make(1)"))
    assert third is not None
    assert needs_parentheses(module, third, ObjectLiteral((Property(Identifier("v"), NumericLiteral(1.0)),)))
