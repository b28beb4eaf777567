from __future__ import annotations

from pathlib import Path

import pytest

from tsinline.api import (
    apply_replacement,
    literal_fold,
    run_literal_inline,
    run_literal_inline_array,
    run_literal_inline_object,
    selection_offsets,
)
from tsinline.fold.comprehension import literal_inline_comprehension, object_entries
from tsinline.result import Failure, FailureKind, Success
from tsinline.syntax.nodes import ArrayLiteral, Binary, Identifier, NumericLiteral, ObjectLiteral, Property, StringLiteral
from tsinline.syntax.parser import parse_source
from tsinline.syntax.selection import find_selected_call

FILE = Path("/work/src/sample.ts")


def _fold(src: str, snippet: str) -> Success | Failure:
    start, end = selection_offsets(src, snippet)
    return run_literal_inline(src, start, end, FILE)


def _array(src: str, snippet: str) -> Success | Failure:
    start, end = selection_offsets(src, snippet)
    return run_literal_inline_array(src, start, end, FILE)


def _object(src: str, snippet: str) -> Success | Failure:
    start, end = selection_offsets(src, snippet)
    return run_literal_inline_object(src, start, end, FILE)


def test_selection_offsets() -> None:
    text = "const x = add(1); const y = add(2);"
    start, end = selection_offsets(text, "add(2)")
    assert text[start:end] == "add(2)"
    with pytest.raises(ValueError, match="not found"):
        selection_offsets("hello", "xyz")


def test_folds_arithmetic() -> None:
    src = "\nconst arg = 3;\nconst sum = arg + 3;\n"
    result = _fold(src, "arg + 3")
    assert isinstance(result, Success)
    assert result.value.text == "6"
    assert src[result.value.start : result.value.end] == "arg + 3"


def test_folds_template_literal() -> None:
    src = '\nconst month = "June";\nconst myString = `${month} says hello!`;\n'
    result = _fold(src, "`${month} says hello!`")
    assert isinstance(result, Success)
    assert result.value.text == '"June says hello!"'


def test_flattens_array_spread() -> None:
    src = "\nconst arg = [7, 8];\nconst bigArray = [...arg, 4, 5];\n"
    result = _fold(src, "[...arg, 4, 5]")
    assert isinstance(result, Success)
    assert result.value.text == "[7, 8, 4, 5]"


def test_flattens_object_spread() -> None:
    src = "\nconst base = { a: 1 };\nconst obj = { ...base, b: 2 };\n"
    result = _fold(src, "{ ...base, b: 2 }")
    assert isinstance(result, Success)
    assert result.value.text == "{ a: 1, b: 2 }"


def test_fold_respects_shadowing() -> None:
    src = "const n = 2;\nfunction f(n: number) { return n * 3; }\n"
    result = _fold(src, "n * 3")
    assert isinstance(result, Success)
    assert result.value.text == "n * 3"


def test_fold_reads_nested_constants() -> None:
    src = "const cfg = { sizes: [4, 8] } as const;\nconst big = cfg.sizes[1] * 2;\n"
    result = _fold(src, "cfg.sizes[1] * 2")
    assert isinstance(result, Success)
    assert result.value.text == "16"


def test_fold_without_expression() -> None:
    src = "const x = ;"
    result = run_literal_inline(src, 0, len(src), FILE)
    assert isinstance(result, Failure)
    assert "No expression" in result.message


def test_literal_fold_helper() -> None:
    env = {"a": NumericLiteral(2.0), "b": Identifier("a")}
    assert literal_fold(Binary("*", Identifier("b"), Identifier("c")), env) == "2 * c"


def test_map_over_const_array() -> None:
    src = "\nconst myArray = [1, 2, 3];\nconst doubled = myArray.map((x) => x * 2);\n"
    result = _array(src, "myArray.map((x) => x * 2)")
    assert isinstance(result, Success)
    assert result.value.text == "[2, 4, 6]"


def test_map_over_object_entries() -> None:
    src = "\nconst obj = { a: 1, b: 2 };\nconst entries = Object.entries(obj).map(([k, v]) => v * 2);\n"
    result = _array(src, "Object.entries(obj).map(([k, v]) => v * 2)")
    assert isinstance(result, Success)
    assert result.value.text == "[2, 4]"


def test_map_with_index_and_block_body() -> None:
    src = "const out = [10, 20].map((x, i) => { return x + i; });\n"
    result = _array(src, "x + i")
    assert isinstance(result, Success)
    assert result.value.text == "[10, 21]"


def test_map_with_switch_callback() -> None:
    src = (
        "const codes = [1, 2];\n"
        "const names = codes.map((c) => {\n"
        "  switch (c) {\n"
        "    case 1: return 'one';\n"
        "    default: return 'other';\n"
        "  }\n"
        "});\n"
    )
    result = _array(src, "codes.map")
    assert isinstance(result, Success)
    assert result.value.text == "['one', 'other']"


def test_map_over_non_const_array() -> None:
    src = "\nlet myArray = [1, 2];\nconst doubled = myArray.map((x) => x * 2);\n"
    result = _array(src, "myArray.map((x) => x * 2)")
    assert isinstance(result, Failure)
    assert "const" in result.message


def test_map_needs_inline_callback() -> None:
    src = "const xs = [1];\nconst ys = xs.map(double);\n"
    result = _array(src, "xs.map(double)")
    assert isinstance(result, Failure)
    assert result.message.startswith("Map callback must be")


def test_array_selection_outside_map() -> None:
    src = "const x = [1, 2, 3];"
    result = _array(src, "[1, 2, 3]")
    assert isinstance(result, Failure)
    assert result.kind == FailureKind.SELECTION
    assert "Selection must" in result.message


def test_array_without_expression() -> None:
    result = run_literal_inline_array("const x = 1;", 0, 0, FILE)
    assert isinstance(result, Failure)


def test_from_entries_of_const_entries() -> None:
    src = '\nconst entries = [["a", 1], ["b", 2]];\nconst obj = Object.fromEntries(entries);\n'
    result = _object(src, "Object.fromEntries(entries)")
    assert isinstance(result, Success)
    assert result.value.text == "{ a: 1, b: 2 }"


def test_from_entries_last_value_wins_and_quotes_keys() -> None:
    src = 'const obj = Object.fromEntries([["a", 1], ["x-y", 2], ["a", 3]]);\n'
    result = _object(src, "Object.fromEntries")
    assert isinstance(result, Success)
    assert result.value.text == '{ a: 3, "x-y": 2 }'


def test_from_entries_over_map() -> None:
    src = 'const keys = ["x", "y"];\nconst obj = Object.fromEntries(keys.map((k, i) => [k, i]));\n'
    result = _object(src, "Object.fromEntries")
    assert isinstance(result, Success)
    assert result.value.text == '{ x: 0, y: 1 }'


def test_from_entries_of_non_const() -> None:
    src = '\nlet entries = [["a", 1]];\nconst obj = Object.fromEntries(entries);\n'
    result = _object(src, "Object.fromEntries(entries)")
    assert isinstance(result, Failure)
    assert "const" in result.message


def test_from_entries_with_bad_entry() -> None:
    src = 'const obj = Object.fromEntries([["a"]]);\n'
    result = _object(src, "Object.fromEntries")
    assert isinstance(result, Failure)
    assert result.message == "Each entry must be a [key, value] array."


def test_object_selection_outside_from_entries() -> None:
    src = "const x = { a: 1 };"
    result = _object(src, "{ a: 1 }")
    assert isinstance(result, Failure)
    assert "fromEntries" in result.message


def test_comprehension_dispatch() -> None:
    src = "const xs = [1, 2];\nconst ys = xs.map((x) => -x);\n"
    module = parse_source(FILE, src)
    assert module is not None
    start, end = selection_offsets(src, "xs.map((x) => -x)")
    call = find_selected_call(module, start, end)
    assert call is not None
    result = literal_inline_comprehension(module, call)
    assert isinstance(result, Success)
    assert result.value == "[-1, -2]"


def test_object_entries_key_order() -> None:
    obj = ObjectLiteral(
        tuple(
            Property(key, NumericLiteral(float(i)))
            for i, key in enumerate([Identifier("b"), StringLiteral("2"), Identifier("a"), NumericLiteral(1.0)])
        )
    )
    keys = [entry.elements[0] for entry in object_entries(obj)]  # type: ignore[union-attr]
    assert keys == [StringLiteral("1"), StringLiteral("2"), StringLiteral("b"), StringLiteral("a")]
    assert isinstance(object_entries(obj)[0], ArrayLiteral)


def test_apply_replacement_inserts_imports_after_last_import() -> None:
    src = 'import { a } from "x";\n\nconst r = safe(y);\n'
    start, end = selection_offsets(src, "safe(y)")
    from tsinline.api import Replacement

    replacement = Replacement("clamp(y, 0, 10)", start, end, ['import { clamp } from "mathlib";\n'])
    assert apply_replacement(src, FILE, replacement) == (
        'import { a } from "x";\nimport { clamp } from "mathlib";\n\nconst r = clamp(y, 0, 10);\n'
    )
    bare = "const r = safe(y);\n"
    start, end = selection_offsets(bare, "safe(y)")
    replacement = Replacement("clamp(y, 0, 10)", start, end, ['import { clamp } from "mathlib";\n'])
    assert apply_replacement(bare, FILE, replacement) == (
        'import { clamp } from "mathlib";\nconst r = clamp(y, 0, 10);\n'
    )


def test_negative_zero_is_not_printed_as_zero() -> None:
    src = "const r = 1 / (0 * -1);\n"
    result = _fold(src, "1 / (0 * -1)")
    assert isinstance(result, Success)
    assert result.value.text == "1 / (0 * -1)"


def test_index_past_a_hole() -> None:
    src = "const r = [1, , 3][2];\n"
    result = _fold(src, "[1, , 3][2]")
    assert isinstance(result, Success)
    assert result.value.text == "3"
    result = _fold("const r = [1, , 3][1];\n", "[1, , 3][1]")
    assert isinstance(result, Success)
    assert result.value.text == "[1, , 3][1]"


def test_runtime_errors_become_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    import tsinline.api as api

    def too_deep(*args: object) -> dict:
        raise RecursionError("maximum recursion depth exceeded")

    monkeypatch.setattr(api, "collect_visible_constants", too_deep)
    src = "const xs = [1];\nconst ys = xs.map((x) => x);\nconst o = Object.fromEntries([]);\n"
    for result in (
        _fold(src, "xs.map"),
        _array(src, "xs.map"),
        _object(src, "Object.fromEntries"),
    ):
        assert isinstance(result, Failure)
        assert result.kind == FailureKind.IO
        assert result.message == "Literal Inline failed: maximum recursion depth exceeded"
