from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Union

JsValue = Union[bool, float, str]

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)$")
_WHITESPACE = " \t\n\r\v\f\u00a0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def is_identifier_name(text: str) -> bool:
    return bool(_IDENTIFIER_RE.match(text))


def parse_numeral(text: str) -> float | None:
    """Value of a JS numeric literal, or None for BigInt and malformed text."""
    raw = text.replace("_", "")
    if not raw or raw.endswith("n"):
        return None
    lower = raw.lower()
    try:
        if lower.startswith("0x"):
            return float(int(lower[2:], 16))
        if lower.startswith("0o"):
            return float(int(lower[2:], 8))
        if lower.startswith("0b"):
            return float(int(lower[2:], 2))
        if len(lower) > 1 and lower[0] == "0" and lower.isdigit():
            # legacy octal, decimal when it has an 8 or 9
            if any(ch in "89" for ch in lower):
                return float(int(lower, 10))
            return float(int(lower, 8))
        return float(lower)
    except ValueError:
        return None


def format_number(value: float) -> str:
    """Number#toString for finite values."""
    if value == 0:
        return "0"
    if value < 0:
        return "-" + format_number(-value)
    if value.is_integer() and value < 1e21:
        return str(int(value))
    # repr gives the shortest round-tripping digits, same as ECMAScript
    _, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).lstrip("0")
    stripped = digits.rstrip("0")
    exponent += len(digits) - len(stripped)
    digits = stripped
    k = len(digits)
    n = k + exponent
    if k <= n <= 21:
        return digits + "0" * (n - k)
    if 0 < n <= 21:
        return digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return "0." + "0" * (-n) + digits
    sign = "+" if n - 1 >= 0 else "-"
    if k == 1:
        return f"{digits}e{sign}{abs(n - 1)}"
    return f"{digits[0]}.{digits[1:]}e{sign}{abs(n - 1)}"


def to_number(value: JsValue) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    text = value.strip(_WHITESPACE)
    if text == "":
        return 0.0
    if text in {"Infinity", "+Infinity"}:
        return math.inf
    if text == "-Infinity":
        return -math.inf
    lower = text.lower()
    if lower.startswith(("0x", "0o", "0b")):
        parsed = parse_numeral(text) if "_" not in text else None
        return math.nan if parsed is None else parsed
    if _DECIMAL_RE.match(text):
        return float(text)
    return math.nan


def to_string(value: JsValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return format_number(value)
    return value


def truthy(value: JsValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return not (value == 0 or math.isnan(value))
    return value != ""


def strict_equals(left: JsValue, right: JsValue) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if type(left) is not type(right):
        return False
    return left == right


def loose_equals(left: JsValue, right: JsValue) -> bool:
    if isinstance(left, bool):
        return loose_equals(to_number(left), right)
    if isinstance(right, bool):
        return loose_equals(left, to_number(right))
    if isinstance(left, str) and isinstance(right, float):
        return to_number(left) == right
    if isinstance(left, float) and isinstance(right, str):
        return left == to_number(right)
    return strict_equals(left, right)


def _utf16(text: str) -> bytes:
    return text.encode("utf-16-be", errors="surrogatepass")


def compare(op: str, left: JsValue, right: JsValue) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        a, b = _utf16(left), _utf16(right)
    else:
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if op == "<":
        return a < b
    if op == "<=":
        return a <= b
    if op == ">":
        return a > b
    return a >= b


def add(left: JsValue, right: JsValue) -> JsValue:
    if isinstance(left, str) or isinstance(right, str):
        return to_string(left) + to_string(right)
    return to_number(left) + to_number(right)


def arithmetic(op: str, left: JsValue, right: JsValue) -> float:
    a, b = to_number(left), to_number(right)
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if op == "%":
        if b == 0 or math.isinf(a) or math.isnan(a) or math.isnan(b):
            return math.nan
        if math.isinf(b):
            return a
        return math.fmod(a, b)
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        negative = (a < 0) != (math.copysign(1.0, b) < 0)
        return -math.inf if negative else math.inf
    return a / b


def unescape(raw: str, template: bool = False) -> str:
    """Decode the escapes of a string or template literal body."""
    out: list[str] = []
    i = 0
    n = len(raw)
    while i < n:
        ch = raw[i]
        if ch != "\\" or i + 1 >= n:
            if template and ch == "\r":
                out.append("\n")
                i += 2 if raw[i + 1 : i + 2] == "\n" else 1
                continue
            out.append(ch)
            i += 1
            continue
        nxt = raw[i + 1]
        if nxt in _SIMPLE_ESCAPES and not (nxt == "0" and raw[i + 2 : i + 3].isdigit()):
            out.append(_SIMPLE_ESCAPES[nxt])
            i += 2
        elif nxt == "x" and len(raw[i + 2 : i + 4]) == 2 and _is_hex(raw[i + 2 : i + 4]):
            out.append(chr(int(raw[i + 2 : i + 4], 16)))
            i += 4
        elif nxt == "u" and raw[i + 2 : i + 3] == "{":
            end = raw.find("}", i + 3)
            code = raw[i + 3 : end] if end != -1 else ""
            if code and _is_hex(code):
                out.append(chr(int(code, 16)))
                i = end + 1
            else:
                out.append(nxt)
                i += 2
        elif nxt == "u" and _is_hex(raw[i + 2 : i + 6]) and len(raw[i + 2 : i + 6]) == 4:
            out.append(chr(int(raw[i + 2 : i + 6], 16)))
            i += 6
        elif nxt == "\r":
            i += 3 if raw[i + 2 : i + 3] == "\n" else 2
        elif nxt in "\n\u2028\u2029":
            i += 2
        else:
            out.append(nxt)
            i += 2
    text = "".join(out)
    # join surrogate pairs written as two \u escapes
    return text.encode("utf-16-le", errors="surrogatepass").decode("utf-16-le", errors="surrogatepass")


def _is_hex(text: str) -> bool:
    return bool(text) and all(ch in "0123456789abcdefABCDEF" for ch in text)


def quote_string(value: str) -> str:
    out = ['"']
    for ch in value:
        if ch == '"':
            out.append('\\"')
        elif ch == "\\":
            out.append("\\\\")
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ch in "\u2028\u2029" or ord(ch) < 0x20:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def escape_template(value: str) -> str:
    return value.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
